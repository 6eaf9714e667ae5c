import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Idea",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("owner_address", models.CharField(max_length=64)),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField()),
                ("image_url", models.URLField(blank=True, max_length=500, null=True)),
                ("money_needed", models.DecimalField(decimal_places=6, max_digits=30)),
                ("share_offered", models.CharField(max_length=200)),
                ("end_date", models.DateTimeField()),
                (
                    "status",
                    models.CharField(
                        choices=[("open", "Open"), ("funded", "Funded"), ("expired", "Expired")],
                        default="open",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Investment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("investor_address", models.CharField(max_length=64)),
                ("amount", models.DecimalField(decimal_places=6, max_digits=30)),
                ("share_percentage", models.DecimalField(decimal_places=6, max_digits=12)),
                ("transaction_id", models.CharField(max_length=100, unique=True)),
                ("invested_at", models.DateTimeField()),
                (
                    "idea",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="investments",
                        to="ideas.idea",
                    ),
                ),
            ],
            options={
                "ordering": ["invested_at"],
            },
        ),
    ]
