from django.db import models


class Idea(models.Model):
    OPEN = "open"
    FUNDED = "funded"
    EXPIRED = "expired"
    STATUS_CHOICES = [
        (OPEN, "Open"),
        (FUNDED, "Funded"),
        (EXPIRED, "Expired"),
    ]

    owner_address = models.CharField(max_length=64)
    title = models.CharField(max_length=200)
    description = models.TextField()
    image_url = models.URLField(max_length=500, null=True, blank=True)
    money_needed = models.DecimalField(max_digits=30, decimal_places=6)
    share_offered = models.CharField(max_length=200)
    end_date = models.DateTimeField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=OPEN)
    created_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.title} ({self.status})"

    @property
    def is_open(self):
        return self.status == self.OPEN


class Investment(models.Model):
    idea = models.ForeignKey(Idea, on_delete=models.PROTECT, related_name="investments")
    investor_address = models.CharField(max_length=64)
    amount = models.DecimalField(max_digits=30, decimal_places=6)
    share_percentage = models.DecimalField(max_digits=12, decimal_places=6)
    transaction_id = models.CharField(max_length=100, unique=True)
    invested_at = models.DateTimeField()

    class Meta:
        ordering = ["invested_at"]

    def __str__(self):
        return f"{self.investor_address} invested {self.amount} in {self.idea.title}"
