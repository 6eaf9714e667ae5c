from django.apps import AppConfig


class IdeasConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ideas"

    def ready(self):
        # registers the post_save -> record_changed bridge
        from . import store  # noqa: F401
