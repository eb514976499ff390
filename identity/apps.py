from django.apps import AppConfig


class IdentityConfig(AppConfig):
    default_auto_field = "django.db.models.AutoField"
    name = "identity"
    verbose_name = "Identity reconciliation"
