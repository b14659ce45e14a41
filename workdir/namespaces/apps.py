from django.apps import AppConfig


class NamespacesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'namespaces'
    verbose_name = "Spaces"

    def ready(self):
        from . import checks  # noqa: F401
