"""
Roles app configuration.
"""
from django.apps import AppConfig


class RolesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.roles'
    verbose_name = 'Roles and permissions'

    def ready(self):
        """Import signals when app is ready."""
        import apps.roles.signals  # noqa
