"""Django app configuration for backups app."""

from django.apps import AppConfig


class BackupsConfig(AppConfig):
    """Configuration for backups app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'server.apps.backups'
    verbose_name = 'Backups'
