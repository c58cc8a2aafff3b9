"""Overrides for the development environment."""

from server.settings.components import config

DEBUG = config('DJANGO_DEBUG', cast=bool, default=True)

ALLOWED_HOSTS = [
    config('DOMAIN_NAME', default='localhost'),
    '127.0.0.1',
    'testserver',
]
