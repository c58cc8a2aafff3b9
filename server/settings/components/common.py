"""Django settings shared by every environment."""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='drive-insecure-dev-key')

INSTALLED_APPS: Final = (
    # Default django apps:
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',

    # Project apps:
    'server.apps.drive',
    'server.apps.backups',
)

MIDDLEWARE: Final = (
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
)

ROOT_URLCONF = 'server.urls'

WSGI_APPLICATION = 'server.wsgi.application'

# Database
# Sqlite is the default, any Django backend can be configured from env.
DATABASES: Final = {
    'default': {
        'ENGINE': config(
            'DJANGO_DATABASE_ENGINE',
            default='django.db.backends.sqlite3',
        ),
        'NAME': config(
            'DJANGO_DATABASE_NAME',
            default=str(BASE_DIR.joinpath('db.sqlite3')),
        ),
        'USER': config('DJANGO_DATABASE_USER', default=''),
        'PASSWORD': config('DJANGO_DATABASE_PASSWORD', default=''),
        'HOST': config('DJANGO_DATABASE_HOST', default=''),
        'PORT': config('DJANGO_DATABASE_PORT', default=''),
        'ATOMIC_REQUESTS': False,
    },
}

if DATABASES['default']['ENGINE'] == 'django.db.backends.sqlite3':
    # Sqlite ignores select_for_update: every transaction takes the
    # database write lock on BEGIN instead, waiting up to `timeout`.
    DATABASES['default']['OPTIONS'] = {
        'transaction_mode': 'IMMEDIATE',
        'timeout': config('DJANGO_DATABASE_TIMEOUT', cast=int, default=20),
    }
    # Shared in-memory databases fail on lock contention instead of waiting
    DATABASES['default']['TEST'] = {
        'NAME': str(BASE_DIR.joinpath('test_db.sqlite3')),
    }

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Internationalization
LANGUAGE_CODE = 'en-us'
USE_I18N = True
TIME_ZONE = 'UTC'
USE_TZ = True
