"""Main settings file for the drive project.

Settings are split into components and environments. The active
environment is selected with ``DJANGO_ENV`` (``development`` by default).
"""

from os import environ

from split_settings.tools import include, optional

environ.setdefault('DJANGO_ENV', 'development')
_ENV = environ['DJANGO_ENV']

_base_settings = (
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/drive.py',
    # Select the right env:
    'environments/{0}.py'.format(_ENV),
    # Optionally override some settings:
    optional('environments/local.py'),
)

include(*_base_settings)
