"""Production settings for the reservation engine.

Ensure that sensitive values are provided via environment variables.
Production runs on PostgreSQL so that ledger row locks are real.
"""

from .base import *  # noqa: F401,F403

# Never run with debug enabled in production
DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)  # noqa: F405

# Allowed hosts should be defined explicitly via environment variable
ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', required=True).split(',')  # noqa: F405

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.postgresql',
        'NAME': get_env('DB_NAME', required=True),  # noqa: F405
        'USER': get_env('DB_USER', required=True),  # noqa: F405
        'PASSWORD': get_env('DB_PASSWORD', required=True),  # noqa: F405
        'HOST': get_env('DB_HOST', 'localhost'),  # noqa: F405
        'PORT': get_env('DB_PORT', '5432'),  # noqa: F405
        'CONN_MAX_AGE': int(get_env('DB_CONN_MAX_AGE', 60)),  # noqa: F405
    }
}
