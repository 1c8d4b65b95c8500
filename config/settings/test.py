"""Test settings: in-memory SQLite and fast password hashing."""

from .base import *  # noqa: F401,F403

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

RESERVATIONS_DEFAULT_CURRENCY = 'USD'
RESERVATIONS_REFERENCE_PREFIX = 'RS'
RESERVATIONS_DEFAULT_PAGE_SIZE = 20
