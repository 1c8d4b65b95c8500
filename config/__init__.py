"""Top-level package for Django configuration.

Holds the environment-specific settings modules of the reservation
engine. Select one with ``DJANGO_SETTINGS_MODULE``.
"""
