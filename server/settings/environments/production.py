"""This file contains all the settings used in production."""

from typing import Final

from server.settings.components import config

DEBUG: Final = False

ALLOWED_HOSTS: Final = [
    config('DOMAIN_NAME'),
]

SECURE_CONTENT_TYPE_NOSNIFF: Final = True
SECURE_PROXY_SSL_HEADER: Final = ('HTTP_X_FORWARDED_PROTO', 'https')
