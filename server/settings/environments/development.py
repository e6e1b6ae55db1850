"""This file contains all the settings that defines the development server."""

from typing import Final

DEBUG: Final = True

ALLOWED_HOSTS: Final = [
    'localhost',
    '0.0.0.0',  # noqa: S104
    '127.0.0.1',
    '[::1]',
]
