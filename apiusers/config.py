"""Flask configuration."""

import os

SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///apiusers.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', '0')))
"""Create the tables on application start. Useful for dev and testing."""

LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')

#################### Account URIs ####################
API_BASE_URL = os.environ.get('API_BASE_URL', 'http://localhost')
"""Scheme and host used to build references to user accounts."""

API_VERSION = os.environ.get('API_VERSION', '2.1')

#################### Tokens ####################
ACCESS_TOKEN_DURATION = int(os.environ.get('ACCESS_TOKEN_DURATION',
                                           '2592000'))
"""Lifetime of an access token issued by the password grant, in seconds."""

EMAIL_VERIFICATION_DURATION = int(
    os.environ.get('EMAIL_VERIFICATION_DURATION', '604800')
)
PASSWORD_RESET_DURATION = int(os.environ.get('PASSWORD_RESET_DURATION',
                                             '86400'))

#################### Passwords ####################
PASSWORD_MIN_LENGTH = int(os.environ.get('PASSWORD_MIN_LENGTH', '6'))

ALLOW_AUTO_VERIFY_USERS = bool(int(os.environ.get('ALLOW_AUTO_VERIFY_USERS',
                                                  '0')))
"""Let registrations carrying ``auto_verify_user=true`` skip email
verification.

Only ever enable this on test platforms.
"""

BCRYPT_ROUNDS = int(os.environ.get('BCRYPT_ROUNDS', '12'))
"""Work factor for newly stored credentials."""
