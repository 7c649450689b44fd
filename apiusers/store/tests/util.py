"""Testing helpers."""

import secrets
from contextlib import contextmanager
from datetime import timedelta
from typing import Generator, Optional

from flask import Flask
from sqlalchemy.orm.session import Session

from ... import domain
from .. import ClientStore, TokenStore, models, util
from ...auth.passwords import CredentialVerifier, legacy_digest

TEST_SETTINGS = {
    'API_BASE_URL': 'https://api.example.com',
    'API_VERSION': '2.1',
    'ACCESS_TOKEN_DURATION': 3600,
    'EMAIL_VERIFICATION_DURATION': 3600,
    'PASSWORD_RESET_DURATION': 3600,
    'PASSWORD_MIN_LENGTH': 6,
    'BCRYPT_ROUNDS': 4,
    'ALLOW_AUTO_VERIFY_USERS': False,
}

CLIENT_ID = 'web2'
CLIENT_SECRET = 'web2secret'
UNTRUSTED_CLIENT_ID = 'thirdparty'
UNTRUSTED_CLIENT_SECRET = 'thirdpartysecret'

verifier = CredentialVerifier(rounds=4)


@contextmanager
def temporary_db(database_url: str = 'sqlite:///:memory:',
                 create: bool = True, drop: bool = True) \
        -> Generator[Session, None, None]:
    """Provide an in-memory sqlite database for testing purposes."""
    app = Flask('foo')
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    util.init_app(app)
    with app.app_context():
        if create:
            util.create_all()
        try:
            yield util.current_session()
        finally:
            if drop:
                util.drop_all()


def add_user(session: Session, username: str, password: str = 'passw0rd',
             email: Optional[str] = None, verified: bool = True,
             trusted: bool = False, admin: bool = False,
             legacy: bool = False) -> int:
    """Insert a user directly; returns the user ID."""
    db_user = models.DBUser(
        username=username,
        email=email or f'{username}@example.com',
        password=legacy_digest(password) if legacy
        else verifier.hash(password),
        full_name=username.title(),
        verified=int(verified),
        trusted=int(trusted),
        admin=int(admin),
        created=util.now()
    )
    session.add(db_user)
    session.commit()
    return int(db_user.user_id)


def add_clients(session: Session) -> None:
    """Insert one client trusted with the password grant and one that isn't."""
    clients = ClientStore(session)
    clients.register(CLIENT_ID, CLIENT_SECRET, password_grant=True,
                     name='Web front end')
    clients.register(UNTRUSTED_CLIENT_ID, UNTRUSTED_CLIENT_SECRET,
                     password_grant=False, name='Third party')


def add_caller(session: Session, user_id: int,
               client_id: str = CLIENT_ID) -> domain.Caller:
    """Give a user an access token obtained through ``client_id``."""
    issued = util.from_epoch(util.now())
    token = domain.AccessToken(
        token=secrets.token_hex(20),
        user_id=user_id,
        client_id=client_id,
        issued=issued,
        expires=issued + timedelta(hours=1)
    )
    TokenStore(session).add_access_token(token)
    return domain.Caller(user_id=user_id, client_id=client_id,
                         access_token=token.token)
