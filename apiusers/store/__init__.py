"""
Database integration for accounts, OAuth clients and tokens.

Each store wraps a SQLAlchemy session handed to it at construction. Stores
that take part in the same operation must share one session, so that a
``commit=False`` write in one store is committed together with the writes of
the others.
"""

import hashlib
import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.session import Session

from .. import domain
from . import models, util
from .models import DBUser, DBClient, DBAccessToken, DBUserToken

logger = logging.getLogger(__name__)


class NoSuchUser(RuntimeError):
    """User does not exist."""


class DuplicateAccount(RuntimeError):
    """A unique constraint on username or email was violated."""


init_app = util.init_app
create_all = util.create_all
drop_all = util.drop_all
transaction = util.transaction


def hash_secret(secret: str) -> str:
    """Hash an OAuth client secret for storage."""
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


class _Store(object):
    def __init__(self, session: Session) -> None:
        self.session = session

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def _done(self, commit: bool) -> None:
        if commit:
            self.session.commit()
        else:
            self.session.flush()


class AccountStore(_Store):
    """Persistence for :class:`domain.Account`."""

    def get(self, user_id: int) -> Optional[domain.Account]:
        db_user = self._load(user_id)
        return _to_domain(db_user) if db_user is not None else None

    def get_by_username(self, username: str) -> Optional[domain.Account]:
        db_user = self.session.query(DBUser) \
            .filter(DBUser.username == username) \
            .first()
        return _to_domain(db_user) if db_user is not None else None

    def get_by_email(self, email: str) -> Optional[domain.Account]:
        """Look up an account by email address, ignoring case."""
        db_user = self.session.query(DBUser) \
            .filter(func.lower(DBUser.email) == email.lower()) \
            .first()
        return _to_domain(db_user) if db_user is not None else None

    def get_credential(self, user_id: int) -> Optional[str]:
        """Get the stored password encoding for an account."""
        db_user = self._load(user_id)
        return db_user.password if db_user is not None else None

    def get_with_credential(self, username: str) \
            -> Optional[Tuple[domain.Account, str]]:
        db_user = self.session.query(DBUser) \
            .filter(DBUser.username == username) \
            .first()
        if db_user is None:
            return None
        return _to_domain(db_user), db_user.password

    def create(self, registration: domain.AccountRegistration,
               password_hash: str, verified: bool = False,
               commit: bool = True) -> domain.Account:
        """
        Insert a new account.

        With ``commit=False`` the row is only flushed, so that the caller can
        commit it together with other writes.

        Raises
        ------
        :class:`DuplicateAccount`
            The username or email address is already taken.

        """
        db_user = DBUser(
            username=registration.username,
            email=registration.email,
            password=password_hash,
            full_name=registration.full_name,
            twitter_username=registration.twitter_username,
            biography=registration.biography,
            verified=int(verified),
            trusted=0,
            admin=0,
            created=util.now()
        )
        try:
            with transaction(self.session) as session:
                session.add(db_user)
                self._done(commit)
        except IntegrityError as e:
            raise DuplicateAccount('Username or email already in use') from e
        return _to_domain(db_user)

    def update(self, user_id: int, changes: dict,
               password_hash: Optional[str] = None) -> domain.Account:
        """
        Apply ``changes`` (and optionally a new password) in one write.

        Raises
        ------
        :class:`NoSuchUser`
        :class:`DuplicateAccount`

        """
        try:
            with transaction(self.session):
                db_user = self._load(user_id)
                if db_user is None:
                    raise NoSuchUser(f'User {user_id} does not exist')
                for field, value in changes.items():
                    _update_field_if_changed(db_user, field, value)
                if password_hash is not None:
                    db_user.password = password_hash
                self.session.add(db_user)
        except IntegrityError as e:
            raise DuplicateAccount('Username or email already in use') from e
        return _to_domain(db_user)

    def set_password(self, user_id: int, password_hash: str,
                     commit: bool = True) -> None:
        db_user = self._load(user_id)
        if db_user is None:
            raise NoSuchUser(f'User {user_id} does not exist')
        db_user.password = password_hash
        self.session.add(db_user)
        self._done(commit)

    def set_verified(self, user_id: int, commit: bool = True) -> None:
        db_user = self._load(user_id)
        if db_user is None:
            raise NoSuchUser(f'User {user_id} does not exist')
        db_user.verified = 1
        self.session.add(db_user)
        self._done(commit)

    def set_trusted(self, user_id: int, trusted: bool) -> bool:
        """Set the trusted flag. Returns ``False`` if nothing was written."""
        with transaction(self.session) as session:
            count = session.query(DBUser) \
                .filter(DBUser.user_id == user_id) \
                .update({DBUser.trusted: int(trusted)},
                        synchronize_session=False)
            session.commit()
        self.session.expire_all()
        return count == 1

    def delete(self, user_id: int) -> bool:
        """Delete an account along with all of its tokens."""
        with transaction(self.session) as session:
            session.query(DBAccessToken) \
                .filter(DBAccessToken.user_id == user_id) \
                .delete(synchronize_session=False)
            session.query(DBUserToken) \
                .filter(DBUserToken.user_id == user_id) \
                .delete(synchronize_session=False)
            count = session.query(DBUser) \
                .filter(DBUser.user_id == user_id) \
                .delete(synchronize_session=False)
            session.commit()
        self.session.expire_all()
        return count == 1

    def _load(self, user_id: int) -> Optional[DBUser]:
        db_user: Optional[DBUser] = self.session.query(DBUser) \
            .filter(DBUser.user_id == user_id) \
            .first()
        return db_user


class ClientStore(_Store):
    """Persistence for :class:`domain.ClientCredential`."""

    def get(self, client_id: str) -> Optional[domain.ClientCredential]:
        db_client = self.session.query(DBClient) \
            .filter(DBClient.client_id == client_id) \
            .first()
        if db_client is None:
            return None
        return domain.ClientCredential(
            client_id=db_client.client_id,
            client_secret=db_client.client_secret,
            password_grant=bool(db_client.enable_password_grant),
            name=db_client.name
        )

    def register(self, client_id: str, secret: str,
                 password_grant: bool = False,
                 name: str = '') -> domain.ClientCredential:
        """Add a client; the secret is stored hashed."""
        hashed = hash_secret(secret)
        with transaction(self.session) as session:
            session.add(DBClient(
                client_id=client_id,
                client_secret=hashed,
                name=name,
                enable_password_grant=int(password_grant)
            ))
        return domain.ClientCredential(client_id=client_id,
                                       client_secret=hashed,
                                       password_grant=password_grant,
                                       name=name)


class TokenStore(_Store):
    """Persistence for access tokens and verification tokens."""

    def add_access_token(self, token: domain.AccessToken) -> None:
        with transaction(self.session) as session:
            session.add(DBAccessToken(
                access_token=token.token,
                user_id=token.user_id,
                client_id=token.client_id,
                scope=' '.join(token.scopes),
                issued=util.epoch(token.issued),
                expires=util.epoch(token.expires),
                revoked=0
            ))

    def load_access_token(self, token: str) -> Optional[domain.AccessToken]:
        """Load a token that has not been revoked."""
        db_token = self.session.query(DBAccessToken) \
            .filter(DBAccessToken.access_token == token) \
            .filter(DBAccessToken.revoked == 0) \
            .first()
        if db_token is None:
            return None
        return domain.AccessToken(
            token=db_token.access_token,
            user_id=db_token.user_id,
            client_id=db_token.client_id,
            issued=util.from_epoch(db_token.issued),
            expires=util.from_epoch(db_token.expires),
            scopes=db_token.scope.split()
        )

    def add_user_token(self, token: domain.VerificationToken, issued: int,
                       commit: bool = True) -> None:
        """Store a verification token, consuming older ones of its purpose."""
        with transaction(self.session) as session:
            session.query(DBUserToken) \
                .filter(DBUserToken.user_id == token.user_id) \
                .filter(DBUserToken.purpose == token.purpose.value) \
                .filter(DBUserToken.consumed == 0) \
                .update({DBUserToken.consumed: 1}, synchronize_session=False)
            session.add(DBUserToken(
                token=token.token,
                user_id=token.user_id,
                purpose=token.purpose.value,
                issued=issued,
                expires=util.epoch(token.expires),
                consumed=0
            ))
            self._done(commit)

    def consume_user_token(self, token: str, purpose: domain.TokenPurpose,
                           at: int, commit: bool = True) -> Optional[int]:
        """
        Mark an unconsumed, unexpired token of ``purpose`` as consumed.

        The test and the write are a single conditional ``UPDATE``, so of two
        concurrent attempts at most one sees a row count of one.

        Returns
        -------
        int or None
            The ID of the owning user, or ``None`` if nothing was consumed.

        """
        user_id = self.session.query(DBUserToken.user_id) \
            .filter(DBUserToken.token == token) \
            .scalar()
        if user_id is None:
            return None
        count = self.session.query(DBUserToken) \
            .filter(DBUserToken.token == token) \
            .filter(DBUserToken.purpose == purpose.value) \
            .filter(DBUserToken.consumed == 0) \
            .filter(DBUserToken.expires > at) \
            .update({DBUserToken.consumed: 1}, synchronize_session=False)
        if count != 1:
            return None
        self._done(commit)
        return int(user_id)


def _update_field_if_changed(obj: object, field: str, update_with: object) \
        -> None:
    if getattr(obj, field) != update_with:
        setattr(obj, field, update_with)


def _to_domain(db_user: DBUser) -> domain.Account:
    return domain.Account(
        user_id=db_user.user_id,
        username=db_user.username,
        email=db_user.email,
        full_name=db_user.full_name,
        twitter_username=db_user.twitter_username,
        biography=db_user.biography,
        verified=bool(db_user.verified),
        trusted=bool(db_user.trusted),
        is_admin=bool(db_user.admin)
    )
