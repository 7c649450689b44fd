"""Defines account, token and client concepts for the API."""

from typing import Any, NamedTuple, Optional, Sequence
from datetime import datetime
from enum import Enum

from pytz import UTC


class _Absent(object):
    """Marks a field that was not included in an update request."""

    _instance: Optional['_Absent'] = None

    def __new__(cls) -> '_Absent':
        if cls._instance is None:
            cls._instance = super(_Absent, cls).__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()
"""
Sentinel for "this field was omitted".

Distinct from ``None`` and ``''``, which mean the field was sent and should
be cleared (or rejected, for required fields).
"""


class Account(NamedTuple):
    """Represents an API user account."""

    username: str
    """Case-sensitive, unique username."""

    email: str
    """The user's primary e-mail address. Unique."""

    full_name: str
    """Display name."""

    user_id: Optional[int] = None
    """Unique identifier for the user. If ``None``, the user does not exist."""

    twitter_username: Optional[str] = None
    biography: Optional[str] = None

    verified: bool = False
    """Whether or not the users' e-mail address has been verified."""

    trusted: bool = False
    """Set only by a site admin."""

    is_admin: bool = False


class AccountRegistration(NamedTuple):
    """Validated data for a self-registration."""

    username: str
    full_name: str
    email: str
    password: str
    twitter_username: Optional[str] = None
    biography: Optional[str] = None
    auto_verify: bool = False
    """Requested auto verification; honoured only if the platform allows."""


class AccountUpdate(NamedTuple):
    """
    Changes requested for an existing account.

    Every field defaults to :data:`ABSENT`; only fields that were present in
    the request are applied.
    """

    username: Any = ABSENT
    full_name: Any = ABSENT
    email: Any = ABSENT
    password: Any = ABSENT
    old_password: Any = ABSENT
    twitter_username: Any = ABSENT
    biography: Any = ABSENT

    def present(self) -> dict:
        """Get the fields that were included in the request."""
        return {field: value for field, value in self._asdict().items()
                if value is not ABSENT}

    def profile_changes(self) -> dict:
        """Get the fields that are written directly to the account."""
        return {field: value for field, value in self.present().items()
                if field not in ('password', 'old_password')}


class TokenPurpose(Enum):
    """What a :class:`VerificationToken` may be redeemed for."""

    EMAIL_VERIFY = 'email_verify'
    PASSWORD_RESET = 'password_reset'


class VerificationToken(NamedTuple):
    """A single-use secret sent to the address on an account."""

    token: str
    user_id: int
    purpose: TokenPurpose
    expires: datetime
    consumed: bool = False

    @property
    def expired(self) -> bool:
        return self.expires <= datetime.now(tz=UTC)


class AccessToken(NamedTuple):
    """A bearer token minted by the password grant."""

    token: str
    """Opaque token string."""

    user_id: int
    client_id: str
    issued: datetime
    expires: datetime
    scopes: Sequence[str] = ()

    @property
    def expired(self) -> bool:
        return self.expires <= datetime.now(tz=UTC)


class ClientCredential(NamedTuple):
    """An OAuth client registered with the API."""

    client_id: str

    client_secret: str
    """Hashed secret key for API client authentication."""

    password_grant: bool = False
    """Whether the client is trusted to handle raw user credentials."""

    name: str = ''


class Caller(NamedTuple):
    """The authenticated party behind a request."""

    user_id: int
    client_id: Optional[str] = None
    """The client that obtained the caller's access token."""

    access_token: Optional[str] = None
    """The bearer token presented with the request."""


class TokenGrant(NamedTuple):
    """Result of a successful password grant."""

    access_token: AccessToken
    user_uri: str

    def to_dict(self) -> dict:
        """Representation handed back to the API client."""
        return {'access_token': self.access_token.token,
                'user_uri': self.user_uri}
