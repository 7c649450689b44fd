"""Exceptions."""

from enum import Enum
from typing import Iterable, List, Optional


class ErrorKind(Enum):
    """Failure kinds reported at the API boundary, with their status code."""

    VALIDATION_FAILURE = ('ValidationFailure', 400)
    CONFLICT = ('Conflict', 400)
    UNAUTHENTICATED = ('Unauthenticated', 401)
    NOT_VERIFIED = ('NotVerified', 401)
    AUTHORIZATION_FAILURE = ('AuthorizationFailure', 403)
    NOT_FOUND = ('NotFound', 404)
    INTERNAL_FAILURE = ('InternalFailure', 500)

    def __init__(self, label: str, status_code: int) -> None:
        self.label = label
        self.status_code = status_code


class AccountsError(RuntimeError):
    """Base for failures that terminate the current request."""

    kind: ErrorKind = ErrorKind.INTERNAL_FAILURE
    default_message = 'Something went wrong'

    def __init__(self, message: Optional[str] = None,
                 errors: Optional[Iterable[str]] = None) -> None:
        self.errors: List[str] = list(errors or [])
        if message is None:
            message = '. '.join(self.errors) or self.default_message
        self.message = message
        super(AccountsError, self).__init__(message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict:
        """Structured representation for the transport layer."""
        return {'kind': self.kind.label,
                'message': self.message,
                'status_code': self.status_code,
                'errors': self.errors or [self.message]}


class ValidationFailure(AccountsError):
    """Missing or malformed input; ``errors`` holds every violated rule."""

    kind = ErrorKind.VALIDATION_FAILURE
    default_message = 'Invalid request'


class Conflict(AccountsError):
    """Username or email already in use by a different account."""

    kind = ErrorKind.CONFLICT
    default_message = 'That username or email is already in use'


class Unauthenticated(AccountsError):
    """No caller identity, or credentials could not be verified."""

    kind = ErrorKind.UNAUTHENTICATED
    default_message = 'You must be logged in to perform this operation'


class NotVerified(AccountsError):
    """Credentials are correct but the email address is not verified."""

    kind = ErrorKind.NOT_VERIFIED
    default_message = 'Not verified'


class AuthorizationFailure(AccountsError):
    """Caller lacks the capability for the requested mutation."""

    kind = ErrorKind.AUTHORIZATION_FAILURE
    default_message = 'You do not have permission to do that'

    @classmethod
    def for_non_administrator(cls) -> 'AuthorizationFailure':
        return cls('This operation requires admin privileges')


class NotFound(AccountsError):
    """Target account, token or resource does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = 'Not found'


class InternalFailure(AccountsError):
    """A write that passed validation did not succeed."""

    kind = ErrorKind.INTERNAL_FAILURE
