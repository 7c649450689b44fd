"""
Controllers for account registration, login and account management.

Each controller takes the request parameters plus the services it needs and
returns a ``(data, status, headers)`` tuple. Failures are raised as
:class:`.exceptions.AccountsError` subclasses, which carry their own status
code.
"""

import logging
from typing import Any, Mapping, Optional, Tuple

from werkzeug.datastructures import MultiDict

from .. import domain
from ..accounts import AccountMutationService
from ..auth import TokenIssuer, VerificationTokenManager, MISMATCH
from ..exceptions import Unauthenticated, ValidationFailure
from .forms import PasswordGrantForm, PasswordResetForm, ProfileForm, \
    RegistrationForm, VerificationForm, errors_of

logger = logging.getLogger(__name__)

ResponseData = Tuple[dict, int, dict]

HTTP_200_OK = 200
HTTP_201_CREATED = 201
HTTP_204_NO_CONTENT = 204

INVALID_CREDENTIALS = 'Invalid username or password'


def register(params: MultiDict, base_path: str,
             service: AccountMutationService) -> ResponseData:
    """Handle a self-registration request."""
    form = RegistrationForm(params)
    account = service.create_account(form.to_domain())
    location = f'{base_path.rstrip("/")}/{account.user_id}'
    return {}, HTTP_201_CREATED, {'Location': location}


def verify_email(params: MultiDict,
                 manager: VerificationTokenManager) -> ResponseData:
    """Redeem an email verification token."""
    form = VerificationForm(params)
    if not form.validate():
        raise ValidationFailure(errors=errors_of(form))
    if not manager.redeem_email_verification(form.token.data):
        raise ValidationFailure('Verification failed')
    return {}, HTTP_204_NO_CONTENT, {}


def reset_password(params: MultiDict,
                   manager: VerificationTokenManager) -> ResponseData:
    """Redeem a password reset token, setting a new password."""
    form = PasswordResetForm(params)
    if not form.validate():
        raise ValidationFailure(errors=errors_of(form))
    if not manager.redeem_password_reset(form.token.data,
                                         form.password.data):
        raise ValidationFailure('Password could not be reset')
    return {}, HTTP_204_NO_CONTENT, {}


def issue_token(params: MultiDict, issuer: TokenIssuer) -> ResponseData:
    """Exchange a username and password for an access token."""
    form = PasswordGrantForm(params)
    if not form.validate():
        raise ValidationFailure(errors=errors_of(form))
    try:
        result = issuer.issue_from_password_grant(
            form.client_id.data, form.client_secret.data,
            form.username.data, form.password.data
        )
    except Unauthenticated as e:
        raise Unauthenticated(INVALID_CREDENTIALS) from e
    if result is MISMATCH:
        raise Unauthenticated(INVALID_CREDENTIALS)
    return result.to_dict(), HTTP_200_OK, {}


def update_user(params: MultiDict, caller: Optional[domain.Caller],
                user_id: int, service: AccountMutationService) \
        -> ResponseData:
    """Edit an account. Fields not included in the request are unchanged."""
    form = ProfileForm(params)
    service.update_account(caller, user_id, form.to_domain())
    return {}, HTTP_204_NO_CONTENT, {}


def delete_user(caller: Optional[domain.Caller], user_id: int,
                service: AccountMutationService) -> ResponseData:
    """Delete an account."""
    service.delete_account(caller, user_id)
    return {}, HTTP_204_NO_CONTENT, {}


def set_trusted(payload: Any,
                caller: Optional[domain.Caller], user_id: int,
                service: AccountMutationService) -> ResponseData:
    """
    Set the trusted state of an account.

    ``payload`` is the decoded JSON body, so that ``true`` can be told apart
    from ``"true"``. A body that is not a JSON object carries no trusted
    state; the service rejects that only after checking the caller.
    """
    trusted = None
    if isinstance(payload, Mapping):
        trusted = payload.get('trusted')
    service.set_trusted_status(caller, user_id, trusted)
    return {}, HTTP_204_NO_CONTENT, {}
