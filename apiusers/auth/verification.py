"""Single-use tokens for email verification and password reset."""

import logging
import secrets
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .. import domain
from ..exceptions import InternalFailure, ValidationFailure
from ..store import AccountStore, TokenStore, util
from .passwords import CredentialVerifier, PasswordPolicy

logger = logging.getLogger(__name__)


class VerificationTokenManager(object):
    """Issues and redeems :class:`domain.VerificationToken`s."""

    def __init__(self, accounts: AccountStore, tokens: TokenStore,
                 verifier: CredentialVerifier, policy: PasswordPolicy,
                 email_verification_duration: int = 604800,
                 password_reset_duration: int = 86400) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._verifier = verifier
        self._policy = policy
        self._durations = {
            domain.TokenPurpose.EMAIL_VERIFY: email_verification_duration,
            domain.TokenPurpose.PASSWORD_RESET: password_reset_duration
        }

    def issue_email_verification(self, user_id: int,
                                 commit: bool = True) -> str:
        return self._issue(user_id, domain.TokenPurpose.EMAIL_VERIFY, commit)

    def issue_password_reset(self, user_id: int) -> str:
        return self._issue(user_id, domain.TokenPurpose.PASSWORD_RESET)

    def redeem_email_verification(self, token: str) -> bool:
        """Consume an email verification token and mark the user verified."""
        user_id = self._consume(token, domain.TokenPurpose.EMAIL_VERIFY)
        if user_id is None:
            return False
        try:
            self._accounts.set_verified(user_id, commit=False)
            self._accounts.commit()
        except SQLAlchemyError as e:
            self._accounts.rollback()
            raise InternalFailure('Verification failed') from e
        logger.debug('User %s verified their email address', user_id)
        return True

    def redeem_password_reset(self, token: str, password: str) -> bool:
        """
        Consume a password reset token and set a new password.

        Raises
        ------
        :class:`ValidationFailure`
            The new password is not acceptable. Nothing is consumed.

        """
        errors = self._policy.check(password)
        if errors:
            raise ValidationFailure(errors=errors)

        password_hash = self._verifier.hash(password)
        user_id = self._consume(token, domain.TokenPurpose.PASSWORD_RESET)
        if user_id is None:
            return False
        try:
            self._accounts.set_password(user_id, password_hash, commit=False)
            self._accounts.commit()
        except SQLAlchemyError as e:
            self._accounts.rollback()
            raise InternalFailure('Password could not be reset') from e
        logger.debug('User %s reset their password', user_id)
        return True

    def _issue(self, user_id: int, purpose: domain.TokenPurpose,
               commit: bool = True) -> str:
        issued = util.now()
        token = domain.VerificationToken(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            purpose=purpose,
            expires=util.from_epoch(issued + self._durations[purpose])
        )
        self._tokens.add_user_token(token, issued, commit=commit)
        logger.debug('Issued %s token for user %s', purpose.value, user_id)
        return token.token

    def _consume(self, token: str, purpose: domain.TokenPurpose) \
            -> Optional[int]:
        # The account write that follows is committed with the consumption.
        try:
            user_id = self._tokens.consume_user_token(token, purpose,
                                                      util.now(),
                                                      commit=False)
        except SQLAlchemyError as e:
            self._tokens.rollback()
            raise InternalFailure('Could not redeem token') from e
        if user_id is None:
            self._tokens.rollback()
            logger.debug('No redeemable %s token', purpose.value)
        return user_id
