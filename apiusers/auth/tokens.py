"""Issue access tokens from the OAuth password grant."""

import logging
import secrets
from datetime import timedelta
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from .. import domain
from ..exceptions import AuthorizationFailure, InternalFailure, \
    NotVerified, Unauthenticated
from ..store import AccountStore, TokenStore, util
from .gate import AuthorizationGate
from .passwords import CredentialVerifier, Verification, MISMATCH

logger = logging.getLogger(__name__)

DEFAULT_SCOPES: List[str] = []


def account_uri_builder(base_url: str, version: str) -> Callable[[int], str]:
    """Make a function that builds the URI of an account from its ID."""
    base = base_url.rstrip('/')

    def account_uri(user_id: int) -> str:
        return f'{base}/v{version}/users/{user_id}'
    return account_uri


class TokenIssuer(object):
    """Turns verified credentials into access tokens."""

    def __init__(self, accounts: AccountStore, tokens: TokenStore,
                 gate: AuthorizationGate, verifier: CredentialVerifier,
                 account_uri: Callable[[int], str],
                 duration: int = 2592000) -> None:
        self._accounts = accounts
        self._tokens = tokens
        self._gate = gate
        self._verifier = verifier
        self._account_uri = account_uri
        self._duration = duration

    def issue_from_password_grant(self, client_id: str, client_secret: str,
                                  username: str, password: str) \
            -> Union[domain.TokenGrant, Verification]:
        """
        Exchange a username and password for an access token.

        Returns
        -------
        :class:`domain.TokenGrant`
            On success.
        :data:`.passwords.MISMATCH`
            If the password is wrong. Callers must report this exactly as
            they report an unknown username.

        Raises
        ------
        :class:`AuthorizationFailure`
            The client is unknown, its secret is wrong, or it may not use the
            password grant.
        :class:`Unauthenticated`
            There is no account with that username.
        :class:`NotVerified`
            The password is right but the email address is not yet verified.

        """
        if not self._gate.client_permitted_password_grant(client_id,
                                                          client_secret):
            logger.debug('Client %s may not use the password grant',
                         client_id)
            raise AuthorizationFailure('This client cannot perform this'
                                       ' action')

        found = self._accounts.get_with_credential(username)
        if found is None:
            self._verifier.burn(password)
            raise Unauthenticated('Invalid username or password')
        account, stored = found

        if self._verifier.verify(stored, password) is MISMATCH:
            logger.debug('Password mismatch for user %s', account.user_id)
            return MISMATCH

        if not account.verified:
            raise NotVerified('Not verified')

        if self._verifier.needs_upgrade(stored):
            logger.debug('Upgrading stored credential for user %s',
                         account.user_id)
            try:
                self._accounts.set_password(account.user_id,
                                            self._verifier.hash(password))
            except SQLAlchemyError as e:
                self._accounts.rollback()
                raise InternalFailure('Could not update credentials') from e

        access_token = self._mint(account.user_id, client_id)
        logger.debug('Issued access token to user %s via client %s',
                     account.user_id, client_id)
        return domain.TokenGrant(access_token=access_token,
                                 user_uri=self._account_uri(account.user_id))

    def reverify_password(self, user_id: int, password: str) -> bool:
        """Check the password of an already-authenticated account."""
        stored = self._accounts.get_credential(user_id)
        return bool(self._verifier.verify(stored, password))

    def resolve(self, token: Optional[str]) -> domain.Caller:
        """
        Identify the caller behind a bearer token.

        Raises
        ------
        :class:`Unauthenticated`
            The token is unknown, revoked or expired.

        """
        if not token:
            raise Unauthenticated()
        access_token = self._tokens.load_access_token(token)
        if access_token is None or access_token.expired:
            raise Unauthenticated('Invalid or expired access token')
        return domain.Caller(user_id=access_token.user_id,
                             client_id=access_token.client_id,
                             access_token=access_token.token)

    def _mint(self, user_id: int, client_id: str) -> domain.AccessToken:
        issued = util.from_epoch(util.now())
        access_token = domain.AccessToken(
            token=secrets.token_hex(20),
            user_id=user_id,
            client_id=client_id,
            issued=issued,
            expires=issued + timedelta(seconds=self._duration),
            scopes=list(DEFAULT_SCOPES)
        )
        try:
            self._tokens.add_access_token(access_token)
        except SQLAlchemyError as e:
            raise InternalFailure('Could not issue access token') from e
        return access_token
