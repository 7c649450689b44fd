"""
Capability checks that gate privileged mutations.

Every predicate here is a read-only query against current state. Callers are
expected to turn a ``False`` into :class:`.exceptions.AuthorizationFailure`
before they write anything.
"""

import logging
from typing import Optional

from passlib.utils import consteq

from ..store import AccountStore, ClientStore, TokenStore, hash_secret

logger = logging.getLogger(__name__)


class AuthorizationGate(object):
    """Answers capability questions about callers and clients."""

    def __init__(self, accounts: AccountStore, clients: ClientStore,
                 tokens: TokenStore) -> None:
        self._accounts = accounts
        self._clients = clients
        self._tokens = tokens

    def is_site_admin(self, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        account = self._accounts.get(user_id)
        return account is not None and account.is_admin

    def is_trusted(self, user_id: Optional[int]) -> bool:
        if user_id is None:
            return False
        account = self._accounts.get(user_id)
        return account is not None and account.trusted

    def is_self_or_admin(self, caller_id: Optional[int],
                         target_id: int) -> bool:
        """Callers may act on their own account; admins on any account."""
        if caller_id is None:
            return False
        if int(caller_id) == int(target_id):
            return True
        return self.is_site_admin(caller_id)

    def client_permitted_password_grant(
            self, client_id: Optional[str],
            client_secret: Optional[str] = None) -> bool:
        """
        Check whether a client is flagged for the password grant.

        If ``client_secret`` is passed, it must also match the stored secret.
        """
        if not client_id:
            return False
        client = self._clients.get(client_id)
        if client is None:
            return False
        if client_secret is not None \
                and not consteq(hash_secret(client_secret),
                                client.client_secret):
            logger.debug('Secret mismatch for client %s', client_id)
            return False
        return client.password_grant

    def access_token_permitted_password_grant(self,
                                              token: Optional[str]) -> bool:
        """Check the client that obtained ``token``."""
        if not token:
            return False
        access_token = self._tokens.load_access_token(token)
        if access_token is None:
            return False
        return self.client_permitted_password_grant(access_token.client_id)
