"""Application factory and service wiring."""

import logging
from typing import Any, Mapping, NamedTuple, Optional

from flask import Flask, jsonify
from sqlalchemy.orm.session import Session

from . import config, store
from .accounts import AccountMutationService, Notifier
from .auth import AuthorizationGate, CredentialVerifier, PasswordPolicy, \
    TokenIssuer, VerificationTokenManager
from .auth.tokens import account_uri_builder
from .exceptions import AccountsError

logger = logging.getLogger(__name__)


class Services(NamedTuple):
    """Everything needed to handle one request, sharing one DB session."""

    accounts: store.AccountStore
    clients: store.ClientStore
    tokens: store.TokenStore
    verifier: CredentialVerifier
    policy: PasswordPolicy
    gate: AuthorizationGate
    issuer: TokenIssuer
    verification: VerificationTokenManager
    mutations: AccountMutationService


def create_services(session: Session, settings: Mapping[str, Any],
                    notify: Optional[Notifier] = None) -> Services:
    """Build the service graph on top of ``session``."""
    accounts = store.AccountStore(session)
    clients = store.ClientStore(session)
    tokens = store.TokenStore(session)
    verifier = CredentialVerifier(rounds=int(settings['BCRYPT_ROUNDS']))
    policy = PasswordPolicy(min_length=int(settings['PASSWORD_MIN_LENGTH']))
    gate = AuthorizationGate(accounts, clients, tokens)
    issuer = TokenIssuer(
        accounts, tokens, gate, verifier,
        account_uri=account_uri_builder(settings['API_BASE_URL'],
                                        settings['API_VERSION']),
        duration=int(settings['ACCESS_TOKEN_DURATION'])
    )
    verification = VerificationTokenManager(
        accounts, tokens, verifier, policy,
        email_verification_duration=int(
            settings['EMAIL_VERIFICATION_DURATION']
        ),
        password_reset_duration=int(settings['PASSWORD_RESET_DURATION'])
    )
    mutations = AccountMutationService(
        accounts, gate, issuer, verification, verifier, policy,
        notify=notify,
        allow_auto_verify=bool(settings['ALLOW_AUTO_VERIFY_USERS'])
    )
    return Services(accounts=accounts, clients=clients, tokens=tokens,
                    verifier=verifier, policy=policy, gate=gate,
                    issuer=issuer, verification=verification,
                    mutations=mutations)


def handle_accounts_error(error: AccountsError) -> Any:
    """Render a failure as a JSON list of messages."""
    return jsonify(error.errors or [error.message]), error.status_code


def create_web_app() -> Flask:
    """Initialize and configure the application."""
    app = Flask('apiusers')
    app.config.from_object(config)

    logging.getLogger('apiusers').setLevel(app.config['LOGLEVEL'])

    store.init_app(app)
    app.register_error_handler(AccountsError, handle_accounts_error)

    if app.config['CREATE_DB']:
        with app.app_context():
            store.create_all()

    return app
