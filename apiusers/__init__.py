"""
Account trust and credential verification for the public API.

This package decides who a caller is, whether their credentials are valid,
whether their account is verified and trusted, and whether they may perform
privileged mutations.

Quick start
-----------

.. code-block:: python

   from apiusers.factory import create_web_app, create_services
   from apiusers.store import util

   app = create_web_app()
   with app.app_context():
       services = create_services(util.current_session(), app.config)
       caller = services.issuer.resolve(bearer_token)
       services.mutations.set_trusted_status(caller, 42, True)

Components, leaves first:

1. :class:`.auth.CredentialVerifier` checks passwords, including ones still
   stored in the legacy encoding.
2. :class:`.auth.TokenIssuer` turns credentials into access tokens.
3. :class:`.auth.VerificationTokenManager` handles email verification and
   password reset tokens.
4. :class:`.auth.AuthorizationGate` answers capability questions.
5. :class:`.accounts.AccountMutationService` performs every account write.
"""

from .domain import Account, AccountRegistration, AccountUpdate, ABSENT, \
    AccessToken, Caller, ClientCredential, TokenGrant, TokenPurpose, \
    VerificationToken
