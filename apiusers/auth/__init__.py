"""
Credential verification and authorization.

- :mod:`.passwords` checks presented passwords and decides whether a new one
  is acceptable.
- :mod:`.tokens` issues access tokens from the password grant.
- :mod:`.verification` issues and redeems email verification and password
  reset tokens.
- :mod:`.gate` answers capability questions for privileged mutations.
"""

from .passwords import CredentialVerifier, PasswordPolicy, Verification, \
    MATCH, MISMATCH
from .gate import AuthorizationGate
from .tokens import TokenIssuer
from .verification import VerificationTokenManager
