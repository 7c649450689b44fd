"""
Password storage, verification and acceptability rules.

Two encodings of a stored credential are in circulation:

- the legacy encoding, an unsalted hex MD5 digest of the password;
- the current encoding, a bcrypt hash of that same hex MD5 digest.

Layering bcrypt over the legacy digest means an account that still carries a
legacy value and an account that has been migrated are both checked by
computing the legacy digest of the presented password first.
"""

import logging
import re
from enum import Enum
from typing import List, Optional

from passlib.context import CryptContext
from passlib.hash import hex_md5
from passlib.utils import consteq

logger = logging.getLogger(__name__)

_LETTER = re.compile(r'[^\W\d_]', re.UNICODE)


class Verification(Enum):
    """Outcome of checking a presented password."""

    MATCH = 'match'
    MISMATCH = 'mismatch'

    def __bool__(self) -> bool:
        return self is Verification.MATCH


MATCH = Verification.MATCH
MISMATCH = Verification.MISMATCH


def legacy_digest(password: str) -> str:
    """Compute the legacy (hex MD5) digest of a password."""
    digest: str = hex_md5.hash(password)
    return digest


class CredentialVerifier(object):
    """Checks presented passwords against stored credentials."""

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=['bcrypt', 'hex_md5'],
                                     deprecated=['hex_md5'],
                                     bcrypt__rounds=rounds)
        self._dummy: Optional[str] = None

    def hash(self, password: str) -> str:
        """Encode a password in the current scheme."""
        hashed: str = self._context.hash(legacy_digest(password))
        return hashed

    def verify(self, stored: Optional[str], password: str) -> Verification:
        """Check ``password`` against the ``stored`` credential."""
        if not stored or password is None:
            return MISMATCH
        digest = legacy_digest(password)
        scheme = self._context.identify(stored, required=False)
        if scheme == 'bcrypt':
            matched = self._context.verify(digest, stored)
        elif scheme == 'hex_md5':
            matched = consteq(digest, stored.lower())
        else:
            logger.debug('Stored credential is in an unknown encoding')
            matched = False
        return MATCH if matched else MISMATCH

    def needs_upgrade(self, stored: str) -> bool:
        """Whether ``stored`` should be re-encoded in the current scheme."""
        return bool(self._context.needs_update(stored))

    def burn(self, password: str) -> None:
        """Spend the same effort as :meth:`verify` without a real target."""
        if self._dummy is None:
            self._dummy = self.hash('not a real password')
        self._context.verify(legacy_digest(password), self._dummy)


class PasswordPolicy(object):
    """Acceptability rules for new passwords."""

    def __init__(self, min_length: int = 6) -> None:
        self.min_length = min_length

    def check(self, password: str) -> List[str]:
        """
        Check a candidate password.

        Returns
        -------
        list
            Human-readable reasons; empty if the password is acceptable.

        """
        errors = []
        if len(password) < self.min_length:
            errors.append(f'Passwords must be at least {self.min_length}'
                          ' characters long')
        if not _LETTER.search(password):
            errors.append('Passwords must contain at least one letter')
        if not any(not _LETTER.match(char) for char in password):
            errors.append('Passwords must contain at least one number or'
                          ' symbol')
        return errors

    def is_acceptable(self, password: str) -> bool:
        return not self.check(password)
