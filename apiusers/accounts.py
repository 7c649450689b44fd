"""
Create, update, delete and change the trust status of user accounts.

:class:`AccountMutationService` is the only component that writes account
state. Every privileged operation goes through the same sequence:

1. authenticate (is there a caller at all?),
2. authorize via :class:`.auth.AuthorizationGate`,
3. validate the whole request in one pass, collecting every problem,
4. perform a single atomic write.

An unauthorized caller therefore never learns why the data they sent would
have been rejected.
"""

import logging
from typing import Callable, List, Optional, Tuple

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import SQLAlchemyError

from . import domain
from .auth import AuthorizationGate, CredentialVerifier, PasswordPolicy, \
    TokenIssuer, VerificationTokenManager
from .exceptions import AuthorizationFailure, Conflict, InternalFailure, \
    NotFound, Unauthenticated, ValidationFailure
from .store import AccountStore, DuplicateAccount, NoSuchUser

logger = logging.getLogger(__name__)

Notifier = Callable[[domain.Account, str], None]
"""Called with a new account and its email verification token."""

MAX_LENGTHS = {'username': 100, 'full_name': 200, 'email': 255,
               'twitter_username': 100}

USERNAME_TAKEN = 'That username is already in use. Choose another'
EMAIL_TAKEN = 'That email is already associated with another account'
USERNAME_TAKEN_ON_EDIT = \
    'That username is already associated with another account'


class AccountMutationService(object):
    """Orchestrates every write to user accounts."""

    def __init__(self, accounts: AccountStore, gate: AuthorizationGate,
                 issuer: TokenIssuer,
                 verification: VerificationTokenManager,
                 verifier: CredentialVerifier, policy: PasswordPolicy,
                 notify: Optional[Notifier] = None,
                 allow_auto_verify: bool = False) -> None:
        self._accounts = accounts
        self._gate = gate
        self._issuer = issuer
        self._verification = verification
        self._verifier = verifier
        self._policy = policy
        self._notify = notify
        self._allow_auto_verify = allow_auto_verify

    def create_account(self, registration: domain.AccountRegistration) \
            -> domain.Account:
        """
        Register a new, unverified account.

        An email verification token is issued and handed to the notifier.

        Raises
        ------
        :class:`ValidationFailure`
            One or more fields are missing or malformed, or the password is
            not acceptable. Uniqueness problems are reported in the same
            batch.
        :class:`Conflict`
            The only problems are that the username or email is taken.
        :class:`InternalFailure`
            The account could not be written.

        """
        errors, conflicts = self._validate_registration(registration)
        if errors:
            raise ValidationFailure(errors=errors)
        if conflicts:
            raise Conflict(errors=conflicts)

        verified = self._allow_auto_verify and registration.auto_verify
        password_hash = self._verifier.hash(registration.password)
        # The account and its verification token are committed together.
        try:
            account = self._accounts.create(registration, password_hash,
                                            verified=verified, commit=False)
            token = self._verification.issue_email_verification(
                account.user_id, commit=False
            )
            self._accounts.commit()
        except DuplicateAccount as e:
            # Lost a race with a concurrent registration.
            raise Conflict('That username or email is already in use') from e
        except SQLAlchemyError as e:
            self._accounts.rollback()
            raise InternalFailure('Could not create user') from e
        logger.debug('Registered user %s', account.user_id)

        if self._notify is not None:
            self._notify(account, token)
        return account

    def update_account(self, caller: Optional[domain.Caller], target_id: int,
                       update: domain.AccountUpdate) -> domain.Account:
        """
        Edit an account; only the fields present in ``update`` change.

        Changing the password always requires the current password, even
        for an authenticated caller.
        """
        if caller is None:
            raise Unauthenticated('You must be logged in to change a user'
                                  ' account')
        if not self._gate.is_self_or_admin(caller.user_id, target_id):
            logger.warning('User %s tried to edit user %s', caller.user_id,
                           target_id)
            raise AuthorizationFailure('You do not have permission to edit'
                                       ' this account')
        if not self._gate.access_token_permitted_password_grant(
                caller.access_token):
            raise AuthorizationFailure('This client does not have permission'
                                       ' to perform this operation')
        if self._accounts.get(target_id) is None:
            raise NotFound('User not found')

        # An empty password means "leave it alone".
        changing_password = bool(update.password)
        if changing_password:
            if not update.old_password:
                raise ValidationFailure('The field "old_password" is needed'
                                        ' to update a user password')
            if not self._issuer.reverify_password(target_id,
                                                  update.old_password):
                raise AuthorizationFailure('The credentials could not be'
                                           ' verified')

        errors, conflicts, changes = self._validate_update(target_id, update)
        if errors:
            raise ValidationFailure(errors=errors)
        if conflicts:
            raise Conflict(errors=conflicts)

        password_hash = None
        if changing_password:
            password_hash = self._verifier.hash(update.password)
        try:
            account = self._accounts.update(target_id, changes,
                                            password_hash=password_hash)
        except NoSuchUser as e:
            raise NotFound('User not found') from e
        except DuplicateAccount as e:
            raise Conflict('That username or email is already in use') from e
        except SQLAlchemyError as e:
            raise InternalFailure('User not updated') from e
        logger.debug('User %s updated user %s', caller.user_id, target_id)
        return account

    def delete_account(self, caller: Optional[domain.Caller],
                       target_id: int) -> None:
        """Permanently remove an account. Admins only."""
        if caller is None:
            raise Unauthenticated('You must be logged in to delete data')
        if not self._gate.is_site_admin(caller.user_id):
            logger.warning('Non-admin %s tried to delete user %s',
                           caller.user_id, target_id)
            raise AuthorizationFailure.for_non_administrator()
        try:
            deleted = self._accounts.delete(target_id)
        except SQLAlchemyError as e:
            raise InternalFailure('There was a problem trying to delete the'
                                  ' user') from e
        if not deleted:
            raise NotFound('User not found')
        logger.info('Admin %s deleted user %s', caller.user_id, target_id)

    def set_trusted_status(self, caller: Optional[domain.Caller],
                           target_id: int, trusted: object) -> None:
        """
        Set or clear the trusted flag on an account. Admins only.

        ``trusted`` must be a real ``bool``; strings, numbers and ``None`` are
        rejected rather than coerced.
        """
        if caller is None:
            raise Unauthenticated('You must be logged in to change a user'
                                  ' account')
        if not self._gate.is_site_admin(caller.user_id):
            logger.warning('Non-admin %s tried to change trust on user %s',
                           caller.user_id, target_id)
            raise AuthorizationFailure("You must be an admin to change a"
                                       " user's trusted state")
        if not isinstance(trusted, bool):
            raise ValidationFailure('You must provide a trusted state')
        if self._accounts.get(target_id) is None:
            raise NotFound('User not found')
        try:
            updated = self._accounts.set_trusted(target_id, trusted)
        except SQLAlchemyError as e:
            raise InternalFailure('Unable to update status') from e
        if not updated:
            raise InternalFailure('Unable to update status')
        logger.info('Admin %s set trusted=%s on user %s', caller.user_id,
                    trusted, target_id)

    def _validate_registration(self,
                               registration: domain.AccountRegistration) \
            -> Tuple[List[str], List[str]]:
        """
        Check a registration.

        Returns
        -------
        list
            Every problem found, in field order, uniqueness included. Empty
            unless something other than uniqueness is wrong.
        list
            The uniqueness problems alone.

        """
        problems: List[str] = []
        conflicts: List[str] = []

        if not registration.username:
            problems.append("'username' is a required field")
        else:
            problems.extend(_too_long('username', registration.username))
            if self._accounts.get_by_username(registration.username):
                problems.append(USERNAME_TAKEN)
                conflicts.append(USERNAME_TAKEN)

        if not registration.full_name:
            problems.append("'full_name' is a required field")
        else:
            problems.extend(_too_long('full_name', registration.full_name))

        if not _is_valid_email(registration.email):
            problems.append("A valid entry for 'email' is required")
        elif self._accounts.get_by_email(registration.email):
            problems.append(EMAIL_TAKEN)
            conflicts.append(EMAIL_TAKEN)

        if not registration.password:
            problems.append("'password' is a required field")
        else:
            problems.extend(self._policy.check(registration.password))

        if registration.twitter_username:
            problems.extend(_too_long('twitter_username',
                                      registration.twitter_username))

        if len(problems) == len(conflicts):
            return [], conflicts
        return problems, conflicts

    def _validate_update(self, target_id: int,
                         update: domain.AccountUpdate) \
            -> Tuple[List[str], List[str], dict]:
        """Check an update; returns problems, uniqueness problems, changes."""
        errors: List[str] = []
        conflicts: List[str] = []
        changes = update.profile_changes()

        if update.password:
            errors.extend(self._policy.check(update.password))

        if 'full_name' in changes:
            if not changes['full_name']:
                errors.append("'full_name' is a required field")
            else:
                errors.extend(_too_long('full_name', changes['full_name']))

        if 'email' in changes:
            if not _is_valid_email(changes['email']):
                errors.append("A valid entry for 'email' is required")
            else:
                existing = self._accounts.get_by_email(changes['email'])
                # Finding the account being edited is not a conflict.
                if existing and existing.user_id != target_id:
                    errors.append(EMAIL_TAKEN)
                    conflicts.append(EMAIL_TAKEN)

        if 'username' in changes:
            if not changes['username']:
                errors.append("'username' is a required field")
            else:
                errors.extend(_too_long('username', changes['username']))
                existing = self._accounts.get_by_username(changes['username'])
                if existing and existing.user_id != target_id:
                    errors.append(USERNAME_TAKEN_ON_EDIT)
                    conflicts.append(USERNAME_TAKEN_ON_EDIT)

        for field in ('twitter_username', 'biography'):
            if field in changes:
                changes[field] = changes[field] or None
                if changes[field]:
                    errors.extend(_too_long(field, changes[field]))

        if len(errors) == len(conflicts):
            return [], conflicts, changes
        return errors, conflicts, changes


def _is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _too_long(field: str, value: str) -> List[str]:
    limit = MAX_LENGTHS.get(field)
    if limit is not None and len(value) > limit:
        return [f"'{field}' must be at most {limit} characters"]
    return []
