"""Tests for :mod:`apiusers.domain` and :mod:`apiusers.exceptions`."""

from datetime import datetime, timedelta
from unittest import TestCase

from pytz import UTC

from .. import domain
from ..exceptions import AuthorizationFailure, Conflict, ErrorKind, \
    InternalFailure, NotVerified, ValidationFailure


class TestAccountUpdate(TestCase):
    """Omitted fields are told apart from empty ones."""

    def test_absent_by_default(self):
        update = domain.AccountUpdate()
        self.assertEqual(update.present(), {})
        self.assertIs(update.email, domain.ABSENT)
        self.assertFalse(domain.ABSENT)

    def test_empty_is_present(self):
        update = domain.AccountUpdate(biography='', twitter_username=None)
        self.assertEqual(update.present(),
                         {'biography': '', 'twitter_username': None})

    def test_profile_changes_exclude_passwords(self):
        update = domain.AccountUpdate(full_name='Jane', password='x',
                                      old_password='y')
        self.assertEqual(update.profile_changes(), {'full_name': 'Jane'})


class TestTokens(TestCase):
    def test_expired(self):
        now = datetime.now(tz=UTC)
        token = domain.VerificationToken(
            token='abc', user_id=1,
            purpose=domain.TokenPurpose.EMAIL_VERIFY,
            expires=now - timedelta(seconds=1)
        )
        self.assertTrue(token.expired)
        self.assertFalse(token._replace(
            expires=now + timedelta(hours=1)
        ).expired)

    def test_default_scopes_not_shared(self):
        """Tokens built without scopes do not share a mutable default."""
        now = datetime.now(tz=UTC)
        first = domain.AccessToken(token='abc', user_id=1, client_id='web2',
                                   issued=now, expires=now)
        second = domain.AccessToken(token='def', user_id=2, client_id='web2',
                                    issued=now, expires=now)
        self.assertEqual(first.scopes, ())
        self.assertIsInstance(first.scopes, tuple)
        with self.assertRaises(AttributeError):
            first.scopes.append('profile:read')
        self.assertEqual(second.scopes, ())

    def test_grant_representation(self):
        now = datetime.now(tz=UTC)
        access_token = domain.AccessToken(token='abc', user_id=1,
                                          client_id='web2', issued=now,
                                          expires=now + timedelta(hours=1))
        grant = domain.TokenGrant(access_token=access_token,
                                  user_uri='https://api.example.com/u/1')
        self.assertEqual(grant.to_dict(), {
            'access_token': 'abc',
            'user_uri': 'https://api.example.com/u/1'
        })


class TestErrors(TestCase):
    """Failures carry their kind and status code."""

    def test_status_codes(self):
        self.assertEqual(ValidationFailure().status_code, 400)
        self.assertEqual(Conflict().status_code, 400)
        self.assertEqual(NotVerified().status_code, 401)
        self.assertEqual(AuthorizationFailure().status_code, 403)
        self.assertEqual(InternalFailure().status_code, 500)

    def test_message_from_errors(self):
        error = ValidationFailure(errors=['One', 'Two'])
        self.assertEqual(error.message, 'One. Two')
        self.assertEqual(error.to_dict(), {
            'kind': ErrorKind.VALIDATION_FAILURE.label,
            'message': 'One. Two',
            'status_code': 400,
            'errors': ['One', 'Two']
        })

    def test_single_message(self):
        error = AuthorizationFailure.for_non_administrator()
        self.assertEqual(error.to_dict()['errors'], [error.message])
        self.assertEqual(str(error), error.message)
