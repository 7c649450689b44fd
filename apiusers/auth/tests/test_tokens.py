"""Tests for :mod:`apiusers.auth.tokens`."""

from unittest import TestCase, mock

from sqlalchemy.exc import OperationalError

from ... import domain
from ...exceptions import AuthorizationFailure, InternalFailure, \
    NotVerified, Unauthenticated
from ...factory import create_services
from ...store import models, util
from ...store.tests.util import CLIENT_ID, CLIENT_SECRET, TEST_SETTINGS, \
    UNTRUSTED_CLIENT_ID, UNTRUSTED_CLIENT_SECRET, add_clients, add_user, \
    temporary_db
from ..passwords import MISMATCH, legacy_digest
from ..tokens import account_uri_builder


class TestAccountURI(TestCase):
    def test_builds_uri(self):
        account_uri = account_uri_builder('https://api.example.com/', '2.1')
        self.assertEqual(account_uri(42),
                         'https://api.example.com/v2.1/users/42')


class TestPasswordGrant(TestCase):
    """Exchanging credentials for an access token."""

    def test_success(self):
        """A verified user with the right password gets a token."""
        with temporary_db() as session:
            add_clients(session)
            user_id = add_user(session, 'jdoe')
            services = create_services(session, TEST_SETTINGS)
            grant = services.issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            self.assertIsInstance(grant, domain.TokenGrant)
            self.assertEqual(
                grant.user_uri,
                f'https://api.example.com/v2.1/users/{user_id}'
            )
            self.assertEqual(grant.access_token.user_id, user_id)
            self.assertEqual(grant.access_token.client_id, CLIENT_ID)
            self.assertEqual(
                (grant.access_token.expires
                 - grant.access_token.issued).total_seconds(),
                TEST_SETTINGS['ACCESS_TOKEN_DURATION']
            )
            stored = services.tokens.load_access_token(
                grant.access_token.token
            )
            self.assertEqual(stored.user_id, user_id)

    def test_tokens_are_distinct(self):
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            first = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            second = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            self.assertNotEqual(first.access_token.token,
                                second.access_token.token)

    def test_untrusted_client(self):
        """A client not flagged for the password grant is refused."""
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(AuthorizationFailure):
                issuer.issue_from_password_grant(
                    UNTRUSTED_CLIENT_ID, UNTRUSTED_CLIENT_SECRET, 'jdoe',
                    'passw0rd'
                )

    def test_wrong_client_secret(self):
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(AuthorizationFailure):
                issuer.issue_from_password_grant(
                    CLIENT_ID, 'notthesecret', 'jdoe', 'passw0rd'
                )

    def test_unknown_client(self):
        with temporary_db() as session:
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(AuthorizationFailure):
                issuer.issue_from_password_grant(
                    'nobody', 'secret', 'jdoe', 'passw0rd'
                )

    def test_client_checked_before_credentials(self):
        """A bad client is refused even if the user does not exist."""
        with temporary_db() as session:
            add_clients(session)
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(AuthorizationFailure):
                issuer.issue_from_password_grant(
                    UNTRUSTED_CLIENT_ID, UNTRUSTED_CLIENT_SECRET, 'nobody',
                    'passw0rd'
                )

    def test_unknown_user(self):
        """An unknown username still costs a password hash."""
        with temporary_db() as session:
            add_clients(session)
            services = create_services(session, TEST_SETTINGS)
            with mock.patch.object(services.verifier, 'burn') as burn:
                with self.assertRaises(Unauthenticated):
                    services.issuer.issue_from_password_grant(
                        CLIENT_ID, CLIENT_SECRET, 'nobody', 'passw0rd'
                    )
            burn.assert_called_once_with('passw0rd')

    def test_wrong_password(self):
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            result = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'wrongpassw0rd'
            )
            self.assertIs(result, MISMATCH)
            self.assertEqual(session.query(models.DBAccessToken).count(), 0)

    def test_not_verified(self):
        """The password is checked before the verified flag."""
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe', verified=False)
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(NotVerified):
                issuer.issue_from_password_grant(
                    CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
                )
            result = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'wrongpassw0rd'
            )
            self.assertIs(result, MISMATCH)

    def test_legacy_credential_is_upgraded(self):
        """A successful grant re-encodes a legacy credential."""
        with temporary_db() as session:
            add_clients(session)
            user_id = add_user(session, 'jdoe', legacy=True)
            services = create_services(session, TEST_SETTINGS)
            self.assertEqual(services.accounts.get_credential(user_id),
                             legacy_digest('passw0rd'))

            grant = services.issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            self.assertIsInstance(grant, domain.TokenGrant)
            stored = services.accounts.get_credential(user_id)
            self.assertFalse(services.verifier.needs_upgrade(stored))
            self.assertTrue(services.verifier.verify(stored, 'passw0rd'))

    def test_legacy_credential_kept_on_mismatch(self):
        with temporary_db() as session:
            add_clients(session)
            user_id = add_user(session, 'jdoe', legacy=True)
            services = create_services(session, TEST_SETTINGS)
            services.issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'wrongpassw0rd'
            )
            self.assertEqual(services.accounts.get_credential(user_id),
                             legacy_digest('passw0rd'))

    def test_legacy_upgrade_fails(self):
        """A failed re-encoding is reported and no token is issued."""
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe', legacy=True)
            services = create_services(session, TEST_SETTINGS)
            error = OperationalError('UPDATE', {}, Exception('boom'))
            with mock.patch.object(services.accounts, 'set_password',
                                   side_effect=error):
                with self.assertRaises(InternalFailure):
                    services.issuer.issue_from_password_grant(
                        CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
                    )
            self.assertEqual(session.query(models.DBAccessToken).count(), 0)


class TestReverifyAndResolve(TestCase):
    """Checking credentials of an already-authenticated caller."""

    def test_reverify_password(self):
        with temporary_db() as session:
            user_id = add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            self.assertTrue(issuer.reverify_password(user_id, 'passw0rd'))
            self.assertFalse(issuer.reverify_password(user_id, 'nope'))
            self.assertFalse(issuer.reverify_password(user_id + 1,
                                                      'passw0rd'))

    def test_resolve(self):
        with temporary_db() as session:
            add_clients(session)
            user_id = add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            grant = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            caller = issuer.resolve(grant.access_token.token)
            self.assertEqual(caller, domain.Caller(
                user_id=user_id, client_id=CLIENT_ID,
                access_token=grant.access_token.token
            ))

    def test_resolve_unknown(self):
        with temporary_db() as session:
            issuer = create_services(session, TEST_SETTINGS).issuer
            with self.assertRaises(Unauthenticated):
                issuer.resolve('nope')
            with self.assertRaises(Unauthenticated):
                issuer.resolve(None)

    def test_resolve_expired(self):
        with temporary_db() as session:
            add_clients(session)
            add_user(session, 'jdoe')
            issuer = create_services(session, TEST_SETTINGS).issuer
            grant = issuer.issue_from_password_grant(
                CLIENT_ID, CLIENT_SECRET, 'jdoe', 'passw0rd'
            )
            session.query(models.DBAccessToken).update(
                {models.DBAccessToken.expires: util.now() - 1}
            )
            session.commit()
            with self.assertRaises(Unauthenticated):
                issuer.resolve(grant.access_token.token)
