"""
Tests for Supabase session verification and consultant account provisioning
"""

import pytest
from types import SimpleNamespace
from unittest.mock import Mock

from conftest import TEST_JWT_SECRET, make_token
from services.error_handler import RecordUpsertError
from services.supabase_auth import AdminSessionVerifier, SupabaseAccountProvisioner


class TestAdminSessionVerifier:
    """Test JWT verification of Supabase access tokens."""

    def test_valid_token(self):
        verifier = AdminSessionVerifier(TEST_JWT_SECRET)

        is_valid, user_data = verifier.verify_token(make_token(sub='admin-9', email='ops@example.com'))

        assert is_valid is True
        assert user_data == {'id': 'admin-9', 'email': 'ops@example.com', 'role': 'authenticated'}

    def test_expired_token(self):
        verifier = AdminSessionVerifier(TEST_JWT_SECRET)

        assert verifier.verify_token(make_token(expires_in=-10)) == (False, None)

    def test_wrong_secret(self):
        verifier = AdminSessionVerifier('another-secret-that-is-long-enough-too')

        assert verifier.verify_token(make_token()) == (False, None)

    def test_garbage_token(self):
        assert AdminSessionVerifier(TEST_JWT_SECRET).verify_token('not-a-jwt') == (False, None)

    def test_missing_secret(self, monkeypatch):
        monkeypatch.delenv('SUPABASE_JWT_SECRET', raising=False)

        assert AdminSessionVerifier().verify_token(make_token()) == (False, None)

    def test_secret_from_environment(self, jwt_secret):
        is_valid, _ = AdminSessionVerifier().verify_token(make_token())

        assert is_valid is True


class TestSupabaseAccountProvisioner:
    """Test auth user lookup and creation for consultants."""

    @pytest.fixture
    def admin_client(self):
        client = Mock()
        client.auth.admin.list_users.return_value = [
            SimpleNamespace(id='user-1', email='Existing@Example.com'),
        ]
        client.auth.admin.create_user.return_value = SimpleNamespace(user=SimpleNamespace(id='user-new'))
        return client

    def test_reuses_existing_user(self, admin_client):
        provisioner = SupabaseAccountProvisioner(admin_client)

        assert provisioner.find_or_create_user('existing@example.com', 'Existing') == 'user-1'
        admin_client.auth.admin.create_user.assert_not_called()

    def test_creates_consultant_user(self, admin_client):
        provisioner = SupabaseAccountProvisioner(admin_client)

        assert provisioner.find_or_create_user('new@example.com', 'New Person') == 'user-new'

        attributes = admin_client.auth.admin.create_user.call_args[0][0]
        assert attributes['email'] == 'new@example.com'
        assert attributes['email_confirm'] is True
        assert len(attributes['password']) >= 12
        assert attributes['user_metadata'] == {
            'full_name': 'New Person',
            'role': 'consultant',
            'imported_from_odoo': True,
        }

    def test_missing_user_in_response(self, admin_client):
        admin_client.auth.admin.create_user.return_value = SimpleNamespace(user=None)

        with pytest.raises(RecordUpsertError):
            SupabaseAccountProvisioner(admin_client).find_or_create_user('new@example.com', 'New')

    def test_not_configured(self, monkeypatch):
        monkeypatch.delenv('SUPABASE_URL', raising=False)
        monkeypatch.delenv('SUPABASE_SERVICE_ROLE_KEY', raising=False)

        assert SupabaseAccountProvisioner.from_env() is None
