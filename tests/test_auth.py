"""Tests for the login gate."""

from src.auth import hash_password, verify_credentials
from src.config.settings import DEFAULT_ADMIN_PASSWORD_HASH


class TestLoginGate:
    """Tests for credential checks."""

    def test_default_hash_is_admin123(self):
        assert hash_password("admin123") == DEFAULT_ADMIN_PASSWORD_HASH

    def test_default_credentials(self, app_settings):
        user = verify_credentials("admin", "admin123", app_settings)
        assert user is not None
        assert user.username == "admin"

    def test_username_is_case_insensitive(self, app_settings):
        assert verify_credentials("  ADMIN ", "admin123", app_settings) is not None

    def test_wrong_password(self, app_settings):
        assert verify_credentials("admin", "Admin123", app_settings) is None

    def test_wrong_username(self, app_settings):
        assert verify_credentials("treasurer", "admin123", app_settings) is None

    def test_configured_credentials(self, app_settings):
        settings = app_settings.model_copy(update={
            "admin_username": "bendahari",
            "admin_password_hash": hash_password("s3cret"),
        })
        assert verify_credentials("Bendahari", "s3cret", settings) is not None
        assert verify_credentials("admin", "admin123", settings) is None
