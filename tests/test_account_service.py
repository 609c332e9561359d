"""Tests for AccountService flows against the database."""

from unittest.mock import MagicMock

import pytest

from app.errors import (
    AccountNotActivatedError,
    InvalidActivationTokenError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    MalformedActivationTokenError,
    PasswordTooShortError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from app.models.user import User
from app.services.auth import AccountService
from tests.conftest import TEST_PASSWORD


def _register_and_activate(db_session, accounts: AccountService, mailer, email="alice@example.com") -> int:
    user_id = accounts.register(db_session, email, TEST_PASSWORD)
    accounts.activate(db_session, mailer.sent[-1].composite_token)
    return user_id


class TestRegistration:
    """Tests for register and activate."""

    def test_full_lifecycle(self, db_session, accounts, mailer, jwt_service):
        """Register, activate, log in and use the access token."""
        user_id = accounts.register(db_session, "alice@example.com", "secret1")
        assert len(mailer.sent) == 1
        assert mailer.sent[0].composite_token.startswith(f"{user_id}_")

        accounts.activate(db_session, mailer.sent[0].composite_token)
        result = accounts.login(db_session, "alice@example.com", "secret1")

        claims = jwt_service.validate(result.tokens.access_token)
        assert claims.user_id == user_id
        assert claims.email == "alice@example.com"
        assert claims.is_activated is True

    def test_validation_happens_before_storage(self, accounts):
        """Invalid input never reaches the database."""
        db = MagicMock()
        with pytest.raises(InvalidEmailError):
            accounts.register(db, "bad", TEST_PASSWORD)
        with pytest.raises(PasswordTooShortError):
            accounts.register(db, "alice@example.com", "12345")
        db.add.assert_not_called()
        db.query.assert_not_called()

    def test_minimum_password_length_is_inclusive(self, db_session, accounts):
        """Exactly six characters is enough."""
        assert accounts.register(db_session, "alice@example.com", "123456") > 0

    def test_duplicate(self, db_session, accounts):
        """One account per email."""
        accounts.register(db_session, "alice@example.com", TEST_PASSWORD)
        with pytest.raises(UserAlreadyExistsError):
            accounts.register(db_session, "ALICE@example.com", TEST_PASSWORD)

    def test_activation_rotates_token(self, db_session, accounts, mailer):
        """Activation replaces the stored token."""
        user_id = accounts.register(db_session, "alice@example.com", TEST_PASSWORD)
        composite = mailer.sent[-1].composite_token
        raw_token = composite.split("_", 1)[1]

        accounts.activate(db_session, composite)
        user = db_session.get(User, user_id)
        assert user.is_activated is True
        assert user.activation_token != raw_token
        assert len(user.activation_token) == 50

        with pytest.raises(InvalidActivationTokenError):
            accounts.activate(db_session, composite)

    def test_activate_malformed(self, accounts, db_session):
        """Malformed tokens are rejected before any lookup."""
        with pytest.raises(MalformedActivationTokenError):
            accounts.activate(db_session, "no-separator")

    def test_stale_token_loses_race(self, db_session, accounts, mailer):
        """A token that was rotated between the check and the update is rejected."""
        user_id = accounts.register(db_session, "alice@example.com", TEST_PASSWORD)
        raw_token = mailer.sent[-1].composite_token.split("_", 1)[1]

        db_session.query(User).filter(User.id == user_id).update({User.activation_token: "rotated"})
        db_session.commit()

        with pytest.raises(InvalidActivationTokenError):
            accounts._consume_token(db_session, user_id, raw_token, {User.is_activated: True}, InvalidActivationTokenError)
        assert db_session.get(User, user_id).is_activated is False


class TestLogin:
    """Tests for login."""

    def test_wrong_password(self, db_session, accounts, mailer):
        """Wrong password fails and issues nothing."""
        _register_and_activate(db_session, accounts, mailer)
        with pytest.raises(InvalidCredentialsError):
            accounts.login(db_session, "alice@example.com", "wrongpass")

    def test_unicode_form_does_not_matter(self, db_session, accounts, mailer):
        """An address typed in decomposed Unicode finds the account registered in composed form."""
        composed = "jos\u00e9@example.com"
        decomposed = "jose\u0301@example.com"
        user_id = _register_and_activate(db_session, accounts, mailer, email=composed)

        assert accounts.login(db_session, decomposed, TEST_PASSWORD).user_id == user_id
        with pytest.raises(UserAlreadyExistsError):
            accounts.register(db_session, decomposed, TEST_PASSWORD)

    def test_not_activated(self, db_session, accounts):
        """Unactivated accounts cannot log in even with the right password."""
        accounts.register(db_session, "alice@example.com", TEST_PASSWORD)
        with pytest.raises(AccountNotActivatedError):
            accounts.login(db_session, "alice@example.com", TEST_PASSWORD)

    def test_admin_flag(self, db_session, accounts, mailer):
        """The admin flag is reported on login."""
        user_id = _register_and_activate(db_session, accounts, mailer)
        db_session.get(User, user_id).is_admin = True
        db_session.commit()
        assert accounts.login(db_session, "alice@example.com", TEST_PASSWORD).is_admin is True


class TestPasswordReset:
    """Tests for forgot_password and reset_password."""

    def test_reset_invalidates_older_links(self, db_session, accounts, mailer):
        """Only the newest reset link works, and only once."""
        _register_and_activate(db_session, accounts, mailer)

        accounts.forgot_password(db_session, "alice@example.com")
        first = mailer.sent[-1].composite_token
        accounts.forgot_password(db_session, "alice@example.com")
        second = mailer.sent[-1].composite_token

        with pytest.raises(InvalidResetTokenError):
            accounts.reset_password(db_session, first, "newpass1")
        accounts.reset_password(db_session, second, "newpass1")
        with pytest.raises(InvalidResetTokenError):
            accounts.reset_password(db_session, second, "newpass2")

        with pytest.raises(InvalidCredentialsError):
            accounts.login(db_session, "alice@example.com", TEST_PASSWORD)
        assert accounts.login(db_session, "alice@example.com", "newpass1").user_id > 0

    def test_forgot_password_voids_activation_link(self, db_session, accounts, mailer):
        """Activation and reset share one token slot."""
        accounts.register(db_session, "alice@example.com", TEST_PASSWORD)
        activation = mailer.sent[-1].composite_token

        accounts.forgot_password(db_session, "alice@example.com")
        with pytest.raises(InvalidActivationTokenError):
            accounts.activate(db_session, activation)

    def test_forgot_password_unknown(self, db_session, accounts):
        """Unknown emails are reported."""
        with pytest.raises(UserNotFoundError):
            accounts.forgot_password(db_session, "nobody@example.com")


class TestRefresh:
    """Tests for refresh_tokens."""

    def test_refresh_extends_expiry(self, db_session, accounts, mailer, clock):
        """A refreshed access token expires later than the original."""
        _register_and_activate(db_session, accounts, mailer)
        login = accounts.login(db_session, "alice@example.com", TEST_PASSWORD)

        clock.advance(hours=1)
        result = accounts.refresh_tokens(db_session, login.tokens.refresh_token)
        assert result.user_id == login.user_id
        old = accounts.jwt.validate(login.tokens.access_token)
        new = accounts.jwt.validate(result.tokens.access_token)
        assert new.expires_at > old.expires_at

    def test_refresh_expired(self, db_session, accounts, mailer, clock):
        """Refresh tokens expire after 48 hours."""
        _register_and_activate(db_session, accounts, mailer)
        login = accounts.login(db_session, "alice@example.com", TEST_PASSWORD)

        clock.advance(hours=48, seconds=1)
        with pytest.raises(InvalidRefreshTokenError):
            accounts.refresh_tokens(db_session, login.tokens.refresh_token)

    def test_refresh_missing_user(self, db_session, accounts, jwt_service):
        """A valid token for a user that does not exist fails."""
        pair = jwt_service.issue_token_pair(1, "ghost@example.com", True)
        with pytest.raises(UserNotFoundError) as exc_info:
            accounts.refresh_tokens(db_session, pair.refresh_token)
        assert exc_info.value.status_code == 400

    def test_refresh_empty_email(self, db_session, accounts, jwt_service):
        """A refresh token with an empty email is rejected."""
        pair = jwt_service.issue_token_pair(1, "", True)
        with pytest.raises(InvalidRefreshTokenError):
            accounts.refresh_tokens(db_session, pair.refresh_token)
