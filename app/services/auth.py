"""Account lifecycle: registration, activation, login, password reset and token refresh."""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import (
    AccountNotActivatedError,
    InvalidActivationTokenError,
    InvalidCredentialsError,
    InvalidEmailError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    MalformedActivationTokenError,
    MalformedResetTokenError,
    PasswordTooShortError,
    RegistrationEmailError,
    ResetEmailError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from app.models.user import User
from app.services.hashing import Hasher
from app.services.jwt import JWTService, TokenPair, TokenValidationError
from app.services.mailer import MailDeliveryError, Mailer
from app.services.tokens import MalformedTokenError, TokenGenerator

logger = logging.getLogger("shelfdrive")


@dataclass
class LoginResult:
    """Successful login."""

    user_id: int
    is_admin: bool
    tokens: TokenPair


@dataclass
class RefreshResult:
    """Token pair minted from a refresh token."""

    user_id: int
    tokens: TokenPair


def _tokens_match(stored: str, submitted: str) -> bool:
    return secrets.compare_digest(stored.encode("utf-8"), submitted.encode("utf-8"))


class AccountService:
    """Coordinates users, verification tokens, JWTs and outbound mail.

    A user has exactly one pending verification token at a time. Activation
    and password reset both consume it, and forgot-password overwrites it, so
    requesting a reset also invalidates an unused activation link.
    """

    def __init__(
        self,
        hasher: Hasher,
        token_generator: TokenGenerator,
        jwt_service: JWTService,
        mailer: Mailer,
        min_password_length: int = 6,
        frontend_url: str = "http://localhost:3000",
    ) -> None:
        self.hasher = hasher
        self.tokens = token_generator
        self.jwt = jwt_service
        self.mailer = mailer
        self.min_password_length = min_password_length
        self.frontend_url = frontend_url.rstrip("/")

    # --- Registration and activation ---

    def register(self, db: Session, email: str, password: str) -> int:
        """Create an unactivated account and email its activation link. Returns the new user id.

        The account is removed again if the activation email cannot be sent.
        """
        email = self.normalize_email(email)
        self.validate_password(password)

        if self._get_by_email(db, email):
            raise UserAlreadyExistsError()

        raw_token = self.tokens.generate_raw_token()
        user = User(
            email=email,
            password_hash=self.hasher.hash(password),
            is_activated=False,
            activation_token=raw_token,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise UserAlreadyExistsError() from None
        db.refresh(user)
        user_id = user.id

        link = f"{self.frontend_url}/activate/{self.tokens.compose_token(user_id, raw_token)}"
        try:
            self.mailer.send_email(
                [email],
                "Activate your account",
                f"Open the following link to activate your account: {link}",
                f'<p>Open the following link to activate your account: <a href="{link}">{link}</a></p>',
            )
        except MailDeliveryError as e:
            logger.error("Activation email for user %d failed, removing the account: %s", user_id, e)
            db.delete(user)
            db.commit()
            raise RegistrationEmailError() from None

        logger.info("Registered user %d, activation pending", user_id)
        return user_id

    def activate(self, db: Session, composite_token: str) -> None:
        """Activate the account named by a composite token and rotate its token."""
        try:
            user_id, raw_token = self.tokens.decompose_token(composite_token)
        except MalformedTokenError as e:
            logger.warning("Rejected malformed activation token: %s", e)
            raise MalformedActivationTokenError() from None

        user = db.get(User, user_id)
        if user is None or not _tokens_match(user.activation_token, raw_token):
            logger.warning("Invalid activation token for user %d", user_id)
            raise InvalidActivationTokenError()

        self._consume_token(db, user_id, raw_token, {User.is_activated: True}, InvalidActivationTokenError)
        logger.info("Activated account %d", user_id)

    # --- Login and refresh ---

    def login(self, db: Session, email: str, password: str) -> LoginResult:
        """Check credentials of an activated account and issue a token pair."""
        user = self._get_by_email(db, email)
        if not user:
            raise InvalidCredentialsError()

        if not user.is_activated:
            raise AccountNotActivatedError()

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Failed login for user %d", user.id)
            raise InvalidCredentialsError()

        user.last_login_at = datetime.utcnow()
        db.commit()

        tokens = self.jwt.issue_token_pair(user.id, user.email, user.is_activated)
        logger.info("User %d logged in", user.id)
        return LoginResult(user_id=user.id, is_admin=user.is_admin, tokens=tokens)

    def refresh_tokens(self, db: Session, refresh_token: str) -> RefreshResult:
        """Mint a new token pair from a valid refresh token.

        Refresh tokens are not tracked server-side: any unexpired, correctly
        signed refresh token of an activated account is accepted.
        """
        try:
            claims = self.jwt.validate_refresh(refresh_token)
        except TokenValidationError as e:
            logger.warning("The refresh token is not valid: %s", e)
            raise InvalidRefreshTokenError() from None

        if not claims.email:
            raise InvalidRefreshTokenError("The email field received in the token is empty")

        user = self._get_by_email(db, claims.email)
        if not user:
            raise UserNotFoundError("The user doesn't exist", status_code=400)
        if not user.is_activated:
            raise AccountNotActivatedError(status_code=400)

        tokens = self.jwt.issue_token_pair(user.id, user.email, user.is_activated)
        logger.info("Issued a new token pair for user %d", user.id)
        return RefreshResult(user_id=user.id, tokens=tokens)

    # --- Password reset ---

    def forgot_password(self, db: Session, email: str) -> None:
        """Store a fresh token for the account and email a password reset link."""
        user = self._get_by_email(db, email)
        if not user:
            raise UserNotFoundError()

        # Last writer wins when two requests race for the same account
        raw_token = self.tokens.generate_raw_token()
        user.activation_token = raw_token
        db.commit()
        user_id = user.id

        link = f"{self.frontend_url}/renew-password/{self.tokens.compose_token(user_id, raw_token)}"
        try:
            self.mailer.send_email(
                [user.email],
                "Reset your password",
                f"Open the following link to choose a new password: {link}",
                f'<p>Open the following link to choose a new password: <a href="{link}">{link}</a></p>',
            )
        except MailDeliveryError as e:
            logger.error("Password reset email for user %d failed: %s", user_id, e)
            raise ResetEmailError() from None

        logger.info("Password reset requested for user %d", user_id)

    def reset_password(self, db: Session, composite_token: str, new_password: str) -> None:
        """Set a new password using a reset token, then rotate the token."""
        try:
            user_id, raw_token = self.tokens.decompose_token(composite_token)
        except MalformedTokenError as e:
            logger.warning("Rejected malformed reset token: %s", e)
            raise MalformedResetTokenError() from None

        self.validate_password(new_password)

        user = db.get(User, user_id)
        if user is None or not _tokens_match(user.activation_token, raw_token):
            logger.warning("Invalid reset token for user %d", user_id)
            raise InvalidResetTokenError()

        self._consume_token(
            db, user_id, raw_token, {User.password_hash: self.hasher.hash(new_password)}, InvalidResetTokenError
        )
        logger.info("Password changed for user %d", user_id)

    # --- Helpers ---

    def normalize_email(self, email: str) -> str:
        """Check the email format and return it normalized. Raises InvalidEmailError."""
        try:
            info = validate_email(email.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            logger.info("Rejected email %r: %s", email, e)
            raise InvalidEmailError() from None
        return info.normalized.lower()

    def validate_password(self, password: str) -> None:
        """Raise PasswordTooShortError if the password is under the minimum length."""
        if len(password) < self.min_password_length:
            raise PasswordTooShortError(f"The password must be at least {self.min_password_length} characters")

    @staticmethod
    def _lookup_key(email: str) -> str:
        """Stored form of ``email``. Unparseable input is only stripped and lowercased."""
        try:
            return validate_email(email.strip(), check_deliverability=False).normalized.lower()
        except EmailNotValidError:
            return email.strip().lower()

    def _get_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == self._lookup_key(email)).first()

    def _consume_token(
        self, db: Session, user_id: int, raw_token: str, changes: dict, error: type[Exception]
    ) -> None:
        """Apply ``changes`` and rotate the token, only if the stored token is still ``raw_token``."""
        values = dict(changes)
        values[User.activation_token] = self.tokens.generate_raw_token()
        updated = (
            db.query(User)
            .filter(User.id == user_id, User.activation_token == raw_token)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            # Another request rotated the token first
            db.rollback()
            raise error()
        db.commit()
