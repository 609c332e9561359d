"""JWT Token Service."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from app.config import get_settings

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenValidationError(Exception):
    """Base class for rejected JWTs."""


class NoTokenProvidedError(TokenValidationError):
    """The token string was empty."""


class InvalidSigningMethodError(TokenValidationError):
    """The token header names an algorithm outside the HMAC family."""


class TokenExpiredError(TokenValidationError):
    """The token's ``exp`` claim is in the past."""


class InvalidTokenError(TokenValidationError):
    """Bad signature, malformed token or missing claims."""


@dataclass
class TokenPair:
    """Access and refresh tokens issued together."""

    access_token: str
    refresh_token: str


@dataclass
class AccessClaims:
    """Decoded access token payload."""

    user_id: int
    email: str
    is_activated: bool
    expires_at: datetime
    issued_at: datetime
    issuer: str


@dataclass
class RefreshClaims:
    """Decoded refresh token payload."""

    email: str
    expires_at: datetime
    issued_at: datetime
    issuer: str


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _from_timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class JWTService:
    """Handles JWT token pair creation and validation."""

    def __init__(
        self,
        secret_key: str,
        issuer: str,
        access_ttl: timedelta = timedelta(hours=24),
        refresh_ttl: timedelta = timedelta(hours=48),
        algorithm: str = "HS256",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"Unsupported JWT algorithm '{algorithm}'")
        self.secret_key = secret_key
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm
        self.clock = clock or _utc_now

    def issue_token_pair(self, user_id: int, email: str, is_activated: bool) -> TokenPair:
        """Create a signed access token and refresh token for the given user."""
        issued_at = int(self.clock().timestamp())
        access_payload = {
            "id": user_id,
            "email": email,
            "isActivated": is_activated,
            "type": ACCESS_TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + int(self.access_ttl.total_seconds()),
            "iss": self.issuer,
        }
        refresh_payload = {
            "email": email,
            "type": REFRESH_TOKEN_TYPE,
            "iat": issued_at,
            "exp": issued_at + int(self.refresh_ttl.total_seconds()),
            "iss": self.issuer,
        }
        return TokenPair(
            access_token=jwt.encode(access_payload, self.secret_key, algorithm=self.algorithm),
            refresh_token=jwt.encode(refresh_payload, self.secret_key, algorithm=self.algorithm),
        )

    def validate(self, token: str) -> AccessClaims:
        """Validate an access token and return its claims."""
        payload = self._decode(token, ACCESS_TOKEN_TYPE)
        try:
            return AccessClaims(
                user_id=int(payload["id"]),
                email=str(payload["email"]),
                is_activated=bool(payload["isActivated"]),
                expires_at=_from_timestamp(payload["exp"]),
                issued_at=_from_timestamp(payload["iat"]),
                issuer=str(payload.get("iss", "")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(f"access token is missing claims: {e}") from None

    def validate_refresh(self, token: str) -> RefreshClaims:
        """Validate a refresh token and return its claims."""
        payload = self._decode(token, REFRESH_TOKEN_TYPE)
        try:
            return RefreshClaims(
                email=str(payload.get("email") or ""),
                expires_at=_from_timestamp(payload["exp"]),
                issued_at=_from_timestamp(payload["iat"]),
                issuer=str(payload.get("iss", "")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError(f"refresh token is missing claims: {e}") from None

    def _decode(self, token: str, expected_type: str) -> dict[str, Any]:
        if not token:
            raise NoTokenProvidedError("the jwt token was not provided")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidTokenError(str(e)) from None
        if header.get("alg") not in HMAC_ALGORITHMS:
            raise InvalidSigningMethodError(f"invalid signing method {header.get('alg')!r}")

        # Expiry is checked below against the injected clock
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=sorted(HMAC_ALGORITHMS),
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidTokenError(str(e)) from None

        try:
            expires_at = int(payload["exp"])
        except (KeyError, TypeError, ValueError):
            raise InvalidTokenError("token has no valid exp claim") from None
        if expires_at <= self.clock().timestamp():
            raise TokenExpiredError("the jwt token has expired")

        if payload.get("type") != expected_type:
            raise InvalidTokenError(f"expected a {expected_type} token")
        return payload


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        settings = get_settings()
        _jwt_service = JWTService(
            secret_key=settings.JWT_SECRET_KEY,
            issuer=settings.JWT_ISSUER,
            access_ttl=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
            refresh_ttl=timedelta(hours=settings.REFRESH_TOKEN_EXPIRE_HOURS),
            algorithm=settings.JWT_ALGORITHM,
        )
    return _jwt_service
