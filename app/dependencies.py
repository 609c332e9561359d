"""Authentication and service dependencies for FastAPI routes.

Protected routers declare ``authorize_jwt`` as a router dependency. It reads
the raw access token from the ``Authorization`` header (an optional
``Bearer`` scheme is stripped), validates it and stores the claims on
``request.state.claims``. Handlers fetch them with ``get_claims``.
"""

import logging

from fastapi import Depends, Request

from app.config import get_settings
from app.errors import (
    AccessTokenExpiredError,
    AccountNotActivatedError,
    ClaimsNotExistError,
    InvalidAccessTokenError,
    MissingAuthorizationError,
    MissingTokenError,
)
from app.services.auth import AccountService
from app.services.hashing import Hasher, get_hasher
from app.services.jwt import (
    AccessClaims,
    JWTService,
    NoTokenProvidedError,
    TokenExpiredError,
    TokenValidationError,
    get_jwt_service,
)
from app.services.mailer import Mailer, get_mailer
from app.services.tokens import TokenGenerator, get_token_generator

logger = logging.getLogger("shelfdrive")

AUTH_HEADER = "Authorization"


def extract_token(header_value: str) -> str:
    """Return the token part of an Authorization header value."""
    parts = header_value.strip().split(maxsplit=1)
    if parts and parts[0].lower() == "bearer":
        return parts[1].strip() if len(parts) > 1 else ""
    return header_value.strip()


def authorize_jwt(request: Request, jwt_service: JWTService = Depends(get_jwt_service)) -> AccessClaims:
    """Validate the bearer token and attach its claims to the request."""
    header_value = request.headers.get(AUTH_HEADER)
    if not header_value or not header_value.strip():
        raise MissingAuthorizationError()

    try:
        claims = jwt_service.validate(extract_token(header_value))
    except NoTokenProvidedError:
        logger.error("Unable to authorize %s: no JWT token was provided", request.url.path)
        raise MissingTokenError() from None
    except TokenExpiredError:
        logger.info("Unable to authorize %s: the JWT token has expired", request.url.path)
        raise AccessTokenExpiredError() from None
    except TokenValidationError as e:
        logger.error("Unable to authorize %s: %s", request.url.path, e)
        raise InvalidAccessTokenError() from None

    if not claims.is_activated:
        raise AccountNotActivatedError()

    request.state.claims = claims
    return claims


def get_claims(request: Request) -> AccessClaims:
    """Claims attached by ``authorize_jwt``. Raises ClaimsNotExistError if the guard did not run."""
    claims = getattr(request.state, "claims", None)
    if claims is None:
        logger.error("Error retrieving the claims from JWT for %s", request.url.path)
        raise ClaimsNotExistError()
    return claims


def get_account_service(
    hasher: Hasher = Depends(get_hasher),
    token_generator: TokenGenerator = Depends(get_token_generator),
    jwt_service: JWTService = Depends(get_jwt_service),
    mailer: Mailer = Depends(get_mailer),
) -> AccountService:
    """Build the account service from the configured collaborators."""
    settings = get_settings()
    return AccountService(
        hasher=hasher,
        token_generator=token_generator,
        jwt_service=jwt_service,
        mailer=mailer,
        min_password_length=settings.MIN_PASSWORD_LENGTH,
        frontend_url=settings.FRONTEND_URL,
    )
