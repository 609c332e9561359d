"""Account API endpoints."""

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_account_service
from app.errors import MissingParameterError
from app.rate_limit import limiter
from app.schemas.auth import (
    ForgotPasswordRequest,
    LoginResponse,
    MessageResponse,
    RefreshTokenRequest,
    RefreshTokenResponse,
    RegisterRequest,
    RegisterResponse,
    RenewPasswordRequest,
)
from app.services.auth import AccountService

router = APIRouter(tags=["Accounts"])


@router.post("/register", response_model=RegisterResponse)
@limiter.limit("5/minute")
def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> RegisterResponse:
    """Register a new account and send its activation email."""
    user_id = accounts.register(db, body.email, body.password)
    return RegisterResponse(id=user_id)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> LoginResponse:
    """Authenticate with form-encoded credentials and receive a token pair."""
    result = accounts.login(db, email, password)
    return LoginResponse(
        id=result.user_id,
        admin=result.is_admin,
        token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )


@router.get("/activate/{token}", response_model=MessageResponse)
def activate(
    token: str,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Activate an account with the emailed composite token."""
    if not token.strip():
        raise MissingParameterError()
    accounts.activate(db, token)
    return MessageResponse(message="The account was successfully activated")


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("3/minute")
def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Email a password reset link."""
    accounts.forgot_password(db, body.email)
    return MessageResponse(message="A password reset link has been sent")


@router.post("/renew-password/{token}", response_model=MessageResponse)
@limiter.limit("5/minute")
def renew_password(
    request: Request,
    token: str,
    body: RenewPasswordRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Set a new password with the emailed composite token."""
    if not token.strip():
        raise MissingParameterError()
    accounts.reset_password(db, token, body.password)
    return MessageResponse(message="The password was successfully updated")


@router.post("/newtoken", response_model=RefreshTokenResponse)
@limiter.limit("20/minute")
def new_token(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service),
) -> RefreshTokenResponse:
    """Exchange a refresh token for a new token pair."""
    result = accounts.refresh_tokens(db, body.refresh_token)
    return RefreshTokenResponse(
        id=result.user_id,
        token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
    )
