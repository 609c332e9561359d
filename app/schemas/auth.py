"""Pydantic schemas for account endpoints."""

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    email: str
    password: str


class RegisterResponse(BaseModel):
    id: int


class LoginResponse(BaseModel):
    id: int
    admin: bool
    token: str
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: str


class RenewPasswordRequest(BaseModel):
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str = ""


class RefreshTokenResponse(BaseModel):
    id: int
    token: str
    refresh_token: str


class MessageResponse(BaseModel):
    message: str
