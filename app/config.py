"""Configuration settings for ShelfDrive."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shelfdrive.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER: str = os.getenv("JWT_ISSUER", "shelfdrive")
    ACCESS_TOKEN_EXPIRE_HOURS: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", "24"))
    REFRESH_TOKEN_EXPIRE_HOURS: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_HOURS", "48"))

    # Accounts
    MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
    ACTIVATION_TOKEN_LENGTH: int = int(os.getenv("ACTIVATION_TOKEN_LENGTH", "50"))
    PASSWORD_HASHER: str = os.getenv("PASSWORD_HASHER", "sha256")  # sha256 (legacy-compatible) or bcrypt
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Mail
    SMTP_HOST: str = os.getenv("SMTP_HOST", "")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    MAIL_FROM: str = os.getenv("MAIL_FROM", "no-reply@shelfdrive.local")
    MAIL_FROM_NAME: str = os.getenv("MAIL_FROM_NAME", "ShelfDrive")

    # Storage
    STORAGE_DIR: str = os.getenv("STORAGE_DIR", "storage")

    # Application
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self) -> None:
        # An unset secret falls back to a random one so tokens never verify against an empty key
        self.jwt_secret_generated = not self.JWT_SECRET_KEY
        if self.jwt_secret_generated:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.jwt_secret_generated:
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.SMTP_HOST and self.APP_ENV == "production":
            errors.append("SMTP_HOST is not set - activation and reset emails are only written to the log")
        if self.PASSWORD_HASHER == "sha256":
            errors.append("PASSWORD_HASHER=sha256 stores unsalted hashes - switch to bcrypt for new deployments")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
