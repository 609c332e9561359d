"""Pytest configuration and fixtures."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, enable_sqlite_foreign_keys, get_db
from app.models.folder import Folder  # noqa: F401
from app.models.user import User  # noqa: F401
from app.services.auth import AccountService
from app.services.folder import FolderService, get_folder_service
from app.services.hashing import Sha256Hasher, get_hasher
from app.services.jwt import JWTService, get_jwt_service
from app.services.mailer import MailDeliveryError, Mailer, get_mailer
from app.services.tokens import TokenGenerator

TEST_SECRET = "test-secret-key"
TEST_PASSWORD = "secret1"


@dataclass
class SentEmail:
    recipient: str
    subject: str
    plain_body: str
    html_body: str

    @property
    def composite_token(self) -> str:
        """Composite token at the end of the emailed link."""
        return self.plain_body.rsplit("/", 1)[-1]


@dataclass
class RecordingMailer(Mailer):
    """Mailer that keeps messages in memory and can be told to fail."""

    sent: list[SentEmail] = field(default_factory=list)
    fail: bool = False

    def deliver(self, recipient: str, subject: str, plain_body: str, html_body: str) -> None:
        if self.fail:
            raise MailDeliveryError(f"could not send email to {recipient}")
        self.sent.append(SentEmail(recipient, subject, plain_body, html_body))


class FakeClock:
    """Settable clock for JWT expiry tests."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock()


@pytest.fixture(name="jwt_service")
def jwt_service_fixture(clock: FakeClock) -> JWTService:
    return JWTService(secret_key=TEST_SECRET, issuer="shelfdrive-test", clock=clock)


@pytest.fixture(name="mailer")
def mailer_fixture() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture(name="accounts")
def accounts_fixture(jwt_service: JWTService, mailer: RecordingMailer) -> AccountService:
    """Account service wired to the test JWT service and recording mailer."""
    return AccountService(
        hasher=Sha256Hasher(),
        token_generator=TokenGenerator(),
        jwt_service=jwt_service,
        mailer=mailer,
    )


@pytest.fixture(name="folder_service")
def folder_service_fixture(tmp_path) -> FolderService:
    return FolderService(hasher=Sha256Hasher(), storage_dir=str(tmp_path / "storage"))


@pytest.fixture(name="client")
def client_fixture(
    db_session: Session,
    jwt_service: JWTService,
    mailer: RecordingMailer,
    accounts: AccountService,
    folder_service: FolderService,
):
    """Create a test client with overridden dependencies and disabled rate limiting."""
    from app.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_jwt_service] = lambda: jwt_service
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_hasher] = lambda: accounts.hasher
    app.dependency_overrides[get_folder_service] = lambda: folder_service
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture(db_session: Session, accounts: AccountService, mailer: RecordingMailer):
    """Register and activate a user, log in, and return its data and tokens."""
    user_id = accounts.register(db_session, "test@example.com", TEST_PASSWORD)
    accounts.activate(db_session, mailer.sent[-1].composite_token)
    result = accounts.login(db_session, "test@example.com", TEST_PASSWORD)

    return {
        "user_id": user_id,
        "email": "test@example.com",
        "password": TEST_PASSWORD,
        "token": result.tokens.access_token,
        "refresh_token": result.tokens.refresh_token,
    }
