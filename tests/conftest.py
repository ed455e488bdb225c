import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import orderbot.models  # noqa: F401
from helpers import SYSTEM_PHONE_NUMBER_ID, TEST_SECRET, FakeChannel, StubExtractor, StubGenerator
from orderbot.config import settings
from orderbot.database import Base, enable_sqlite_savepoints, get_db
from orderbot.services.conversation_engine import ConversationEngine


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def mock_env(monkeypatch):
    """Deterministic settings for the webhook pipeline."""
    monkeypatch.setattr(settings, "whatsapp_app_secret", TEST_SECRET)
    monkeypatch.setattr(settings, "whatsapp_verify_token", "env-verify-token")
    monkeypatch.setattr(settings, "system_phone_number_id", SYSTEM_PHONE_NUMBER_ID)
    monkeypatch.setattr(settings, "system_access_token", "system-token")
    monkeypatch.setattr(settings, "redis_url", None)
    monkeypatch.setattr(settings, "admin_token", "admin-secret")
    monkeypatch.setattr(settings, "public_base_url", "https://shop.example.com")
    monkeypatch.setattr(settings, "tax_rate_percent", 18)
    monkeypatch.setattr(settings, "alert_bot_token", None)
    monkeypatch.setattr(settings, "alert_chat_id", None)
    return settings


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def extractor():
    return StubExtractor()


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def conversation_engine(fake_channel, extractor, generator):
    return ConversationEngine(
        extractor=extractor,
        generator=generator,
        channel_factory=lambda db, owner_id: fake_channel,
        wait=lambda seconds: True,
    )


@pytest.fixture
def client(db_session, conversation_engine, mock_env):
    from orderbot.main import app
    from orderbot.routers.webhook import get_conversation_engine

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_conversation_engine] = lambda: conversation_engine
    yield TestClient(app)
    app.dependency_overrides.clear()
