import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BACKGROUND_WORKERS_ENABLED", "0")
os.environ.setdefault("OWNER_PHONE", "972544994417")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import mavrikan.models  # noqa: E402,F401
from mavrikan.database import Base


class FakeGateway:
    """Records outbound sends instead of calling WAHA."""

    def __init__(self):
        self.texts: list[tuple[str, str]] = []
        self.images: list[tuple[str, str, str]] = []
        self.image_ok = True

    def send_text(self, chat_id: str, text: str) -> bool:
        self.texts.append((chat_id, text))
        return True

    def send_image(self, chat_id: str, image_url: str, caption: str = "") -> bool:
        self.images.append((chat_id, image_url, caption))
        return self.image_ok

    def texts_to(self, chat_id: str) -> list[str]:
        return [text for target, text in self.texts if target == chat_id]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Real SQLite session with the full schema."""
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()
