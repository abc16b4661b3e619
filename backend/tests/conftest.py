"""
FridgeLingo Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the whole suite.
How:   A fresh in-memory SQLite database per test (aiosqlite), scripted
       fakes for the two AI providers, and an HTTPX client bound to an app
       built around those fakes.

Fixture Hierarchy:
    db_engine ─▶ db_session          real SQLAlchemy session, SAVEPOINTs work
    fake_detector / fake_generator   scripted LabelDetector / TextGenerator
    container ─▶ test_client         FastAPI app via ASGITransport
"""

import os
import tempfile
from typing import AsyncGenerator, Dict, List, Optional, Union

# Must be set before fridgelingo.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="fridgelingo_test_")
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fridgelingo.config import settings
from fridgelingo.database import Base
from fridgelingo.exceptions import LLMServiceError
from fridgelingo.services.llm_base import LabelDetector, TextGenerator
from fridgelingo.services.vocabulary_store import VocabularyStore
import fridgelingo.models  # noqa: F401


# ══════════════════════════════════════════════════════════════════════════
# Provider Fakes
# ══════════════════════════════════════════════════════════════════════════

Reply = Union[str, Exception]


class FakeDetector(LabelDetector):
    """Returns fixed labels, or raises the given error."""

    def __init__(self, labels: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.labels = labels or []
        self.error = error
        self.calls = 0

    async def detect_labels(self, image_bytes: bytes, mime_type: str) -> List[str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.labels)


class FakeGenerator(TextGenerator):
    """
    Answers by prompt kind: "chooser" (label choosing) or "enrich".

    A reply may be a string, or an exception instance to raise. Kinds with
    no scripted reply behave like an unreachable provider.
    """

    def __init__(self, chooser: Optional[Reply] = None, enrich: Optional[Reply] = None):
        self.replies: Dict[str, Optional[Reply]] = {"chooser": chooser, "enrich": enrich}
        self.prompts: List[tuple] = []

    async def generate_text(self, prompt: str) -> str:
        kind = "chooser" if "foodLabel" in prompt else "enrich"
        self.prompts.append((kind, prompt))
        reply = self.replies.get(kind)
        if reply is None:
            raise LLMServiceError(message="provider offline")
        if isinstance(reply, Exception):
            raise reply
        return reply

    def calls(self, kind: str) -> int:
        return sum(1 for k, _ in self.prompts if k == kind)


ENRICHMENT_JSON = (
    '{"translatedWord": "poire", "nativeDefinition": "배", '
    '"exampleSentence": "Je mange une poire.", "emoji": "🍐"}'
)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite shared through a StaticPool.

    pysqlite's implicit transaction handling breaks SAVEPOINT; the two
    listeners hand transaction control back to SQLAlchemy.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store():
    return VocabularyStore(retry_attempts=3)


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def temp_storage(tmp_path):
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG: SOI + JFIF APP0 + EOI. Passes MIME detection."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_detector():
    return FakeDetector(labels=["Food", "Pear", "Fruit"])


@pytest.fixture
def fake_generator():
    return FakeGenerator(chooser='{"foodLabel": "Pear"}', enrich=ENRICHMENT_JSON)


@pytest.fixture
def container(fake_detector, fake_generator, temp_storage):
    from fridgelingo.container import build_container

    test_settings = settings.model_copy(update={"storage_root": temp_storage})
    return build_container(test_settings, detector=fake_detector, generator=fake_generator)


@pytest_asyncio.fixture
async def test_client(container, session_factory):
    """
    HTTPX AsyncClient talking to a fresh app.

    get_db_session is overridden so requests hit the per-test database with
    the same commit/rollback behaviour as production.
    """
    from fridgelingo.database import get_db_session
    from fridgelingo.main import create_app

    app = create_app(container=container)

    async def _test_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = _test_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
