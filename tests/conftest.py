import os

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from lostfound.catalog import default_catalog
from lostfound.db import init_db
from lostfound.matching import MatchingEngine
from lostfound.schemas import Coordinate, InboundEvent, PhotoAttachment
from lostfound.services.publish import PublishPipeline
from lostfound.stores import SqlListingStore, SqlSessionStore, SqlUserStore
from lostfound.vault import SecretVault
from lostfound.workflow.engine import WorkflowEngine


class FixedScorer:
    """Scores candidates by id; records every (lost, found) pair it sees."""

    def __init__(self, default: float = 70.0):
        self.default = default
        self.by_id: dict[str, float] = {}
        self.calls = []

    def __call__(self, lost, found):
        self.calls.append((lost, found))
        for side in (lost, found):
            if side.id in self.by_id:
                return self.by_id[side.id]
        return self.default


@pytest.fixture
async def sessionmaker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    finally:
        await engine.dispose()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def sessions(sessionmaker):
    return SqlSessionStore(sessionmaker)


@pytest.fixture
def listings(sessionmaker):
    return SqlListingStore(sessionmaker)


@pytest.fixture
def users(sessionmaker):
    return SqlUserStore(sessionmaker)


@pytest.fixture
def scorer():
    return FixedScorer()


@pytest.fixture
def vault():
    return SecretVault(os.urandom(32))


@pytest.fixture
def matcher(listings, scorer):
    return MatchingEngine(listings, scorer)


@pytest.fixture
def publisher(catalog, sessions, listings, matcher):
    return PublishPipeline(catalog, sessions, listings, matcher)


@pytest.fixture
def engine(catalog, sessions, users, vault, publisher):
    return WorkflowEngine(catalog, sessions, users, vault, publisher, front_url="https://map.example.org")


class Chat:
    """Drives the engine the way the Telegram adapter does."""

    def __init__(self, engine: WorkflowEngine, user_id: int = 1001):
        self.engine = engine
        self.user_id = user_id

    async def say(self, text: str = "", **kw):
        return await self.engine.handle(InboundEvent(kind="text", user_id=self.user_id, text=text, **kw))

    async def press(self, payload: str):
        return await self.engine.handle(InboundEvent(kind="callback", user_id=self.user_id, callback_payload=payload))

    async def cancel(self):
        return await self.engine.handle(InboundEvent(kind="cancel", user_id=self.user_id, text="/cancel"))

    async def photo(self, *ids: str):
        return await self.say(photos=tuple(PhotoAttachment(id=i, token=f"file-{i}") for i in ids))

    async def location(self, lat: float, lng: float, note: str = ""):
        return await self.say(note, coordinate=Coordinate(lat=lat, lng=lng))

    async def internal_id(self) -> str:
        return await self.engine.users.ensure(self.user_id)

    async def session(self):
        return await self.engine.load(await self.internal_id())


@pytest.fixture
def chat(engine):
    return Chat(engine)


@pytest.fixture
def make_chat(engine):
    def _make(user_id: int = 1001, on: WorkflowEngine = None) -> Chat:
        return Chat(on or engine, user_id)
    return _make
