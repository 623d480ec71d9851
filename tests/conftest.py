# tests/conftest.py
import pytest

from databases.database import DatabaseManager
from databases.history_store import ConversationStore, PersonalityStore, RoleHistoryStore
from models.base import SchemaVariant

# Using in-memory SQLite for speed and isolation
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def database():
    """
    A fresh in-memory database for each test, foreign keys enforced.
    """
    dbm = DatabaseManager(TEST_DATABASE_URL, echo=False)
    yield dbm
    await dbm.dispose()


async def _session_for(database, variant):
    await database.create_all(variant)
    async with database.async_session_maker() as s:
        yield s


@pytest.fixture
async def conversation_session(database):
    async for s in _session_for(database, SchemaVariant.CONVERSATION):
        yield s


@pytest.fixture
async def role_history_session(database):
    async for s in _session_for(database, SchemaVariant.ROLE_HISTORY):
        yield s


@pytest.fixture
async def personality_session(database):
    async for s in _session_for(database, SchemaVariant.PERSONALITY):
        yield s


@pytest.fixture
async def conversation_store(database):
    store = ConversationStore(database)
    await store.init_schema()
    return store


@pytest.fixture
async def role_history_store(database):
    store = RoleHistoryStore(database)
    await store.init_schema()
    return store


@pytest.fixture
async def personality_store(database):
    store = PersonalityStore(database)
    await store.init_schema()
    return store
