from typing import List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

from voicebridge.api.v1 import deps
from voicebridge.core.db import build_tortoise_config
from voicebridge.main import app
from voicebridge.models import Household, User
from voicebridge.services import retry, vocabulary
from fakes import FakeLLM


TEST_DB_URL = "sqlite://:memory:?cache=shared"
TEST_TORTOISE_ORM = build_tortoise_config(TEST_DB_URL)


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=TEST_TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database for service-level tests."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_backoff_sleep(monkeypatch):
    """Retries and vocabulary pacing never wait for real in tests."""
    sleeps: List[float] = []

    async def _fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(retry, "_sleep", _fake_sleep)
    monkeypatch.setattr(vocabulary, "_sleep", _fake_sleep)
    return sleeps


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    deps.get_rate_limiter().reset()
    yield
    deps.get_rate_limiter().reset()


@pytest_asyncio.fixture
async def household_factory(db):
    """
    Factory fixture creating a household with an initiator (zh) and a partner (en).
    """

    async def _create(timezone: str = "America/New_York") -> tuple[Household, User, User]:
        household = await Household.create(name="Li family", timezone=timezone)
        grandma = await User.create(
            household=household,
            display_name="Grandma",
            family_role="grandma",
            primary_lang="zh-CN",
            is_primary=True,
        )
        partner = await User.create(
            household=household,
            display_name="Sam",
            family_role="partner",
            primary_lang="en-US",
        )
        return household, grandma, partner

    return _create


@pytest.fixture
def fake_llm():
    return FakeLLM()
