import datetime as dt
import json
import uuid

import pytest

from factories import add_turn
from fakes import FakeLLM
from voicebridge.api.v1.deps import get_vocabulary_service
from voicebridge.main import app
from voicebridge.services.translation import TranslationService
from voicebridge.services.vocabulary import VocabularyService


pytestmark = pytest.mark.asyncio


def _install_service(analysis, translations) -> FakeLLM:
    llm = FakeLLM(analysis)
    service = VocabularyService(
        llm=llm,
        translator=TranslationService(llm=FakeLLM(translations), model="gpt-5"),
        model="deepseek",
        fallback_model="gpt-5",
        item_delay=0,
    )
    app.dependency_overrides[get_vocabulary_service] = lambda: service
    return llm


async def test_daily_vocabulary(client, household_factory):
    household, _, _ = await household_factory()
    await add_turn(household, dt.datetime(2024, 12, 1, 23, 0, tzinfo=dt.timezone.utc),
                   translated_text="We will miss the flight")
    _install_service(
        [json.dumps({"nouns": [{"word": "flight", "count": 1}], "verbs": [{"word": "miss", "count": 1}], "phrases": []})],
        ["航班", "错过"],
    )

    resp = await client.get(
        "/api/v1/vocabulary/daily",
        params={"householdId": str(household.id), "date": "2024-12-01"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["date"] == "2024-12-01"
    assert data["timezone"] == "America/New_York"
    assert data["turnCount"] == 1
    assert data["nouns"] == [{"text": "flight", "count": 1, "translation": "航班"}]
    assert data["verbs"] == [{"text": "miss", "count": 1, "translation": "错过"}]
    assert data["phrases"] == []


async def test_empty_day(client, household_factory):
    household, _, _ = await household_factory()
    llm = _install_service([], [])

    resp = await client.get(
        "/api/v1/vocabulary/daily",
        params={"householdId": str(household.id), "date": "2024-12-01"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert (data["nouns"], data["verbs"], data["phrases"]) == ([], [], [])
    assert llm.calls == []


async def test_unknown_household(client):
    _install_service([], [])
    resp = await client.get("/api/v1/vocabulary/daily", params={"householdId": str(uuid.uuid4())})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "HOUSEHOLD_NOT_FOUND"
