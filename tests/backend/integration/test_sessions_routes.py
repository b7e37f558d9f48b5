import uuid

import pytest

from fakes import FakeASR, FakeLLM
from voicebridge.api.v1.deps import get_tagging_service, get_turn_pipeline
from voicebridge.core.errors import EmptySpeechError, ProviderError
from voicebridge.core.jobs import BackgroundJobs
from voicebridge.main import app
from voicebridge.services.tagging import TaggingService
from voicebridge.services.translation import TranslationService
from voicebridge.services.turn_pipeline import TurnPipeline


pytestmark = pytest.mark.asyncio


class _NoopEnrichment:
    async def tag_session(self, session_id):
        return None

    async def summarize(self, household_id, local_date=None):
        return None


def _install_pipeline(transcripts, translations) -> BackgroundJobs:
    jobs = BackgroundJobs()
    noop = _NoopEnrichment()
    pipeline = TurnPipeline(
        asr=FakeASR(*transcripts),
        translator=TranslationService(llm=FakeLLM(translations), model="gpt-5"),
        tagger=noop,
        summarizer=noop,
        background=jobs,
    )
    app.dependency_overrides[get_turn_pipeline] = lambda: pipeline
    return jobs


async def _start(client, household, user):
    resp = await client.post(
        "/api/v1/sessions/start",
        json={"householdId": str(household.id), "initiatorUserId": str(user.id), "contextNote": "dinner"},
    )
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]["sessionId"]


def _audio(data: bytes = b"webm-bytes"):
    return {"file": ("turn.webm", data, "audio/webm")}


async def test_full_two_turn_session_flow(client, household_factory):
    household, grandma, _ = await household_factory()
    jobs = _install_pipeline(["你吃饭了吗", "Not yet"], ["Did you eat?", "还没有"])

    session_id = await _start(client, household, grandma)

    first = await client.post(f"/api/v1/sessions/{session_id}/first-turn", files=_audio())
    assert first.status_code == 200, first.text
    assert first.json() == {
        "success": True,
        "data": {
            "sessionId": session_id,
            "turnIndex": 0,
            "speakerRole": "initiator",
            "sourceLang": "zh-CN",
            "targetLang": "en-US",
            "sourceText": "你吃饭了吗",
            "translatedText": "Did you eat?",
        },
    }
    await jobs.drain(timeout=5)

    reply = await client.post(f"/api/v1/sessions/{session_id}/reply-turn", files=_audio())
    assert reply.status_code == 200
    assert reply.json()["data"]["translatedText"] == "还没有"
    await jobs.drain(timeout=5)

    detail = await client.get(f"/api/v1/sessions/{session_id}")
    data = detail.json()["data"]
    assert detail.status_code == 200
    assert data["contextNote"] == "dinner"
    assert data["endedAt"] is not None
    assert [t["turnIndex"] for t in data["turns"]] == [0, 1]
    assert data["turns"][1]["sourceText"] == "Not yet"

    closed = await client.post(f"/api/v1/sessions/{session_id}/reply-turn", files=_audio())
    assert closed.status_code == 409
    assert closed.json()["error"]["code"] == "SESSION_CLOSED"

    listing = await client.get("/api/v1/sessions", params={"householdId": str(household.id)})
    assert listing.status_code == 200
    assert listing.json()["data"]["total"] == 1
    assert listing.json()["data"]["items"][0]["id"] == session_id
    assert [t["turnIndex"] for t in listing.json()["data"]["items"][0]["turns"]] == [0, 1]


async def test_start_with_unknown_household(client, household_factory):
    _, grandma, _ = await household_factory()
    resp = await client.post(
        "/api/v1/sessions/start",
        json={"householdId": str(uuid.uuid4()), "initiatorUserId": str(grandma.id)},
    )
    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "error": {"code": "HOUSEHOLD_NOT_FOUND", "message": "Household not found."},
    }


async def test_malformed_ids_are_rejected(client):
    resp = await client.post("/api/v1/sessions/start", json={"householdId": "nope", "initiatorUserId": "nope"})
    assert resp.status_code == 422
    resp = await client.get("/api/v1/sessions/not-a-uuid")
    assert resp.status_code == 422


async def test_empty_speech_is_400_and_stores_nothing(client, household_factory):
    household, grandma, _ = await household_factory()
    jobs = _install_pipeline([EmptySpeechError()], [])
    session_id = await _start(client, household, grandma)

    resp = await client.post(f"/api/v1/sessions/{session_id}/first-turn", files=_audio())
    await jobs.drain(timeout=5)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "EMPTY_SPEECH"
    detail = await client.get(f"/api/v1/sessions/{session_id}")
    assert detail.json()["data"]["turns"] == []


async def test_translation_outage_is_503(client, household_factory):
    household, grandma, _ = await household_factory()
    _install_pipeline(["你好"], [ProviderError(retryable=True, timed_out=True) for _ in range(3)])
    session_id = await _start(client, household, grandma)

    resp = await client.post(f"/api/v1/sessions/{session_id}/first-turn", files=_audio())

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "TRANSLATION_UNAVAILABLE"
    assert "too long" in resp.json()["error"]["message"]


async def test_unknown_session_is_404(client, household_factory):
    _install_pipeline([], [])
    resp = await client.post(f"/api/v1/sessions/{uuid.uuid4()}/first-turn", files=_audio())
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "SESSION_NOT_FOUND"


async def test_manual_tagging(client, household_factory):
    household, grandma, _ = await household_factory()
    jobs = _install_pipeline(["宝宝哭了", "She is hungry"], ["The baby is crying", "她饿了"])
    session_id = await _start(client, household, grandma)
    await client.post(f"/api/v1/sessions/{session_id}/first-turn", files=_audio())
    await client.post(f"/api/v1/sessions/{session_id}/reply-turn", files=_audio())
    await jobs.drain(timeout=5)

    tagger = TaggingService(llm=FakeLLM(['{"situation_tag": "baby", "confidence": 0.8}']), model="gpt-5")
    app.dependency_overrides[get_tagging_service] = lambda: tagger

    resp = await client.post(f"/api/v1/sessions/{session_id}/tag")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"sessionId": session_id, "situationTag": "baby", "confidence": 0.8}

    detail = await client.get(f"/api/v1/sessions/{session_id}")
    assert {t["situationTag"] for t in detail.json()["data"]["turns"]} == {"baby"}


async def test_session_start_is_rate_limited(client, household_factory):
    household, grandma, _ = await household_factory()
    _install_pipeline([], [])

    for _ in range(15):
        await _start(client, household, grandma)

    resp = await client.post(
        "/api/v1/sessions/start",
        json={"householdId": str(household.id), "initiatorUserId": str(grandma.id)},
    )
    assert resp.status_code == 429
    assert resp.json()["detail"] == "RATE_LIMITED"
    assert int(resp.headers["Retry-After"]) > 0
    assert resp.headers["X-RateLimit-Limit"] == "15"
    assert resp.headers["X-RateLimit-Remaining"] == "0"


async def test_rate_limit_headers_on_success(client, household_factory):
    household, grandma, _ = await household_factory()
    _install_pipeline([], [])
    resp = await client.post(
        "/api/v1/sessions/start",
        json={"householdId": str(household.id), "initiatorUserId": str(grandma.id)},
    )
    assert resp.headers["X-RateLimit-Remaining"] == "14"


async def test_healthz(client):
    resp = await client.get("/healthz")
    assert resp.json() == {"ok": True}
