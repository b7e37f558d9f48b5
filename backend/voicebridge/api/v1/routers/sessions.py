# voicebridge/api/v1/routers/sessions.py
import datetime as dt
import uuid
from fastapi import APIRouter, Depends, File, Query, UploadFile

from voicebridge.api.v1.deps import get_tagging_service, get_turn_pipeline, rate_limited
from voicebridge.core.errors import SessionNotFoundError
from voicebridge.models import ConversationSession, ConversationTurn
from voicebridge.schemas.conversation import (
    SessionOut,
    SessionStartedOut,
    SituationTagOut,
    StartSessionIn,
    TurnOut,
    TurnResultOut,
)
from voicebridge.services.tagging import TaggingService
from voicebridge.services.turn_pipeline import TurnOutcome, TurnPipeline

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value else None


def _turn_result(outcome: TurnOutcome) -> dict:
    return TurnResultOut(
        sessionId=outcome.session_id,
        turnIndex=outcome.turn_index,
        speakerRole=outcome.speaker_role.value,
        sourceLang=outcome.source_lang,
        targetLang=outcome.target_lang,
        sourceText=outcome.source_text,
        translatedText=outcome.translated_text,
    ).model_dump()


def _session_out(session: ConversationSession, turns: list[ConversationTurn] | None = None) -> dict:
    return SessionOut(
        id=str(session.id),
        householdId=str(session.household_id),
        initiatedByUserId=str(session.initiated_by_user_id) if session.initiated_by_user_id else None,
        contextNote=session.context_note,
        startedAt=_iso(session.started_at),
        endedAt=_iso(session.ended_at),
        turns=[
            TurnOut(
                turnIndex=t.turn_index,
                speakerRole=t.speaker_role.value,
                speakerUserId=str(t.speaker_user_id) if t.speaker_user_id else None,
                sourceLang=t.source_lang,
                targetLang=t.target_lang,
                sourceText=t.source_text,
                translatedText=t.translated_text,
                endedAt=_iso(t.ended_at),
                situationTag=t.situation_tag,
                situationConfidence=t.situation_confidence,
            )
            for t in (turns or [])
        ],
    ).model_dump()


async def _read_upload(file: UploadFile) -> tuple[bytes, str]:
    audio = await file.read()
    return audio, file.content_type or "audio/webm"


@router.post("/start", dependencies=[Depends(rate_limited("session_start"))])
async def start_session(body: StartSessionIn, pipeline: TurnPipeline = Depends(get_turn_pipeline)):
    """
    Open a new two-turn session for a household.

    Returns:
        dict: success + data {sessionId, householdId, startedAt}

    Raises:
        HOUSEHOLD_NOT_FOUND (404): unknown household, or initiator not a member
        RATE_LIMITED (429)
    """
    session = await pipeline.start_session(body.householdId, body.initiatorUserId, body.contextNote)
    data = SessionStartedOut(
        sessionId=str(session.id),
        householdId=str(session.household_id),
        startedAt=_iso(session.started_at),
    )
    return {"success": True, "data": data.model_dump()}


@router.post("/{session_id}/first-turn", dependencies=[Depends(rate_limited("audio_processing"))])
async def submit_first_turn(
    session_id: uuid.UUID,
    file: UploadFile = File(...),
    pipeline: TurnPipeline = Depends(get_turn_pipeline),
):
    """
    Upload the initiator's recording; returns transcript and translation.

    The turn is stored in the background after the response is ready.

    Raises:
        EMPTY_SPEECH / INVALID_AUDIO (400), SESSION_NOT_FOUND (404),
        SESSION_CLOSED (409), TRANSCRIPTION_UNAVAILABLE / TRANSLATION_UNAVAILABLE (503)
    """
    audio, mime_type = await _read_upload(file)
    outcome = await pipeline.submit_first_turn(session_id, audio, mime_type)
    return {"success": True, "data": _turn_result(outcome)}


@router.post("/{session_id}/reply-turn", dependencies=[Depends(rate_limited("audio_processing"))])
async def submit_reply_turn(
    session_id: uuid.UUID,
    file: UploadFile = File(...),
    pipeline: TurnPipeline = Depends(get_turn_pipeline),
):
    """
    Upload the reply recording; returns transcript and translation.

    Once the reply is stored the session is closed and tagging plus the
    daily summary refresh run in the background.
    """
    audio, mime_type = await _read_upload(file)
    outcome = await pipeline.submit_reply_turn(session_id, audio, mime_type)
    return {"success": True, "data": _turn_result(outcome)}


@router.post("/{session_id}/tag", dependencies=[Depends(rate_limited("tagging"))])
async def tag_session(session_id: uuid.UUID, tagger: TaggingService = Depends(get_tagging_service)):
    """Re-run situation tagging for a stored session (normally automatic)."""
    result = await tagger.tag_session(session_id)
    data = SituationTagOut(sessionId=str(session_id), situationTag=result.tag, confidence=result.confidence)
    return {"success": True, "data": data.model_dump()}


@router.get("/{session_id}", dependencies=[Depends(rate_limited("general"))])
async def get_session(session_id: uuid.UUID):
    """Session detail with its stored turns (ordered by turn index)."""
    session = await ConversationSession.get_or_none(id=session_id)
    if not session:
        raise SessionNotFoundError()
    turns = await ConversationTurn.filter(session_id=session.id).order_by("turn_index")
    return {"success": True, "data": _session_out(session, list(turns))}


@router.get("", dependencies=[Depends(rate_limited("general"))])
async def list_sessions(
    householdId: uuid.UUID = Query(...),
    limit: int = Query(20, ge=1, le=100),
):
    """Most recent sessions of a household with their turns, newest first."""
    query = ConversationSession.filter(household_id=householdId)
    total = await query.count()
    rows = await query.order_by("-started_at").limit(limit)

    by_session: dict[str, list[ConversationTurn]] = {}
    if rows:
        turns = await ConversationTurn.filter(session_id__in=[s.id for s in rows]).order_by("turn_index")
        for t in turns:
            by_session.setdefault(str(t.session_id), []).append(t)

    return {
        "success": True,
        "data": {
            "items": [_session_out(s, by_session.get(str(s.id))) for s in rows],
            "limit": limit,
            "total": total,
        },
    }
