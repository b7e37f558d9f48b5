# voicebridge/schemas/conversation.py
"""
Pydantic schemas for conversation sessions and turns.
Defines request/response models for starting a session, submitting turns
and reading stored sessions back.
"""
import uuid
from pydantic import BaseModel, Field
from typing import Optional, List


class StartSessionIn(BaseModel):
    """
    Request model for opening a new two-turn session.
    The initiator must be a member of the household.
    """
    householdId: uuid.UUID  # Household the device belongs to
    initiatorUserId: uuid.UUID  # Family member who speaks first
    contextNote: Optional[str] = Field(default=None, max_length=500)  # Optional free-text context


class SessionStartedOut(BaseModel):
    sessionId: str
    householdId: str
    startedAt: str  # ISO timestamp (UTC)


class TurnResultOut(BaseModel):
    """
    Response model for a submitted turn.
    Returned as soon as the translation is ready; storage happens afterwards.
    """
    sessionId: str
    turnIndex: int  # 0 = initiator, 1 = reply
    speakerRole: str  # "initiator" | "reply"
    sourceLang: str
    targetLang: str
    sourceText: str  # Transcript of the recording
    translatedText: str  # Text to be spoken to the other person


class TurnOut(BaseModel):
    """Stored turn, as listed in a session detail."""
    turnIndex: int
    speakerRole: str
    speakerUserId: Optional[str] = None
    sourceLang: str
    targetLang: str
    sourceText: str
    translatedText: str
    endedAt: str  # ISO timestamp (UTC)
    situationTag: Optional[str] = None  # Filled in after the session ends
    situationConfidence: Optional[float] = None


class SessionOut(BaseModel):
    """
    Session model for list and detail endpoints.
    ``turns`` is only populated on the detail endpoint.
    """
    id: str
    householdId: str
    initiatedByUserId: Optional[str] = None
    contextNote: Optional[str] = None
    startedAt: str
    endedAt: Optional[str] = None  # None while the reply is still pending
    turns: List[TurnOut] = []


class SessionListOut(BaseModel):
    items: List[SessionOut]
    limit: int
    total: int


class SituationTagOut(BaseModel):
    sessionId: str
    situationTag: str
    confidence: Optional[float] = None
