# voicebridge/schemas/summary.py
"""
Pydantic schemas for the daily digest.
- SummaryDraft / PhraseDraft: shape the summary model must return
- DailySummaryOut / KeyPhraseOut: API responses
"""
import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, field_validator


def _required_text(value: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError("must not be empty")
    return value


class PhraseDraft(BaseModel):
    """One key phrase as produced by the model."""
    phrase_en: str
    phrase_zh: str
    explanation_zh: Optional[str] = None
    example_en: Optional[str] = None
    example_zh: Optional[str] = None

    @field_validator("phrase_en", "phrase_zh")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        return _required_text(value)


class SummaryDraft(BaseModel):
    """Whole summary as produced by the model (validated before storing)."""
    topic_summary_zh: str
    topic_summary_en: str
    whats_new_zh: Optional[str] = None
    whats_new_en: Optional[str] = None
    phrases: List[PhraseDraft]

    @field_validator("topic_summary_zh", "topic_summary_en")
    @classmethod
    def check_not_blank(cls, value: str) -> str:
        return _required_text(value)


class KeyPhraseOut(BaseModel):
    rank: int  # 1..5, display order
    phraseEn: str
    phraseZh: str
    explanationZh: Optional[str] = None
    exampleEn: Optional[str] = None
    exampleZh: Optional[str] = None
    isNewToday: bool = False


class DailySummaryOut(BaseModel):
    id: str
    householdId: str
    date: dt.date  # Local calendar date in the household timezone
    topicSummaryZh: str
    topicSummaryEn: str
    whatsNewZh: Optional[str] = None
    whatsNewEn: Optional[str] = None
    generatedAt: str  # ISO timestamp (UTC)
    phrases: List[KeyPhraseOut]
