# voicebridge/schemas/vocabulary.py
"""
Pydantic schemas for the daily vocabulary endpoint.
"""
import datetime as dt
from typing import List

from pydantic import BaseModel


class VocabularyItemOut(BaseModel):
    text: str  # English word or phrase
    count: int  # How often it came up that day
    translation: str  # Learner-language translation (the word itself if translation failed)


class DailyVocabularyOut(BaseModel):
    householdId: str
    date: dt.date  # Local calendar date in the household timezone
    timezone: str
    turnCount: int
    nouns: List[VocabularyItemOut]
    verbs: List[VocabularyItemOut]
    phrases: List[VocabularyItemOut]
