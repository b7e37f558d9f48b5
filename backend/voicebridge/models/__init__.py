# voicebridge/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- Household: Tenancy root, owns the timezone used for local dates
- User: Household member
- ConversationSession: One two-turn conversation
- ConversationTurn: One translated utterance (belongs to ConversationSession)
- DailySummary / DailyKeyPhrase: Daily bilingual digest
"""
from .household import Household
from .user import User
from .conversation import ConversationSession
from .turn import ConversationTurn, SpeakerRole
from .summary import DailySummary, DailyKeyPhrase
