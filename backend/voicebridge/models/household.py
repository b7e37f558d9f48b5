# voicebridge/models/household.py
"""
Database model for households.
A household is the tenancy root: members, sessions, turns and daily
summaries all point back to exactly one household. The bridge only reads
households (their IANA timezone drives every "local date" computation);
creating and editing them is done elsewhere.
"""
import uuid
from tortoise import fields, models


class Household(models.Model):
    """
    Household database model.

    Relationships:
    - Has many Users (household members, via related_name="members")
    - Has many ConversationSessions, ConversationTurns, DailySummaries
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique household identifier
    name = fields.CharField(max_length=128)  # Display name (e.g., "Li family")
    timezone = fields.CharField(max_length=64, default="America/New_York")  # IANA timezone for local dates
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "households"
