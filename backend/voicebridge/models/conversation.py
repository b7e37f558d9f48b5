# voicebridge/models/conversation.py
"""
Database model for conversation sessions.
A session is one bounded two-turn exchange: the initiator speaks
(turn 0), the reply party answers (turn 1). Sessions are created when
the first capture starts and closed (ended_at set) once both turns are
stored. The bridge never deletes them.
"""
import uuid
from tortoise import fields, models


class ConversationSession(models.Model):
    """
    Conversation session database model.

    Relationships:
    - Belongs to a Household (many-to-one)
    - Started by a User (many-to-one, initiator)
    - Has many ConversationTurns (at most two, via related_name="turns")
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique session identifier
    household = fields.ForeignKeyField(
        "models.Household",
        related_name="sessions",
        on_delete=fields.CASCADE
    )
    initiated_by_user = fields.ForeignKeyField(
        "models.User",
        related_name="initiated_sessions",
        null=True,
        on_delete=fields.SET_NULL
    )  # Who pressed "start"; kept nullable so removing a member keeps history
    started_at = fields.DatetimeField()  # When the first capture began
    ended_at = fields.DatetimeField(null=True)  # Set only after both turns are stored
    context_note = fields.TextField(null=True)  # Optional free-text note from the initiator
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "conversation_sessions"
