# voicebridge/models/user.py
"""
Database model for household members.
A user is one person in a household: the grandparent who starts a
conversation, the partner who replies, and so on. There are no login
credentials; members are identified by id within their household.
"""
import uuid
from tortoise import fields, models


class User(models.Model):
    """
    Household member database model.

    Relationships:
    - Belongs to a Household (many-to-one, via related_name="members")
    - Has many ConversationSessions as initiator (via related_name="initiated_sessions")

    family_role is free text but the bridge looks for "partner" when it
    needs to attribute a reply turn to a speaker.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique member identifier
    household = fields.ForeignKeyField(
        "models.Household",
        related_name="members",
        on_delete=fields.CASCADE
    )  # Owning household; members go away with it
    display_name = fields.CharField(max_length=128)  # Name shown in the UI
    family_role = fields.CharField(max_length=32)  # e.g. "mom", "partner", "grandma"
    primary_lang = fields.CharField(max_length=8)  # BCP-47 code, e.g. "zh-CN" or "en-US"
    is_primary = fields.BooleanField(default=False)  # Main user of the device
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
