# voicebridge/models/turn.py
import uuid
from enum import Enum
from tortoise import fields, models


class SpeakerRole(str, Enum):
    INITIATOR = "initiator"  # turn 0, speaks the initiator language
    REPLY = "reply"          # turn 1, answers in the reply language


class ConversationTurn(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    session = fields.ForeignKeyField("models.ConversationSession", related_name="turns", on_delete=fields.CASCADE)
    household = fields.ForeignKeyField("models.Household", related_name="turns", on_delete=fields.CASCADE)
    speaker_user = fields.ForeignKeyField(
        "models.User", related_name="turns", null=True, on_delete=fields.SET_NULL
    )

    speaker_role = fields.CharEnumField(SpeakerRole, max_length=16)
    turn_index = fields.SmallIntField()  # 0 = first speaker, 1 = reply

    # Ordering key for daily aggregation; turns are saved asynchronously,
    # so created_at says nothing about when the speech happened
    ended_at = fields.DatetimeField()

    source_lang = fields.CharField(max_length=8)
    target_lang = fields.CharField(max_length=8)
    source_text = fields.TextField()
    translated_text = fields.TextField()

    # Filled in later by the tagging job; the only fields updated after insert
    situation_tag = fields.CharField(max_length=64, null=True)
    situation_confidence = fields.FloatField(null=True)

    # Provider request ids of the calls that produced this turn
    asr_request_id = fields.CharField(max_length=128, null=True)
    translation_request_id = fields.CharField(max_length=128, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "conversation_turns"
        unique_together = (("session", "turn_index"),)
