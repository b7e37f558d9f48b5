# voicebridge/models/summary.py
"""
Database models for the daily digest.
One DailySummary per household per local calendar date, with its ranked
key phrases. Regenerating a date overwrites the summary in place and
replaces the whole phrase set (see services/daily_summary.py).
"""
import uuid
from tortoise import fields, models


class DailySummary(models.Model):
    """
    Daily summary database model.

    Relationships:
    - Belongs to a Household (many-to-one)
    - Has many DailyKeyPhrases (one-to-many, via related_name="phrases")
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    household = fields.ForeignKeyField(
        "models.Household",
        related_name="daily_summaries",
        on_delete=fields.CASCADE
    )
    summary_date = fields.DateField()  # Local calendar date in the household timezone
    topic_summary_zh = fields.TextField()
    topic_summary_en = fields.TextField()
    whats_new_zh = fields.TextField(null=True)
    whats_new_en = fields.TextField(null=True)
    generated_at = fields.DatetimeField()  # Last (re)generation time

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "daily_summaries"
        unique_together = (("household", "summary_date"),)


class DailyKeyPhrase(models.Model):
    """
    Key phrase database model (five per generated summary, ranked 1..5).

    summary_date and household are denormalized from the parent summary so
    that phrases can be looked up across dates without a join.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    household = fields.ForeignKeyField(
        "models.Household",
        related_name="key_phrases",
        on_delete=fields.CASCADE
    )
    summary = fields.ForeignKeyField(
        "models.DailySummary",
        related_name="phrases",
        on_delete=fields.CASCADE
    )
    summary_date = fields.DateField()
    phrase_rank = fields.SmallIntField()  # 1..5, UI order
    phrase_en = fields.CharField(max_length=255)
    phrase_zh = fields.CharField(max_length=255)
    explanation_zh = fields.TextField(null=True)
    example_en = fields.TextField(null=True)
    example_zh = fields.TextField(null=True)
    is_new_today = fields.BooleanField(default=False)  # Not seen on an earlier date for this household
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "daily_key_phrases"
        unique_together = (("household", "summary_date", "phrase_en"),)
