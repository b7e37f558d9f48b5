"""
Daily Summary Service

Turns one local day of a household's conversations into a bilingual
digest: a topic summary, a "what's new today" note and exactly five
ranked key phrases. The summary row and its phrases are written in one
transaction, so regenerating a date either fully replaces the previous
digest or leaves it untouched.
"""
import datetime as dt
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import ValidationError
from tortoise.transactions import in_transaction

from .budgets import SUMMARY_TIMEOUT_SEC, summary_max_tokens
from .day_window import get_household, household_zone, local_today, turns_for_local_day
from .json_extraction import extract_structured
from .llm_client import ChatCompletionClient, llm_client
from ..config import settings
from ..core.errors import InvalidSummaryStructureError, NoConversationsForDateError, StructuredOutputError
from ..models import ConversationTurn, DailyKeyPhrase, DailySummary, Household
from ..schemas.summary import SummaryDraft

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
PHRASE_COUNT = 5


@dataclass
class DailySummaryResult:
    summary: DailySummary
    phrases: List[DailyKeyPhrase]
    turn_count: Optional[int] = None  # Only known right after generation


def build_summary_prompt(turns: Sequence[ConversationTurn]) -> str:
    conversations = "\n\n".join(
        f"Conversation {i + 1} ({turn.source_lang} -> {turn.target_lang}):\n"
        f"Source: {turn.source_text}\nTranslation: {turn.translated_text}"
        for i, turn in enumerate(turns)
    )
    return f"""Summarize these conversations from today. Return a JSON object with the following structure:
{{
  "topic_summary_zh": "简短的中文主题总结",
  "topic_summary_en": "Brief English topic summary",
  "whats_new_zh": "今天有什么新内容（可选）",
  "whats_new_en": "What's new today (optional)",
  "phrases": [
    {{
      "phrase_en": "English phrase",
      "phrase_zh": "中文短语",
      "explanation_zh": "简短解释（可选）",
      "example_en": "Usage example (optional)",
      "example_zh": "使用示例（可选）"
    }}
  ]
}}

Include exactly {PHRASE_COUNT} phrases in the phrases array. Focus on useful, practical English phrases that would help a Chinese speaker communicate.

Conversations:
{conversations}

Return only valid JSON, no other text."""


def validate_summary(data: dict) -> SummaryDraft:
    """
    Check the model output against the digest contract.

    Raises:
        InvalidSummaryStructureError: missing topic summaries or phrases,
            not exactly five phrases, or a repeated English phrase
    """
    try:
        draft = SummaryDraft.model_validate(data)
    except ValidationError as e:
        logger.warning("[Summary] invalid structure: %s", e.errors()[:3])
        raise InvalidSummaryStructureError() from e

    if len(draft.phrases) != PHRASE_COUNT:
        logger.warning("[Summary] expected %d phrases, got %d", PHRASE_COUNT, len(draft.phrases))
        raise InvalidSummaryStructureError(
            f"Expected exactly {PHRASE_COUNT} key phrases, got {len(draft.phrases)}."
        )

    seen = set()
    for phrase in draft.phrases:
        if phrase.phrase_en in seen:
            raise InvalidSummaryStructureError(f"Key phrase {phrase.phrase_en!r} appears twice.")
        seen.add(phrase.phrase_en)
    return draft


class DailySummaryService:
    """Daily digest generation and storage"""

    def __init__(self, llm: Optional[ChatCompletionClient] = None, model: Optional[str] = None):
        self.llm = llm or llm_client
        self.model = model or settings.summary_model

    async def summarize(self, household_id, local_date: Optional[dt.date] = None) -> DailySummaryResult:
        """
        Generate (or regenerate) the digest for one local date.

        ``local_date`` defaults to today in the household's timezone.

        Raises:
            HouseholdNotFoundError, NoConversationsForDateError,
            InvalidSummaryStructureError, ProviderError
        """
        household = await get_household(household_id)
        day = local_date or local_today(household_zone(household))

        turns = await turns_for_local_day(household, day)
        if not turns:
            raise NoConversationsForDateError(f"No conversations found for {day.isoformat()}.")

        logger.info("[Summary] household=%s date=%s turns=%d", household.id, day, len(turns))
        completion = await self.llm.complete(
            [{"role": "user", "content": build_summary_prompt(turns)}],
            model=self.model,
            max_tokens=summary_max_tokens(len(turns)),
            temperature=TEMPERATURE,
            timeout=SUMMARY_TIMEOUT_SEC,
        )
        if completion.cut_off:
            logger.warning("[Summary] response cut off at token limit (id=%s)", completion.id)

        try:
            data = await extract_structured(completion.content, llm=self.llm, model=self.model)
        except StructuredOutputError as e:
            raise InvalidSummaryStructureError() from e

        draft = validate_summary(data)
        summary, phrases = await self._store(household, day, draft)
        return DailySummaryResult(summary=summary, phrases=phrases, turn_count=len(turns))

    async def _store(self, household: Household, day: dt.date, draft: SummaryDraft):
        phrase_keys = [p.phrase_en for p in draft.phrases]
        seen_before = set(await DailyKeyPhrase.filter(
            household_id=household.id,
            summary_date__lt=day,
            phrase_en__in=phrase_keys,
        ).values_list("phrase_en", flat=True))

        fields = dict(
            topic_summary_zh=draft.topic_summary_zh,
            topic_summary_en=draft.topic_summary_en,
            whats_new_zh=draft.whats_new_zh,
            whats_new_en=draft.whats_new_en,
            generated_at=dt.datetime.now(dt.timezone.utc),
        )

        async with in_transaction() as conn:
            summary = await DailySummary.filter(
                household_id=household.id, summary_date=day
            ).using_db(conn).first()
            if summary:
                summary.update_from_dict(fields)
                await summary.save(using_db=conn)
            else:
                summary = await DailySummary.create(
                    household=household, summary_date=day, using_db=conn, **fields
                )

            # Replace the whole phrase set for this date
            await DailyKeyPhrase.filter(household_id=household.id, summary_date=day).using_db(conn).delete()
            phrases = []
            for rank, phrase in enumerate(draft.phrases, start=1):
                phrases.append(await DailyKeyPhrase.create(
                    household=household,
                    summary=summary,
                    summary_date=day,
                    phrase_rank=rank,
                    phrase_en=phrase.phrase_en,
                    phrase_zh=phrase.phrase_zh,
                    explanation_zh=phrase.explanation_zh,
                    example_en=phrase.example_en,
                    example_zh=phrase.example_zh,
                    is_new_today=phrase.phrase_en not in seen_before,
                    using_db=conn,
                ))

        logger.info("[Summary] stored summary %s with %d phrases", summary.id, len(phrases))
        return summary, phrases

    async def get_summary(self, household_id, local_date: Optional[dt.date] = None) -> Optional[DailySummaryResult]:
        """Stored digest for a date (today by default), or None."""
        household = await get_household(household_id)
        day = local_date or local_today(household_zone(household))
        summary = await DailySummary.get_or_none(household_id=household.id, summary_date=day)
        if not summary:
            return None
        phrases = await DailyKeyPhrase.filter(summary_id=summary.id).order_by("phrase_rank")
        return DailySummaryResult(summary=summary, phrases=list(phrases))


# Global singleton
daily_summary_service = DailySummaryService()
