"""
Vocabulary Extraction Service

Builds the day's study list from the English side of a household's
conversations:

1. One analysis call ranks nouns, verbs and phrases (JSON, parsed with
   the extraction chain plus at most one re-extraction call). If the
   primary model is down, the fallback model gets one try.
2. Beginner-level nouns/verbs are dropped (see elementary_words.py).
3. Survivors are translated one at a time with a short pause between
   requests. Each item retries a couple of times with back-off and, if it
   still fails, keeps the English word as its own translation: a partial
   list beats no list.

Worst case upstream calls per request: 2 analysis + 1 re-extraction +
3 attempts for each of at most 13 items.
"""
import asyncio
import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .budgets import VOCABULARY_MAX_TOKENS, VOCABULARY_TIMEOUT_SEC
from .day_window import get_household, household_zone, local_today, turns_for_local_day
from .elementary_words import is_elementary
from .json_extraction import extract_structured
from .llm_client import ChatCompletionClient, ChatCompletion, llm_client
from .retry import call_with_backoff
from .translation import TranslationService, translation_service
from ..config import settings
from ..core.errors import BridgeError, ProviderError
from ..models import ConversationTurn

logger = logging.getLogger(__name__)

MAX_TEXT_CHARS = 8000
NOUN_LIMIT = 5
VERB_LIMIT = 5
PHRASE_LIMIT = 3
TEMPERATURE = 0.1
ITEM_RETRIES = 2
ITEM_BASE_DELAY = 0.5

JSON_API_SYSTEM_PROMPT = (
    "You are a JSON API. Return ONLY valid JSON. No explanations, no text before or after "
    "the JSON. Start your response with { and end with }."
)

# Indirection so tests can skip the inter-item pause
_sleep = asyncio.sleep


@dataclass
class VocabularyItem:
    text: str
    count: int
    translation: str


@dataclass
class VocabularyResult:
    date: dt.date
    timezone: str
    turn_count: int
    nouns: List[VocabularyItem] = field(default_factory=list)
    verbs: List[VocabularyItem] = field(default_factory=list)
    phrases: List[VocabularyItem] = field(default_factory=list)


def _is_english(lang: Optional[str]) -> bool:
    return bool(lang) and lang.lower().startswith("en")


def english_side(turn: ConversationTurn) -> str:
    """The English text of a turn, whichever direction it was spoken in."""
    if _is_english(turn.target_lang):
        return turn.translated_text or ""
    if _is_english(turn.source_lang):
        return turn.source_text or ""
    return ""


def build_analysis_text(turns: Sequence[ConversationTurn]) -> str:
    text = " ".join(t for t in (english_side(turn).strip() for turn in turns) if t).strip()
    if len(text) > MAX_TEXT_CHARS:
        logger.warning("[Vocabulary] text too long (%d chars), truncating to %d", len(text), MAX_TEXT_CHARS)
        text = text[:MAX_TEXT_CHARS] + "..."
    return text


def build_vocabulary_prompt(text: str) -> str:
    example = (
        '{"nouns":[{"word":"flight","count":2},{"word":"airport","count":1},{"word":"baby","count":3},'
        '{"word":"dish","count":2},{"word":"plan","count":1}],'
        '"verbs":[{"word":"miss","count":2},{"word":"sleep","count":3},{"word":"feel","count":1},'
        '{"word":"smell","count":2},{"word":"cry","count":2}],'
        '"phrases":[{"phrase":"long time no see","count":2},{"phrase":"thank God","count":1},'
        '{"phrase":"signature dish","count":2}]}'
    )
    return (
        "Return ONLY this JSON structure with real data. No explanations, no text, just JSON:\n\n"
        f"{example}\n\n"
        f"Text to analyze: {text}\n\n"
        f"Instructions: Extract top {NOUN_LIMIT} nouns, top {VERB_LIMIT} verbs, top {PHRASE_LIMIT} phrases "
        "from the text above. Exclude A1 level words: be, have, do, go, come, get, make, take, give, say, "
        "see, know, think, want, like, need, walk, eat, time, day, thing, man, woman, people, place, work, "
        "house, home, water, food, money, good, bad, big, small, new, old.\n\n"
        "Return ONLY the JSON object. Start with { and end with }. No other text."
    )


def _count(raw) -> int:
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return 1


def ranked_items(raw_items, key: str, limit: int, drop_elementary: bool) -> List[tuple]:
    """(text, count) pairs from the model output, cleaned, filtered and capped."""
    if not isinstance(raw_items, list):
        return []
    items = []
    for raw in raw_items:
        if not isinstance(raw, dict) or not isinstance(raw.get(key), str):
            continue
        text = raw[key].strip()
        if not text:
            continue
        if drop_elementary and is_elementary(text):
            logger.debug("[Vocabulary] dropped elementary word %r", text)
            continue
        items.append((text, _count(raw.get("count"))))
        if len(items) >= limit:
            break
    return items


class VocabularyService:
    """Daily vocabulary extraction"""

    def __init__(
        self,
        llm: Optional[ChatCompletionClient] = None,
        translator: Optional[TranslationService] = None,
        model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        item_delay: Optional[float] = None,
    ):
        self.llm = llm or llm_client
        self.translator = translator or translation_service
        self.model = model or settings.vocabulary_model
        self.fallback_model = fallback_model or settings.vocabulary_fallback_model
        self.item_delay = settings.vocabulary_item_delay_sec if item_delay is None else item_delay

    async def extract_vocabulary(self, household_id, local_date: Optional[dt.date] = None) -> VocabularyResult:
        """
        Nouns (≤5), verbs (≤5) and phrases (≤3) from one local day.

        A day without conversations yields empty lists, not an error.
        """
        household = await get_household(household_id)
        zone = household_zone(household)
        day = local_date or local_today(zone)
        result = VocabularyResult(date=day, timezone=zone.key, turn_count=0)

        turns = await turns_for_local_day(household, day)
        result.turn_count = len(turns)
        text = build_analysis_text(turns)
        if not text:
            return result

        analysis = await self.analyze(text)
        nouns = ranked_items(analysis.get("nouns"), "word", NOUN_LIMIT, drop_elementary=True)
        verbs = ranked_items(analysis.get("verbs"), "word", VERB_LIMIT, drop_elementary=True)
        phrases = ranked_items(analysis.get("phrases"), "phrase", PHRASE_LIMIT, drop_elementary=False)
        logger.info(
            "[Vocabulary] household=%s date=%s -> %d nouns, %d verbs, %d phrases",
            household.id, day, len(nouns), len(verbs), len(phrases),
        )

        # One request at a time; the provider penalizes bursts
        first = True
        for items, bucket in ((nouns, result.nouns), (verbs, result.verbs), (phrases, result.phrases)):
            for text_item, count in items:
                if not first and self.item_delay > 0:
                    await _sleep(self.item_delay)
                first = False
                translation = await self.translate_item(text_item)
                if translation:
                    bucket.append(VocabularyItem(text=text_item, count=count, translation=translation))
        return result

    async def analyze(self, text: str) -> dict:
        """
        Run the ranking call and parse its JSON.

        Raises:
            ProviderError: both models failed
            StructuredOutputError: no JSON even after re-extraction
        """
        messages = [
            {"role": "system", "content": JSON_API_SYSTEM_PROMPT},
            {"role": "user", "content": build_vocabulary_prompt(text)},
        ]
        try:
            completion = await self._analysis_call(messages, self.model)
        except ProviderError as e:
            if self.fallback_model == self.model:
                raise
            logger.warning("[Vocabulary] %s failed (%s); falling back to %s", self.model, e, self.fallback_model)
            completion = await self._analysis_call(messages, self.fallback_model)

        data = await extract_structured(completion.content, llm=self.llm, model=self.fallback_model)
        for key in ("nouns", "verbs", "phrases"):
            if not isinstance(data.get(key), list):
                data[key] = []
        return data

    async def _analysis_call(self, messages: list, model: str) -> ChatCompletion:
        return await self.llm.complete(
            messages,
            model=model,
            max_tokens=VOCABULARY_MAX_TOKENS,
            temperature=TEMPERATURE,
            timeout=VOCABULARY_TIMEOUT_SEC,
        )

    async def translate_item(self, text: str) -> str:
        """Translate one word/phrase into the learner language; falls back to ``text``."""
        async def attempt():
            result = await self.translator.translate(
                text, settings.reply_lang, settings.initiator_lang, retries=0
            )
            return result.translated_text

        try:
            return await call_with_backoff(
                attempt,
                retries=ITEM_RETRIES,
                base_delay=ITEM_BASE_DELAY,
                should_retry=lambda e: isinstance(e, BridgeError),
                label=f"vocabulary item {text!r}",
            )
        except BridgeError as e:
            logger.warning("[Vocabulary] translation failed for %r (%s); keeping the word", text, e)
            return text


# Global singleton
vocabulary_service = VocabularyService()
