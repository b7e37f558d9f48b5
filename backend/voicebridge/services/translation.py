"""
Translation Service

Translates one utterance between the household's two languages with a
direction-specific system prompt:

- initiator -> reply (zh -> en): natural, short, spoken English
- reply -> initiator (en -> zh): simple spoken Chinese for an older learner

Sits on the live conversation path, so retries are small and bounded
(transient provider failures only). Empty output is classified:
"cut off by length" gets one more attempt at the ceiling budget and then
TranslationCutOffError; any other empty output is TranslationEmptyError.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .budgets import TRANSLATION_MAX_TOKENS, translation_max_tokens, translation_timeout
from .llm_client import ChatCompletion, ChatCompletionClient, llm_client
from .retry import DEFAULT_RETRIES, call_with_backoff
from ..config import settings
from ..core.errors import (
    ProviderError,
    TranslationCutOffError,
    TranslationEmptyError,
    TranslationUnavailableError,
)

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3

ZH_TO_EN_PROMPT = (
    "You are a precise translator from Chinese to natural spoken English. "
    "Keep responses short and conversational. Do not add explanations."
)
EN_TO_ZH_PROMPT = (
    "You are a precise translator from English to natural, simple spoken Chinese. "
    "Use vocabulary appropriate for a 60-year-old Chinese learner. Do not add explanations."
)

_LANGUAGE_NAMES = {"zh": "Chinese", "en": "English"}


def _base(lang: str) -> str:
    return lang.split("-")[0].lower()


def system_prompt_for(source_lang: str, target_lang: str) -> str:
    """Pick the register for a translation direction."""
    src, tgt = _base(source_lang), _base(target_lang)
    if (src, tgt) == ("zh", "en"):
        return ZH_TO_EN_PROMPT
    if (src, tgt) == ("en", "zh"):
        return EN_TO_ZH_PROMPT
    return (
        f"You are a precise translator from {_LANGUAGE_NAMES.get(src, source_lang)} "
        f"to natural spoken {_LANGUAGE_NAMES.get(tgt, target_lang)}. Do not add explanations."
    )


@dataclass
class TranslationResult:
    translated_text: str
    request_id: Optional[str] = None
    finish_reason: Optional[str] = None


class TranslationService:
    """Translation over the chat completion endpoint"""

    def __init__(self, llm: Optional[ChatCompletionClient] = None, model: Optional[str] = None):
        self.llm = llm or llm_client
        self.model = model or settings.translation_model

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        system_prompt: Optional[str] = None,
        *,
        retries: int = DEFAULT_RETRIES,
    ) -> TranslationResult:
        """
        Translate ``text`` from ``source_lang`` to ``target_lang``.

        Raises:
            TranslationEmptyError: provider answered with no text
            TranslationCutOffError: provider ran out of tokens before answering
            TranslationUnavailableError: timeout / outage after bounded retries
        """
        text = (text or "").strip()
        if not text:
            raise TranslationEmptyError("Nothing to translate.")

        messages = [
            {"role": "system", "content": system_prompt or system_prompt_for(source_lang, target_lang)},
            {"role": "user", "content": text},
        ]
        max_tokens = translation_max_tokens(text, source_lang)
        timeout = translation_timeout(len(text))

        completion = await self._request(messages, max_tokens, timeout, retries)

        if not completion.content and completion.cut_off and max_tokens < TRANSLATION_MAX_TOKENS:
            logger.warning(
                "[Translate] cut off at %d tokens with no content; retrying at %d",
                max_tokens, TRANSLATION_MAX_TOKENS,
            )
            completion = await self._request(messages, TRANSLATION_MAX_TOKENS, timeout, retries=0)

        if not completion.content:
            if completion.cut_off:
                logger.error("[Translate] response cut off (id=%s)", completion.id)
                raise TranslationCutOffError()
            logger.error(
                "[Translate] empty response (id=%s, finish_reason=%s)",
                completion.id, completion.finish_reason,
            )
            raise TranslationEmptyError()

        return TranslationResult(
            translated_text=completion.content,
            request_id=completion.id,
            finish_reason=completion.finish_reason,
        )

    async def _request(self, messages: list, max_tokens: int, timeout: float, retries: int) -> ChatCompletion:
        async def attempt():
            return await self.llm.complete(
                messages,
                model=self.model,
                max_tokens=max_tokens,
                temperature=TEMPERATURE,
                timeout=timeout,
            )

        try:
            return await call_with_backoff(attempt, retries=retries, label="translation")
        except ProviderError as e:
            raise TranslationUnavailableError(timed_out=e.timed_out) from e


# Global singleton
translation_service = TranslationService()
