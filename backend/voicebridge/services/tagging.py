"""
Situation Tagging Service

Classifies a finished two-turn session into one short topical label
("kitchen", "baby", "health", ...) and writes it onto every turn of the
session. Runs after the session is stored; from the pipeline's point of
view a failure here is only logged.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from .budgets import TAGGING_MAX_TOKENS, TAGGING_TIMEOUT_SEC
from .json_extraction import parse_json_object
from .llm_client import ChatCompletionClient, llm_client
from ..config import settings
from ..core.errors import SessionNotFoundError, StructuredOutputError
from ..models import ConversationSession, ConversationTurn

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
SITUATION_EXAMPLES = (
    "kitchen", "baby", "food", "postpartum", "health", "shopping", "family", "daily_routine",
)


@dataclass
class SituationTag:
    tag: str
    confidence: Optional[float] = None
    request_id: Optional[str] = None


def build_tagging_prompt(turns: Sequence[ConversationTurn]) -> str:
    conversation = "\n\n".join(
        f"Turn {i + 1}:\nSource: {turn.source_text}\nTranslation: {turn.translated_text}"
        for i, turn in enumerate(turns)
    )
    examples = ", ".join(f"'{label}'" for label in SITUATION_EXAMPLES)
    return (
        "Analyze this conversation. Return a JSON object with a key 'situation_tag' "
        f"(e.g., {examples}) and an optional key 'confidence' between 0 and 1.\n\n"
        f"Conversation:\n{conversation}\n\n"
        "Return only valid JSON, no other text."
    )


def normalize_tag(raw) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    tag = "_".join(raw.strip().lower().split())
    return tag[:64] or None


def _confidence(raw) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if 0.0 <= value <= 1.0 else None


class TaggingService:
    """Single low-budget LLM call per session"""

    def __init__(self, llm: Optional[ChatCompletionClient] = None, model: Optional[str] = None):
        self.llm = llm or llm_client
        self.model = model or settings.tagging_model

    async def tag(self, turns: Sequence[ConversationTurn]) -> SituationTag:
        """
        Classify the turns of one session.

        Raises:
            StructuredOutputError: no usable tag in the model output
            ProviderError: upstream failure
        """
        if not turns:
            raise StructuredOutputError("Nothing to tag.")

        completion = await self.llm.complete(
            [{"role": "user", "content": build_tagging_prompt(turns)}],
            model=self.model,
            max_tokens=TAGGING_MAX_TOKENS,
            temperature=TEMPERATURE,
            timeout=TAGGING_TIMEOUT_SEC,
        )
        parsed = parse_json_object(completion.content)
        tag = normalize_tag(parsed.get("situation_tag")) if parsed else None
        if not tag:
            logger.warning("[Tagging] no situation_tag in response: %r", completion.content[:200])
            raise StructuredOutputError()

        return SituationTag(
            tag=tag,
            confidence=_confidence(parsed.get("confidence")),
            request_id=completion.id,
        )

    async def tag_session(self, session_id) -> SituationTag:
        """Tag a stored session and write the label onto all of its turns."""
        session = await ConversationSession.get_or_none(id=session_id)
        if not session:
            raise SessionNotFoundError()

        turns = await ConversationTurn.filter(session_id=session.id).order_by("turn_index")
        result = await self.tag(turns)
        updated = await ConversationTurn.filter(session_id=session.id).update(
            situation_tag=result.tag,
            situation_confidence=result.confidence,
        )
        logger.info("[Tagging] session %s tagged %r (%d turns)", session.id, result.tag, updated)
        return result


# Global singleton
tagging_service = TaggingService()
