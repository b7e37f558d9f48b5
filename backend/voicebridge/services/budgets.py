"""
Token budgets and request timeouts for upstream AI calls.

Pure functions so the numbers live in one place and can be tested
directly. Floors and ceilings:

- translation max_tokens: 3x the estimated input tokens, clamped to
  [1024, 2048]. Very small budgets make some providers return nothing.
- translation timeout: 30 s plus 1 s per 100 input characters, at most 60 s.
- summary max_tokens: 2000 for up to three turns, +500 per extra turn,
  at most 5000.
"""
import math

TRANSCRIPTION_TIMEOUT_SEC = 20.0

TRANSLATION_MIN_TOKENS = 1024
TRANSLATION_MAX_TOKENS = 2048
TRANSLATION_BASE_TIMEOUT_SEC = 30.0
TRANSLATION_MAX_TIMEOUT_SEC = 60.0

TAGGING_MAX_TOKENS = 100
TAGGING_TIMEOUT_SEC = 30.0

SUMMARY_BASE_TOKENS = 2000
SUMMARY_TOKENS_PER_EXTRA_TURN = 500
SUMMARY_MAX_TOKENS = 5000
SUMMARY_TIMEOUT_SEC = 60.0

VOCABULARY_MAX_TOKENS = 2000
VOCABULARY_TIMEOUT_SEC = 60.0
EXTRACTION_MAX_TOKENS = 2000
EXTRACTION_TIMEOUT_SEC = 30.0


def estimate_tokens(text: str, source_lang: str) -> int:
    """Rough token count: one per Han character, one per four Latin characters."""
    if source_lang.lower().startswith("zh"):
        return len(text)
    return math.ceil(len(text) / 4)


def translation_max_tokens(text: str, source_lang: str) -> int:
    estimated = estimate_tokens(text, source_lang)
    return min(max(estimated * 3, TRANSLATION_MIN_TOKENS), TRANSLATION_MAX_TOKENS)


def translation_timeout(text_length: int) -> float:
    return min(TRANSLATION_BASE_TIMEOUT_SEC + (text_length // 100), TRANSLATION_MAX_TIMEOUT_SEC)


def summary_max_tokens(turn_count: int) -> int:
    extra_turns = max(0, turn_count - 3)
    return min(SUMMARY_BASE_TOKENS + extra_turns * SUMMARY_TOKENS_PER_EXTRA_TURN, SUMMARY_MAX_TOKENS)
