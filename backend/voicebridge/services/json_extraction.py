"""
JSON Extraction for LLM output

Models asked for JSON often wrap it in prose or Markdown fences, or stop
mid-object when they run out of tokens. ``parse_json_object`` runs a
chain of pure strategies and returns the first dict that parses:

1. direct parse (after stripping ```json fences)
2. first balanced {...} object, string/escape aware (phrases may contain braces)
3. greedy regex from the first "{" to the last "}"
4. repair of a truncated object (drop trailing comma, close open strings/brackets)

``extract_structured`` adds one last, non-pure layer: a capped number of
follow-up calls asking a model to pull the JSON out of the messy text.
"""
import json
import logging
import re
from typing import Callable, Iterator, List, Optional

from .budgets import EXTRACTION_MAX_TOKENS, EXTRACTION_TIMEOUT_SEC
from .llm_client import ChatCompletionClient
from ..core.errors import ProviderError, StructuredOutputError

logger = logging.getLogger(__name__)

# Upper bound on "please re-extract the JSON" calls per logical request
MAX_FALLBACK_CALLS = 1
# Only the head of the messy text is sent to the extraction model
FALLBACK_INPUT_CHARS = 3000

EXTRACTION_SYSTEM_PROMPT = (
    "You are a JSON extraction tool. Extract the JSON object from the user's text "
    "and return ONLY that JSON object. No explanations, no Markdown. "
    "Start your response with { and end with }."
)

_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def _loads_object(candidate: Optional[str]) -> Optional[dict]:
    if not candidate:
        return None
    for attempt in (candidate, _TRAILING_COMMA.sub(r"\1", candidate)):
        try:
            value = json.loads(attempt)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


def _balanced_objects(text: str) -> Iterator[str]:
    """Yield every balanced {...} substring, scanning from each opening brace."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    yield text[start:i + 1]
                    break
        start = text.find("{", start + 1)


def extract_balanced_object(text: str) -> Optional[dict]:
    """First balanced {...} in ``text`` that parses as a JSON object."""
    for candidate in _balanced_objects(text):
        parsed = _loads_object(candidate)
        if parsed is not None:
            return parsed
    return None


def extract_greedy_object(text: str) -> Optional[dict]:
    match = _GREEDY_OBJECT.search(text)
    return _loads_object(match.group(0)) if match else None


def repair_truncated_object(text: str) -> Optional[dict]:
    """
    Close a JSON object that was cut off mid-stream.

    Works from the first "{" to the end of the text: an unterminated string
    is closed, a dangling comma or key separator is dropped, and every
    open bracket/brace is closed in reverse order.
    """
    start = text.find("{")
    if start == -1:
        return None
    body = text[start:].rstrip()

    stack: List[str] = []
    in_string = False
    escaped = False
    for ch in body:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    if in_string:
        body += '"'
    body = body.rstrip()
    while body and body[-1] in ",:":
        body = body[:-1].rstrip()
    body += "".join(reversed(stack))
    return _loads_object(body)


STRATEGIES: List[Callable[[str], Optional[dict]]] = [
    _loads_object,
    extract_balanced_object,
    extract_greedy_object,
    repair_truncated_object,
]


def parse_json_object(text: str) -> Optional[dict]:
    """Run the pure strategy chain; None when every layer fails."""
    if not text or not text.strip():
        return None
    cleaned = strip_code_fences(text)
    for strategy in STRATEGIES:
        parsed = strategy(cleaned)
        if parsed is not None:
            return parsed
    return None


async def extract_structured(
    text: str,
    *,
    llm: Optional[ChatCompletionClient] = None,
    model: Optional[str] = None,
    max_fallback_calls: int = MAX_FALLBACK_CALLS,
) -> dict:
    """
    Parse ``text`` into a dict, asking ``llm`` to re-extract if needed.

    The fallback call counts against ``max_fallback_calls``; with no llm
    (or a cap of 0) only the pure chain runs.

    Raises:
        StructuredOutputError: when every layer failed
    """
    parsed = parse_json_object(text)
    if parsed is not None:
        return parsed

    if llm is None or not model or not text or not text.strip():
        raise StructuredOutputError()

    for call in range(max_fallback_calls):
        logger.warning("[JSON] direct extraction failed; asking %s to re-extract (%d/%d)",
                       model, call + 1, max_fallback_calls)
        try:
            completion = await llm.complete(
                [
                    {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                    {"role": "user", "content": text[:FALLBACK_INPUT_CHARS]},
                ],
                model=model,
                max_tokens=EXTRACTION_MAX_TOKENS,
                temperature=0.0,
                timeout=EXTRACTION_TIMEOUT_SEC,
            )
        except ProviderError as e:
            raise StructuredOutputError() from e
        parsed = parse_json_object(completion.content)
        if parsed is not None:
            return parsed

    raise StructuredOutputError()
