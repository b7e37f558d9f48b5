"""
Chat Completion Client

Thin async client for the OpenAI-compatible /v1/chat/completions endpoint
of the AI gateway. Every higher-level service (translation, tagging,
daily summary, vocabulary) goes through this one call so that timeouts
and error classification are handled in one place:

- timeout / network failure -> ProviderError(retryable=True)
- HTTP 429 / 5xx            -> ProviderError(retryable=True)
- other HTTP errors         -> ProviderError(retryable=False)
- 2xx with a non-JSON body  -> ProviderError(retryable=True)
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from ..config import settings
from ..core.errors import ProviderError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class ChatUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass
class ChatChoice:
    index: int
    content: str
    finish_reason: Optional[str] = None  # "stop" | "length" | ...


@dataclass
class ChatCompletion:
    """Parsed chat completion response"""
    id: Optional[str]
    model: Optional[str]
    choices: List[ChatChoice] = field(default_factory=list)
    usage: Optional[ChatUsage] = None

    @property
    def content(self) -> str:
        """Trimmed text of the first choice ("" when there is none)"""
        if not self.choices:
            return ""
        return (self.choices[0].content or "").strip()

    @property
    def finish_reason(self) -> Optional[str]:
        return self.choices[0].finish_reason if self.choices else None

    @property
    def cut_off(self) -> bool:
        """True when the model stopped because it ran out of output tokens"""
        return self.finish_reason == "length"


def parse_completion(payload: dict) -> ChatCompletion:
    choices = []
    for i, raw in enumerate(payload.get("choices") or []):
        if not isinstance(raw, dict):
            continue
        message = raw.get("message") or {}
        choices.append(ChatChoice(
            index=raw.get("index", i),
            content=message.get("content") or "",
            finish_reason=raw.get("finish_reason"),
        ))
    usage = None
    if payload.get("usage"):
        raw_usage = payload["usage"]
        usage = ChatUsage(
            prompt_tokens=raw_usage.get("prompt_tokens") or 0,
            completion_tokens=raw_usage.get("completion_tokens") or 0,
            total_tokens=raw_usage.get("total_tokens") or 0,
        )
    return ChatCompletion(
        id=payload.get("id"),
        model=payload.get("model"),
        choices=choices,
        usage=usage,
    )


class ChatCompletionClient:
    """Chat completion client for the AI gateway"""

    def __init__(self):
        self.api_key = settings.ai_api_key
        self.api_url = f"{settings.ai_base_url}/v1/chat/completions"

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def complete(
        self,
        messages: List[dict],
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> ChatCompletion:
        """
        Send one chat completion request.

        Parameters:
            messages: [{"role": "system", ...}, {"role": "user", ...}]
            model: Gateway model identifier (e.g. "gpt-5", "deepseek")
            max_tokens: Output token budget
            temperature: Sampling temperature
            timeout: Request timeout in seconds

        Raises:
            ProviderError: On timeout, network failure or non-2xx status
        """
        if not self.is_available():
            raise ProviderError("AI API key is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            logger.warning("[LLM] %s timed out after %.0fs", model, timeout)
            raise ProviderError(f"{model} request timed out", retryable=True, timed_out=True) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("[LLM] %s returned HTTP %s", model, status)
            raise ProviderError(
                f"{model} request failed with HTTP {status}",
                status=status,
                retryable=status in _RETRYABLE_STATUS_CODES,
            ) from e
        except httpx.TransportError as e:
            logger.warning("[LLM] %s network error: %s", model, e)
            raise ProviderError(f"{model} network error: {e}", retryable=True) from e
        except ValueError as e:
            logger.warning("[LLM] %s returned a non-JSON body", model)
            raise ProviderError(f"{model} returned an unreadable response", retryable=True) from e

        if not isinstance(data, dict):
            logger.warning("[LLM] %s returned %s instead of an object", model, type(data).__name__)
            raise ProviderError(f"{model} returned an unreadable response", retryable=True)

        completion = parse_completion(data)
        if completion.usage:
            logger.debug(
                "[LLM] %s id=%s finish=%s tokens=%d/%d",
                model, completion.id, completion.finish_reason,
                completion.usage.completion_tokens, max_tokens,
            )
        return completion


# Global singleton
llm_client = ChatCompletionClient()
