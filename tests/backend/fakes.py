"""
In-process fakes for the AI gateway used across unit and integration tests.
"""
import json
from typing import List, Optional

from voicebridge.services.asr_base import ASRService, TranscriptionResult
from voicebridge.services.llm_client import ChatChoice, ChatCompletion, ChatUsage


def make_completion(
    content: str,
    finish_reason: Optional[str] = "stop",
    completion_id: str = "chatcmpl-test",
) -> ChatCompletion:
    return ChatCompletion(
        id=completion_id,
        model="test-model",
        choices=[ChatChoice(index=0, content=content, finish_reason=finish_reason)],
        usage=ChatUsage(prompt_tokens=10, completion_tokens=len(content), total_tokens=10 + len(content)),
    )


class FakeLLM:
    """
    Scripted stand-in for ChatCompletionClient.

    ``responses`` are consumed in order; an Exception instance is raised
    instead of returned. Every call is recorded in ``calls``.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: List[dict] = []

    def queue(self, *responses) -> "FakeLLM":
        self.responses.extend(responses)
        return self

    def is_available(self) -> bool:
        return True

    async def complete(self, messages, *, model, max_tokens, temperature, timeout):
        self.calls.append({
            "messages": messages,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "timeout": timeout,
        })
        if not self.responses:
            raise AssertionError("FakeLLM ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, str):
            return make_completion(response)
        return response


class FakeASR(ASRService):
    """ASR stand-in returning scripted transcripts (or raising scripted errors)."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls: List[dict] = []

    @property
    def name(self) -> str:
        return "Fake ASR"

    def is_available(self) -> bool:
        return True

    async def transcribe(self, audio, language=None, mime_type="audio/webm"):
        self.calls.append({"audio": audio, "language": language, "mime_type": mime_type})
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        return TranscriptionResult(text=result, request_id=f"asr-{len(self.calls)}")


def summary_json(phrases=None, topic_en="Dinner plans", count=5) -> str:
    """Daily summary response body in the shape the summary prompt asks for."""
    if phrases is None:
        phrases = [f"phrase {i}" for i in range(count)]
    return json.dumps({
        "topic_summary_zh": "晚饭计划",
        "topic_summary_en": topic_en,
        "whats_new_zh": "学会了新的说法",
        "whats_new_en": "Learned a new expression",
        "phrases": [
            {"phrase_en": p, "phrase_zh": f"短语{i}", "example_en": f"Use {p}."}
            for i, p in enumerate(phrases)
        ],
    }, ensure_ascii=False)
