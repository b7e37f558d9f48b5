"""
Unit tests for services.llm_client module.
Tests response parsing and mapping of HTTP failures to ProviderError.
"""
import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from voicebridge.core.errors import ProviderError, TranslationUnavailableError
from voicebridge.services.llm_client import ChatCompletionClient, parse_completion
from voicebridge.services.translation import TranslationService


def _client(api_key="test-key") -> ChatCompletionClient:
    client = ChatCompletionClient()
    client.api_key = api_key
    return client


def _status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://gateway.test/v1/chat/completions")
    return httpx.HTTPStatusError("error", request=request, response=httpx.Response(code, request=request))


def _html_page() -> MagicMock:
    """A 200 whose body is a proxy error page rather than JSON."""
    body = "<html>upstream proxy page</html>"
    return MagicMock(
        status_code=200,
        raise_for_status=MagicMock(),
        json=MagicMock(side_effect=json.JSONDecodeError("Expecting value", body, 0)),
    )


async def _complete(client: ChatCompletionClient):
    return await client.complete(
        [{"role": "user", "content": "hi"}], model="gpt-5", max_tokens=1024, temperature=0.3, timeout=30
    )


class TestParseCompletion:
    """Tests for parse_completion."""

    def test_first_choice_content_is_trimmed(self):
        completion = parse_completion({
            "id": "chatcmpl-1",
            "model": "gpt-5",
            "choices": [{"index": 0, "message": {"content": "  Hello  "}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
        })
        assert completion.content == "Hello"
        assert completion.finish_reason == "stop"
        assert completion.cut_off is False
        assert completion.usage.total_tokens == 7

    def test_length_finish_reason_is_cut_off(self):
        completion = parse_completion({
            "id": "chatcmpl-2",
            "choices": [{"message": {"content": None}, "finish_reason": "length"}],
        })
        assert completion.content == ""
        assert completion.cut_off is True

    def test_no_choices(self):
        completion = parse_completion({"id": "x"})
        assert completion.content == ""
        assert completion.finish_reason is None


class TestChatCompletionClient:
    """Tests for the HTTP call (httpx mocked)."""

    @pytest.mark.asyncio
    async def test_posts_model_and_budget(self):
        client = _client()
        payload = {"id": "chatcmpl-3", "choices": [{"message": {"content": "ok"}, "finish_reason": "stop"}]}
        with patch("httpx.AsyncClient") as mock_client:
            post = AsyncMock(return_value=MagicMock(json=lambda: payload, raise_for_status=MagicMock()))
            mock_client.return_value.__aenter__.return_value.post = post

            completion = await _complete(client)

        assert completion.content == "ok"
        body = post.call_args.kwargs["json"]
        assert body["model"] == "gpt-5"
        assert body["max_tokens"] == 1024
        assert body["temperature"] == 0.3
        mock_client.assert_called_once_with(timeout=30)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,retryable", [(429, True), (503, True), (400, False), (401, False)])
    async def test_http_status_mapping(self, status, retryable):
        client = _client()
        response = MagicMock(raise_for_status=MagicMock(side_effect=_status_error(status)))
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=response)
            with pytest.raises(ProviderError) as exc_info:
                await _complete(client)

        assert exc_info.value.status == status
        assert exc_info.value.retryable is retryable

    @pytest.mark.asyncio
    async def test_timeout_is_retryable_and_flagged(self):
        client = _client()
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ReadTimeout("slow")
            )
            with pytest.raises(ProviderError) as exc_info:
                await _complete(client)

        assert exc_info.value.retryable is True
        assert exc_info.value.timed_out is True

    @pytest.mark.asyncio
    async def test_network_error_is_retryable(self):
        client = _client()
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(
                side_effect=httpx.ConnectError("refused")
            )
            with pytest.raises(ProviderError) as exc_info:
                await _complete(client)
        assert exc_info.value.retryable is True
        assert exc_info.value.timed_out is False

    @pytest.mark.asyncio
    async def test_missing_key_fails_without_request(self):
        client = _client(api_key=None)
        with patch("httpx.AsyncClient") as mock_client:
            with pytest.raises(ProviderError):
                await _complete(client)
            mock_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_json_body_is_retryable_provider_error(self):
        client = _client()
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=_html_page())
            with pytest.raises(ProviderError) as exc_info:
                await _complete(client)
        assert exc_info.value.retryable is True
        assert exc_info.value.status is None

    @pytest.mark.asyncio
    async def test_non_object_body_is_provider_error(self):
        client = _client()
        response = MagicMock(json=lambda: ["not", "an", "object"], raise_for_status=MagicMock())
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=response)
            with pytest.raises(ProviderError):
                await _complete(client)

    @pytest.mark.asyncio
    async def test_translation_over_non_json_body_is_unavailable(self):
        """A gateway that keeps answering with HTML surfaces as a coded translation error."""
        service = TranslationService(llm=_client(), model="gpt-5")
        with patch("httpx.AsyncClient") as mock_client:
            post = AsyncMock(return_value=_html_page())
            mock_client.return_value.__aenter__.return_value.post = post
            with pytest.raises(TranslationUnavailableError) as exc_info:
                await service.translate("你好", "zh-CN", "en-US")

        assert exc_info.value.code == "TRANSLATION_UNAVAILABLE"
        assert post.await_count == 3
