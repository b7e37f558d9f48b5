"""
AI Gateway ASR Adapter

Sends the captured recording as-is (webm/opus from the browser) to the
gateway's /v1/audio/transcriptions endpoint.
"""
import logging
from typing import Optional

import httpx

from .asr_base import ASRService, TranscriptionResult, normalize_language
from .budgets import TRANSCRIPTION_TIMEOUT_SEC
from ..config import settings
from ..core.errors import EmptySpeechError, InvalidAudioError, TranscriptionUnavailableError

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/ogg": "ogg",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
}


class GatewayTranscriptionService(ASRService):
    """Speech recognition through the AI gateway"""

    def __init__(self):
        self.api_key = settings.ai_api_key
        self.api_url = f"{settings.ai_base_url}/v1/audio/transcriptions"
        self.timeout = TRANSCRIPTION_TIMEOUT_SEC

    @property
    def name(self) -> str:
        return "AI Gateway ASR"

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = None,
        mime_type: str = "audio/webm",
    ) -> TranscriptionResult:
        """
        Call the gateway for transcription

        Timeouts and transport errors become TranscriptionUnavailableError
        (worth another attempt); a successful response with no words
        becomes EmptySpeechError (the user most likely recorded silence).
        """
        if not audio:
            raise InvalidAudioError()
        if not self.is_available():
            raise TranscriptionUnavailableError("Speech recognition is not configured.")

        headers = {"Authorization": f"Bearer {self.api_key}"}
        base_mime = mime_type.split(";")[0].strip().lower()
        filename = f"audio.{_EXTENSIONS.get(base_mime, 'webm')}"
        files = {"audio_file": (filename, audio, base_mime)}
        data = {}
        short_code = normalize_language(language)
        if short_code:
            data["language"] = short_code

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.api_url, headers=headers, data=data, files=files)
                resp.raise_for_status()
                result = resp.json()
        except httpx.TimeoutException as e:
            logger.warning("[ASR] request timed out after %.0fs", self.timeout)
            raise TranscriptionUnavailableError(timed_out=True) from e
        except httpx.HTTPStatusError as e:
            logger.warning("[ASR] gateway returned HTTP %s", e.response.status_code)
            raise TranscriptionUnavailableError() from e
        except httpx.TransportError as e:
            logger.warning("[ASR] network error: %s", e)
            raise TranscriptionUnavailableError() from e
        except ValueError as e:
            logger.warning("[ASR] gateway returned a non-JSON body")
            raise TranscriptionUnavailableError() from e

        if not isinstance(result, dict):
            logger.warning("[ASR] gateway returned %s instead of an object", type(result).__name__)
            raise TranscriptionUnavailableError()

        text = (result.get("text") or "").strip()
        if not text:
            logger.info("[ASR] empty transcript (request_id=%s)", result.get("request_id"))
            raise EmptySpeechError()

        return TranscriptionResult(
            text=text,
            request_id=result.get("request_id"),
            detected_language=result.get("detected_language"),
        )


# Global singleton
gateway_transcription_service = GatewayTranscriptionService()
