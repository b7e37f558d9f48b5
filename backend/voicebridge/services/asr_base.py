"""
ASR Service Abstract Interface

Provides a unified interface for speech recognition providers. The
bridge only needs transcript text plus provenance (the provider request
id, which is stored on the turn, and the language the provider heard).
"""
from abc import ABC, abstractmethod
from typing import Optional
from dataclasses import dataclass


# Provider expects short language codes
_LANGUAGE_CODES = {
    "zh-cn": "zh",
    "zh-tw": "zh",
    "en-us": "en",
    "en-gb": "en",
}


def normalize_language(language: Optional[str]) -> Optional[str]:
    """Map a BCP-47 hint ("zh-CN", "en-US") to the provider's short code ("zh", "en")."""
    if not language:
        return None
    key = language.strip().lower()
    return _LANGUAGE_CODES.get(key, key.split("-")[0])


@dataclass
class TranscriptionResult:
    """Complete transcription result"""
    text: str  # Full trimmed transcript
    request_id: Optional[str] = None  # Provider request id (stored on the turn)
    detected_language: Optional[str] = None


class ASRService(ABC):
    """ASR Service Abstract Base Class"""

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        language: Optional[str] = None,
        mime_type: str = "audio/webm",
    ) -> TranscriptionResult:
        """
        Transcribe one recording

        Parameters:
        - audio: Raw recording bytes as captured by the device
        - language: Optional language hint (e.g., "zh-CN", "en-US")
        - mime_type: Container type of the recording

        Returns:
        - TranscriptionResult with non-empty text

        Raises:
        - EmptySpeechError: transcript is empty after trimming
        - TranscriptionUnavailableError: timeout, network or provider failure
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if service is available"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name (e.g., "AI Gateway ASR")"""
        pass
