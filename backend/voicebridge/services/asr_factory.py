"""
ASR Service Factory

Uses the AI gateway for speech recognition
"""
import logging

from .asr_base import ASRService
from .asr_gateway import gateway_transcription_service
from ..core.errors import TranscriptionUnavailableError

logger = logging.getLogger(__name__)


def get_asr_service() -> ASRService:
    """
    Get ASR service

    Returns:
    - ASRService: AI gateway ASR service instance

    Note:
    - Need to configure SUPER_MIND_API_KEY (or AI_BUILDER_TOKEN) in .env
    """
    if not gateway_transcription_service.is_available():
        raise TranscriptionUnavailableError(
            "Speech recognition is not configured. Please set SUPER_MIND_API_KEY in .env"
        )

    logger.debug("[ASR] Using %s", gateway_transcription_service.name)
    return gateway_transcription_service

