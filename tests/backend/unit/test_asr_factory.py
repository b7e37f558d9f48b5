"""
Unit tests for services.asr_factory module.
Tests ASR service factory.
"""
import pytest
from unittest.mock import patch

from voicebridge.core.errors import TranscriptionUnavailableError
from voicebridge.services.asr_factory import get_asr_service


class TestASRFactory:
    """Tests for ASR service factory."""

    @patch('voicebridge.services.asr_factory.gateway_transcription_service')
    def test_get_asr_service_returns_gateway_service(self, mock_service):
        """get_asr_service should return the gateway service."""
        mock_service.is_available.return_value = True
        mock_service.name = "AI Gateway ASR"

        service = get_asr_service()

        assert service == mock_service
        mock_service.is_available.assert_called_once()

    @patch('voicebridge.services.asr_factory.gateway_transcription_service')
    def test_get_asr_service_raises_when_unavailable(self, mock_service):
        """get_asr_service should raise TranscriptionUnavailableError without an API key."""
        mock_service.is_available.return_value = False

        with pytest.raises(TranscriptionUnavailableError, match="SUPER_MIND_API_KEY"):
            get_asr_service()
