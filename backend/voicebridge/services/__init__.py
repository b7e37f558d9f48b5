"""
Services Module

Provides the conversation pipeline and the clients it drives:
- ASR (Automatic Speech Recognition): AI gateway transcription endpoint
- Translation: direction-specific chat completion prompts
- Tagging, daily summary and vocabulary: enrichment over stored turns
"""

# ASR service
from .asr_base import (
    ASRService,
    TranscriptionResult,
)
from .asr_factory import (
    get_asr_service,
)
from .asr_gateway import gateway_transcription_service

# Chat completion clients
from .llm_client import ChatCompletionClient, llm_client
from .translation import TranslationService, translation_service

# Enrichment
from .tagging import TaggingService, tagging_service
from .daily_summary import DailySummaryService, daily_summary_service
from .vocabulary import VocabularyService, vocabulary_service

# Turn pipeline
from .turn_pipeline import TurnOutcome, TurnPipeline, turn_pipeline

__all__ = [
    # ASR
    "ASRService",
    "TranscriptionResult",
    "get_asr_service",
    "gateway_transcription_service",
    # LLM
    "ChatCompletionClient",
    "llm_client",
    "TranslationService",
    "translation_service",
    # Enrichment
    "TaggingService",
    "tagging_service",
    "DailySummaryService",
    "daily_summary_service",
    "VocabularyService",
    "vocabulary_service",
    # Pipeline
    "TurnOutcome",
    "TurnPipeline",
    "turn_pipeline",
]
