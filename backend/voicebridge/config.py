# voicebridge/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Household Voice Bridge API"
    env: str = os.getenv("ENV", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # AI gateway (OpenAI-compatible: /v1/audio/transcriptions, /v1/chat/completions)
    ai_api_key: str | None = os.getenv("SUPER_MIND_API_KEY") or os.getenv("AI_BUILDER_TOKEN")
    ai_base_url: str = (
        os.getenv("AI_BASE_URL")
        or os.getenv("STUDENT_PORTAL_URL")
        or "https://space.ai-builders.com/backend"
    ).rstrip("/")

    # Models per task
    translation_model: str = os.getenv("TRANSLATION_MODEL", "gpt-5")
    tagging_model: str = os.getenv("TAGGING_MODEL", "gpt-5")
    summary_model: str = os.getenv("SUMMARY_MODEL", "gpt-5")
    vocabulary_model: str = os.getenv("VOCABULARY_MODEL", "deepseek")
    vocabulary_fallback_model: str = os.getenv("VOCABULARY_FALLBACK_MODEL", "gpt-5")

    # Conversation languages: first speaker (initiator) and reply speaker
    initiator_lang: str = os.getenv("INITIATOR_LANG", "zh-CN")
    reply_lang: str = os.getenv("REPLY_LANG", "en-US")

    # Reply capture is stopped automatically after this many seconds
    reply_capture_cutoff_sec: float = float(os.getenv("REPLY_CAPTURE_CUTOFF_SEC", "10"))

    # Used when a household row carries no timezone
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "America/New_York")

    # Vocabulary: pause between per-item translations (seconds)
    vocabulary_item_delay_sec: float = float(os.getenv("VOCABULARY_ITEM_DELAY_SEC", "0.2"))

    # Rate limiting at the HTTP boundary
    rate_limit_enabled: bool = _flag("RATE_LIMIT_ENABLED", "true")
    developer_whitelist_ips: list[str] = [
        ip.strip() for ip in os.getenv("DEVELOPER_WHITELIST_IPS", "").split(",") if ip.strip()
    ]


settings = Settings()  # Instantiate configuration
