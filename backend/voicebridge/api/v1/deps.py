# voicebridge/api/v1/deps.py
from fastapi import Depends, HTTPException, Request, Response, status

from voicebridge.config import settings
from voicebridge.core.rate_limit import POLICIES, InMemoryRateLimiter, RateLimiter
from voicebridge.services.daily_summary import DailySummaryService, daily_summary_service
from voicebridge.services.tagging import TaggingService, tagging_service
from voicebridge.services.turn_pipeline import TurnPipeline, turn_pipeline
from voicebridge.services.vocabulary import VocabularyService, vocabulary_service

_rate_limiter = InMemoryRateLimiter(whitelist=settings.developer_whitelist_ips)


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


def client_ip(request: Request) -> str:
    """
    Best-effort client address.

    Proxies put the original client first in X-Forwarded-For; fall back to
    X-Real-IP and finally the socket peer.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def rate_limited(policy_name: str):
    """
    FastAPI dependency factory enforcing one rate-limit policy per client IP.

    Raises:
        HTTPException (429): RATE_LIMITED, with Retry-After and X-RateLimit-* headers

    Usage:
        @router.post("/start", dependencies=[Depends(rate_limited("session_start"))])
    """
    policy = POLICIES[policy_name]

    async def dependency(
        request: Request,
        response: Response,
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        if not settings.rate_limit_enabled:
            return
        ip = client_ip(request)
        if limiter.is_whitelisted(ip):
            return
        decision = limiter.check(f"{policy.name}:{ip}", policy)
        if not decision.allowed:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="RATE_LIMITED",
                headers=decision.headers(),
            )
        response.headers.update(decision.headers())

    return dependency


def get_turn_pipeline() -> TurnPipeline:
    return turn_pipeline


def get_tagging_service() -> TaggingService:
    return tagging_service


def get_summary_service() -> DailySummaryService:
    return daily_summary_service


def get_vocabulary_service() -> VocabularyService:
    return vocabulary_service
