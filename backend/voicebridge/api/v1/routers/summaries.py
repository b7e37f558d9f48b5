# voicebridge/api/v1/routers/summaries.py
import datetime as dt
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from voicebridge.api.v1.deps import get_summary_service, rate_limited
from voicebridge.schemas.summary import DailySummaryOut, KeyPhraseOut
from voicebridge.services.daily_summary import DailySummaryResult, DailySummaryService

router = APIRouter(prefix="/summaries", tags=["summaries"])


# ===== Schemas =====
class GenerateSummaryIn(BaseModel):
    householdId: uuid.UUID
    date: dt.date | None = None  # Local date; defaults to today in the household timezone


def _summary_out(result: DailySummaryResult) -> dict:
    s = result.summary
    return DailySummaryOut(
        id=str(s.id),
        householdId=str(s.household_id),
        date=s.summary_date,
        topicSummaryZh=s.topic_summary_zh,
        topicSummaryEn=s.topic_summary_en,
        whatsNewZh=s.whats_new_zh,
        whatsNewEn=s.whats_new_en,
        generatedAt=s.generated_at.isoformat(),
        phrases=[
            KeyPhraseOut(
                rank=p.phrase_rank,
                phraseEn=p.phrase_en,
                phraseZh=p.phrase_zh,
                explanationZh=p.explanation_zh,
                exampleEn=p.example_en,
                exampleZh=p.example_zh,
                isNewToday=p.is_new_today,
            )
            for p in result.phrases
        ],
    ).model_dump(mode="json")


# ===== Routes =====
@router.post("/generate", dependencies=[Depends(rate_limited("summary_generation"))])
async def generate_summary(body: GenerateSummaryIn, service: DailySummaryService = Depends(get_summary_service)):
    """
    Generate (or regenerate) the bilingual digest for one local date.

    Regenerating replaces the stored summary and its five phrases atomically.

    Returns:
        dict: success + data (DailySummaryOut) + turnCount

    Raises:
        HOUSEHOLD_NOT_FOUND (404), NO_CONVERSATIONS (404),
        INVALID_SUMMARY_STRUCTURE (502), PROVIDER_ERROR (502), RATE_LIMITED (429)
    """
    result = await service.summarize(body.householdId, body.date)
    data = _summary_out(result)
    data["turnCount"] = result.turn_count
    return {"success": True, "data": data}


@router.get("/{household_id}", dependencies=[Depends(rate_limited("general"))])
async def get_summary(
    household_id: uuid.UUID,
    date: dt.date | None = Query(None),
    service: DailySummaryService = Depends(get_summary_service),
):
    """Stored digest for a date (today by default); 404 NOT_FOUND when none was generated yet."""
    result = await service.get_summary(household_id, date)
    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="NOT_FOUND")
    return {"success": True, "data": _summary_out(result)}
