# voicebridge/api/v1/routers/vocabulary.py
import datetime as dt
import uuid
from fastapi import APIRouter, Depends, Query

from voicebridge.api.v1.deps import get_vocabulary_service, rate_limited
from voicebridge.schemas.vocabulary import DailyVocabularyOut, VocabularyItemOut
from voicebridge.services.vocabulary import VocabularyItem, VocabularyService

router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])


def _items(items: list[VocabularyItem]) -> list[VocabularyItemOut]:
    return [VocabularyItemOut(text=i.text, count=i.count, translation=i.translation) for i in items]


@router.get("/daily", dependencies=[Depends(rate_limited("general"))])
async def daily_vocabulary(
    householdId: uuid.UUID = Query(...),
    date: dt.date | None = Query(None),
    service: VocabularyService = Depends(get_vocabulary_service),
):
    """
    Nouns, verbs and phrases worth learning from one local day.

    A day without conversations returns empty lists.

    Raises:
        HOUSEHOLD_NOT_FOUND (404), PROVIDER_ERROR (502), STRUCTURED_OUTPUT_ERROR (502)
    """
    result = await service.extract_vocabulary(householdId, date)
    data = DailyVocabularyOut(
        householdId=str(householdId),
        date=result.date,
        timezone=result.timezone,
        turnCount=result.turn_count,
        nouns=_items(result.nouns),
        verbs=_items(result.verbs),
        phrases=_items(result.phrases),
    )
    return {"success": True, "data": data.model_dump(mode="json")}
