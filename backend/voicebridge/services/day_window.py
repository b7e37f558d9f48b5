"""
Local calendar days

A household's "day" is its local calendar date in its own IANA timezone,
so a turn that ends at 04:30 UTC on Dec 2 belongs to Dec 1 in New York.
Turns are selected by converting the local day to a half-open UTC range
[local midnight, next local midnight) and filtering on ``ended_at``.
"""
import datetime as dt
import logging
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import settings
from ..core.errors import HouseholdNotFoundError
from ..models import ConversationTurn, Household

logger = logging.getLogger(__name__)


def household_zone(household: Household) -> ZoneInfo:
    name = household.timezone or settings.default_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("[Day] unknown timezone %r for household %s; using %s",
                       name, household.id, settings.default_timezone)
        return ZoneInfo(settings.default_timezone)


def local_today(zone: ZoneInfo, now: Optional[dt.datetime] = None) -> dt.date:
    now = now or dt.datetime.now(dt.timezone.utc)
    return now.astimezone(zone).date()


def local_day_bounds(day: dt.date, zone: ZoneInfo) -> Tuple[dt.datetime, dt.datetime]:
    """UTC [start, end) of ``day`` in ``zone``; handles 23/25-hour DST days."""
    start_local = dt.datetime.combine(day, dt.time.min, tzinfo=zone)
    end_local = dt.datetime.combine(day + dt.timedelta(days=1), dt.time.min, tzinfo=zone)
    return start_local.astimezone(dt.timezone.utc), end_local.astimezone(dt.timezone.utc)


async def get_household(household_id) -> Household:
    household = await Household.get_or_none(id=household_id)
    if not household:
        raise HouseholdNotFoundError("Household not found.")
    return household


async def turns_for_local_day(household: Household, day: dt.date) -> List[ConversationTurn]:
    """All turns of ``household`` that ended on local ``day``, oldest first."""
    start, end = local_day_bounds(day, household_zone(household))
    return await ConversationTurn.filter(
        household_id=household.id,
        ended_at__gte=start,
        ended_at__lt=end,
    ).order_by("ended_at", "turn_index")
