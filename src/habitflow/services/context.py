"""Build a ``RoutineContext`` from the clock and a best-effort location lookup."""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Awaitable, Callable, Mapping, Optional

from ..errors import LocationError
from ..logging_config import get_logger
from ..models.context import WEEKDAY, WEEKEND, RoutineContext, TimeSlot
from ..models.routine import utcnow

logger = get_logger(__name__)

LocationLookup = Callable[[], Awaitable[Optional[str]]]

# date.weekday(): Monday == 0 ... Sunday == 6
DEFAULT_DAY_CATEGORIES: Mapping[int, str] = {
    0: WEEKDAY,
    1: WEEKDAY,
    2: WEEKDAY,
    3: WEEKDAY,
    4: WEEKDAY,
    5: WEEKEND,
    6: WEEKEND,
}


def time_slot_for(moment: datetime) -> TimeSlot:
    return TimeSlot.from_datetime(moment)


def day_category_for(day: date, categories: Mapping[int, str] | None = None) -> str:
    """Category id for ``day``; weekdays not in ``categories`` use the built-in split."""

    mapping = categories or DEFAULT_DAY_CATEGORIES
    return mapping.get(day.weekday(), DEFAULT_DAY_CATEGORIES[day.weekday()])


class ContextProvider:
    """Adapter over the clock and location collaborators.

    The location lookup is the only step that suspends. It is bounded by
    ``timeout``; a timeout, a denied permission or any other lookup failure
    leaves the location unknown. Lookups are not retried.
    """

    def __init__(
        self,
        location_lookup: LocationLookup | None = None,
        *,
        timeout: float = 2.0,
        clock: Callable[[], datetime] | None = None,
        day_categories: Mapping[int, str] | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._location_lookup = location_lookup
        self.timeout = timeout
        self._clock = clock or utcnow
        self.day_categories = dict(day_categories or DEFAULT_DAY_CATEGORIES)

    async def current_context(self) -> RoutineContext:
        location = await self._lookup_location()
        now = self._clock()
        return RoutineContext(
            location=location,
            time_slot=time_slot_for(now),
            day_category=day_category_for(now.date(), self.day_categories),
            captured_at=now,
        )

    async def _lookup_location(self) -> Optional[str]:
        if self._location_lookup is None:
            return None
        try:
            return await asyncio.wait_for(self._location_lookup(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.info("Location lookup timed out", extra={"timeout": self.timeout})
        except LocationError as exc:
            logger.info("Location unavailable", extra={"reason": type(exc).__name__})
        except Exception:
            logger.warning("Location lookup failed", exc_info=True)
        return None
