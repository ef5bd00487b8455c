"""Holiday resolver - one-off and annually recurring calendar blocks"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Holiday
from ...utils.sanitization import unescape_string
from .repository import SchedulingRepository
from .schemas import Conflict, ConflictType

logger = logging.getLogger(__name__)


def holiday_matches(holiday: Holiday, day: date) -> bool:
    """Recurring holidays match on month and day; one-off holidays need the exact date"""
    if holiday.is_recurring:
        return holiday.date.month == day.month and holiday.date.day == day.day
    return holiday.date == day


class HolidayResolver:
    def __init__(self, db: Session, profile_scoped: Optional[bool] = None):
        self.db = db
        self.repo = SchedulingRepository()
        self.profile_scoped = (
            config.PROFILE_SCOPED_HOLIDAYS if profile_scoped is None else profile_scoped
        )

    def resolve(self, tenant_id: str, day: date, profile_id: Optional[str] = None) -> list[Holiday]:
        """
        Holidays of the tenant falling on day, earliest created first.

        By default every holiday of the tenant applies to every professional.
        With profile scoping enabled, a holiday carrying a profile_id only
        applies to that professional.
        """
        matches = [
            h for h in self.repo.list_holiday_candidates(self.db, tenant_id, day)
            if holiday_matches(h, day)
        ]
        if self.profile_scoped:
            matches = [h for h in matches if h.profile_id is None or h.profile_id == profile_id]
        return matches

    def first_blocking(
        self, tenant_id: str, day: date, profile_id: Optional[str] = None
    ) -> Optional[Holiday]:
        return next((h for h in self.resolve(tenant_id, day, profile_id) if h.blocking), None)

    def check(self, tenant_id: str, day: date, profile_id: Optional[str] = None) -> list[Conflict]:
        holiday = self.first_blocking(tenant_id, day, profile_id)
        if not holiday:
            return []

        logger.debug(f"Holiday '{holiday.name}' blocks {day} for tenant {tenant_id}")
        return [
            Conflict(
                type=ConflictType.HOLIDAY,
                message=f"{unescape_string(holiday.name)} - schedule blocked for this day",
            )
        ]
