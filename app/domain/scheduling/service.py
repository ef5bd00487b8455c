"""Scheduling configuration service - availability rules, holidays and resources"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AvailabilityRule, Holiday, Resource
from ...utils.sanitization import sanitize_required, sanitize_string
from .exceptions import NotFoundError, ValidationError
from .repository import SchedulingRepository
from .schemas import (
    AvailabilityReplaceRequest,
    AvailabilityRuleInput,
    AvailabilityRuleUpsert,
    HolidayUpsert,
    ResourceUpsert,
)
from .slot_guard import sync_resource_claims
from .time_window import TimeWindow, format_minutes, parse_date

logger = logging.getLogger(__name__)


def _clean_text(value: Optional[str], field: str, max_length: int = 255) -> str:
    try:
        return sanitize_required(value, field, max_length)
    except ValueError as e:
        raise ValidationError(str(e))


class SchedulingService:
    """Service layer for the data the conflict engine reads"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def _ensure_profile(self, tenant_id: str, profile_id: Optional[str]) -> None:
        if profile_id and not self.repo.get_profile(self.db, tenant_id, profile_id):
            raise NotFoundError("Professional not found")

    # ------------------------------------------------------------------
    # Availability rules
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_rule(data: AvailabilityRuleInput) -> dict:
        """
        Validate a weekly rule and return its column values.

        Times are stored zero-padded so "9:00" and "09:00" compare equal.
        """
        if not 0 <= data.dayOfWeek <= 6:
            raise ValidationError("dayOfWeek must be between 0 (Sunday) and 6 (Saturday)")

        window = TimeWindow.from_strings(data.startTime, data.endTime)
        pauses = []
        for pause in data.pauses:
            pause_window = TimeWindow.from_strings(pause.start, pause.end)
            pauses.append(
                {
                    "start": format_minutes(pause_window.start),
                    "end": format_minutes(pause_window.end),
                }
            )

        return {
            "day_of_week": data.dayOfWeek,
            "start_time": format_minutes(window.start),
            "end_time": format_minutes(window.end),
            "is_working_day": data.isWorkingDay,
            "pauses": pauses,
        }

    def list_availability_rules(
        self, tenant_id: str, profile_id: Optional[str] = None
    ) -> list[AvailabilityRule]:
        return self.repo.list_availability_rules(self.db, tenant_id, profile_id)

    def upsert_availability_rule(
        self, tenant_id: str, data: AvailabilityRuleUpsert
    ) -> AvailabilityRule:
        """Create or update the single rule of (tenant, profile, weekday)"""
        values = self._normalize_rule(data)
        self._ensure_profile(tenant_id, data.profileId)

        rule = self.repo.get_availability_rule(
            self.db, tenant_id, data.profileId, data.dayOfWeek
        )
        if rule is None:
            rule = AvailabilityRule(tenant_id=tenant_id, profile_id=data.profileId)
        for key, value in values.items():
            setattr(rule, key, value)

        rule = self.repo.save_availability_rule(self.db, rule)
        logger.info(
            f"✅ Saved availability for {data.profileId or 'tenant default'} "
            f"day {data.dayOfWeek} ({rule.start_time} - {rule.end_time})"
        )
        return rule

    def replace_availability_rules(
        self, tenant_id: str, data: AvailabilityReplaceRequest
    ) -> list[AvailabilityRule]:
        """Replace a whole week; all rules are validated before anything is deleted"""
        self._ensure_profile(tenant_id, data.profileId)

        seen = set()
        rules = []
        for item in data.availabilities:
            if item.dayOfWeek in seen:
                raise ValidationError(f"Duplicate availability for day {item.dayOfWeek}")
            seen.add(item.dayOfWeek)
            rules.append(
                AvailabilityRule(
                    tenant_id=tenant_id,
                    profile_id=data.profileId,
                    **self._normalize_rule(item),
                )
            )

        saved = self.repo.replace_availability_rules(self.db, tenant_id, data.profileId, rules)
        logger.info(
            f"✅ Replaced availability for {data.profileId or 'tenant default'}: {len(saved)} day(s)"
        )
        return saved

    # ------------------------------------------------------------------
    # Holidays
    # ------------------------------------------------------------------

    def list_holidays(self, tenant_id: str) -> list[Holiday]:
        return self.repo.list_holidays(self.db, tenant_id)

    def upsert_holiday(self, tenant_id: str, data: HolidayUpsert) -> Holiday:
        """Update the holiday named by data.id, or create a new one"""
        day = parse_date(data.date)
        name = _clean_text(data.name, "Holiday name")
        self._ensure_profile(tenant_id, data.profileId)

        if data.id:
            holiday = self.repo.get_holiday(self.db, tenant_id, data.id)
            if not holiday:
                raise NotFoundError("Holiday not found")
        else:
            holiday = Holiday(tenant_id=tenant_id)

        holiday.profile_id = data.profileId
        holiday.name = name
        holiday.date = day
        holiday.is_recurring = data.isRecurring
        holiday.blocking = data.blocking

        holiday = self.repo.save_holiday(self.db, holiday)
        logger.info(
            f"✅ Saved holiday '{holiday.name}' on {holiday.date}"
            f"{' (recurring)' if holiday.is_recurring else ''}"
        )
        return holiday

    def delete_holiday(self, tenant_id: str, holiday_id: str) -> None:
        holiday = self.repo.get_holiday(self.db, tenant_id, holiday_id)
        if not holiday:
            raise NotFoundError("Holiday not found")
        self.repo.delete_holiday(self.db, holiday)
        logger.info(f"🗑️ Deleted holiday {holiday_id}")

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def list_resources(self, tenant_id: str) -> list[Resource]:
        return self.repo.list_resources(self.db, tenant_id)

    def upsert_resource(self, tenant_id: str, data: ResourceUpsert) -> Resource:
        if data.capacity < 1:
            raise ValidationError("Capacity must be at least 1")
        name = _clean_text(data.name, "Resource name")
        resource_type = _clean_text(data.type, "Resource type", max_length=50)

        if data.id:
            resource = self.repo.get_resource(self.db, tenant_id, data.id)
            if not resource:
                raise NotFoundError("Resource not found")
        else:
            resource = Resource(tenant_id=tenant_id)
        was_exclusive = resource.exclusive

        resource.name = name
        resource.type = resource_type
        resource.exclusive = data.exclusive
        resource.capacity = data.capacity
        resource.description = sanitize_string(data.description)

        resource = self.repo.save_resource(self.db, resource)
        logger.info(f"✅ Saved resource '{resource.name}' (exclusive={resource.exclusive})")

        # Existing bookings on a resource that changed exclusivity gain or lose their claims
        if data.id and was_exclusive != resource.exclusive:
            sync_resource_claims(self.db, resource)
        return resource

    def delete_resource(self, tenant_id: str, resource_id: str) -> None:
        resource = self.repo.get_resource(self.db, tenant_id, resource_id)
        if not resource:
            raise NotFoundError("Resource not found")
        self.repo.delete_resource(self.db, resource)
        logger.info(f"🗑️ Deleted resource {resource_id}")
