"""Availability resolver - working hours and pauses for a professional on a weekday"""

import json
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import AvailabilityRule
from .repository import SchedulingRepository
from .schemas import Conflict, ConflictType
from .time_window import TimeWindow, overlaps

logger = logging.getLogger(__name__)


def day_of_week(day: date) -> int:
    """Weekday index with 0=Sunday ... 6=Saturday"""
    return (day.weekday() + 1) % 7


def lookup_keys(profile_id: Optional[str]) -> list[Optional[str]]:
    """Profile ids to try in order: the professional's own rule, then the tenant default"""
    if profile_id:
        return [profile_id, None]
    return [None]


def rule_pauses(rule: AvailabilityRule) -> list[TimeWindow]:
    """Pauses of a rule in stored order; older rows may hold them as a JSON string"""
    pauses = rule.pauses
    if not pauses:
        return []
    if isinstance(pauses, str):
        pauses = json.loads(pauses)
    return [TimeWindow.from_strings(p["start"], p["end"]) for p in pauses]


class AvailabilityResolver:
    """Resolves the availability rule in force and evaluates a proposed window against it"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def resolve(
        self, tenant_id: str, profile_id: Optional[str], weekday: int
    ) -> Optional[AvailabilityRule]:
        """
        First rule found for the lookup keys, or None when neither the
        professional nor the tenant defines the weekday (no constraint).
        """
        for key in lookup_keys(profile_id):
            rule = self.repo.get_availability_rule(self.db, tenant_id, key, weekday)
            if rule:
                return rule
        return None

    @staticmethod
    def evaluate(rule: Optional[AvailabilityRule], proposed: TimeWindow) -> list[Conflict]:
        if rule is None:
            return []

        if not rule.is_working_day:
            return [
                Conflict(
                    type=ConflictType.UNAVAILABLE,
                    message="Professional does not work this day",
                )
            ]

        conflicts = []
        working = TimeWindow.from_strings(rule.start_time, rule.end_time)
        if proposed.start < working.start or proposed.end > working.end:
            conflicts.append(
                Conflict(
                    type=ConflictType.UNAVAILABLE,
                    message=f"Outside business hours ({rule.start_time} - {rule.end_time})",
                )
            )

        # One conflict per overlapped pause, in stored order
        for pause in rule_pauses(rule):
            if overlaps(proposed, pause):
                conflicts.append(
                    Conflict(
                        type=ConflictType.UNAVAILABLE,
                        message=f"Overlaps break ({pause})",
                    )
                )

        return conflicts

    def check(
        self, tenant_id: str, profile_id: str, day: date, proposed: TimeWindow
    ) -> list[Conflict]:
        rule = self.resolve(tenant_id, profile_id, day_of_week(day))
        conflicts = self.evaluate(rule, proposed)
        logger.debug(
            f"Availability check for profile {profile_id} on {day}: "
            f"rule={rule.id if rule else None}, conflicts={len(conflicts)}"
        )
        return conflicts
