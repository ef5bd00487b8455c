"""Booking overlap and resource conflict checkers"""

import logging
from datetime import date

from sqlalchemy.orm import Session

from ...models import Appointment, Resource
from ...utils.sanitization import unescape_string
from .exceptions import NotFoundError
from .repository import SchedulingRepository
from .schemas import Conflict, ConflictType
from .time_window import TimeWindow, overlaps

logger = logging.getLogger(__name__)


def appointment_window(appointment: Appointment) -> TimeWindow:
    return TimeWindow.from_datetimes(appointment.start_time, appointment.end_time)


class BookingOverlapChecker:
    """Finds occupying appointments of a professional that intersect a proposed window"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def find_overlaps(
        self, tenant_id: str, profile_id: str, day: date, proposed: TimeWindow
    ) -> list[Appointment]:
        existing = self.repo.list_occupying_appointments(self.db, tenant_id, profile_id, day)
        return [a for a in existing if overlaps(proposed, appointment_window(a))]

    def check(
        self, tenant_id: str, profile_id: str, day: date, proposed: TimeWindow
    ) -> list[Conflict]:
        found = self.find_overlaps(tenant_id, profile_id, day, proposed)
        if not found:
            return []

        # Reported once no matter how many appointments overlap
        logger.debug(f"Profile {profile_id} has {len(found)} overlapping appointment(s) on {day}")
        return [
            Conflict(
                type=ConflictType.UNAVAILABLE,
                message="Professional already has an appointment at this time",
            )
        ]


class ResourceConflictChecker:
    """
    Finds reservations of exclusive resources that intersect a proposed window.

    Non-exclusive resources are not checked against their capacity.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def load_resources(self, tenant_id: str, resource_ids: list[str]) -> list[Resource]:
        """Resources in requested order (duplicates dropped); raises when one is unknown"""
        unique_ids = list(dict.fromkeys(resource_ids))
        found = {r.id: r for r in self.repo.get_resources_by_ids(self.db, tenant_id, unique_ids)}
        missing = [rid for rid in unique_ids if rid not in found]
        if missing:
            raise NotFoundError(f"Resource not found: {', '.join(missing)}")
        return [found[rid] for rid in unique_ids]

    def find_resource_conflicts(
        self, tenant_id: str, resource_ids: list[str], day: date, proposed: TimeWindow
    ) -> list[Conflict]:
        conflicts = []
        for resource in self.load_resources(tenant_id, resource_ids):
            if not resource.exclusive:
                continue

            holders = self.repo.list_occupying_appointments_for_resource(
                self.db, tenant_id, resource.id, day
            )
            if any(overlaps(proposed, appointment_window(a)) for a in holders):
                conflicts.append(
                    Conflict(
                        type=ConflictType.RESOURCE,
                        message=f"{unescape_string(resource.name)} is already reserved for this time",
                    )
                )
        return conflicts
