"""
Conflict engine - the public read-side contract of the scheduling domain.

Runs the holiday, availability, booking overlap and resource checks in that
fixed order and returns every conflict found. Performs no writes; callers
decide whether a non-empty result aborts their flow.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from .availability import AvailabilityResolver
from .exceptions import NotFoundError
from .holidays import HolidayResolver
from .overlaps import BookingOverlapChecker, ResourceConflictChecker
from .repository import SchedulingRepository
from .schemas import Conflict, ConflictCheckRequest
from .time_window import TimeWindow, check_on_grid, parse_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProposedBooking:
    """A validated booking proposal"""

    profile_id: str
    day: date
    window: TimeWindow
    resource_ids: list[str] = field(default_factory=list)

    @classmethod
    def parse(
        cls,
        profile_id: str,
        day: str,
        start_time: str,
        end_time: str,
        resource_ids: Optional[list[str]] = None,
        slot_minutes: Optional[int] = None,
    ) -> "ProposedBooking":
        """Validate raw input; raises ValidationError before anything is queried"""
        window = TimeWindow.from_strings(start_time, end_time)
        check_on_grid(window, slot_minutes or config.SLOT_BUCKET_MINUTES)
        return cls(
            profile_id=profile_id,
            day=parse_date(day),
            window=window,
            resource_ids=list(dict.fromkeys(resource_ids or [])),
        )


class ConflictEngine:
    def __init__(self, db: Session, holiday_resolver: Optional[HolidayResolver] = None):
        self.db = db
        self.repo = SchedulingRepository()
        self.holidays = holiday_resolver or HolidayResolver(db)
        self.availability = AvailabilityResolver(db)
        self.bookings = BookingOverlapChecker(db)
        self.resources = ResourceConflictChecker(db)

    def check_conflicts(self, tenant_id: str, data: ConflictCheckRequest) -> list[Conflict]:
        """Evaluate a raw proposal (strings as received from a form or agent)"""
        proposal = ProposedBooking.parse(
            data.profileId, data.date, data.startTime, data.endTime, data.resourceIds
        )
        return self.evaluate(tenant_id, proposal)

    def evaluate(self, tenant_id: str, proposal: ProposedBooking) -> list[Conflict]:
        if not self.repo.get_profile(self.db, tenant_id, proposal.profile_id):
            raise NotFoundError("Professional not found")

        conflicts: list[Conflict] = []
        conflicts.extend(self.holidays.check(tenant_id, proposal.day, proposal.profile_id))
        conflicts.extend(
            self.availability.check(tenant_id, proposal.profile_id, proposal.day, proposal.window)
        )
        conflicts.extend(
            self.bookings.check(tenant_id, proposal.profile_id, proposal.day, proposal.window)
        )
        if proposal.resource_ids:
            conflicts.extend(
                self.resources.find_resource_conflicts(
                    tenant_id, proposal.resource_ids, proposal.day, proposal.window
                )
            )

        if conflicts:
            logger.info(
                f"📅 {len(conflicts)} conflict(s) for profile {proposal.profile_id} on "
                f"{proposal.day} {proposal.window}: {[c.type.value for c in conflicts]}"
            )
        return conflicts
