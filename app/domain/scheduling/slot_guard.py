"""
Commit-time double-booking guard.

Every occupying appointment claims the fixed-size buckets its window covers,
once for the professional and once per exclusive resource it holds. The
unique constraint on schedule_slot_claims rejects a second overlapping commit
even when both callers passed the conflict check.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Appointment, Resource, ScheduleSlotClaim
from .exceptions import ConcurrencyConflict, PersistenceError, ValidationError
from .repository import SchedulingRepository
from .time_window import TimeWindow, buckets_for

logger = logging.getLogger(__name__)

HOLDER_PROFILE = "profile"
HOLDER_RESOURCE = "resource"


def holder_claims(
    appointment: Appointment,
    holder_type: str,
    holder_id: str,
    window: TimeWindow,
    bucket_minutes: Optional[int] = None,
) -> list[ScheduleSlotClaim]:
    size = bucket_minutes or config.SLOT_BUCKET_MINUTES
    return [
        ScheduleSlotClaim(
            tenant_id=appointment.tenant_id,
            holder_type=holder_type,
            holder_id=holder_id,
            date=appointment.date,
            bucket=bucket,
        )
        for bucket in buckets_for(window, size)
    ]


def build_slot_claims(
    appointment: Appointment,
    window: TimeWindow,
    resources: Iterable[Resource],
    bucket_minutes: Optional[int] = None,
) -> list[ScheduleSlotClaim]:
    """Claims for the professional and every exclusive resource of appointment"""
    holders = [(HOLDER_PROFILE, appointment.profile_id)]
    holders.extend((HOLDER_RESOURCE, r.id) for r in resources if r.exclusive)

    claims = []
    for holder_type, holder_id in holders:
        claims.extend(holder_claims(appointment, holder_type, holder_id, window, bucket_minutes))
    return claims


def backfill_slot_claims(
    db: Session, tenant_id: Optional[str] = None, bucket_minutes: Optional[int] = None
) -> dict:
    """
    Claim buckets for occupying appointments that hold none.

    Appointments are processed oldest first; one whose buckets are already
    taken (a double-booking that predates the guard) or whose times are off
    the bucket grid is skipped and reported instead of aborting the run.
    """
    repo = SchedulingRepository()
    appointments = repo.list_unclaimed_occupying_appointments(db, tenant_id)
    claimed, skipped = 0, []

    for appointment in appointments:
        window = TimeWindow.from_datetimes(appointment.start_time, appointment.end_time)
        try:
            appointment.slot_claims = build_slot_claims(
                appointment, window, appointment.resources, bucket_minutes
            )
            repo.commit(db)
            claimed += 1
        except (ValidationError, ConcurrencyConflict, PersistenceError) as e:
            logger.warning(f"⚠️ Could not claim slots for appointment {appointment.id}: {e}")
            skipped.append(appointment.id)

    logger.info(f"✅ Backfilled slot claims for {claimed} appointment(s), skipped {len(skipped)}")
    return {"claimed": claimed, "skipped": skipped}


def sync_resource_claims(
    db: Session, resource: Resource, bucket_minutes: Optional[int] = None
) -> dict:
    """
    Align the claims held on resource with its exclusive flag.

    A shared resource holds no claims. An exclusive one claims buckets for each
    occupying appointment that holds it, oldest first; appointments that clash
    on the resource (booked while it was shared) are skipped and reported.
    """
    repo = SchedulingRepository()
    if not resource.exclusive:
        released = repo.delete_holder_claims(db, resource.tenant_id, HOLDER_RESOURCE, resource.id)
        logger.info(f"🔓 Released {released} slot claim(s) on resource {resource.id}")
        return {"claimed": 0, "released": released, "skipped": []}

    appointments = repo.list_unclaimed_resource_appointments(
        db, resource.tenant_id, HOLDER_RESOURCE, resource.id
    )
    claimed, skipped = 0, []
    for appointment in appointments:
        window = TimeWindow.from_datetimes(appointment.start_time, appointment.end_time)
        try:
            appointment.slot_claims.extend(
                holder_claims(appointment, HOLDER_RESOURCE, resource.id, window, bucket_minutes)
            )
            repo.commit(db)
            claimed += 1
        except (ValidationError, ConcurrencyConflict, PersistenceError) as e:
            logger.warning(
                f"⚠️ Appointment {appointment.id} keeps resource {resource.id} unclaimed: {e}"
            )
            skipped.append(appointment.id)

    logger.info(
        f"🔒 Claimed resource {resource.id} for {claimed} appointment(s), skipped {len(skipped)}"
    )
    return {"claimed": claimed, "released": 0, "skipped": skipped}
