"""Appointment lifecycle - create, status transitions and deletion"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentServiceItem
from ...utils.sanitization import sanitize_string
from .conflicts import ConflictEngine, ProposedBooking
from .exceptions import (
    InvalidStatusTransition,
    NotFoundError,
    SchedulingConflictError,
    ValidationError,
)
from .overlaps import ResourceConflictChecker
from .repository import SchedulingRepository
from .schemas import AppointmentCreate, AppointmentStatus, ConflictCheckRequest
from .slot_guard import build_slot_claims

logger = logging.getLogger(__name__)

# Status workflow: SCHEDULED → CONFIRMED → COMPLETED; any non-terminal → CANCELLED
ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.COMPLETED: set(),
}


def parse_status(value) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in AppointmentStatus)
        raise ValidationError(f"Invalid status {value!r} (expected one of: {allowed})")


class AppointmentLifecycleManager:
    """Service layer for appointment mutations"""

    def __init__(self, db: Session, bucket_minutes: Optional[int] = None):
        self.db = db
        self.repo = SchedulingRepository()
        self.bucket_minutes = bucket_minutes

    # Queries
    def get_appointment(self, tenant_id: str, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment(self.db, tenant_id, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def list_appointments(
        self,
        tenant_id: str,
        start_date: date,
        end_date: date,
        profile_id: Optional[str] = None,
    ) -> list[Appointment]:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        return self.repo.list_appointments(self.db, tenant_id, start_date, end_date, profile_id)

    def list_lead_appointments(self, tenant_id: str, lead_id: str) -> list[Appointment]:
        if not self.repo.get_lead(self.db, tenant_id, lead_id):
            raise NotFoundError("Lead not found")
        return self.repo.list_lead_appointments(self.db, tenant_id, lead_id)

    # Mutations
    def create_appointment(self, tenant_id: str, data: AppointmentCreate) -> Appointment:
        """
        Persist an appointment with its line items, resource links and slot claims.

        Does not run the conflict check; callers run it first. A concurrent
        commit for the same slot surfaces as ConcurrencyConflict.
        """
        proposal = self._validate(data)

        if not self.repo.get_lead(self.db, tenant_id, data.leadId):
            raise NotFoundError("Lead not found")
        if not self.repo.get_profile(self.db, tenant_id, data.profileId):
            raise NotFoundError("Professional not found")

        service_ids = [s.serviceId for s in data.services]
        known_services = {s.id for s in self.repo.get_services_by_ids(self.db, tenant_id, service_ids)}
        missing = [sid for sid in dict.fromkeys(service_ids) if sid not in known_services]
        if missing:
            raise NotFoundError(f"Service not found: {', '.join(missing)}")

        resources = ResourceConflictChecker(self.db).load_resources(tenant_id, proposal.resource_ids)

        appointment = Appointment(
            tenant_id=tenant_id,
            lead_id=data.leadId,
            profile_id=data.profileId,
            date=proposal.day,
            start_time=datetime.combine(proposal.day, proposal.window.start_clock()),
            end_time=datetime.combine(proposal.day, proposal.window.end_clock()),
            status=AppointmentStatus.SCHEDULED.value,
            notes=sanitize_string(data.notes),
        )
        appointment.services = [
            AppointmentServiceItem(service_id=s.serviceId, price=s.price, duration=s.duration)
            for s in data.services
        ]
        appointment.resources = resources
        appointment.slot_claims = build_slot_claims(
            appointment, proposal.window, resources, self.bucket_minutes
        )

        appointment = self.repo.create_appointment(self.db, appointment)
        logger.info(
            f"✅ Created appointment {appointment.id} for profile {data.profileId} "
            f"on {proposal.day} {proposal.window}"
        )
        return appointment

    def book_appointment(self, tenant_id: str, data: AppointmentCreate) -> Appointment:
        """Check conflicts and create in one call; any conflict aborts the booking"""
        conflicts = ConflictEngine(self.db).check_conflicts(
            tenant_id,
            ConflictCheckRequest(
                profileId=data.profileId,
                resourceIds=data.resourceIds,
                date=data.date,
                startTime=data.startTime,
                endTime=data.endTime,
            ),
        )
        if conflicts:
            raise SchedulingConflictError(conflicts)
        return self.create_appointment(tenant_id, data)

    def update_status(self, tenant_id: str, appointment_id: str, status) -> Appointment:
        """Apply a status transition; terminal appointments release their slot claims"""
        new_status = parse_status(status)
        appointment = self.get_appointment(tenant_id, appointment_id)
        current = parse_status(appointment.status)

        if new_status == current and not current.is_terminal:
            return appointment

        if new_status not in ALLOWED_TRANSITIONS[current]:
            logger.warning(
                f"⚠️ Rejected status change {current.value} → {new_status.value} "
                f"for appointment {appointment_id}"
            )
            raise InvalidStatusTransition(
                f"Cannot change appointment status from {current.value} to {new_status.value}"
            )

        if new_status.is_terminal:
            self.repo.release_slot_claims(appointment)

        appointment = self.repo.update_appointment(self.db, appointment, status=new_status.value)
        logger.info(f"🔄 Appointment {appointment_id} status {current.value} → {new_status.value}")
        return appointment

    def cancel_appointment(
        self, tenant_id: str, appointment_id: str, reason: Optional[str] = None
    ) -> Appointment:
        """Cancel and record the reason in the notes"""
        appointment = self.get_appointment(tenant_id, appointment_id)
        note = f"Cancelled: {sanitize_string(reason) or 'No reason given'}"
        previous_notes = appointment.notes

        appointment.notes = f"{previous_notes}\n\n{note}" if previous_notes else note
        try:
            return self.update_status(tenant_id, appointment_id, AppointmentStatus.CANCELLED)
        except InvalidStatusTransition:
            appointment.notes = previous_notes
            raise

    def delete_appointment(self, tenant_id: str, appointment_id: str) -> None:
        appointment = self.get_appointment(tenant_id, appointment_id)
        self.repo.delete_appointment(self.db, appointment)
        logger.info(f"🗑️ Deleted appointment {appointment_id}")

    def _validate(self, data: AppointmentCreate) -> ProposedBooking:
        if not data.leadId:
            raise ValidationError("leadId is required")
        if not data.profileId:
            raise ValidationError("profileId is required")
        return ProposedBooking.parse(
            data.profileId,
            data.date,
            data.startTime,
            data.endTime,
            data.resourceIds,
            slot_minutes=self.bucket_minutes,
        )
