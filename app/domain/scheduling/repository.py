"""Scheduling repository - Database operations for the scheduling engine"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Appointment,
    AvailabilityRule,
    Holiday,
    Lead,
    Profile,
    Resource,
    ScheduleSlotClaim,
    Service,
    Tenant,
    appointment_resources,
)
from .exceptions import ConcurrencyConflict, PersistenceError
from .schemas import TERMINAL_STATUSES, AppointmentStatus

logger = logging.getLogger(__name__)

SLOT_CLAIM_CONSTRAINT = "uq_slot_claim"

_TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


class SchedulingRepository:
    """Repository for scheduling database operations; every query is tenant-scoped"""

    # Transaction helpers
    @staticmethod
    def commit(db: Session) -> None:
        """
        Commit the session, translating storage failures.

        A violation of the slot claim constraint means a concurrent booking
        won the slot after our conflict check ran.
        """
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            detail = str(e.orig)
            if SLOT_CLAIM_CONSTRAINT in detail or ScheduleSlotClaim.__tablename__ in detail:
                logger.warning(f"⚠️ Slot claim rejected at commit: {detail}")
                raise ConcurrencyConflict(
                    "This time slot was booked by someone else. Please check conflicts and try again."
                )
            logger.error(f"❌ Integrity error on commit: {detail}")
            raise PersistenceError("Failed to save scheduling data")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Database error on commit: {e}")
            raise PersistenceError("Failed to save scheduling data")

    # Reference lookups
    @staticmethod
    def get_tenant(db: Session, tenant_id: str) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()

    @staticmethod
    def get_profile(db: Session, tenant_id: str, profile_id: str) -> Optional[Profile]:
        return (
            db.query(Profile)
            .filter(Profile.id == profile_id, Profile.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_lead(db: Session, tenant_id: str, lead_id: str) -> Optional[Lead]:
        return db.query(Lead).filter(Lead.id == lead_id, Lead.tenant_id == tenant_id).first()

    @staticmethod
    def get_services_by_ids(db: Session, tenant_id: str, service_ids: Iterable[str]) -> list[Service]:
        ids = list(service_ids)
        if not ids:
            return []
        return db.query(Service).filter(Service.tenant_id == tenant_id, Service.id.in_(ids)).all()

    # Resources
    @staticmethod
    def get_resource(db: Session, tenant_id: str, resource_id: str) -> Optional[Resource]:
        return (
            db.query(Resource)
            .filter(Resource.id == resource_id, Resource.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_resources_by_ids(db: Session, tenant_id: str, resource_ids: Iterable[str]) -> list[Resource]:
        ids = list(resource_ids)
        if not ids:
            return []
        return db.query(Resource).filter(Resource.tenant_id == tenant_id, Resource.id.in_(ids)).all()

    @staticmethod
    def list_resources(db: Session, tenant_id: str) -> list[Resource]:
        return db.query(Resource).filter(Resource.tenant_id == tenant_id).order_by(Resource.name.asc()).all()

    @staticmethod
    def save_resource(db: Session, resource: Resource) -> Resource:
        db.add(resource)
        SchedulingRepository.commit(db)
        db.refresh(resource)
        return resource

    @staticmethod
    def delete_resource(db: Session, resource: Resource) -> None:
        db.execute(
            appointment_resources.delete().where(appointment_resources.c.resource_id == resource.id)
        )
        db.query(ScheduleSlotClaim).filter(
            ScheduleSlotClaim.tenant_id == resource.tenant_id,
            ScheduleSlotClaim.holder_type == "resource",
            ScheduleSlotClaim.holder_id == resource.id,
        ).delete(synchronize_session=False)
        db.delete(resource)
        SchedulingRepository.commit(db)

    # Availability rules
    @staticmethod
    def get_availability_rule(
        db: Session, tenant_id: str, profile_id: Optional[str], day_of_week: int
    ) -> Optional[AvailabilityRule]:
        """Point query for one (tenant, profile, weekday); profile_id None is the tenant default"""
        query = db.query(AvailabilityRule).filter(
            AvailabilityRule.tenant_id == tenant_id,
            AvailabilityRule.day_of_week == day_of_week,
        )
        if profile_id is None:
            query = query.filter(AvailabilityRule.profile_id.is_(None))
        else:
            query = query.filter(AvailabilityRule.profile_id == profile_id)
        return query.first()

    @staticmethod
    def list_availability_rules(
        db: Session, tenant_id: str, profile_id: Optional[str]
    ) -> list[AvailabilityRule]:
        query = db.query(AvailabilityRule).filter(AvailabilityRule.tenant_id == tenant_id)
        if profile_id is None:
            query = query.filter(AvailabilityRule.profile_id.is_(None))
        else:
            query = query.filter(AvailabilityRule.profile_id == profile_id)
        return query.order_by(AvailabilityRule.day_of_week.asc()).all()

    @staticmethod
    def save_availability_rule(db: Session, rule: AvailabilityRule) -> AvailabilityRule:
        db.add(rule)
        SchedulingRepository.commit(db)
        db.refresh(rule)
        return rule

    @staticmethod
    def replace_availability_rules(
        db: Session, tenant_id: str, profile_id: Optional[str], rules: list[AvailabilityRule]
    ) -> list[AvailabilityRule]:
        """Delete and recreate every rule of one target in a single transaction"""
        query = db.query(AvailabilityRule).filter(AvailabilityRule.tenant_id == tenant_id)
        if profile_id is None:
            query = query.filter(AvailabilityRule.profile_id.is_(None))
        else:
            query = query.filter(AvailabilityRule.profile_id == profile_id)
        query.delete(synchronize_session=False)

        db.add_all(rules)
        SchedulingRepository.commit(db)
        for rule in rules:
            db.refresh(rule)
        return sorted(rules, key=lambda r: r.day_of_week)

    # Holidays
    @staticmethod
    def list_holiday_candidates(db: Session, tenant_id: str, day: date) -> list[Holiday]:
        """
        Holidays that may fall on day: the one-off ones dated that day plus
        every recurring one (month/day matching happens in the resolver).
        Ordered by creation so the first blocking match is deterministic.
        """
        return (
            db.query(Holiday)
            .filter(
                Holiday.tenant_id == tenant_id,
                or_(
                    Holiday.is_recurring.is_(True),
                    Holiday.date == day,
                ),
            )
            .order_by(Holiday.created_at.asc(), Holiday.id.asc())
            .all()
        )

    @staticmethod
    def list_holidays(db: Session, tenant_id: str) -> list[Holiday]:
        return db.query(Holiday).filter(Holiday.tenant_id == tenant_id).order_by(Holiday.date.asc()).all()

    @staticmethod
    def get_holiday(db: Session, tenant_id: str, holiday_id: str) -> Optional[Holiday]:
        return (
            db.query(Holiday)
            .filter(Holiday.id == holiday_id, Holiday.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def save_holiday(db: Session, holiday: Holiday) -> Holiday:
        db.add(holiday)
        SchedulingRepository.commit(db)
        db.refresh(holiday)
        return holiday

    @staticmethod
    def delete_holiday(db: Session, holiday: Holiday) -> None:
        db.delete(holiday)
        SchedulingRepository.commit(db)

    # Appointments
    @staticmethod
    def list_occupying_appointments(
        db: Session, tenant_id: str, profile_id: str, day: date
    ) -> list[Appointment]:
        """Appointments of a professional on day that still hold their slot"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.profile_id == profile_id,
                Appointment.date == day,
                Appointment.status.notin_(_TERMINAL_VALUES),
            )
            .order_by(Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def list_occupying_appointments_for_resource(
        db: Session, tenant_id: str, resource_id: str, day: date
    ) -> list[Appointment]:
        """Appointments of any professional on day holding resource_id"""
        return (
            db.query(Appointment)
            .join(appointment_resources, appointment_resources.c.appointment_id == Appointment.id)
            .filter(
                Appointment.tenant_id == tenant_id,
                appointment_resources.c.resource_id == resource_id,
                Appointment.date == day,
                Appointment.status.notin_(_TERMINAL_VALUES),
            )
            .order_by(Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def get_appointment(db: Session, tenant_id: str, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(selectinload(Appointment.services), selectinload(Appointment.resources))
            .filter(Appointment.id == appointment_id, Appointment.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def list_appointments(
        db: Session,
        tenant_id: str,
        start_date: date,
        end_date: date,
        profile_id: Optional[str] = None,
    ) -> list[Appointment]:
        query = (
            db.query(Appointment)
            .options(selectinload(Appointment.services), selectinload(Appointment.resources))
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.date >= start_date,
                Appointment.date <= end_date,
            )
        )
        if profile_id:
            query = query.filter(Appointment.profile_id == profile_id)
        return query.order_by(Appointment.start_time.asc()).all()

    @staticmethod
    def list_lead_appointments(db: Session, tenant_id: str, lead_id: str) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(selectinload(Appointment.services), selectinload(Appointment.resources))
            .filter(
                Appointment.tenant_id == tenant_id,
                Appointment.lead_id == lead_id,
                Appointment.status != AppointmentStatus.CANCELLED.value,
            )
            .order_by(Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def create_appointment(db: Session, appointment: Appointment) -> Appointment:
        """Persist an appointment with its line items, resource links and slot claims atomically"""
        db.add(appointment)
        SchedulingRepository.commit(db)
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        for key, value in updates.items():
            if value is not None and hasattr(appointment, key):
                setattr(appointment, key, value)

        SchedulingRepository.commit(db)
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        """Hard delete; line items and slot claims go first through the ORM cascade"""
        appointment.resources = []
        db.delete(appointment)
        SchedulingRepository.commit(db)

    # Slot claims
    @staticmethod
    def release_slot_claims(appointment: Appointment) -> None:
        """Drop the claims of an appointment; removed on the next commit via delete-orphan"""
        appointment.slot_claims.clear()

    @staticmethod
    def list_unclaimed_occupying_appointments(
        db: Session, tenant_id: Optional[str] = None
    ) -> list[Appointment]:
        claimed = db.query(ScheduleSlotClaim.appointment_id).distinct()
        query = db.query(Appointment).filter(
            Appointment.status.notin_(_TERMINAL_VALUES),
            Appointment.id.notin_(claimed),
        )
        if tenant_id:
            query = query.filter(Appointment.tenant_id == tenant_id)
        return query.order_by(Appointment.created_at.asc(), Appointment.start_time.asc()).all()

    @staticmethod
    def list_unclaimed_resource_appointments(
        db: Session, tenant_id: str, holder_type: str, resource_id: str
    ) -> list[Appointment]:
        """Occupying appointments holding resource_id with no claim on it yet"""
        claimed = db.query(ScheduleSlotClaim.appointment_id).filter(
            ScheduleSlotClaim.tenant_id == tenant_id,
            ScheduleSlotClaim.holder_type == holder_type,
            ScheduleSlotClaim.holder_id == resource_id,
        )
        return (
            db.query(Appointment)
            .join(appointment_resources, appointment_resources.c.appointment_id == Appointment.id)
            .filter(
                Appointment.tenant_id == tenant_id,
                appointment_resources.c.resource_id == resource_id,
                Appointment.status.notin_(_TERMINAL_VALUES),
                Appointment.id.notin_(claimed),
            )
            .order_by(Appointment.created_at.asc(), Appointment.start_time.asc())
            .all()
        )

    @staticmethod
    def delete_holder_claims(db: Session, tenant_id: str, holder_type: str, holder_id: str) -> int:
        deleted = (
            db.query(ScheduleSlotClaim)
            .filter(
                ScheduleSlotClaim.tenant_id == tenant_id,
                ScheduleSlotClaim.holder_type == holder_type,
                ScheduleSlotClaim.holder_id == holder_id,
            )
            .delete(synchronize_session=False)
        )
        SchedulingRepository.commit(db)
        return deleted
