"""Scheduling router - FastAPI endpoints for the conflict engine and appointments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_tenant
from ...database import get_db
from ...models import Appointment, AvailabilityRule, Holiday, Resource, Tenant
from .availability import rule_pauses
from .conflicts import ConflictEngine
from .lifecycle import AppointmentLifecycleManager
from .schemas import (
    AppointmentCancelRequest,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AvailabilityReplaceRequest,
    AvailabilityRuleResponse,
    AvailabilityRuleUpsert,
    ConflictCheckRequest,
    ConflictCheckResponse,
    HolidayResponse,
    HolidayUpsert,
    Pause,
    ResourceResponse,
    ResourceUpsert,
    ServiceLineItemResponse,
)
from .service import SchedulingService
from .time_window import format_minutes, parse_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scheduling", tags=["Scheduling"])


def get_conflict_engine(db: Session = Depends(get_db)) -> ConflictEngine:
    """Dependency injection for ConflictEngine"""
    return ConflictEngine(db)


def get_lifecycle_manager(db: Session = Depends(get_db)) -> AppointmentLifecycleManager:
    """Dependency injection for AppointmentLifecycleManager"""
    return AppointmentLifecycleManager(db)


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        leadId=appointment.lead_id,
        profileId=appointment.profile_id,
        date=appointment.date,
        startTime=appointment.start_time,
        endTime=appointment.end_time,
        status=appointment.status,
        notes=appointment.notes,
        services=[
            ServiceLineItemResponse(serviceId=s.service_id, price=s.price, duration=s.duration)
            for s in appointment.services
        ],
        resourceIds=[r.id for r in appointment.resources],
        createdAt=appointment.created_at,
    )


def rule_response(rule: AvailabilityRule) -> AvailabilityRuleResponse:
    return AvailabilityRuleResponse(
        id=rule.id,
        profileId=rule.profile_id,
        dayOfWeek=rule.day_of_week,
        startTime=rule.start_time,
        endTime=rule.end_time,
        isWorkingDay=rule.is_working_day,
        pauses=[
            Pause(start=format_minutes(p.start), end=format_minutes(p.end))
            for p in rule_pauses(rule)
        ],
    )


def holiday_response(holiday: Holiday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        profileId=holiday.profile_id,
        name=holiday.name,
        date=holiday.date,
        isRecurring=holiday.is_recurring,
        blocking=holiday.blocking,
    )


def resource_response(resource: Resource) -> ResourceResponse:
    return ResourceResponse(
        id=resource.id,
        name=resource.name,
        type=resource.type,
        exclusive=resource.exclusive,
        capacity=resource.capacity,
        description=resource.description,
    )


# ============================================================================
# CONFLICT CHECK
# ============================================================================


@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    data: ConflictCheckRequest,
    tenant: Tenant = Depends(get_current_tenant),
    engine: ConflictEngine = Depends(get_conflict_engine),
):
    """Evaluate a proposed booking; an empty conflict list means the slot is free"""
    conflicts = engine.check_conflicts(tenant.id, data)
    return ConflictCheckResponse(available=not conflicts, conflicts=conflicts)


# ============================================================================
# APPOINTMENTS
# ============================================================================


@router.get("/appointments", response_model=list[AppointmentResponse])
async def list_appointments(
    start_date: str = Query(...),
    end_date: str = Query(...),
    profile_id: Optional[str] = Query(None),
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Appointments between start_date and end_date (inclusive), ordered by start time"""
    appointments = manager.list_appointments(
        tenant.id, parse_date(start_date), parse_date(end_date), profile_id
    )
    return [appointment_response(a) for a in appointments]


@router.post("/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Persist an appointment without re-running the conflict check"""
    return appointment_response(manager.create_appointment(tenant.id, data))


@router.post("/appointments/book", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    """Check conflicts and create; responds 409 with the conflict list when blocked"""
    return appointment_response(manager.book_appointment(tenant.id, data))


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    return appointment_response(manager.get_appointment(tenant.id, appointment_id))


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    appointment = manager.update_status(tenant.id, appointment_id, data.status)
    return appointment_response(appointment)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: str,
    data: AppointmentCancelRequest,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    appointment = manager.cancel_appointment(tenant.id, appointment_id, data.reason)
    return appointment_response(appointment)


@router.delete("/appointments/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    manager.delete_appointment(tenant.id, appointment_id)
    return {"message": "Appointment deleted"}


@router.get("/leads/{lead_id}/appointments", response_model=list[AppointmentResponse])
async def list_lead_appointments(
    lead_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    manager: AppointmentLifecycleManager = Depends(get_lifecycle_manager),
):
    """A lead's appointments that were not cancelled"""
    return [appointment_response(a) for a in manager.list_lead_appointments(tenant.id, lead_id)]


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get("/availability", response_model=list[AvailabilityRuleResponse])
async def list_availability(
    profile_id: Optional[str] = Query(None),
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Weekly rules of a professional, or the tenant defaults when profile_id is omitted"""
    return [rule_response(r) for r in service.list_availability_rules(tenant.id, profile_id)]


@router.put("/availability", response_model=list[AvailabilityRuleResponse])
async def replace_availability(
    data: AvailabilityReplaceRequest,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [rule_response(r) for r in service.replace_availability_rules(tenant.id, data)]


@router.post("/availability", response_model=AvailabilityRuleResponse)
async def upsert_availability(
    data: AvailabilityRuleUpsert,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return rule_response(service.upsert_availability_rule(tenant.id, data))


# ============================================================================
# HOLIDAYS
# ============================================================================


@router.get("/holidays", response_model=list[HolidayResponse])
async def list_holidays(
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [holiday_response(h) for h in service.list_holidays(tenant.id)]


@router.post("/holidays", response_model=HolidayResponse)
async def upsert_holiday(
    data: HolidayUpsert,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Create a holiday, or update it when an id is supplied"""
    return holiday_response(service.upsert_holiday(tenant.id, data))


@router.delete("/holidays/{holiday_id}")
async def delete_holiday(
    holiday_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    service.delete_holiday(tenant.id, holiday_id)
    return {"message": "Holiday deleted"}


# ============================================================================
# RESOURCES
# ============================================================================


@router.get("/resources", response_model=list[ResourceResponse])
async def list_resources(
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [resource_response(r) for r in service.list_resources(tenant.id)]


@router.post("/resources", response_model=ResourceResponse)
async def upsert_resource(
    data: ResourceUpsert,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return resource_response(service.upsert_resource(tenant.id, data))


@router.delete("/resources/{resource_id}")
async def delete_resource(
    resource_id: str,
    tenant: Tenant = Depends(get_current_tenant),
    service: SchedulingService = Depends(get_scheduling_service),
):
    service.delete_resource(tenant.id, resource_id)
    return {"message": "Resource deleted"}
