"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ConflictType(str, Enum):
    UNAVAILABLE = "unavailable"
    BLOCKED = "blocked"
    HOLIDAY = "holiday"
    RESOURCE = "resource"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# Terminal appointments never occupy a slot
TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})


class Conflict(BaseModel):
    """A typed reason a proposed booking cannot proceed"""

    type: ConflictType
    message: str

    model_config = {"frozen": True}


# ============================================================================
# CONFLICT CHECK
# ============================================================================


class ConflictCheckRequest(BaseModel):
    """Proposed booking to evaluate"""

    profileId: str
    resourceIds: list[str] = Field(default_factory=list)
    date: str  # YYYY-MM-DD
    startTime: str  # HH:MM
    endTime: str  # HH:MM


class ConflictCheckResponse(BaseModel):
    available: bool
    conflicts: list[Conflict]


# ============================================================================
# APPOINTMENTS
# ============================================================================


class ServiceLineItem(BaseModel):
    serviceId: str
    price: float = 0
    duration: int

    @field_validator("price")
    @classmethod
    def validate_price(cls, v):
        if v < 0:
            raise ValueError("Price cannot be negative")
        return v

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be greater than 0")
        return v


class AppointmentCreate(BaseModel):
    """Schema for creating an appointment"""

    leadId: str
    profileId: str
    date: str  # YYYY-MM-DD
    startTime: str  # HH:MM
    endTime: str  # HH:MM
    notes: Optional[str] = None
    services: list[ServiceLineItem] = Field(default_factory=list)
    resourceIds: list[str] = Field(default_factory=list)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentCancelRequest(BaseModel):
    reason: Optional[str] = None


class ServiceLineItemResponse(BaseModel):
    serviceId: str
    price: float
    duration: int


class AppointmentResponse(BaseModel):
    id: str
    leadId: str
    profileId: str
    date: date
    startTime: datetime
    endTime: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    services: list[ServiceLineItemResponse] = Field(default_factory=list)
    resourceIds: list[str] = Field(default_factory=list)
    createdAt: Optional[datetime] = None


# ============================================================================
# AVAILABILITY
# ============================================================================


class Pause(BaseModel):
    start: str  # HH:MM
    end: str  # HH:MM


class AvailabilityRuleInput(BaseModel):
    dayOfWeek: int = Field(..., ge=0, le=6)  # 0=Sunday
    startTime: str
    endTime: str
    isWorkingDay: bool = True
    pauses: list[Pause] = Field(default_factory=list)


class AvailabilityRuleUpsert(AvailabilityRuleInput):
    """Schema for upserting the rule of one (profile, weekday)"""

    profileId: Optional[str] = None


class AvailabilityReplaceRequest(BaseModel):
    """Replace every weekly rule of one professional (or of the tenant default)"""

    profileId: Optional[str] = None
    availabilities: list[AvailabilityRuleInput]


class AvailabilityRuleResponse(BaseModel):
    id: str
    profileId: Optional[str] = None
    dayOfWeek: int
    startTime: str
    endTime: str
    isWorkingDay: bool
    pauses: list[Pause] = Field(default_factory=list)


# ============================================================================
# HOLIDAYS
# ============================================================================


class HolidayUpsert(BaseModel):
    id: Optional[str] = None
    profileId: Optional[str] = None
    name: str
    date: str  # YYYY-MM-DD
    isRecurring: bool = False
    blocking: bool = True


class HolidayResponse(BaseModel):
    id: str
    profileId: Optional[str] = None
    name: str
    date: date
    isRecurring: bool
    blocking: bool


# ============================================================================
# RESOURCES
# ============================================================================


class ResourceUpsert(BaseModel):
    id: Optional[str] = None
    name: str
    type: str
    exclusive: bool = True
    capacity: int = 1
    description: Optional[str] = None

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v):
        if v < 1:
            raise ValueError("Capacity must be at least 1")
        return v


class ResourceResponse(BaseModel):
    id: str
    name: str
    type: str
    exclusive: bool
    capacity: int
    description: Optional[str] = None
