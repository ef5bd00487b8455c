import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Profile(Base):
    """A professional who can be booked"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(50), default="professional", nullable=False)  # admin, professional
    created_at = Column(DateTime, server_default=func.now())


class Lead(Base):
    """Patient or customer an appointment is booked for"""

    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    whatsapp = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Service(Base):
    """Catalog entry that can be attached to an appointment as a line item"""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=True)
    duration_min = Column(Integer, default=60)
    active = Column(Boolean, default=True, nullable=False)


appointment_resources = Table(
    "appointment_resources",
    Base.metadata,
    Column("appointment_id", String(36), ForeignKey("appointments.id"), primary_key=True),
    Column("resource_id", String(36), ForeignKey("resources.id"), primary_key=True),
)


class Resource(Base):
    """Bookable room or equipment"""

    __tablename__ = "resources"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)  # room, equipment, ...
    # Exclusive resources are held by at most one appointment at a time
    exclusive = Column(Boolean, default=True, nullable=False)
    capacity = Column(Integer, default=1, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class AvailabilityRule(Base):
    """Weekly working hours for a professional, or the tenant default when profile_id is null"""

    __tablename__ = "availability_rules"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    day_of_week = Column(Integer, nullable=False)  # 0=Sunday, 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    is_working_day = Column(Boolean, default=True, nullable=False)
    pauses = Column(JSON, nullable=True)  # [{"start": "12:00", "end": "13:00"}, ...]

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_availability_lookup", "tenant_id", "profile_id", "day_of_week"),
    )


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    name = Column(String(255), nullable=False)
    date = Column(Date, nullable=False)
    # Recurring holidays match on month and day only
    is_recurring = Column(Boolean, default=False, nullable=False)
    # Non-blocking holidays are informational and never produce conflicts
    blocking = Column(Boolean, default=True, nullable=False)

    # Python-side default keeps microseconds; used as the tie-break between matches
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False)
    profile_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)

    date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)

    # Status workflow: SCHEDULED → CONFIRMED → COMPLETED, any non-terminal → CANCELLED
    status = Column(String(20), default="SCHEDULED", nullable=False, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    lead = relationship("Lead")
    profile = relationship("Profile")
    services = relationship(
        "AppointmentServiceItem",
        back_populates="appointment",
        cascade="all, delete-orphan",
    )
    resources = relationship("Resource", secondary=appointment_resources)
    slot_claims = relationship(
        "ScheduleSlotClaim",
        back_populates="appointment",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_appointments_tenant_profile_date", "tenant_id", "profile_id", "date"),
        Index("ix_appointments_tenant_date", "tenant_id", "date"),
    )


class AppointmentServiceItem(Base):
    """Service line item of an appointment (price and duration captured at booking time)"""

    __tablename__ = "appointment_services"

    id = Column(String(36), primary_key=True, default=generate_id)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    price = Column(Float, nullable=False, default=0)
    duration = Column(Integer, nullable=False)

    appointment = relationship("Appointment", back_populates="services")
    service = relationship("Service")


class ScheduleSlotClaim(Base):
    """
    One fixed-size time bucket held by an occupying appointment.

    The unique constraint is the commit-time guard against two concurrent
    bookings of the same professional (or exclusive resource) passing the
    conflict check and both persisting.
    """

    __tablename__ = "schedule_slot_claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(36), nullable=False)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=False, index=True)
    holder_type = Column(String(20), nullable=False)  # profile, resource
    holder_id = Column(String(36), nullable=False)
    date = Column(Date, nullable=False)
    bucket = Column(Integer, nullable=False)  # minutes since midnight of the bucket start

    appointment = relationship("Appointment", back_populates="slot_claims")

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "holder_type", "holder_id", "date", "bucket", name="uq_slot_claim"
        ),
    )
