import uuid

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

APPOINTMENT_STATUSES = ("pending", "booked", "cancelled", "completed")
# Statuses that hold a staff member's time
BLOCKING_STATUSES = ("pending", "booked")
TERMINAL_STATUSES = ("cancelled", "completed")


def generate_uuid():
    """Generate a UUID4 string primary key"""
    return str(uuid.uuid4())


salon_services = Table(
    "salon_services",
    Base.metadata,
    Column("salon_id", String(36), ForeignKey("salons.id", ondelete="CASCADE"), primary_key=True),
    Column("service_id", String(36), ForeignKey("services.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    devices = relationship("MobileDevice", back_populates="user", cascade="all, delete-orphan")
    appointments = relationship(
        "Appointment", back_populates="user", foreign_keys="Appointment.user_id"
    )


class Salon(Base):
    __tablename__ = "salons"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    # {"monday": "9:00 AM - 8:00 PM", "sunday": "closed", ...}
    hours = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("Staff", back_populates="salon", cascade="all, delete-orphan")
    services = relationship("Service", secondary=salon_services, back_populates="salons")
    appointments = relationship("Appointment", back_populates="salon")


class Staff(Base):
    __tablename__ = "staff"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    salon_id = Column(String(36), ForeignKey("salons.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    status = Column(String(20), default="active", nullable=False)  # active, inactive

    salon = relationship("Salon", back_populates="staff")
    appointments = relationship("Appointment", back_populates="staff")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, nullable=False)  # minutes
    price = Column(Numeric(10, 2), nullable=False)

    salons = relationship("Salon", secondary=salon_services, back_populates="services")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_staff_start", "staff_id", "start_at"),
        Index("ix_appointments_salon_start", "salon_id", "start_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id", ondelete="CASCADE"), nullable=False)
    staff_id = Column(String(36), ForeignKey("staff.id", ondelete="CASCADE"), nullable=False)
    # Naive UTC instants, half-open interval [start_at, end_at)
    start_at = Column(DateTime, nullable=False)
    end_at = Column(DateTime, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, booked, cancelled, completed
    notes = Column(Text, nullable=True)
    total_price = Column(Numeric(10, 2), default=0, nullable=False)
    duration = Column(Integer, default=60, nullable=False)  # minutes
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="appointments", foreign_keys=[user_id])
    salon = relationship("Salon", back_populates="appointments")
    staff = relationship("Staff", back_populates="appointments")
    service_links = relationship(
        "AppointmentService",
        back_populates="appointment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class AppointmentService(Base):
    __tablename__ = "appointment_services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    # Price charged at booking time, copied from the catalog
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)

    appointment = relationship("Appointment", back_populates="service_links")
    service = relationship("Service")


class MobileDevice(Base):
    __tablename__ = "mobile_devices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    device_token = Column(String(500), nullable=False)
    platform = Column(String(20), nullable=True)  # ios, android

    user = relationship("User", back_populates="devices")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)
    status = Column(String(20), nullable=False)  # sent, failed
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
