"""Scheduling repository - Database operations for salons, staff, services and appointments"""

import zlib
from datetime import datetime
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.orm import Session, joinedload

from ...models import (
    BLOCKING_STATUSES,
    Appointment,
    AppointmentService,
    Salon,
    Service,
    Staff,
    salon_services,
)


class SchedulingRepository:
    """Repository for scheduling database operations"""

    @staticmethod
    def get_salon(db: Session, salon_id: str) -> Optional[Salon]:
        """Get a salon by ID"""
        return db.query(Salon).filter(Salon.id == salon_id).first()

    @staticmethod
    def get_staff_for_salon(
        db: Session, staff_id: str, salon_id: str, lock: bool = False
    ) -> Optional[Staff]:
        """Get a staff member only if they work at the given salon"""
        query = db.query(Staff).filter(Staff.id == staff_id, Staff.salon_id == salon_id)
        if lock:
            # Row lock serializes concurrent bookings for the same staff member
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def acquire_staff_lock(db: Session, staff_id: str) -> None:
        """
        Transaction-scoped lock keyed on the staff member, held until commit.

        PostgreSQL takes an advisory lock. SQLite has no row locks, so a no-op
        write on the staff row takes the database write lock instead. Other
        dialects rely on the row lock.
        """
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            lock_key = zlib.crc32(f"staff:{staff_id}".encode())
            db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": lock_key})
        elif dialect == "sqlite":
            db.execute(text("UPDATE staff SET status = status WHERE id = :id"), {"id": staff_id})

    @staticmethod
    def get_salon_services(db: Session, salon_id: str, service_ids: Optional[list[str]] = None) -> list[Service]:
        """Get services offered by a salon, optionally restricted to the given IDs"""
        query = (
            db.query(Service)
            .join(salon_services, salon_services.c.service_id == Service.id)
            .filter(salon_services.c.salon_id == salon_id)
        )
        if service_ids is not None:
            query = query.filter(Service.id.in_(service_ids))
        return query.order_by(Service.name.asc()).all()

    @staticmethod
    def get_booked_appointments_in_window(
        db: Session, salon_id: str, window_start: datetime, window_end: datetime
    ) -> list[Appointment]:
        """Booked appointments of a salon starting within [window_start, window_end]"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.salon_id == salon_id,
                Appointment.status == "booked",
                Appointment.start_at >= window_start,
                Appointment.start_at <= window_end,
            )
            .order_by(Appointment.start_at.asc())
            .all()
        )

    @staticmethod
    def find_conflicting_appointment(
        db: Session, staff_id: str, start_at: datetime, end_at: datetime
    ) -> Optional[Appointment]:
        """First pending/booked appointment of the staff member overlapping [start_at, end_at)"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.staff_id == staff_id,
                Appointment.status.in_(BLOCKING_STATUSES),
                Appointment.start_at < end_at,
                Appointment.end_at > start_at,
            )
            .order_by(Appointment.start_at.asc())
            .first()
        )

    @staticmethod
    def add_appointment(db: Session, **appointment_data) -> Appointment:
        """Stage a new appointment in the current transaction"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def add_appointment_services(db: Session, appointment: Appointment, services: list[Service]) -> list[AppointmentService]:
        """Stage one line item per service, snapshotting its current price"""
        links = []
        for service in services:
            link = AppointmentService(
                appointment_id=appointment.id,
                service_id=service.id,
                price=service.price,
            )
            db.add(link)
            links.append(link)
        db.flush()
        return links

    @staticmethod
    def get_appointment(db: Session, appointment_id: str, user_id: Optional[str] = None) -> Optional[Appointment]:
        """Get an appointment with its line items, optionally scoped to the booking user"""
        query = (
            db.query(Appointment)
            .options(
                joinedload(Appointment.service_links).joinedload(AppointmentService.service),
                joinedload(Appointment.salon),
                joinedload(Appointment.staff),
            )
            .filter(Appointment.id == appointment_id)
        )
        if user_id is not None:
            query = query.filter(Appointment.user_id == user_id)
        return query.first()

    @staticmethod
    def get_stale_pending_appointments(db: Session, created_before: datetime) -> list[Appointment]:
        """Pending appointments created before the cutoff"""
        return (
            db.query(Appointment)
            .filter(Appointment.status == "pending", Appointment.created_at < created_before)
            .all()
        )

    @staticmethod
    def list_user_appointments(
        db: Session,
        user_id: str,
        status: Optional[str] = None,
        salon_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        sort: str = "start_at",
        descending: bool = True,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Appointment], int]:
        """One page of a user's appointments plus the total count matching the filters"""
        query = db.query(Appointment).filter(Appointment.user_id == user_id)

        if status:
            query = query.filter(Appointment.status == status)
        if salon_id:
            query = query.filter(Appointment.salon_id == salon_id)
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        if date_from:
            query = query.filter(Appointment.start_at >= date_from)
        if date_to:
            query = query.filter(Appointment.start_at <= date_to)

        total = query.count()

        sort_column = getattr(Appointment, sort)
        appointments = (
            query.options(
                joinedload(Appointment.service_links).joinedload(AppointmentService.service),
                joinedload(Appointment.salon),
                joinedload(Appointment.staff),
            )
            .order_by(sort_column.desc() if descending else sort_column.asc(), Appointment.id.asc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return appointments, total

    @staticmethod
    def count_user_appointments_by_status(db: Session, user_id: str) -> dict[str, int]:
        """Appointment counts per status for a user"""
        rows = (
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(Appointment.user_id == user_id)
            .group_by(Appointment.status)
            .all()
        )
        return {status: count for status, count in rows}

    @staticmethod
    def count_upcoming_booked(db: Session, user_id: str, now: datetime) -> int:
        """Booked appointments of a user that haven't started yet"""
        return (
            db.query(func.count(Appointment.id))
            .filter(
                Appointment.user_id == user_id,
                Appointment.status == "booked",
                Appointment.start_at > now,
            )
            .scalar()
        )
