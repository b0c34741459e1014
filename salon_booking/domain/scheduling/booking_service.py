"""Booking service - Conflict-checked appointment booking and status transitions"""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ...config import EXPOSE_ERROR_DETAILS
from ...errors import (
    Conflict,
    InvalidReference,
    InvalidTransition,
    NotFound,
    SchedulingError,
    Unexpected,
    ValidationError,
)
from ...models import APPOINTMENT_STATUSES, TERMINAL_STATUSES, Appointment, Service, User
from ...services.notification_service import send_to_users
from ...shared.validators import validate_uuid
from .repository import SchedulingRepository
from .schemas import BookingRequest
from .time_slots import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

# target status -> statuses it may be reached from
ALLOWED_TRANSITIONS = {
    "booked": ("pending",),
    "cancelled": ("pending", "booked"),
    "completed": ("booked",),
}

SORTABLE_FIELDS = ("start_at", "end_at", "created_at", "status", "total_price")
MAX_PAGE_SIZE = 100


def parse_start_at(value: str) -> datetime:
    """Parse an ISO-8601 instant into naive UTC"""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError) as e:
        raise ValidationError(
            "Invalid start_at. Please provide an ISO-8601 date and time.",
            details={"start_at": value},
        ) from e
    return to_naive_utc(parsed)


class BookingService:
    """Service layer for appointment booking"""

    def __init__(
        self,
        db: Session,
        repo: Optional[SchedulingRepository] = None,
        notifier: Optional[Callable[..., dict]] = None,
    ):
        self.db = db
        self.repo = repo or SchedulingRepository()
        self.notifier = notifier or send_to_users

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book_appointment(self, data: BookingRequest, user: User) -> Appointment:
        """
        Validate, conflict-check and persist a pending appointment.

        Everything from the staff lookup to the line-item inserts runs in one
        transaction; any failure rolls the whole booking back.
        """
        try:
            appointment = self._reserve(data, user)
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to book appointment for user {user.id}: {e}")
            raise Unexpected(
                "Failed to book appointment. Please try again.",
                details=str(e) if EXPOSE_ERROR_DETAILS else None,
            ) from e

        logger.info(
            f"✅ Appointment {appointment.id} booked (pending) for staff {appointment.staff_id} "
            f"{appointment.start_at.isoformat()} - {appointment.end_at.isoformat()}"
        )

        self._notify(
            user.id,
            "Appointment Booked",
            "Your appointment has been booked successfully. Please proceed to payment to confirm your booking.",
            {"appointmentId": appointment.id},
        )
        return appointment

    def _reserve(self, data: BookingRequest, user: User) -> Appointment:
        # 1) Required fields
        if not data.salon_id or not data.staff_id or not data.start_at or not data.service_ids:
            raise ValidationError(
                "Missing required fields. Please provide salon_id, staff_id, start_at, and at least one service."
            )
        if not isinstance(data.service_ids, list) or not all(isinstance(sid, str) for sid in data.service_ids):
            raise ValidationError(
                "service_ids must be a non-empty list of service IDs",
                details={"service_ids": data.service_ids},
            )
        if not isinstance(data.salon_id, str) or not isinstance(data.staff_id, str):
            raise ValidationError("salon_id and staff_id must be strings")
        start_at = parse_start_at(data.start_at)

        # 2) Staff must work at the salon; the row lock reserves the staff member
        staff = None
        if validate_uuid(data.staff_id) and validate_uuid(data.salon_id):
            staff = self.repo.get_staff_for_salon(self.db, data.staff_id, data.salon_id, lock=True)
        if not staff:
            raise InvalidReference(
                "Invalid staff member or salon. Please verify the staff member works at this salon."
            )
        self.repo.acquire_staff_lock(self.db, staff.id)

        # 3) Every requested service must be offered by the salon
        services = self.repo.get_salon_services(self.db, data.salon_id, data.service_ids)
        if len(services) != len(data.service_ids):
            found_ids = {s.id for s in services}
            raise InvalidReference(
                "One or more services are not available at this salon",
                details={
                    "requested_services": len(data.service_ids),
                    "available_services": len(services),
                    "available_service_names": [s.name for s in services],
                    "unavailable_service_ids": [sid for sid in data.service_ids if sid not in found_ids],
                },
            )

        total_duration, total_price = self.calculate_totals(services)
        end_at = start_at + timedelta(minutes=total_duration)

        # 4) Conflict check inside the same transaction as the insert
        conflict = self.repo.find_conflicting_appointment(self.db, staff.id, start_at, end_at)
        if conflict:
            logger.warning(
                f"⚠️ Booking conflict for staff {staff.id}: requested {start_at.isoformat()} - "
                f"{end_at.isoformat()} overlaps appointment {conflict.id}"
            )
            raise Conflict(
                "This staff member is not available during the selected time. "
                "Please choose a different time or staff member.",
                details={
                    "conflicting_appointment_id": conflict.id,
                    "conflict_start_at": f"{conflict.start_at.isoformat()}Z",
                    "conflict_end_at": f"{conflict.end_at.isoformat()}Z",
                },
            )

        # 5) Appointment and its line items
        appointment = self.repo.add_appointment(
            self.db,
            user_id=user.id,
            salon_id=data.salon_id,
            staff_id=staff.id,
            start_at=start_at,
            end_at=end_at,
            status="pending",
            notes=data.notes,
            total_price=total_price,
            duration=total_duration,
        )
        self.repo.add_appointment_services(self.db, appointment, services)
        return appointment

    @staticmethod
    def calculate_totals(services: list[Service]) -> tuple[int, Decimal]:
        """Total duration in minutes and total price of the given services"""
        total_duration = sum(int(s.duration) for s in services)
        total_price = sum((Decimal(str(s.price)) for s in services), Decimal("0.00"))
        return total_duration, total_price.quantize(Decimal("0.01"))

    # ------------------------------------------------------------------
    # Lookups and status transitions
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str, user: Optional[User] = None) -> Appointment:
        appointment = None
        if validate_uuid(appointment_id):
            appointment = self.repo.get_appointment(
                self.db, appointment_id, user.id if user is not None else None
            )
        if not appointment:
            raise NotFound(
                "Appointment not found. The appointment you're looking for doesn't exist "
                "or you don't have permission to view it."
            )
        return appointment

    def list_appointments(
        self,
        user: User,
        status: Optional[str] = None,
        salon_id: Optional[str] = None,
        staff_id: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        sort: str = "start_at",
        order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """
        One page of the user's appointments, newest first by default.

        A date-only ``date_to`` covers that whole day.
        """
        if status and status not in APPOINTMENT_STATUSES:
            raise ValidationError(
                f"Invalid status filter: {status}",
                details={"allowed_statuses": list(APPOINTMENT_STATUSES)},
            )
        if sort not in SORTABLE_FIELDS:
            raise ValidationError(
                f"Invalid sort field: {sort}",
                details={"allowed_sort_fields": list(SORTABLE_FIELDS)},
            )
        if order.lower() not in ("asc", "desc"):
            raise ValidationError("order must be 'asc' or 'desc'")
        if page < 1 or not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"page must be >= 1 and limit between 1 and {MAX_PAGE_SIZE}")

        appointments, total = self.repo.list_user_appointments(
            self.db,
            user.id,
            status=status,
            salon_id=salon_id,
            staff_id=staff_id,
            date_from=self._parse_date_filter("date_from", date_from),
            date_to=self._parse_date_filter("date_to", date_to, end_of_day=True),
            sort=sort,
            descending=order.lower() == "desc",
            offset=(page - 1) * limit,
            limit=limit,
        )

        total_pages = (total + limit - 1) // limit
        return {
            "appointments": appointments,
            "pagination": {
                "current_page": page,
                "total_pages": total_pages,
                "total_count": total,
                "limit": limit,
                "has_next_page": page < total_pages,
                "has_prev_page": page > 1,
            },
            "filters": {
                "status": status,
                "salon_id": salon_id,
                "staff_id": staff_id,
                "date_from": date_from,
                "date_to": date_to,
                "sort": sort,
                "order": order.lower(),
            },
        }

    @staticmethod
    def _parse_date_filter(name: str, value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
        if not value:
            return None
        try:
            if len(value) == 10:
                day = date.fromisoformat(value)
                return datetime.combine(day, time.max if end_of_day else time.min)
            return parse_start_at(value)
        except (ValueError, ValidationError) as e:
            raise ValidationError(
                f"Invalid {name}. Please provide an ISO-8601 date or date and time.",
                details={name: value},
            ) from e

    def get_appointment_stats(self, user: User) -> dict:
        """Totals per status and upcoming booked appointments for the user"""
        by_status = self.repo.count_user_appointments_by_status(self.db, user.id)
        total = sum(by_status.values())
        upcoming = self.repo.count_upcoming_booked(self.db, user.id, utcnow())
        return {
            "stats": {
                "total": total,
                "upcoming": upcoming,
                "by_status": {status: by_status.get(status, 0) for status in APPOINTMENT_STATUSES},
            },
            "summary": {
                "total_appointments": total,
                "upcoming_appointments": upcoming,
                "completed_appointments": by_status.get("completed", 0),
                "cancelled_appointments": by_status.get("cancelled", 0),
                "pending_appointments": by_status.get("pending", 0),
            },
        }

    def _transition(self, appointment: Appointment, target: str) -> None:
        allowed_from = ALLOWED_TRANSITIONS[target]
        if appointment.status not in allowed_from:
            raise InvalidTransition(
                f"Appointment is {appointment.status} and cannot be marked {target}",
                details={"current_status": appointment.status, "requested_status": target},
            )
        logger.info(f"✅ Appointment {appointment.id} transitioned: {appointment.status} → {target}")
        appointment.status = target

    def confirm_payment(self, appointment_id: str, user: Optional[User] = None) -> Appointment:
        """pending → booked once payment is confirmed"""
        appointment = self.get_appointment(appointment_id, user)
        self._transition(appointment, "booked")
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def complete_appointment(self, appointment_id: str, user: Optional[User] = None) -> Appointment:
        """booked → completed after the service was delivered, scoped to the booking user when given"""
        appointment = self.get_appointment(appointment_id, user)
        self._transition(appointment, "completed")
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def cancel_appointment(
        self,
        appointment_id: str,
        user: Optional[User] = None,
        reason: Optional[str] = None,
    ) -> Appointment:
        """pending/booked → cancelled, recording who cancelled and why"""
        appointment = self.get_appointment(appointment_id, user)
        if appointment.status in TERMINAL_STATUSES:
            details = {"current_status": appointment.status}
            if appointment.status == "cancelled":
                details["cancelled_at"] = (
                    f"{appointment.cancelled_at.isoformat()}Z" if appointment.cancelled_at else None
                )
                details["cancellation_reason"] = appointment.cancellation_reason
                raise InvalidTransition("Appointment is already cancelled", details=details)
            raise InvalidTransition(f"Cannot cancel {appointment.status} appointment", details=details)

        self._transition(appointment, "cancelled")
        appointment.cancelled_at = utcnow()
        appointment.cancelled_by = user.id if user is not None else None
        appointment.cancellation_reason = reason or "Cancelled by user"
        self.db.commit()
        self.db.refresh(appointment)

        if user is not None:
            self._notify(
                user.id,
                "Appointment Cancelled",
                "Your appointment has been cancelled successfully.",
                {
                    "appointmentId": appointment.id,
                    "salonId": appointment.salon_id,
                    "status": appointment.status,
                    "cancellation_reason": appointment.cancellation_reason,
                },
            )
        return appointment

    def _notify(self, user_id: str, title: str, body: str, data: dict) -> None:
        """Best-effort notification; the committed booking never depends on it"""
        try:
            self.notifier(self.db, [user_id], title, body, data)
        except Exception as e:
            logger.error(f"❌ Failed to send '{title}' notification to user {user_id}: {e}")
