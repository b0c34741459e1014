"""Appointment serializer - maps appointment records to the API wire shape"""

from datetime import datetime
from typing import Optional

from ...models import Appointment, Service
from .time_slots import utcnow


def _iso(value: Optional[datetime]) -> Optional[str]:
    # Stored instants are naive UTC
    return f"{value.isoformat()}Z" if value else None


def format_time_until(start_at: datetime, now: Optional[datetime] = None) -> str:
    """Human-readable countdown such as "in 2 days" or "in 45 minutes" """
    now = now or utcnow()
    seconds = int((start_at - now).total_seconds())
    if seconds <= 0:
        return "started"

    minutes = seconds // 60
    if minutes < 60:
        return f"in {max(minutes, 1)} minute{'s' if minutes != 1 else ''}"
    hours = minutes // 60
    if hours < 24:
        return f"in {hours} hour{'s' if hours != 1 else ''}"
    days = hours // 24
    return f"in {days} day{'s' if days != 1 else ''}"


def serialize_service(service: Service, price=None) -> dict:
    return {
        "id": service.id,
        "name": service.name,
        "price": float(price if price is not None else service.price),
        "duration": service.duration,
    }


def serialize_appointment(appointment: Appointment, now: Optional[datetime] = None) -> dict:
    """
    Serialize an appointment with its service line items.

    Line-item prices come from the booking-time snapshot, not the catalog.
    """
    service_items = [
        serialize_service(link.service, link.price)
        for link in appointment.service_links
        if link.service is not None
    ]

    data = {
        "id": appointment.id,
        "user_id": appointment.user_id,
        "salon_id": appointment.salon_id,
        "staff_id": appointment.staff_id,
        "status": appointment.status,
        "start_at": _iso(appointment.start_at),
        "end_at": _iso(appointment.end_at),
        "date": appointment.start_at.date().isoformat() if appointment.start_at else None,
        "time": appointment.start_at.strftime("%H:%M") if appointment.start_at else None,
        "time_until": format_time_until(appointment.start_at, now) if appointment.start_at else None,
        "duration": appointment.duration,
        "total_price": float(appointment.total_price) if appointment.total_price is not None else None,
        "notes": appointment.notes,
        "cancellation_reason": appointment.cancellation_reason,
        "cancelled_at": _iso(appointment.cancelled_at),
        "services": service_items,
    }

    if appointment.salon is not None:
        data["salon"] = {
            "id": appointment.salon.id,
            "name": appointment.salon.name,
            "phone": appointment.salon.phone,
            "email": appointment.salon.email,
        }
    if appointment.staff is not None:
        data["staff"] = {"id": appointment.staff.id, "name": appointment.staff.name}
    if appointment.user is not None:
        data["user"] = {
            "id": appointment.user.id,
            "name": appointment.user.full_name,
            "email": appointment.user.email,
        }

    return data
