"""Scheduling router - FastAPI endpoints for availability and bookings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .schemas import (
    AppointmentEnvelope,
    AppointmentListResponse,
    AppointmentStatsResponse,
    AvailabilityResponse,
    BookingRequest,
    CancelRequest,
    SalonServicesResponse,
    SalonSummary,
    ServiceResponse,
)
from .serializers import serialize_appointment

logger = logging.getLogger(__name__)

salons_router = APIRouter(prefix="/salons", tags=["Availability"])
appointments_router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


# ============================================================================
# AVAILABILITY
# ============================================================================


@salons_router.get("/{salon_id}/availability", response_model=AvailabilityResponse)
async def get_salon_availability(
    salon_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Bookable hourly slots for today and the next six days"""
    salon = service.get_salon(salon_id)
    availability = service.build_weekly_availability(salon)
    hours = salon.hours if isinstance(salon.hours, dict) else None
    return AvailabilityResponse(
        message="Salon availability retrieved successfully",
        salon=SalonSummary(id=salon.id, name=salon.name, hours=hours),
        availability=availability,
        total_days=len(availability),
        available_days=sum(1 for day in availability if day["times"]),
    )


@salons_router.get("/{salon_id}/services", response_model=SalonServicesResponse)
async def get_salon_services(
    salon_id: str,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Services offered by a salon"""
    salon = service.get_salon(salon_id)
    services = service.repo.get_salon_services(service.db, salon.id)
    count = len(services)
    return SalonServicesResponse(
        message=(
            f"Successfully retrieved {count} service{'' if count == 1 else 's'} for this salon."
            if count
            else "No services available at this salon yet."
        ),
        salon=SalonSummary(id=salon.id, name=salon.name),
        services=[ServiceResponse.model_validate(s) for s in services],
        total_services=count,
    )


# ============================================================================
# BOOKINGS
# ============================================================================


@appointments_router.post("", response_model=AppointmentEnvelope, status_code=201)
async def book_appointment(
    data: BookingRequest,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book an appointment; it stays pending until payment is confirmed"""
    logger.info(f"📥 Booking request from user {current_user.id} for salon {data.salon_id}")
    appointment = service.book_appointment(data, current_user)
    return AppointmentEnvelope(
        message="Appointment booked successfully. Please complete payment to confirm your booking.",
        appointment=serialize_appointment(appointment),
        next_step="Complete payment to confirm booking",
    )


@appointments_router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[str] = Query(None, description="Filter by appointment status"),
    salon_id: Optional[str] = Query(None),
    staff_id: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None, description="ISO-8601 date or date-time"),
    date_to: Optional[str] = Query(None, description="ISO-8601 date or date-time"),
    sort: str = Query("start_at"),
    order: str = Query("desc"),
    page: int = Query(1),
    limit: int = Query(20),
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """The current user's appointments with filters and pagination"""
    result = service.list_appointments(
        current_user, status, salon_id, staff_id, date_from, date_to, sort, order, page, limit
    )
    appointments = result["appointments"]
    total = result["pagination"]["total_count"]
    if total == 0:
        message = "No appointments found. You haven't booked any appointments yet."
    elif not appointments:
        message = "No appointments found for the current page."
    else:
        message = f"Successfully retrieved {len(appointments)} appointment{'' if len(appointments) == 1 else 's'}"
    return AppointmentListResponse(
        message=message,
        appointments=[serialize_appointment(a) for a in appointments],
        pagination=result["pagination"],
        filters=result["filters"],
    )


@appointments_router.get("/stats", response_model=AppointmentStatsResponse)
async def get_appointment_stats(
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Appointment counts per status and upcoming bookings"""
    result = service.get_appointment_stats(current_user)
    total = result["stats"]["total"]
    if total == 0:
        message = "No appointment statistics available. You haven't booked any appointments yet."
    else:
        message = (
            "Appointment statistics retrieved successfully. "
            f"You have {total} total appointment{'' if total == 1 else 's'}."
        )
    return AppointmentStatsResponse(message=message, stats=result["stats"], summary=result["summary"])


@appointments_router.get("/{appointment_id}", response_model=AppointmentEnvelope)
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    appointment = service.get_appointment(appointment_id, current_user)
    return AppointmentEnvelope(
        message="Appointment details retrieved successfully",
        appointment=serialize_appointment(appointment),
    )


@appointments_router.put("/{appointment_id}/cancel", response_model=AppointmentEnvelope)
async def cancel_appointment(
    appointment_id: str,
    data: Optional[CancelRequest] = None,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a pending or booked appointment"""
    reason = data.cancellation_reason if data else None
    appointment = service.cancel_appointment(appointment_id, current_user, reason)
    return AppointmentEnvelope(
        message="Appointment cancelled successfully",
        appointment=serialize_appointment(appointment),
        cancellation_details={
            "cancelled_at": f"{appointment.cancelled_at.isoformat()}Z",
            "cancelled_by": appointment.cancelled_by,
            "cancellation_reason": appointment.cancellation_reason,
        },
    )


@appointments_router.post("/{appointment_id}/confirm-payment", response_model=AppointmentEnvelope)
async def confirm_payment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Mark a pending appointment as booked after payment"""
    appointment = service.confirm_payment(appointment_id, current_user)
    return AppointmentEnvelope(
        message="Payment confirmed and appointment booked successfully",
        appointment=serialize_appointment(appointment),
    )


@appointments_router.post("/{appointment_id}/complete", response_model=AppointmentEnvelope)
async def complete_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Mark one of the user's booked appointments as completed"""
    appointment = service.complete_appointment(appointment_id, current_user)
    logger.info(f"✅ Appointment {appointment_id} completed by user {current_user.id}")
    return AppointmentEnvelope(
        message="Appointment marked as completed",
        appointment=serialize_appointment(appointment),
    )


__all__ = [
    "salons_router",
    "appointments_router",
    "get_salon_availability",
    "get_salon_services",
    "book_appointment",
    "list_appointments",
    "get_appointment_stats",
    "get_appointment",
    "cancel_appointment",
    "confirm_payment",
    "complete_appointment",
]
