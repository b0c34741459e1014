"""
Scheduling Domain

Salon availability and conflict-checked appointment booking.

Structure:
- time_slots.py           # Hours parsing, hourly slot generation, interval overlap
- availability_service.py # Per-day and 7-day availability
- booking_service.py      # Booking conflict guard and status transitions
- repository.py           # Salon/staff/service/appointment queries and staff locks
- serializers.py          # Appointment wire shape
- schemas.py              # Request/response models
- router.py               # /salons and /appointments endpoints

Appointment lifecycle:
    pending --payment confirm--> booked --service delivered--> completed
    pending/booked --cancel or payment timeout--> cancelled

Only pending and booked appointments block a staff member's time.
"""

from .router import appointments_router, salons_router

__all__ = ["appointments_router", "salons_router"]
