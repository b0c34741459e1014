"""Availability service - bookable hourly slots for the coming week"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import EXPOSE_ERROR_DETAILS
from ...errors import NotFound, Unexpected
from ...models import Appointment, Salon
from ...shared.validators import validate_uuid
from .repository import SchedulingRepository
from .time_slots import (
    InvalidTimeFormat,
    generate_time_slots,
    intervals_overlap,
    parse_hours_range,
    slot_interval,
    utcnow,
    weekday_name,
)

logger = logging.getLogger(__name__)

AVAILABILITY_DAYS = 7


def build_day_availability(day: date, day_hours: Optional[str], appointments: list[Appointment]) -> dict:
    """
    Slots of one calendar day that overlap none of the given appointments.

    The appointments are used as given; callers decide which statuses block.
    Unparseable hours are treated as closed.
    """
    date_str = day.isoformat()

    try:
        hours_range = parse_hours_range(day_hours)
    except InvalidTimeFormat as e:
        logger.warning(f"⚠️ Unparseable salon hours for {date_str}, treating as closed: {e}")
        hours_range = None

    if hours_range is None:
        return {
            "date": date_str,
            "times": [],
            "status": "closed",
            "message": "Salon is closed on this day",
        }

    available = []
    for slot in generate_time_slots(*hours_range):
        slot_start, slot_end = slot_interval(day, slot)
        if not any(intervals_overlap(slot_start, slot_end, a.start_at, a.end_at) for a in appointments):
            available.append(slot)

    return {
        "date": date_str,
        "times": available,
        "status": "available" if available else "fully_booked",
        "message": (
            f"{len(available)} time slots available"
            if available
            else "No available time slots for this day"
        ),
    }


class AvailabilityService:
    """Service layer for salon availability"""

    def __init__(self, db: Session, repo: Optional[SchedulingRepository] = None):
        self.db = db
        self.repo = repo or SchedulingRepository()

    def get_salon(self, salon_id: str) -> Salon:
        try:
            salon = self.repo.get_salon(self.db, salon_id) if validate_uuid(salon_id) else None
        except SQLAlchemyError as e:
            raise self._unexpected(e) from e
        if not salon:
            raise NotFound("Salon not found")
        return salon

    @staticmethod
    def _unexpected(error: Exception) -> Unexpected:
        logger.error(f"❌ Availability lookup failed: {error}")
        return Unexpected(
            "Failed to fetch salon availability",
            details=str(error) if EXPOSE_ERROR_DETAILS else None,
        )

    def get_weekly_availability(self, salon_id: str, today: Optional[date] = None) -> list[dict]:
        """Availability for today and the following six days, oldest first"""
        salon = self.get_salon(salon_id)
        return self.build_weekly_availability(salon, today)

    def build_weekly_availability(self, salon: Salon, today: Optional[date] = None) -> list[dict]:
        today = today or utcnow().date()
        days = [today + timedelta(days=i) for i in range(AVAILABILITY_DAYS)]

        # One windowed query for the whole week
        window_start = datetime.combine(days[0], time.min)
        window_end = datetime.combine(days[-1], time.max)
        try:
            appointments = self.repo.get_booked_appointments_in_window(
                self.db, salon.id, window_start, window_end
            )
        except SQLAlchemyError as e:
            raise self._unexpected(e) from e
        logger.debug(
            f"📅 Salon {salon.id}: {len(appointments)} booked appointments between {days[0]} and {days[-1]}"
        )

        hours = salon.hours or {}
        if not isinstance(hours, dict):
            logger.warning(f"⚠️ Salon {salon.id} has malformed hours {hours!r}, treating every day as closed")
            hours = {}
        return [build_day_availability(day, hours.get(weekday_name(day)), appointments) for day in days]
