"""
Automated status transitions for appointments
Handles pending → cancelled when payment is not confirmed in time
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import PENDING_APPOINTMENT_TIMEOUT_MINUTES
from ..domain.scheduling.repository import SchedulingRepository
from ..domain.scheduling.time_slots import utcnow

logger = logging.getLogger(__name__)

PAYMENT_TIMEOUT_REASON = "Payment timeout"


def expire_pending_appointments(db: Session, timeout_minutes: Optional[int] = None) -> dict:
    """
    Cancel pending appointments whose payment window has elapsed.
    Should be run as a scheduled job (e.g., cron every few minutes)

    Returns:
        dict: Summary of status changes made
    """
    timeout = PENDING_APPOINTMENT_TIMEOUT_MINUTES if timeout_minutes is None else timeout_minutes
    summary = {"pending_to_cancelled": 0, "appointment_ids": []}

    try:
        now = utcnow()
        stale = SchedulingRepository.get_stale_pending_appointments(db, now - timedelta(minutes=timeout))

        for appointment in stale:
            appointment.status = "cancelled"
            appointment.cancelled_at = now
            appointment.cancellation_reason = PAYMENT_TIMEOUT_REASON
            summary["appointment_ids"].append(appointment.id)
            logger.info(f"✅ Appointment {appointment.id} transitioned: pending → cancelled (payment timeout)")

        summary["pending_to_cancelled"] = len(stale)
        db.commit()

        if stale:
            logger.info(f"📊 Expired {len(stale)} pending appointments older than {timeout} minutes")
        return summary

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error expiring pending appointments: {e}")
        raise
