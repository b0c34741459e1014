"""
Push Notification Service
Delivers Firebase Cloud Messaging notifications to a user's registered devices
and records one Notification row per delivery attempt
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..config import FIREBASE_PROJECT_ID, NOTIFICATIONS_ENABLED
from ..models import MobileDevice, Notification

logger = logging.getLogger(__name__)

# FCM multicast accepts at most 500 tokens per call
FCM_BATCH_SIZE = 500


def _get_firebase_app():
    """Initialize Firebase Admin SDK (only once)"""
    import firebase_admin
    from firebase_admin import credentials

    try:
        return firebase_admin.get_app()
    except ValueError:
        try:
            cred = credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            # Initialize without credentials (limited functionality)
            app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")
        return app


def chunk(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def _stringify_data(data: Optional[dict[str, Any]]) -> dict[str, str]:
    """FCM data payloads only carry string values"""
    if not data:
        return {}
    return {str(key): "" if value is None else str(value) for key, value in data.items()}


def _send_multicast(tokens: list[str], title: str, body: str, data: dict[str, str]) -> list[bool]:
    """Send one FCM multicast batch, returning per-token success flags"""
    from firebase_admin import messaging

    message = messaging.MulticastMessage(
        notification=messaging.Notification(title=title, body=body),
        data=data,
        tokens=tokens,
    )
    response = messaging.send_each_for_multicast(message, app=_get_firebase_app())
    return [r.success for r in response.responses]


def send_to_users(
    db: Session,
    user_ids: list[str],
    title: str,
    body: str,
    data: Optional[dict[str, Any]] = None,
) -> dict:
    """
    Fire-and-forget push notification to every device of the given users.

    Never raises: delivery failures are logged and reported in the summary.

    Returns:
        Dict with success, failure and total counts
    """
    result = {"success": 0, "failure": 0, "total": 0}

    if not NOTIFICATIONS_ENABLED:
        logger.debug(f"ℹ️ Notifications disabled, skipping '{title}'")
        return result

    try:
        devices = db.query(MobileDevice).filter(MobileDevice.user_id.in_(user_ids)).all()
    except Exception as e:
        logger.error(f"❌ Failed to load devices for notification '{title}': {e}")
        return result

    if not devices:
        logger.debug(f"⚠️ No registered devices for users {user_ids}, skipping '{title}'")
        return result

    result["total"] = len(devices)
    payload = _stringify_data(data)

    for batch in chunk(devices, FCM_BATCH_SIZE):
        try:
            outcomes = _send_multicast([d.device_token for d in batch], title, body, payload)
        except Exception as e:
            logger.error(f"❌ Error sending push notification batch '{title}': {e}")
            result["failure"] += len(batch)
            continue

        sent_at = datetime.now(timezone.utc).replace(tzinfo=None)
        for device, success in zip(batch, outcomes):
            db.add(
                Notification(
                    user_id=device.user_id,
                    title=title,
                    body=body,
                    data=data,
                    status="sent" if success else "failed",
                    sent_at=sent_at if success else None,
                )
            )
            if success:
                result["success"] += 1
            else:
                result["failure"] += 1

    try:
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to record notifications for '{title}': {e}")

    logger.info(
        f"📱 '{title}' delivered to {result['success']}/{result['total']} devices"
    )
    return result
