"""Shared validation utilities"""

import uuid
from typing import Any


def validate_uuid(value: Any) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, AttributeError, TypeError):
        return False
