import html
import re
from typing import Optional

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Sanitize a string by escaping HTML special characters to prevent XSS.
    Control characters are stripped. Returns None if input is None.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    return _CONTROL_CHARS_RE.sub("", html.escape(value, quote=True))
