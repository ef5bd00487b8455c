import html
from typing import Optional


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Escape HTML special characters in free text before it is stored.
    Blank strings collapse to None.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    return html.escape(value, quote=True)


def sanitize_required(value: Optional[str], field: str, max_length: int = 255) -> str:
    """
    Sanitize a mandatory text field.

    Raises:
        ValueError: If the field is blank or longer than max_length
    """
    cleaned = sanitize_string(value)
    if not cleaned:
        raise ValueError(f"{field} is required")
    if len(cleaned) > max_length:
        raise ValueError(f"{field} exceeds maximum length of {max_length} characters")
    return cleaned


def unescape_string(value: Optional[str]) -> Optional[str]:
    """Plain-text form of a stored value, for messages that are not rendered as HTML"""
    if value is None:
        return None
    return html.unescape(value)
