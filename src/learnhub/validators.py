"""Field validators shared by request schemas."""

from __future__ import annotations

from urllib.parse import urlparse

MAX_URL_LENGTH = 2048


def validate_http_url(value: str) -> str:
    """
    Validate an absolute http(s) URL and return it trimmed.

    Raises:
        ValueError: If the value is not an http or https URL with a host.
    """
    value = value.strip()
    if len(value) > MAX_URL_LENGTH:
        msg = f"URL must not exceed {MAX_URL_LENGTH} characters"
        raise ValueError(msg)
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc or " " in value:
        msg = "Please provide a valid URL starting with http:// or https://"
        raise ValueError(msg)
    return value


def strip_required(value: str, field: str = "Field") -> str:
    """Trim text and reject whitespace-only input."""
    value = value.strip()
    if not value:
        msg = f"{field} cannot be empty"
        raise ValueError(msg)
    return value
