from __future__ import annotations

from typing import Any

from content_guardian.errors import ValidationError


def parse_id(raw: Any, *, kind: str) -> int:
    """Parse a path identifier into a positive int.

    Raises ValidationError (`invalid_<kind>_id`) for anything else, so a
    malformed id is a 400 rather than a 404.
    """
    s = str(raw if raw is not None else "").strip()
    if not s.isdigit():
        raise ValidationError(f"Invalid {kind} ID format", detail=f"invalid_{kind}_id")
    value = int(s)
    if value < 1:
        raise ValidationError(f"Invalid {kind} ID format", detail=f"invalid_{kind}_id")
    return value
