"""Small helpers shared by services and tasks."""

import re

_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(value: str) -> str:
    """Strip everything but 0-9 ("+91 99988-87776" → "919998887776")."""
    return _NON_DIGITS.sub("", value or "")
