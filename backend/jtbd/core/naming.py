"""
Naming rules shared by the service and the client
"""
from typing import Optional

FALLBACK_DISPLAY_NAME = "User"


def resolve_display_name(
    full_name: Optional[str] = None,
    name: Optional[str] = None,
    email: Optional[str] = None,
) -> str:
    """
    Display name for a new profile

    Priority: supplied full name, then the alternate name field, then the
    local part of the email before '@'. "User" when all of them are empty.
    """
    for candidate in (full_name, name):
        if candidate and candidate.strip():
            return candidate.strip()
    if email:
        local_part = email.split("@", 1)[0].strip()
        if local_part:
            return local_part
    return FALLBACK_DISPLAY_NAME


def is_leftover_name(name: str) -> bool:
    """Groups named "... Leftovers" are the catch-all bucket for their type"""
    return "leftover" in name.lower()
