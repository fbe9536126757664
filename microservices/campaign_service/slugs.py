"""
URL slug generation for campaigns
"""

import re
import unicodedata
from typing import Awaitable, Callable, Optional

FALLBACK_SLUG = "campaign"

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_SEPARATORS = re.compile(r"[\s-]+")


def slugify(title: Optional[str]) -> str:
    """
    Lowercase ASCII slug for a title.

    "Help Ravi's Surgery!" -> "help-ravis-surgery"
    "Café Über"           -> "cafe-uber"
    """
    text = unicodedata.normalize("NFKD", title or "")
    text = text.encode("ascii", "ignore").decode("ascii").lower()
    text = _DISALLOWED.sub("", text)
    text = _SEPARATORS.sub("-", text).strip("-")
    return text or FALLBACK_SLUG


async def resolve_unique_slug(
    title: Optional[str],
    is_taken: Callable[[str], Awaitable[bool]],
) -> str:
    """First of base, base-1, base-2, ... for which ``is_taken`` is False"""
    base = slugify(title)
    candidate = base
    suffix = 0
    while await is_taken(candidate):
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate
