"""Message text helpers shared by the notification fan-out."""

import re
from typing import Optional, Set

MENTION_RE = re.compile(r"@(\w+)")
PREVIEW_LENGTH = 100


def extract_mentions(content: Optional[str]) -> Set[str]:
    """Return the lower-cased ``@token`` handles found in ``content``."""
    if not content:
        return set()
    return {token.lower() for token in MENTION_RE.findall(content)}


def user_handles(email: Optional[str], display_name: Optional[str]) -> Set[str]:
    """Handles a user answers to: display name without spaces and email local part."""
    handles = set()
    if display_name:
        compact = display_name.replace(" ", "").lower()
        if compact:
            handles.add(compact)
    if email and "@" in email:
        handles.add(email.split("@", 1)[0].lower())
    return handles


def is_mentioned(mentions: Set[str], email: Optional[str], display_name: Optional[str]) -> bool:
    if not mentions:
        return False
    return bool(mentions & user_handles(email, display_name))


def preview(content: Optional[str], length: int = PREVIEW_LENGTH) -> str:
    content = content or ""
    if len(content) > length:
        return content[:length] + "..."
    return content


def sender_label(email: Optional[str], display_name: Optional[str]) -> str:
    if display_name:
        return display_name
    if email:
        return email.split("@", 1)[0]
    return "Someone"
