"""
Small utilities:
- Email shape check (same pattern the popup front-end uses)
- Tag merging (plain string concatenation, no dedupe)
- Email masking for log lines
"""

import re
from typing import Optional

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    # fullmatch: "$" alone would let a trailing newline through
    return EMAIL_RE.fullmatch(email) is not None


def merge_tags(existing: Optional[str], new: Optional[str]) -> str:
    """
    Append new tags to an existing comma-separated tag string.
    Duplicates are kept: Shopify normalises tags on its side.
    """
    new = new or ""
    if not existing:
        return new
    return f"{existing},{new}"


def mask_email(email: str, enabled: bool = True) -> str:
    """'jane@example.com' -> 'j***@example.com'. For logs only."""
    if not enabled or not email or "@" not in email:
        return email
    local, domain = email.split("@", 1)
    return f"{local[:1]}***@{domain}"
