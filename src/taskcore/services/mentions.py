"""Mention handle parsing."""

import re
import unicodedata
from typing import Final

MENTION_PATTERN: Final[re.Pattern[str]] = re.compile(r"@([A-Za-z0-9_.-]+)")
CONTEXT_LENGTH: Final[int] = 100


def extract_handles(content: str | None) -> list[str]:
    """Distinct lower-cased ``@handle`` tokens in order of first appearance."""
    if not content:
        return []
    seen: dict[str, None] = {}
    for match in MENTION_PATTERN.finditer(content):
        handle = match.group(1).rstrip(".").lower()
        if handle:
            seen.setdefault(handle, None)
    return list(seen)


def mention_context(content: str, handle: str, width: int = CONTEXT_LENGTH) -> str:
    """Excerpt of ``content`` around the first mention of ``handle``."""
    match = re.search(rf"@{re.escape(handle)}", content, flags=re.IGNORECASE)
    if match is None:
        return content[:width]
    half = width // 2
    start = max(0, match.start() - half)
    end = min(len(content), match.end() + half)
    excerpt = content[start:end].strip()
    if start > 0:
        excerpt = "…" + excerpt
    if end < len(content):
        excerpt = excerpt + "…"
    return excerpt[: width * 2]


def handle_from_name(display_name: str | None, email: str) -> str:
    """Default mention handle: ``"Jane Doe"`` -> ``jane.doe``, else the email local part."""
    if display_name:
        normalized = unicodedata.normalize("NFKD", display_name).encode("ascii", "ignore").decode()
        handle = re.sub(r"\s+", ".", normalized.strip().lower())
        handle = re.sub(r"[^a-z0-9_.-]", "", handle).strip(".")
        if handle:
            return handle
    return re.sub(r"[^a-z0-9_.-]", "", email.split("@", 1)[0].lower()) or "user"
