"""Input format validators shared by schemas."""

import re
from typing import Final

MAX_ORG_SLUG_LENGTH: Final[int] = 56
ORG_SLUG_REGEX: Final[str] = r"^[a-z][a-z0-9]*([-_][a-z0-9]+)*$"
HEX_COLOR_REGEX: Final[str] = r"^#[0-9A-Fa-f]{6}$"

_ORG_SLUG_PATTERN: Final[re.Pattern[str]] = re.compile(ORG_SLUG_REGEX)
_HEX_COLOR_PATTERN: Final[re.Pattern[str]] = re.compile(HEX_COLOR_REGEX)


def validate_org_slug_format(slug: str) -> str:
    """Validate organization slug format.

    This validates **format only**. Length is enforced by Field(max_length=...).
    """
    if not _ORG_SLUG_PATTERN.match(slug):
        raise ValueError(
            "Slug must start with a letter and contain only lowercase letters, numbers, "
            "and single hyphens or underscores as separators"
        )
    return slug


def validate_hex_color(color: str) -> str:
    """Validate a ``#RRGGBB`` colour and normalise it to upper case."""
    if not _HEX_COLOR_PATTERN.match(color):
        raise ValueError("Color must be a hex value like #3B82F6")
    return color.upper()
