"""Slug format rules for documents and content types."""

from __future__ import annotations

import re
from typing import Optional

from ..core.errors import ValidationError

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

# Aliases live next to id blobs and bookkeeping files in ``data/<type>/``.
_INDEX_PAGE = re.compile(r"^index-\d+$")
_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)
_RESERVED = frozenset({"config"})


def normalize_slug(slug: Optional[str]) -> Optional[str]:
    """Treat an empty slug as no slug."""
    if slug is None:
        return None
    slug = slug.strip()
    return slug or None


def validate_slug(slug: str, reserved: bool = True) -> str:
    """
    Raise ``ValidationError`` unless ``slug`` is lowercase words joined by
    single hyphens. With ``reserved`` the names that would shadow a config,
    index page or id blob are refused too.
    """
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            f"Invalid slug '{slug}': use lowercase letters, digits and single hyphens"
        )

    if reserved and (slug in _RESERVED or _INDEX_PAGE.match(slug) or _UUID.match(slug)):
        raise ValidationError(f"Slug '{slug}' is reserved")

    return slug


def is_bookkeeping_name(key: str) -> bool:
    """True for names of collection files that are not documents."""
    return key in _RESERVED or bool(_INDEX_PAGE.match(key))
