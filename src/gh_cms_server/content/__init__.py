"""
Content Package

Content type schema records, field value validation and slug rules.
"""

from .models import ContentType, FieldDefinition, RepoConfig
from .fields import FieldValue, validate_field, validate_values
from .slugs import normalize_slug, validate_slug

__all__ = [
    "ContentType",
    "FieldDefinition",
    "RepoConfig",
    "FieldValue",
    "validate_field",
    "validate_values",
    "normalize_slug",
    "validate_slug",
]
