"""
Content Type Models

Schema records stored in ``config/config.json``. A content type owns the
field definitions its documents are validated against, its page size and
where new documents are inserted.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FieldType = Literal["text", "textarea", "number", "boolean", "select", "media"]


class FieldDefinition(BaseModel):
    """
    One field of a content type.

    ``options`` holds the allowed values of a ``select`` field, or the flag
    ``"multiple"`` for a ``media`` field that takes a list of media ids.
    """
    field_name: str = Field(..., min_length=1)
    field_type: FieldType
    is_required: bool = False
    options: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("options", mode="before")
    @classmethod
    def _nil_options(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def multiple(self) -> bool:
        return "multiple" in self.options


class ContentType(BaseModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    fields: List[FieldDefinition] = Field(default_factory=list)
    items_per_page: int = 0
    add_to: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("fields", mode="before")
    @classmethod
    def _nil_fields(cls, v: Any) -> Any:
        return [] if v is None else v

    def field(self, name: str) -> Optional[FieldDefinition]:
        for definition in self.fields:
            if definition.field_name == name:
                return definition
        return None

    @property
    def insert_position(self) -> Literal["top", "bottom"]:
        return "top" if self.add_to == "top" else "bottom"


class RepoConfig(BaseModel):
    """``config/config.json``: site settings and the content type registry."""
    site_name: str = ""
    content_types: List[ContentType] = Field(default_factory=list)
    initialization_date: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("content_types", mode="before")
    @classmethod
    def _nil_types(cls, v: Any) -> Any:
        return [] if v is None else v

    def content_type(self, slug: str) -> Optional[ContentType]:
        for ct in self.content_types:
            if ct.slug == slug:
                return ct
        return None
