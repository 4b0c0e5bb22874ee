"""
API Models for the CMS Server

Request/response models used by the HTTP routes. Listing and document
shapes are shared with the index layer and re-exported here.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Clear schema documentation
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..content.models import FieldDefinition
from ..index.models import Document, DocumentPage, MediaFile, MediaPage

__all__ = [
    "Document",
    "DocumentPage",
    "MediaFile",
    "MediaPage",
    "DocumentPayload",
    "ReorderRequest",
    "ReorderResult",
    "ContentTypeRequest",
    "InitRepoRequest",
    "OperationResult",
]


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["deleted"]
    message: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class DocumentPayload(BaseModel):
    """
    Body of a create or update call.

    An empty or absent ``slug`` means the document has no slug alias.
    """
    slug: Optional[str] = None
    values: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ReorderRequest(BaseModel):
    # Range against the collection size is checked by the service.
    position: int

    model_config = ConfigDict(extra="forbid")


class ReorderResult(BaseModel):
    status: Literal["reordered", "unchanged"]
    position: int


# ---------------------------------------------------------------------
# Repository & Content Types
# ---------------------------------------------------------------------

class InitRepoRequest(BaseModel):
    site_name: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class ContentTypeRequest(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    fields: List[FieldDefinition] = Field(default_factory=list)
    items_per_page: int = 0
    add_to: Optional[str] = None

    model_config = ConfigDict(extra="forbid")
