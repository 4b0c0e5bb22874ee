"""
Index Models

Persistent shapes of the collection and media indexes, plus the pure
ordering operations on a collection's ``order``.

Collection invariants
---------------------
- ``order`` is authoritative; every id appears at most once.
- ``total_items == len(order)``
- ``total_pages == max(1, ceil(total_items / items_per_page))``
- every value in ``slugs`` is a member of ``order``
- the page of an id is always ``position // items_per_page + 1``; the
  ``items`` map is only a cache of that.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..core.errors import NotFoundError, ValidationError

DEFAULT_ITEMS_PER_PAGE = 10

InsertPosition = Literal["top", "bottom"]


def pages_for(total_items: int, items_per_page: int) -> int:
    """Number of pages needed for ``total_items``; never less than one."""
    if total_items <= 0:
        return 1
    return (total_items - 1) // items_per_page + 1


def _coerce_items_per_page(value: Any) -> int:
    if value is None or int(value) <= 0:
        return DEFAULT_ITEMS_PER_PAGE
    return int(value)


# ---------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------

class Document(BaseModel):
    """
    A content value: immutable id, optional unique slug, field values.
    """
    id: Optional[str] = None
    slug: Optional[str] = None
    values: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def to_blob(self) -> str:
        return self.model_dump_json(exclude_none=True)


class IndexShard(BaseModel):
    """One page of denormalized document snapshots."""
    page: int = Field(..., ge=1)
    items: List[Document] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _nil_items(cls, v: Any) -> Any:
        return [] if v is None else v


# ---------------------------------------------------------------------
# Collection Config
# ---------------------------------------------------------------------

class CollectionConfig(BaseModel):
    """
    ``data/<type>/config.json``: ordering, page map and slug aliases.
    """
    total_pages: int = 1
    total_items: int = 0
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    items: Dict[str, int] = Field(default_factory=dict)
    slugs: Dict[str, str] = Field(default_factory=dict)
    order: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    # Page count found on disk before a migration, so trailing shards past
    # the recomputed total are still cleaned up on the next regeneration.
    _stored_pages: int = PrivateAttr(default=0)

    @field_validator("items", "slugs", mode="before")
    @classmethod
    def _nil_maps(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("order", mode="before")
    @classmethod
    def _nil_order(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("items_per_page", mode="before")
    @classmethod
    def _default_page_size(cls, v: Any) -> int:
        return _coerce_items_per_page(v)

    @field_validator("total_pages", "total_items", mode="before")
    @classmethod
    def _nil_counts(cls, v: Any) -> Any:
        return 0 if v is None else v

    # ------------------------------------------------------------------
    # Derived positions
    # ------------------------------------------------------------------

    def page_for_index(self, index: int) -> int:
        return index // self.items_per_page + 1

    def position_of(self, item_id: str) -> Optional[int]:
        """0-based position of ``item_id`` in ``order`` or None."""
        try:
            return self.order.index(item_id)
        except ValueError:
            return None

    def page_of(self, item_id: str) -> int:
        index = self.position_of(item_id)
        if index is None:
            raise NotFoundError(f"Content value not found: {item_id}")
        return self.page_for_index(index)

    def ids_for_page(self, page: int) -> List[str]:
        start = (page - 1) * self.items_per_page
        return self.order[start:start + self.items_per_page]

    def computed_total_pages(self) -> int:
        return pages_for(len(self.order), self.items_per_page)

    def recompute_totals(self) -> None:
        self.total_items = len(self.order)
        self.total_pages = self.computed_total_pages()

    def slug_for(self, item_id: str) -> Optional[str]:
        for slug, value_id in self.slugs.items():
            if value_id == item_id:
                return slug
        return None

    # ------------------------------------------------------------------
    # Order mutations
    # ------------------------------------------------------------------

    def insert_id(self, item_id: str, position: InsertPosition = "bottom") -> None:
        """
        Prepend or append ``item_id``. Shards are not touched.
        """
        if item_id in self.order:
            raise ValueError(f"Id already present in order: {item_id}")

        if position == "top":
            self.order.insert(0, item_id)
        else:
            self.order.append(item_id)

    def remove_id(self, item_id: str) -> int:
        """
        Drop ``item_id`` from the order and its slug alias.

        Returns the page the id occupied before removal.
        """
        index = self.position_of(item_id)
        if index is None:
            raise NotFoundError(f"Content value not found: {item_id}")

        page = self.page_for_index(index)
        del self.order[index]
        self.items.pop(item_id, None)

        slug = self.slug_for(item_id)
        if slug is not None:
            del self.slugs[slug]

        return page

    def move_id(self, item_id: str, new_position: int) -> int:
        """
        Move ``item_id`` to the 1-based ``new_position``.

        The item is removed first and reinserted at ``new_position - 1``,
        shifted left by one when that index followed the removal point, so
        a downward move settles one slot above the requested position.

        Returns the earliest page whose membership changed.
        """
        total = len(self.order)
        if new_position < 1 or new_position > total:
            raise ValidationError(f"Position must be between 1 and {total}")

        current = self.position_of(item_id)
        if current is None:
            raise NotFoundError(f"Content value not found: {item_id}")

        target = new_position - 1
        old_page = self.page_for_index(current)
        new_page = self.page_for_index(target)

        del self.order[current]
        # The target index shifts left when it followed the removal point.
        if target > current:
            target -= 1
        self.order.insert(target, item_id)

        return min(old_page, new_page)


# ---------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------

class MediaFile(BaseModel):
    id: str
    file_name: str
    file_type: str


class MediaShard(BaseModel):
    page: int = Field(..., ge=1)
    media: List[MediaFile] = Field(default_factory=list)

    @field_validator("media", mode="before")
    @classmethod
    def _nil_media(cls, v: Any) -> Any:
        return [] if v is None else v


class MediaConfig(BaseModel):
    """``media/config.json``: append-only page map."""
    total_pages: int = 1
    total_items: int = 0
    items_per_page: int = DEFAULT_ITEMS_PER_PAGE
    items: Dict[str, int] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("items", mode="before")
    @classmethod
    def _nil_items(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("items_per_page", mode="before")
    @classmethod
    def _default_page_size(cls, v: Any) -> int:
        return _coerce_items_per_page(v)


# ---------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------

class DocumentPage(BaseModel):
    """One page of a collection listing plus collection totals."""
    page: int
    items: List[Document]
    total_pages: int
    total_items: int


class MediaPage(BaseModel):
    page: int
    media: List[MediaFile]
    total_pages: int
    total_items: int
