"""
Document CRUD Service

Validates and executes create / read / list / update / delete / reorder
against one collection, composing the branch transaction with the
collection and media indexes.

Design Goals
------------
- Every write operation is exactly one branch transaction
- Field values, slugs and media references are validated before any write
- Shards are regenerated from ``order`` after every order change; an
  in-place update patches only the page holding the document
- Checks that fail after the branch was opened abandon it instead of
  leaving an orphan behind
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..content.fields import FieldValue, media_ids, validate_values
from ..content.models import ContentType
from ..content.slugs import is_bookkeeping_name, normalize_slug, validate_slug
from ..core.errors import (
    BlobNotFoundError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..index.collection import CollectionIndex
from ..index.media import MediaIndex
from ..index.models import CollectionConfig, Document, DocumentPage
from ..index.paths import document_path
from ..store.base import BlobAccess, BlobStore
from ..store.transaction import BranchTransaction, abandon_with
from .content_types import ContentTypeService

logger = logging.getLogger("cms.documents")


@dataclass(frozen=True)
class ReorderResult:
    position: int
    changed: bool


class DocumentService:
    """
    Document operations for every collection of one repository.

    Parameters
    ----------
    store : BlobStore
        Store bound to the caller's credential and repository.
    """

    def __init__(self, store: BlobStore) -> None:
        self._store = store
        self._content_types = ContentTypeService(store)

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    async def _validate(
        self,
        content_type: ContentType,
        values: Mapping[str, Any],
        slug: Optional[str],
    ) -> Optional[str]:
        """Validate slug, field values and media references; return the slug."""
        slug = normalize_slug(slug)
        if slug is not None:
            validate_slug(slug)

        typed = validate_values(content_type, values)
        await self._check_media_refs(typed)
        return slug

    async def _check_media_refs(self, typed: Mapping[str, FieldValue]) -> None:
        refs = media_ids(typed)
        if not refs:
            return

        wanted = [media_id for ids in refs.values() for media_id in ids]
        missing = set(await MediaIndex(self._store.view()).missing_ids(wanted))

        for name, ids in refs.items():
            invalid = [media_id for media_id in ids if media_id in missing]
            if invalid:
                raise ValidationError(
                    f"Invalid media ID(s) for field {name}: {', '.join(invalid)}"
                )

    async def _load_for_write(
        self,
        txn: BranchTransaction,
        index: CollectionIndex,
    ) -> CollectionConfig:
        try:
            return await index.load_config()
        except NotFoundError as exc:
            await abandon_with(txn, exc)

    # ------------------------------------------------------------------
    # Blob helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _put_document(
        access: BlobAccess,
        type_slug: str,
        key: str,
        document: Document,
        message: str,
    ) -> None:
        await access.put_json(document_path(type_slug, key), message, document.to_blob())

    @staticmethod
    async def _delete_alias(
        access: BlobAccess,
        type_slug: str,
        slug: str,
        item_id: str,
    ) -> None:
        try:
            await access.delete(
                document_path(type_slug, slug),
                f"Delete slug file for content value {item_id}",
            )
        except BlobNotFoundError:
            logger.warning(
                "Slug file %s/%s for %s already missing",
                type_slug,
                slug,
                item_id,
            )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        type_slug: str,
        values: Mapping[str, Any],
        slug: Optional[str] = None,
    ) -> Document:
        """
        Create a document with a fresh id and place it per the content
        type's ``add_to`` policy.

        Raises
        ------
        ValidationError
            Bad slug, field value or media reference.
        ConflictError
            If ``slug`` is already taken in the collection.
        NotFoundError
            Unknown content type or collection.
        """
        content_type = await self._content_types.get_content_type(type_slug)
        slug = await self._validate(content_type, values, slug)

        document = Document(id=str(uuid.uuid4()), slug=slug, values=dict(values))
        position = content_type.insert_position

        message = f"Added new content value - {type_slug}/{document.id}"
        async with BranchTransaction(self._store, message) as txn:
            index = CollectionIndex(txn, type_slug)
            config = await self._load_for_write(txn, index)

            if slug is not None and slug in config.slugs:
                await abandon_with(txn, ConflictError(f"Slug '{slug}' is already in use"))

            await self._put_document(
                txn,
                type_slug,
                document.id,
                document,
                f"Add new content value to {type_slug}",
            )

            if slug is not None:
                await self._put_document(
                    txn,
                    type_slug,
                    slug,
                    document,
                    f"Add slug file for content value {document.id}",
                )
                config.slugs[slug] = document.id

            config.insert_id(document.id, position)

            if position == "top":
                from_page = 1
            else:
                from_page = config.page_for_index(len(config.order) - 1)

            await index.regenerate_shards_from(config, from_page)
            await index.save_config(config, f"Update config for {type_slug}")

        logger.info("Created %s/%s (%s)", type_slug, document.id, position)
        return document

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read(self, type_slug: str, id_or_slug: str) -> Document:
        """Fetch a published document by id or slug alias."""
        if is_bookkeeping_name(id_or_slug):
            raise NotFoundError(f"Content value not found: {id_or_slug}")

        try:
            raw = await self._store.view().get_json(document_path(type_slug, id_or_slug))
        except BlobNotFoundError as exc:
            raise NotFoundError(f"Content value not found: {id_or_slug}") from exc

        try:
            return Document.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(f"Malformed content value: {type_slug}/{id_or_slug}") from exc

    async def list_page(self, type_slug: str, page: int = 1) -> DocumentPage:
        """
        Return one published page of the collection with its totals.

        Raises
        ------
        ValidationError
            If ``page`` is below 1 or beyond the last page.
        """
        index = CollectionIndex(self._store.view(), type_slug)
        config = await index.load_config()

        if page < 1 or page > config.total_pages:
            raise ValidationError(
                f"Page {page} out of range (total pages: {config.total_pages})"
            )

        try:
            shard = await index.read_shard(page)
            items = shard.items
        except BlobNotFoundError:
            logger.warning("Index page %d for %s missing", page, type_slug)
            items = []

        return DocumentPage(
            page=page,
            items=items,
            total_pages=config.total_pages,
            total_items=config.total_items,
        )

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update(
        self,
        type_slug: str,
        item_id: str,
        values: Mapping[str, Any],
        slug: Optional[str] = None,
    ) -> Document:
        """
        Replace the values and slug of an existing document in place.

        An absent slug removes the document's alias. The document keeps its
        position; only the index page holding it is rewritten, and the
        collection config only when the slug changed.
        """
        content_type = await self._content_types.get_content_type(type_slug)
        slug = await self._validate(content_type, values, slug)

        document = Document(id=item_id, slug=slug, values=dict(values))

        message = f"Edit content value - {type_slug}/{item_id}"
        async with BranchTransaction(self._store, message) as txn:
            index = CollectionIndex(txn, type_slug)
            config = await self._load_for_write(txn, index)

            if config.position_of(item_id) is None:
                await abandon_with(txn, NotFoundError(f"Content value not found: {item_id}"))

            old_slug = config.slug_for(item_id)
            slug_changed = slug != old_slug

            if slug_changed and slug is not None and config.slugs.get(slug, item_id) != item_id:
                await abandon_with(txn, ConflictError(f"Slug '{slug}' is already in use"))

            await self._put_document(
                txn,
                type_slug,
                item_id,
                document,
                f"Update content value {item_id} in {type_slug}",
            )

            if slug_changed:
                if old_slug is not None:
                    await self._delete_alias(txn, type_slug, old_slug, item_id)
                    del config.slugs[old_slug]
                if slug is not None:
                    await self._put_document(
                        txn,
                        type_slug,
                        slug,
                        document,
                        f"Add slug file for content value {item_id}",
                    )
                    config.slugs[slug] = item_id
            elif slug is not None:
                await self._put_document(
                    txn,
                    type_slug,
                    slug,
                    document,
                    f"Update slug file for content value {item_id}",
                )

            await index.patch_shard(config, document)

            if slug_changed:
                await index.save_config(config, f"Update config for {type_slug}")

        logger.info("Updated %s/%s", type_slug, item_id)
        return document

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete(self, type_slug: str, item_id: str) -> None:
        """Remove a document, its slug alias and its place in the order."""
        message = f"Deleted content value - {type_slug}/{item_id}"
        async with BranchTransaction(self._store, message) as txn:
            index = CollectionIndex(txn, type_slug)
            config = await self._load_for_write(txn, index)

            if config.position_of(item_id) is None:
                await abandon_with(txn, NotFoundError(f"Content value not found: {item_id}"))

            slug = config.slug_for(item_id)
            page = config.remove_id(item_id)

            try:
                await txn.delete(
                    document_path(type_slug, item_id),
                    f"Delete content value {item_id} from {type_slug}",
                )
            except BlobNotFoundError:
                logger.warning("Content value blob %s/%s already missing", type_slug, item_id)

            if slug is not None:
                await self._delete_alias(txn, type_slug, slug, item_id)

            await index.regenerate_shards_from(config, page)
            await index.save_config(config, f"Update config for {type_slug}")

        logger.info("Deleted %s/%s", type_slug, item_id)

    # ------------------------------------------------------------------
    # Reorder
    # ------------------------------------------------------------------

    async def reorder(self, type_slug: str, item_id: str, position: int) -> ReorderResult:
        """
        Move a document to the 1-based ``position``.

        Moving a document to where it already is writes nothing and
        publishes nothing.

        Raises
        ------
        ValidationError
            If ``position`` is outside ``[1, total_items]``.
        """
        message = f"Reordered content value {item_id} to position {position} in {type_slug}"
        async with BranchTransaction(self._store, message) as txn:
            index = CollectionIndex(txn, type_slug)
            config = await self._load_for_write(txn, index)

            current = config.position_of(item_id)
            if current is None:
                await abandon_with(txn, NotFoundError(f"Content value not found: {item_id}"))

            if position < 1 or position > len(config.order):
                await abandon_with(
                    txn,
                    ValidationError(f"Position must be between 1 and {len(config.order)}"),
                )

            if current + 1 == position:
                await txn.abandon()
                return ReorderResult(position=position, changed=False)

            from_page = config.move_id(item_id, position)
            await index.regenerate_shards_from(config, from_page)
            await index.save_config(config, f"Update config for {type_slug}")

        logger.info("Moved %s/%s to position %d", type_slug, item_id, position)
        return ReorderResult(position=position, changed=True)

