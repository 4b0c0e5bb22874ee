"""
Ordered Collection Index

Keeps a collection's paginated shard files consistent with its ``order``.

Storage layout (per content type)
---------------------------------
- ``data/<type>/config.json``   ordering, page map, slug aliases, totals
- ``data/<type>/index-<n>.json`` page ``n`` of document snapshots
- ``data/<type>/<id>.json``     the document itself

Shards and the ``items`` page map are caches: they are always re-derived
from ``order`` after it changes, never patched independently. The one
exception is an in-place content update, which rewrites the single shard
that already holds the document.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import BlobNotFoundError, NotFoundError, StoreError
from ..store.base import BlobAccess
from .models import CollectionConfig, Document, IndexShard
from .paths import collection_config_path, collection_shard_path, document_path

logger = logging.getLogger("cms.index")


class CollectionIndex:
    """
    Index engine for one collection, bound to one place in the repository.

    Parameters
    ----------
    access : BlobAccess
        Usually an open transaction; a ref view for read-only use.
    type_slug : str
        Content type slug that names the collection directory.
    """

    def __init__(self, access: BlobAccess, type_slug: str) -> None:
        self._access = access
        self.type_slug = type_slug

    # ------------------------------------------------------------------
    # Config
    # ------------------------------------------------------------------

    async def load_config(self) -> CollectionConfig:
        """
        Fetch and parse the collection config, migrating legacy data.

        Raises
        ------
        NotFoundError
            If the collection has no config blob.
        """
        path = collection_config_path(self.type_slug)
        try:
            raw = await self._access.get_json(path)
        except BlobNotFoundError as exc:
            raise NotFoundError(f"Collection not found: {self.type_slug}") from exc

        try:
            config = CollectionConfig.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(f"Malformed collection config: {path}") from exc

        if not config.order and config.total_pages > 0:
            await self.migrate_to_order(config)

        return config

    async def migrate_to_order(self, config: CollectionConfig) -> None:
        """
        Build ``order`` from existing shards for configs written before it.

        Shards are concatenated in page order. Ids known only to the stale
        ``items`` map but absent from every shard are dropped, as are slug
        aliases pointing at them.
        """
        order: List[str] = []
        seen = set()
        stored_pages = config.total_pages

        for page in range(1, config.total_pages + 1):
            try:
                shard = await self.read_shard(page)
            except BlobNotFoundError:
                continue
            for doc in shard.items:
                if doc.id and doc.id not in seen:
                    seen.add(doc.id)
                    order.append(doc.id)

        config.order = order
        config.slugs = {s: i for s, i in config.slugs.items() if i in seen}
        config.items = {
            item_id: config.page_for_index(index)
            for index, item_id in enumerate(order)
        }
        config.recompute_totals()
        config._stored_pages = stored_pages

        if order:
            logger.info(
                "Migrated %s to ordered config (%d items)",
                self.type_slug,
                len(order),
            )

    async def save_config(self, config: CollectionConfig, message: str) -> None:
        await self._access.put_json(
            collection_config_path(self.type_slug),
            message,
            config.model_dump_json(),
        )

    # ------------------------------------------------------------------
    # Shards
    # ------------------------------------------------------------------

    async def read_shard(self, page: int) -> IndexShard:
        raw = await self._access.get_json(collection_shard_path(self.type_slug, page))
        try:
            return IndexShard.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(
                f"Malformed index page {page} for {self.type_slug}"
            ) from exc

    async def write_shard(self, shard: IndexShard) -> None:
        await self._access.put_json(
            collection_shard_path(self.type_slug, shard.page),
            f"Update index page {shard.page} for {self.type_slug}",
            shard.model_dump_json(exclude_none=True),
        )

    async def _fetch_document(self, item_id: str) -> Document | None:
        try:
            raw = await self._access.get_json(document_path(self.type_slug, item_id))
        except BlobNotFoundError:
            logger.warning(
                "Skipping %s/%s while indexing: document blob missing",
                self.type_slug,
                item_id,
            )
            return None
        return Document.model_validate(raw)

    async def regenerate_shards_from(
        self,
        config: CollectionConfig,
        from_page: int,
    ) -> List[int]:
        """
        Rewrite every shard from ``from_page`` to the last page.

        Shards past the new last page are deleted when the collection shrank.
        The ``items`` map is rebuilt: untouched pages purely from ``order``,
        regenerated pages from what was actually written. Totals are
        recomputed.

        Returns
        -------
        List[int]
            The pages that were written.
        """
        from_page = max(1, from_page)
        previous_pages = max(config.total_pages, config._stored_pages)
        config._stored_pages = 0
        config.recompute_totals()

        written: List[int] = []
        membership: Dict[str, int] = {}

        for page in range(from_page, config.total_pages + 1):
            docs: List[Document] = []
            for item_id in config.ids_for_page(page):
                doc = await self._fetch_document(item_id)
                if doc is None:
                    continue
                docs.append(doc)
                membership[item_id] = page

            await self.write_shard(IndexShard(page=page, items=docs))
            written.append(page)

        for page in range(config.total_pages + 1, previous_pages + 1):
            try:
                await self._access.delete(
                    collection_shard_path(self.type_slug, page),
                    f"Remove index page {page} for {self.type_slug}",
                )
            except BlobNotFoundError:
                logger.debug("Index page %d for %s already gone", page, self.type_slug)

        items: Dict[str, int] = {}
        for index, item_id in enumerate(config.order):
            page = config.page_for_index(index)
            if page < from_page:
                items[item_id] = page
        items.update(membership)
        config.items = items

        return written

    async def patch_shard(self, config: CollectionConfig, document: Document) -> int:
        """
        Replace ``document`` inside the shard of the page that holds it.

        If the shard does not list the document it is appended. Returns the
        page written.
        """
        page = config.page_of(document.id)

        try:
            shard = await self.read_shard(page)
        except BlobNotFoundError:
            logger.warning(
                "Index page %d for %s missing; recreating it",
                page,
                self.type_slug,
            )
            shard = IndexShard(page=page)

        for i, item in enumerate(shard.items):
            if item.id == document.id:
                shard.items[i] = document
                break
        else:
            logger.warning(
                "%s/%s missing from index page %d; appending",
                self.type_slug,
                document.id,
                page,
            )
            shard.items.append(document)

        await self.write_shard(shard)
        return page
