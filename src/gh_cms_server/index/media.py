"""
Media Asset Index

Append-only sibling of the collection index: no ordering, no slugs, no
reorder. New media always goes on the last page and ``items`` maps every
media id to its page for direct lookup.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from pydantic import ValidationError as PydanticValidationError

from ..core.errors import BlobNotFoundError, NotFoundError, StoreError
from ..store.base import BlobAccess
from .models import DEFAULT_ITEMS_PER_PAGE, MediaConfig, MediaFile, MediaShard
from .paths import MEDIA_CONFIG_PATH, media_shard_path

logger = logging.getLogger("cms.media")


class MediaIndex:
    """Media index bound to one place in the repository."""

    def __init__(self, access: BlobAccess) -> None:
        self._access = access

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def load_config(self) -> MediaConfig:
        """Raises ``BlobNotFoundError`` when no media was ever uploaded."""
        raw = await self._access.get_json(MEDIA_CONFIG_PATH)
        try:
            return MediaConfig.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError("Malformed media config") from exc

    async def read_shard(self, page: int) -> MediaShard:
        raw = await self._access.get_json(media_shard_path(page))
        try:
            return MediaShard.model_validate(raw)
        except PydanticValidationError as exc:
            raise StoreError(f"Malformed media index page {page}") from exc

    async def lookup(self, media_id: str) -> MediaFile:
        """Resolve metadata for ``media_id`` through ``items`` and its shard."""
        try:
            config = await self.load_config()
            page = config.items.get(media_id)
            if page is None:
                raise NotFoundError(f"Media file not found: {media_id}")
            shard = await self.read_shard(page)
        except BlobNotFoundError as exc:
            raise NotFoundError(f"Media file not found: {media_id}") from exc

        for media in shard.media:
            if media.id == media_id:
                return media
        raise NotFoundError(f"Media file not found: {media_id}")

    async def missing_ids(self, media_ids: Iterable[str]) -> List[str]:
        """
        Return the ids from ``media_ids`` that the index does not know,
        preserving input order. With no media config every id is missing.
        """
        wanted = list(media_ids)
        if not wanted:
            return []

        try:
            config = await self.load_config()
        except BlobNotFoundError:
            return wanted

        return [media_id for media_id in wanted if media_id not in config.items]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def append(self, media: MediaFile) -> int:
        """
        Add ``media`` to the last page, opening a new page when full.

        Initializes the config and first page if the index does not exist
        yet. Returns the page the media landed on.
        """
        try:
            config = await self.load_config()
        except BlobNotFoundError:
            logger.info("Initializing media index")
            config = MediaConfig(
                total_pages=1,
                total_items=0,
                items_per_page=DEFAULT_ITEMS_PER_PAGE,
            )

        target_page = config.total_items // config.items_per_page + 1

        if target_page > config.total_pages:
            shard = MediaShard(page=target_page)
            config.total_pages = target_page
        else:
            try:
                shard = await self.read_shard(target_page)
            except BlobNotFoundError:
                shard = MediaShard(page=target_page)

        shard.media.append(media)
        await self._access.put_json(
            media_shard_path(target_page),
            f"Update media index page {target_page}",
            shard.model_dump_json(),
        )

        config.total_items += 1
        config.items[media.id] = target_page
        await self._access.put_json(
            MEDIA_CONFIG_PATH,
            "Update media config",
            config.model_dump_json(),
        )

        return target_page
