"""
Media Service

Uploads, listings and downloads of raw media blobs under ``media/``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional, Tuple

from ..core.errors import BlobNotFoundError, NotFoundError, ValidationError
from ..index.media import MediaIndex
from ..index.models import MediaFile, MediaPage
from ..index.paths import media_blob_path
from ..store.base import BlobStore
from ..store.transaction import BranchTransaction

logger = logging.getLogger("cms.media")

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class MediaService:
    def __init__(self, store: BlobStore) -> None:
        self._store = store

    async def upload(
        self,
        file_name: str,
        content: bytes,
        file_type: Optional[str] = None,
    ) -> MediaFile:
        """
        Store ``content`` under a fresh media id and index it.

        The blob and both index files are written in one transaction.
        """
        file_name = (file_name or "").strip()
        if not file_name:
            raise ValidationError("file_name is required")

        media = MediaFile(
            id=str(uuid.uuid4()),
            file_name=file_name,
            file_type=file_type or DEFAULT_MEDIA_TYPE,
        )

        async with BranchTransaction(self._store, f"Added new media - {media.id}") as txn:
            await txn.put(media_blob_path(media.id), f"Upload media file: {file_name}", content)
            page = await MediaIndex(txn).append(media)

        logger.info("Uploaded media %s (%s) to page %d", media.id, file_name, page)
        return media

    async def list_page(self, page: int = 1) -> MediaPage:
        index = MediaIndex(self._store.view())

        try:
            config = await index.load_config()
        except BlobNotFoundError:
            if page == 1:
                return MediaPage(page=1, media=[], total_pages=1, total_items=0)
            raise ValidationError("Page exceeds total pages")

        if page < 1 or page > config.total_pages:
            raise ValidationError("Page exceeds total pages")

        try:
            shard = await index.read_shard(page)
            media = shard.media
        except BlobNotFoundError:
            logger.warning("Media index page %d missing", page)
            media = []

        return MediaPage(
            page=page,
            media=media,
            total_pages=config.total_pages,
            total_items=config.total_items,
        )

    async def get(self, media_id: str) -> Tuple[MediaFile, bytes]:
        """Return metadata and raw content of one media file."""
        view = self._store.view()
        media = await MediaIndex(view).lookup(media_id)

        try:
            content = await view.get(media_blob_path(media_id))
        except BlobNotFoundError as exc:
            raise NotFoundError(f"Media file not found: {media_id}") from exc

        return media, content
