"""
Content Type & Repository Service

Bootstraps a repository for the CMS and manages the content type registry
kept in ``config/config.json``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List

from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..content.models import ContentType, RepoConfig
from ..content.slugs import validate_slug
from ..core.errors import (
    BlobNotFoundError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from ..index.models import CollectionConfig, IndexShard
from ..index.paths import (
    CONTENT_KEEP_PATH,
    MEDIA_KEEP_PATH,
    REPO_CONFIG_PATH,
    collection_config_path,
    collection_shard_path,
)
from ..store.base import BlobAccess, BlobStore
from ..store.transaction import BranchTransaction, abandon_with

logger = logging.getLogger("cms.content_types")

# Path segments taken by fixed routes next to ``/{owner}/{repo}/{type}``.
ROUTE_SEGMENTS = frozenset({"config", "init", "content-types", "media"})


async def read_repo_config(access: BlobAccess) -> RepoConfig:
    try:
        raw = await access.get_json(REPO_CONFIG_PATH)
    except BlobNotFoundError as exc:
        raise NotFoundError("Repository is not initialized") from exc

    try:
        return RepoConfig.model_validate(raw)
    except PydanticValidationError as exc:
        raise StoreError("Malformed repository config") from exc


class ContentTypeService:
    """
    Repository bootstrap and content type CRUD for one repository.

    Parameters
    ----------
    store : BlobStore
        Store bound to the caller's credential and repository.
    """

    def __init__(self, store: BlobStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Repository
    # ------------------------------------------------------------------

    async def get_repo_config(self) -> RepoConfig:
        return await read_repo_config(self._store.view())

    async def initialize_repo(self, site_name: str) -> RepoConfig:
        """
        Write the initial repository config and folder placeholders.

        A repository without commits cannot branch, so it is written
        directly on its default branch; otherwise the files are staged in
        one transaction.

        Raises
        ------
        ConflictError
            If the repository already has a config.
        """
        empty, default_branch = await self._store.is_empty()

        if not empty:
            try:
                await self.get_repo_config()
            except NotFoundError:
                pass
            else:
                raise ConflictError("Repository is already initialized")

        config = RepoConfig(
            site_name=site_name,
            content_types=[],
            initialization_date=datetime.now(timezone.utc).isoformat(),
        )
        message = "Initialize CMS repository"

        async def write(access: BlobAccess) -> None:
            await access.put_json(REPO_CONFIG_PATH, message, config.model_dump_json())
            await access.put(CONTENT_KEEP_PATH, message, b"")
            await access.put(MEDIA_KEEP_PATH, message, b"")

        if empty:
            logger.info("Initializing empty repository on %s", default_branch)
            await write(self._store.view(default_branch))
        else:
            async with BranchTransaction(self._store, message) as txn:
                await write(txn)

        return config

    # ------------------------------------------------------------------
    # Content Types
    # ------------------------------------------------------------------

    async def list_content_types(self) -> List[ContentType]:
        config = await self.get_repo_config()
        return config.content_types

    async def get_content_type(self, slug: str) -> ContentType:
        config = await self.get_repo_config()
        content_type = config.content_type(slug)
        if content_type is None:
            raise NotFoundError(f"Content type not found: {slug}")
        return content_type

    async def create_content_type(self, content_type: ContentType) -> ContentType:
        """
        Register ``content_type`` and create its empty collection.

        The repository config, collection config and first index page are
        written in one transaction.
        """
        content_type = self._normalize(content_type)

        message = f"Added new content type - {content_type.name}"
        async with BranchTransaction(self._store, message) as txn:
            try:
                config = await read_repo_config(txn)
            except NotFoundError as exc:
                await abandon_with(txn, exc)

            if config.content_type(content_type.slug) is not None:
                await abandon_with(
                    txn,
                    ConflictError(f"Content type '{content_type.slug}' already exists"),
                )

            config.content_types.append(content_type)
            await txn.put_json(
                REPO_CONFIG_PATH,
                f"Create Content Type: {content_type.name}",
                config.model_dump_json(),
            )

            collection = CollectionConfig(items_per_page=content_type.items_per_page)
            await txn.put_json(
                collection_config_path(content_type.slug),
                f"Create data folder for content type: {content_type.name}",
                collection.model_dump_json(),
            )
            await txn.put_json(
                collection_shard_path(content_type.slug, 1),
                f"Create index file for content type: {content_type.name}",
                IndexShard(page=1).model_dump_json(),
            )

        logger.info("Created content type %s", content_type.slug)
        return content_type

    @staticmethod
    def _normalize(content_type: ContentType) -> ContentType:
        validate_slug(content_type.slug, reserved=False)
        if content_type.slug in ROUTE_SEGMENTS:
            raise ValidationError(f"Content type slug '{content_type.slug}' is reserved")

        items_per_page = content_type.items_per_page
        if items_per_page <= 0:
            items_per_page = settings.default_items_per_page
        elif items_per_page > settings.max_items_per_page:
            raise ValidationError(
                f"items_per_page must not exceed {settings.max_items_per_page}"
            )

        add_to = content_type.add_to or "bottom"
        if add_to not in ("top", "bottom"):
            raise ValidationError("add_to must be 'top' or 'bottom'")

        seen = set()
        for definition in content_type.fields:
            if definition.field_name in seen:
                raise ValidationError(f"Duplicate field {definition.field_name}")
            seen.add(definition.field_name)

        return content_type.model_copy(
            update={
                "id": str(uuid.uuid4()),
                "items_per_page": items_per_page,
                "add_to": add_to,
            }
        )
