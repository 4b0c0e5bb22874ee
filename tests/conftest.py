import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest

from gh_cms_server.content.models import ContentType, FieldDefinition, RepoConfig
from gh_cms_server.core.errors import BlobNotFoundError, StoreError
from gh_cms_server.index.models import CollectionConfig, IndexShard
from gh_cms_server.index.paths import (
    REPO_CONFIG_PATH,
    collection_config_path,
    collection_shard_path,
)
from gh_cms_server.store.base import BlobStore


class InMemoryBlobStore(BlobStore):
    """
    Branch-aware fake store.

    A merge applies every path the head branch changed since it was forked,
    so concurrent merges behave as last-merge-wins per path, like the real
    backend. Setting ``merge_gate`` holds every merge until the event fires.
    """

    def __init__(self, default: str = "main", empty: bool = False) -> None:
        self.default = default
        self.empty = empty
        self.branches: Dict[str, Dict[str, bytes]] = {default: {}}
        self.forks: Dict[str, Dict[str, bytes]] = {}
        self.writes: List[Tuple[str, str, str]] = []
        self.merges: List[str] = []
        self.merge_gate: Optional[asyncio.Event] = None
        self.waiting_merges = 0

    def _files(self, ref: Optional[str]) -> Dict[str, bytes]:
        name = ref or self.default
        if name not in self.branches:
            raise StoreError(f"No such branch: {name}")
        return self.branches[name]

    # Blobs

    async def get_blob(self, path: str, ref: Optional[str] = None) -> bytes:
        files = self._files(ref)
        if path not in files:
            raise BlobNotFoundError(path, ref)
        return files[path]

    async def put_blob(self, path, message, content, ref=None) -> None:
        self._files(ref)[path] = bytes(content)
        self.writes.append(("put", path, ref or self.default))
        if ref in (None, self.default):
            self.empty = False

    async def delete_blob(self, path, message, ref=None) -> None:
        files = self._files(ref)
        if path not in files:
            raise BlobNotFoundError(path, ref)
        del files[path]
        self.writes.append(("delete", path, ref or self.default))

    # Branches

    async def default_branch(self) -> str:
        return self.default

    async def create_branch(self, name, source_ref=None) -> None:
        if self.empty:
            raise StoreError("Git Repository is empty")
        if name in self.branches:
            raise StoreError(f"Branch exists: {name}")
        source = self._files(source_ref)
        self.branches[name] = dict(source)
        self.forks[name] = dict(source)

    async def merge_branch(self, head, message, base=None) -> None:
        if self.merge_gate is not None:
            self.waiting_merges += 1
            await self.merge_gate.wait()

        head_files = self._files(head)
        fork = self.forks[head]
        target = self._files(base)

        for path in set(head_files) | set(fork):
            if head_files.get(path) == fork.get(path):
                continue
            if path in head_files:
                target[path] = head_files[path]
            else:
                target.pop(path, None)
        self.merges.append(message)

    async def delete_branch(self, name) -> None:
        if name not in self.branches or name == self.default:
            raise StoreError(f"Cannot delete branch: {name}")
        del self.branches[name]
        self.forks.pop(name, None)

    async def is_empty(self) -> Tuple[bool, str]:
        return self.empty, self.default

    # Test helpers

    def published(self, path: str) -> Any:
        return json.loads(self.branches[self.default][path])

    def seed(self, path: str, payload: Any) -> None:
        data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self.branches[self.default][path] = data

    def branch_writes(self) -> List[Tuple[str, str, str]]:
        return [w for w in self.writes if w[2] != self.default]


def make_content_type(
    slug: str = "posts",
    items_per_page: int = 10,
    add_to: str = "bottom",
    fields: Optional[List[FieldDefinition]] = None,
) -> ContentType:
    if fields is None:
        fields = [
            FieldDefinition(field_name="title", field_type="text", is_required=True),
            FieldDefinition(field_name="body", field_type="textarea"),
            FieldDefinition(field_name="rating", field_type="number"),
            FieldDefinition(field_name="published", field_type="boolean"),
            FieldDefinition(
                field_name="status",
                field_type="select",
                options=["draft", "live"],
            ),
            FieldDefinition(field_name="cover", field_type="media"),
            FieldDefinition(
                field_name="gallery",
                field_type="media",
                options=["multiple"],
            ),
        ]
    return ContentType(
        id=f"ct-{slug}",
        name=slug.title(),
        slug=slug,
        fields=fields,
        items_per_page=items_per_page,
        add_to=add_to,
    )


def seed_collection(store: InMemoryBlobStore, content_type: ContentType) -> None:
    """Publish a repo config holding ``content_type`` and its empty collection."""
    path = REPO_CONFIG_PATH
    if path in store.branches[store.default]:
        config = RepoConfig.model_validate(store.published(path))
    else:
        config = RepoConfig(site_name="Test site", initialization_date="2024-01-01")
    config.content_types.append(content_type)
    store.seed(path, json.loads(config.model_dump_json()))

    collection = CollectionConfig(items_per_page=content_type.items_per_page)
    store.seed(
        collection_config_path(content_type.slug),
        json.loads(collection.model_dump_json()),
    )
    store.seed(
        collection_shard_path(content_type.slug, 1),
        json.loads(IndexShard(page=1).model_dump_json()),
    )


@pytest.fixture
def store() -> InMemoryBlobStore:
    return InMemoryBlobStore()
