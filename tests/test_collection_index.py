import json
import logging

import pytest

from gh_cms_server.core.errors import NotFoundError, StoreError
from gh_cms_server.index.collection import CollectionIndex
from gh_cms_server.index.models import CollectionConfig, Document, IndexShard
from gh_cms_server.index.paths import (
    collection_config_path,
    collection_shard_path,
    document_path,
)


def _seed_docs(store, ids, type_slug="posts"):
    for item_id in ids:
        store.seed(
            document_path(type_slug, item_id),
            {"id": item_id, "values": {"title": item_id.upper()}},
        )


def _shard_ids(store, page, type_slug="posts"):
    shard = store.published(collection_shard_path(type_slug, page))
    return [item["id"] for item in shard["items"]]


@pytest.mark.asyncio
async def test_load_config_missing_collection(store):
    with pytest.raises(NotFoundError):
        await CollectionIndex(store.view(), "posts").load_config()


@pytest.mark.asyncio
async def test_load_config_malformed(store):
    store.seed(collection_config_path("posts"), {"order": "not-a-list"})
    with pytest.raises(StoreError):
        await CollectionIndex(store.view(), "posts").load_config()


@pytest.mark.asyncio
async def test_legacy_config_is_migrated_from_shards(store):
    store.seed(
        collection_config_path("posts"),
        {
            "total_pages": 2,
            "total_items": 4,
            "items_per_page": 2,
            "items": {"a": 1, "b": 1, "c": 2, "ghost": 2},
            "slugs": {"see": "c", "boo": "ghost"},
        },
    )
    store.seed(
        collection_shard_path("posts", 1),
        {"page": 1, "items": [{"id": "a", "values": {}}, {"id": "b", "values": {}}]},
    )
    store.seed(
        collection_shard_path("posts", 2),
        {"page": 2, "items": [{"id": "c", "values": {}}]},
    )

    config = await CollectionIndex(store.view(), "posts").load_config()

    assert config.order == ["a", "b", "c"]
    assert config.total_items == 3
    assert config.total_pages == 2
    assert config.slugs == {"see": "c"}
    assert config.items == {"a": 1, "b": 1, "c": 2}


@pytest.mark.asyncio
async def test_migration_skips_missing_shards(store):
    store.seed(
        collection_config_path("posts"),
        {"total_pages": 2, "total_items": 3, "items_per_page": 2},
    )
    store.seed(
        collection_shard_path("posts", 2),
        {"page": 2, "items": [{"id": "c", "values": {}}]},
    )

    config = await CollectionIndex(store.view(), "posts").load_config()
    assert config.order == ["c"]
    assert config.total_pages == 1


@pytest.mark.asyncio
async def test_first_regeneration_after_migration_removes_stale_pages(store):
    store.seed(
        collection_config_path("posts"),
        {"total_pages": 3, "total_items": 2, "items_per_page": 2},
    )
    store.seed(
        collection_shard_path("posts", 1),
        {"page": 1, "items": [{"id": "a", "values": {}}, {"id": "b", "values": {}}]},
    )
    for page in (2, 3):
        store.seed(collection_shard_path("posts", page), {"page": page, "items": []})
    _seed_docs(store, ["a", "b"])
    index = CollectionIndex(store.view(), "posts")

    config = await index.load_config()
    assert config.total_pages == 1

    written = await index.regenerate_shards_from(config, 1)

    assert written == [1]
    assert _shard_ids(store, 1) == ["a", "b"]
    assert collection_shard_path("posts", 2) not in store.branches["main"]
    assert collection_shard_path("posts", 3) not in store.branches["main"]


@pytest.mark.asyncio
async def test_regenerate_writes_pages_and_rebuilds_items(store):
    _seed_docs(store, list("abcde"))
    config = CollectionConfig(items_per_page=2, order=list("abcde"))
    index = CollectionIndex(store.view(), "posts")

    written = await index.regenerate_shards_from(config, 2)

    assert written == [2, 3]
    assert config.total_pages == 3
    assert config.total_items == 5
    assert config.items == {"a": 1, "b": 1, "c": 2, "d": 2, "e": 3}
    assert _shard_ids(store, 2) == ["c", "d"]
    assert _shard_ids(store, 3) == ["e"]
    # page 1 was never touched
    assert collection_shard_path("posts", 1) not in store.branches["main"]


@pytest.mark.asyncio
async def test_regenerate_deletes_trailing_pages_when_shrinking(store):
    _seed_docs(store, list("ab"))
    for page in (1, 2, 3):
        store.seed(collection_shard_path("posts", page), {"page": page, "items": []})
    config = CollectionConfig(total_pages=3, items_per_page=1, order=list("ab"))

    await CollectionIndex(store.view(), "posts").regenerate_shards_from(config, 1)

    assert config.total_pages == 2
    assert collection_shard_path("posts", 3) not in store.branches["main"]
    assert _shard_ids(store, 1) == ["a"]
    assert _shard_ids(store, 2) == ["b"]


@pytest.mark.asyncio
async def test_regenerate_skips_missing_documents(store, caplog):
    caplog.set_level(logging.WARNING, logger="cms.index")
    _seed_docs(store, ["a", "c"])
    config = CollectionConfig(items_per_page=10, order=["a", "b", "c"])

    await CollectionIndex(store.view(), "posts").regenerate_shards_from(config, 1)

    assert _shard_ids(store, 1) == ["a", "c"]
    assert "b" not in config.items
    assert config.total_items == 3
    assert "document blob missing" in caplog.text


@pytest.mark.asyncio
async def test_regenerate_empty_collection_keeps_one_empty_page(store):
    config = CollectionConfig(items_per_page=10, order=[])

    written = await CollectionIndex(store.view(), "posts").regenerate_shards_from(config, 1)

    assert written == [1]
    assert config.total_pages == 1
    assert store.published(collection_shard_path("posts", 1)) == {"page": 1, "items": []}


@pytest.mark.asyncio
async def test_patch_shard_replaces_in_place(store):
    store.seed(
        collection_shard_path("posts", 1),
        {"page": 1, "items": [{"id": "a", "values": {"title": "old"}}, {"id": "b", "values": {}}]},
    )
    config = CollectionConfig(items_per_page=10, order=["a", "b"])

    page = await CollectionIndex(store.view(), "posts").patch_shard(
        config, Document(id="a", values={"title": "new"})
    )

    assert page == 1
    shard = store.published(collection_shard_path("posts", 1))
    assert shard["items"][0] == {"id": "a", "values": {"title": "new"}}
    assert [item["id"] for item in shard["items"]] == ["a", "b"]


@pytest.mark.asyncio
async def test_patch_shard_appends_missing_entry(store):
    store.seed(collection_shard_path("posts", 1), {"page": 1, "items": [{"id": "b", "values": {}}]})
    config = CollectionConfig(items_per_page=10, order=["a", "b"])

    await CollectionIndex(store.view(), "posts").patch_shard(config, Document(id="a", values={}))

    assert _shard_ids(store, 1) == ["b", "a"]


@pytest.mark.asyncio
async def test_save_config_round_trips(store):
    index = CollectionIndex(store.view(), "posts")
    config = CollectionConfig(items_per_page=3, order=["a"], slugs={"x": "a"})
    config.recompute_totals()

    await index.save_config(config, "save")

    loaded = await index.load_config()
    assert loaded == config
    assert json.loads(store.branches["main"][collection_config_path("posts")])["order"] == ["a"]
