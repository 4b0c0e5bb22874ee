"""Blob path layout inside the backing repository."""

from __future__ import annotations

REPO_CONFIG_PATH = "config/config.json"

MEDIA_CONFIG_PATH = "media/config.json"
MEDIA_KEEP_PATH = "media/.gitkeep"
CONTENT_KEEP_PATH = "content/.gitkeep"


def collection_config_path(type_slug: str) -> str:
    return f"data/{type_slug}/config.json"


def collection_shard_path(type_slug: str, page: int) -> str:
    return f"data/{type_slug}/index-{page}.json"


def document_path(type_slug: str, key: str) -> str:
    # ``key`` is either a document id or a slug alias.
    return f"data/{type_slug}/{key}.json"


def media_blob_path(media_id: str) -> str:
    return f"media/{media_id}"


def media_shard_path(page: int) -> str:
    return f"media/index-{page}.json"
