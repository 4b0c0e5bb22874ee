"""
Index Package

Collection and media indexes stored as JSON blobs in the backing repository.
"""

from .models import (
    CollectionConfig,
    Document,
    DocumentPage,
    IndexShard,
    MediaConfig,
    MediaFile,
    MediaPage,
    MediaShard,
    pages_for,
)
from .collection import CollectionIndex
from .media import MediaIndex

__all__ = [
    "CollectionConfig",
    "Document",
    "DocumentPage",
    "IndexShard",
    "MediaConfig",
    "MediaFile",
    "MediaPage",
    "MediaShard",
    "pages_for",
    "CollectionIndex",
    "MediaIndex",
]
