"""
Blob Store Interface

The CMS core only needs a handful of primitives from its backing
repository: single-blob reads and optimistic-concurrency writes addressed by
path and branch ref, plus branch create / merge / delete. Anything that can
provide these (GitHub, an in-memory fake in tests) plugs in here.

Refs
----
A ``ref`` of ``None`` always means the repository's default branch.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple


class BlobAccess(ABC):
    """
    Path-level blob access bound to one place in the repository.

    Both a transaction (bound to its branch) and a plain ref view implement
    this, so index code does not care which one it is handed.
    """

    @abstractmethod
    async def get(self, path: str) -> bytes: ...

    @abstractmethod
    async def put(self, path: str, message: str, content: bytes) -> None: ...

    @abstractmethod
    async def delete(self, path: str, message: str) -> None: ...

    async def get_json(self, path: str) -> Any:
        return json.loads(await self.get(path))

    async def put_json(self, path: str, message: str, payload: str) -> None:
        await self.put(path, message, payload.encode("utf-8"))


class BlobStore(ABC):
    """
    Abstract single-object blob store with branch primitives.

    Implementations raise ``BlobNotFoundError`` for missing blobs and
    ``StoreError`` for every other remote failure.
    """

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    @abstractmethod
    async def get_blob(self, path: str, ref: Optional[str] = None) -> bytes:
        """Return the raw content of ``path`` at ``ref``."""

    @abstractmethod
    async def put_blob(
        self,
        path: str,
        message: str,
        content: bytes,
        ref: Optional[str] = None,
    ) -> None:
        """
        Create or overwrite ``path`` on ``ref``.

        Overwrites must present the current concurrency token, so
        implementations read the existing blob first.
        """

    @abstractmethod
    async def delete_blob(
        self,
        path: str,
        message: str,
        ref: Optional[str] = None,
    ) -> None:
        """Delete ``path`` on ``ref``; ``BlobNotFoundError`` if absent."""

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    @abstractmethod
    async def default_branch(self) -> str:
        """Name of the branch readers see."""

    @abstractmethod
    async def create_branch(self, name: str, source_ref: Optional[str] = None) -> None:
        """Create branch ``name`` at the tip of ``source_ref``."""

    @abstractmethod
    async def merge_branch(
        self,
        head: str,
        message: str,
        base: Optional[str] = None,
    ) -> None:
        """Merge ``head`` into ``base``; ``MergeConflictError`` on conflict."""

    @abstractmethod
    async def delete_branch(self, name: str) -> None:
        """Delete the branch ref ``name``."""

    @abstractmethod
    async def is_empty(self) -> Tuple[bool, str]:
        """Return ``(has_no_commits, default_branch)``."""

    def view(self, ref: Optional[str] = None) -> "RefView":
        """Non-transactional access bound to ``ref``."""
        return RefView(self, ref)


class RefView(BlobAccess):
    """
    Direct access to one ref of a store.

    Writes land immediately; used for reads of the published state and for
    bootstrapping repositories that cannot branch yet.
    """

    def __init__(self, store: BlobStore, ref: Optional[str] = None) -> None:
        self._store = store
        self.ref = ref

    async def get(self, path: str) -> bytes:
        return await self._store.get_blob(path, self.ref)

    async def put(self, path: str, message: str, content: bytes) -> None:
        await self._store.put_blob(path, message, content, self.ref)

    async def delete(self, path: str, message: str) -> None:
        await self._store.delete_blob(path, message, self.ref)
