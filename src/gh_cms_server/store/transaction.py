"""
Branch Transactions

A repository that only supports single-file writes has no multi-file atomic
commit. This module builds a unit of work out of branch primitives instead:

1. ``begin()`` creates a uniquely named branch at the tip of the base branch.
2. Every read and write issued through the unit of work targets that branch.
3. ``commit()`` merges the branch into the base and deletes the branch ref.

Readers of the base branch therefore see either none or all of a unit's
writes. There is no rollback: if anything fails before the merge, the branch
is left behind un-merged (and logged), the base stays untouched, and the
caller's change is simply never published.

Merges are not serialized. Two units that touch the same paths race and
the later merge wins per path.
"""

from __future__ import annotations

import logging
import uuid
from abc import abstractmethod
from typing import NoReturn, Optional

from .base import BlobAccess, BlobStore

logger = logging.getLogger("cms.txn")


class UnitOfWork(BlobAccess):
    """
    Begin/commit lifecycle around a set of blob operations.

    The branch-based implementation below is one backend; a store with real
    transactions could satisfy the same interface without branches.
    """

    @abstractmethod
    async def begin(self) -> None: ...

    @abstractmethod
    async def commit(self) -> None: ...


class BranchTransaction(UnitOfWork):
    """
    Unit of work staged on a short-lived branch and published by merge.

    Usage
    -----
        async with BranchTransaction(store, "Add post") as txn:
            await txn.put("data/posts/1.json", "Add post", body)
        # merged into the default branch here

    On an exception inside the block the branch is left un-merged and the
    exception propagates.
    """

    def __init__(
        self,
        store: BlobStore,
        message: str,
        base: Optional[str] = None,
    ) -> None:
        self._store = store
        self.message = message
        self.base = base
        self.branch = str(uuid.uuid4())
        self._state = "new"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self._state

    def _require_open(self) -> None:
        if self._state != "open":
            raise RuntimeError(
                f"Transaction {self.branch} is not open (state={self._state})"
            )

    async def begin(self) -> None:
        if self._state != "new":
            raise RuntimeError(f"Transaction {self.branch} already started")

        await self._store.create_branch(self.branch, self.base)
        self._state = "open"
        logger.info("Opened transaction branch %s", self.branch)

    async def commit(self) -> None:
        self._require_open()

        await self._store.merge_branch(self.branch, self.message, self.base)
        self._state = "merged"
        await self._store.delete_branch(self.branch)
        self._state = "committed"
        logger.info("Committed transaction branch %s: %s", self.branch, self.message)

    async def abandon(self) -> None:
        """
        Delete the branch without merging.

        Used when an operation finds it has nothing to publish. Writes
        already staged on the branch are discarded with it.
        """
        self._require_open()

        await self._store.delete_branch(self.branch)
        self._state = "abandoned"
        logger.info("Abandoned transaction branch %s", self.branch)

    async def __aenter__(self) -> "BranchTransaction":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            if self._state == "open":
                await self.commit()
            return False

        if self._state in ("open", "merged"):
            logger.warning(
                "Transaction branch %s left orphaned (%s): %s",
                self.branch,
                self._state,
                exc_type.__name__,
            )
        return False

    # ------------------------------------------------------------------
    # Branch-scoped blob operations
    # ------------------------------------------------------------------

    async def get(self, path: str) -> bytes:
        self._require_open()
        return await self._store.get_blob(path, self.branch)

    async def put(self, path: str, message: str, content: bytes) -> None:
        self._require_open()
        await self._store.put_blob(path, message, content, self.branch)

    async def delete(self, path: str, message: str) -> None:
        self._require_open()
        await self._store.delete_blob(path, message, self.branch)


async def abandon_with(txn: BranchTransaction, error: Exception) -> NoReturn:
    """
    Abandon ``txn`` and raise ``error``.

    For checks that fail after the branch exists but before anything worth
    publishing was written to it.
    """
    await txn.abandon()
    raise error
