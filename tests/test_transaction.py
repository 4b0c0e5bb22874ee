import logging

import pytest

from gh_cms_server.core.errors import ConflictError
from gh_cms_server.store.transaction import BranchTransaction, abandon_with


@pytest.mark.asyncio
async def test_commit_publishes_all_writes_and_deletes_branch(store):
    async with BranchTransaction(store, "Add two files") as txn:
        await txn.put("a.json", "add a", b"1")
        await txn.put("b.json", "add b", b"2")
        assert "a.json" not in store.branches["main"]
        assert await txn.get("a.json") == b"1"

    assert store.branches["main"] == {"a.json": b"1", "b.json": b"2"}
    assert txn.state == "committed"
    assert txn.branch not in store.branches
    assert store.merges == ["Add two files"]


@pytest.mark.asyncio
async def test_branch_names_are_unique(store):
    first = BranchTransaction(store, "x")
    second = BranchTransaction(store, "x")
    assert first.branch != second.branch


@pytest.mark.asyncio
async def test_failure_leaves_branch_unmerged(store, caplog):
    caplog.set_level(logging.WARNING, logger="cms.txn")

    with pytest.raises(RuntimeError, match="boom"):
        async with BranchTransaction(store, "Broken") as txn:
            await txn.put("a.json", "add a", b"1")
            raise RuntimeError("boom")

    assert store.branches["main"] == {}
    assert txn.branch in store.branches
    assert txn.state == "open"
    assert store.merges == []
    assert txn.branch in caplog.text


@pytest.mark.asyncio
async def test_abandon_deletes_branch_without_merge(store):
    async with BranchTransaction(store, "Nothing") as txn:
        await txn.put("a.json", "add a", b"1")
        await txn.abandon()

    assert txn.state == "abandoned"
    assert txn.branch not in store.branches
    assert store.branches["main"] == {}
    assert store.merges == []


@pytest.mark.asyncio
async def test_abandon_with_raises_without_orphan(store, caplog):
    caplog.set_level(logging.WARNING, logger="cms.txn")

    with pytest.raises(ConflictError):
        async with BranchTransaction(store, "Conflict") as txn:
            await abandon_with(txn, ConflictError("taken"))

    assert txn.branch not in store.branches
    assert "orphaned" not in caplog.text


@pytest.mark.asyncio
async def test_misuse_raises_runtime_error(store):
    txn = BranchTransaction(store, "x")

    with pytest.raises(RuntimeError):
        await txn.commit()
    with pytest.raises(RuntimeError):
        await txn.put("a.json", "m", b"")

    await txn.begin()
    with pytest.raises(RuntimeError):
        await txn.begin()

    await txn.commit()
    with pytest.raises(RuntimeError):
        await txn.commit()


@pytest.mark.asyncio
async def test_reads_see_base_state_at_begin(store):
    store.seed("a.json", b"old")

    async with BranchTransaction(store, "x") as txn:
        store.seed("a.json", b"new")
        assert await txn.get("a.json") == b"old"
