"""Tests for workflow and function backups."""

from __future__ import annotations

from datetime import timedelta

import pytest

from agrippa.core.backup import (
    backup_workflow,
    prepend_backup,
    prepend_function_batch,
    restore_function_backup,
    restore_workflow_backup,
    take_function_backup,
)
from agrippa.core.classify import compute_phase_status
from agrippa.core.errors import ConnectError, LocalResourceNotFound
from agrippa.core.schema import MAX_BACKUPS, CodeSnapshot, FunctionBackup, PhaseBackup, Status

from conftest import PAST, make_function


@pytest.mark.asyncio
class TestBackupWorkflow:
    async def test_fetches_code_phases_when_not_given(self, store, remote, cloned):
        backup = await backup_workflow(store, remote, cloned, name="first")
        assert backup.name == "first"
        assert {s.id: s.code for s in backup.phases} == {
            101: "valid = '@' in email\n",
            102: "score = 10\n",
        }
        assert store.get_workflow(cloned).backups[0] == backup

    async def test_uses_prefetched_phases(self, store, remote, cloned):
        phases = remote.phases[7][:1]
        backup = await backup_workflow(store, remote, cloned, phases=phases)
        assert backup.name == "AUTO"
        assert [s.id for s in backup.phases] == [101]

    async def test_newest_first(self, store, remote, cloned):
        await backup_workflow(store, remote, cloned, name="one")
        await backup_workflow(store, remote, cloned, name="two")
        assert [b.name for b in store.get_workflow(cloned).backups] == ["two", "one"]

    async def test_cap_evicts_oldest(self, store, remote, cloned):
        for i in range(MAX_BACKUPS + 1):
            await backup_workflow(store, remote, cloned, name=f"b{i}")
        backups = store.get_workflow(cloned).backups
        assert len(backups) == MAX_BACKUPS
        assert backups[0].name == f"b{MAX_BACKUPS}"
        assert "b0" not in {b.name for b in backups}

    async def test_backup_leaves_marker_alone(self, store, remote, cloned):
        before = store.get_workflow(cloned).last_sync_at
        await backup_workflow(store, remote, cloned)
        assert store.get_workflow(cloned).last_sync_at == before

    async def test_untracked_workflow(self, store, remote):
        with pytest.raises(LocalResourceNotFound):
            await backup_workflow(store, remote, "nope")


@pytest.mark.asyncio
class TestRestoreWorkflowBackup:
    async def test_writes_every_snapshot(self, store, remote, cloned):
        backup = PhaseBackup(
            name="x",
            phases=[CodeSnapshot(id=101, code="a = 1\n"), CodeSnapshot(id=102, code="b = 2\n")],
        )
        count = await restore_workflow_backup(remote, backup)
        assert count == 2
        assert sorted(remote.writes) == [("phase", 101, "a = 1\n"), ("phase", 102, "b = 2\n")]

    async def test_does_not_touch_local_state(self, store, remote, cloned):
        before = store.get_workflow(cloned)
        backup = PhaseBackup(name="x", phases=[CodeSnapshot(id=101, code="a = 1\n")])
        await restore_workflow_backup(remote, backup)

        after = store.get_workflow(cloned)
        assert after.last_sync_at == before.last_sync_at
        assert store.read_item_text(after, 101) == "valid = '@' in email\n"

    async def test_restored_remote_classifies_as_stale(self, store, remote, cloned):
        backup = PhaseBackup(name="x", phases=[CodeSnapshot(id=101, code="a = 1\n")])
        await restore_workflow_backup(remote, backup)
        statuses = {s.id: s.status for s in compute_phase_status(store, cloned, remote.phases[7])}
        assert statuses[101] == Status.stale

    async def test_partial_failure_keeps_earlier_writes(self, remote):
        remote.fail_on = {102}
        backup = PhaseBackup(
            name="x",
            phases=[CodeSnapshot(id=101, code="a"), CodeSnapshot(id=102, code="b")],
        )
        with pytest.raises(ConnectError):
            await restore_workflow_backup(remote, backup)
        assert remote.writes == [("phase", 101, "a")]


class TestFunctionBackup:
    def test_records_tracked_models_only(self, fn_store, remote):
        fn_store.write_function(remote.functions[0])

        touched = take_function_backup(fn_store, "PRE UPSYNC", remote.functions)
        assert [c.model for c in touched] == ["res.partner"]

        config = fn_store.find_model("res.partner")
        assert [b.data.id for b in config.backups] == [502, 501]
        assert all(b.backup_name == "PRE UPSYNC" for b in config.backups)
        assert fn_store.find_model("sale.order") is None

    def test_code_is_normalized(self, fn_store):
        fn = make_function(1, "a", code="\n  return 1  \n\n")
        fn_store.write_function(fn)
        take_function_backup(fn_store, "b", [fn])
        assert fn_store.find_model("res.partner").backups[0].data.code == "return 1\n"

    def test_capped(self, fn_store):
        fn = make_function(1, "a")
        fn_store.write_function(fn)
        for i in range(MAX_BACKUPS + 5):
            take_function_backup(fn_store, f"b{i}", [fn])
        backups = fn_store.find_model("res.partner").backups
        assert len(backups) == MAX_BACKUPS
        assert backups[0].backup_name == f"b{MAX_BACKUPS + 4}"

    def test_one_call_larger_than_cap_is_kept_whole(self, fn_store):
        fn_store.write_function(make_function(1, "f1"))
        many = [make_function(i, f"f{i}") for i in range(1, MAX_BACKUPS + 11)]

        take_function_backup(fn_store, "PRE UPSYNC", many)

        backups = fn_store.find_model("res.partner").backups
        assert len(backups) == MAX_BACKUPS + 10
        assert {b.data.id for b in backups} == set(range(1, MAX_BACKUPS + 11))
        assert len({b.ts for b in backups}) == 1

    def test_cap_counts_calls(self, fn_store):
        fns = [make_function(1, "a"), make_function(2, "b")]
        fn_store.write_function(fns[0])
        for i in range(MAX_BACKUPS + 1):
            take_function_backup(fn_store, f"b{i}", fns)
        backups = fn_store.find_model("res.partner").backups
        assert len(backups) == 2 * MAX_BACKUPS
        assert "b0" not in {b.backup_name for b in backups}
        assert [b.data.id for b in backups[:2]] == [1, 2]

    @pytest.mark.asyncio
    async def test_restore(self, fn_store, remote):
        fn_store.write_function(remote.functions[0])
        take_function_backup(fn_store, "b", remote.functions[:1])
        backup = fn_store.find_model("res.partner").backups[0]

        await restore_function_backup(remote, backup)
        assert remote.writes == [("function", 501, "return 1\n")]


def test_prepend_backup_caps():
    backups = list(range(MAX_BACKUPS))
    result = prepend_backup(backups, -1)
    assert result[0] == -1
    assert len(result) == MAX_BACKUPS
    assert result[-1] == MAX_BACKUPS - 2


def test_prepend_function_batch_evicts_whole_calls():
    old = [
        FunctionBackup(backup_name=f"b{i}", ts=PAST + timedelta(minutes=i), data=CodeSnapshot(id=j, code=""))
        for i in reversed(range(MAX_BACKUPS))
        for j in (1, 2)
    ]
    batch = [FunctionBackup(backup_name="new", data=CodeSnapshot(id=j, code="")) for j in (1, 2, 3)]

    result = prepend_function_batch(old, batch)

    assert [b.backup_name for b in result[:3]] == ["new"] * 3
    assert len(result) == 3 + 2 * (MAX_BACKUPS - 1)
    assert "b0" not in {b.backup_name for b in result}
