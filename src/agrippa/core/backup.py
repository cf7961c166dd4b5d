"""Backups: frozen copies of remote code, newest first, capped at MAX_BACKUPS.

Workflow backups hold a whole workflow per entry. Function backups hold one
function per entry, so their cap counts backup calls, not entries.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence, TypeVar

from agrippa.core.schema import (
    MAX_BACKUPS,
    CodeSnapshot,
    FunctionBackup,
    ModelFunctionConfig,
    PhaseBackup,
    RemoteFunction,
    RemotePhase,
    _now,
)
from agrippa.core.store import ModelFunctionStore, WorkspaceStore
from agrippa.remote.base import RemoteStore

logger = logging.getLogger(__name__)

B = TypeVar("B")

AUTO_BACKUP = "AUTO"
MANUAL_BACKUP = "Manual backup"
PRE_UPSYNC = "Pre upsync"
PRE_FUNCTION_UPSYNC = "PRE UPSYNC"


def prepend_backup(backups: Sequence[B], backup: B) -> list[B]:
    return [backup, *backups][:MAX_BACKUPS]


async def backup_workflow(
    store: WorkspaceStore,
    remote: RemoteStore,
    slug: str,
    name: str | None = None,
    phases: Sequence[RemotePhase] | None = None,
) -> PhaseBackup:
    """Snapshot the remote code of a workflow into its metadata.

    `phases` may be passed when the caller already fetched them; otherwise
    the code-driven phases are fetched from the remote.
    """
    config = store.get_workflow(slug)
    if phases is None:
        phases = await remote.get_phases(config.id, from_code_only=True)

    backup = PhaseBackup(
        name=name or AUTO_BACKUP,
        phases=[CodeSnapshot(id=p.id, code=p.code) for p in phases],
    )
    config.backups = prepend_backup(config.backups, backup)
    store.write_workflow(config)
    logger.debug("Backup %r of %s: %d phases", backup.name, slug, len(backup.phases))
    return backup


async def restore_workflow_backup(remote: RemoteStore, backup: PhaseBackup) -> int:
    """Write every snapshot of `backup` back to the remote.

    Local files and the sync marker are left alone. A failing write stops
    the restore; phases written before it stay restored.
    """
    for snapshot in backup.phases:
        await remote.update_phase(snapshot.id, snapshot.code)
        logger.debug("Restored phase %s", snapshot.id)
    return len(backup.phases)


def prepend_function_batch(
    backups: Sequence[FunctionBackup], batch: Sequence[FunctionBackup]
) -> list[FunctionBackup]:
    """Prepend one backup call's entries, keeping the MAX_BACKUPS newest calls.

    Entries of one call share their `backup_name` and `ts`; whole calls are
    evicted, never single entries.
    """
    kept: list[FunctionBackup] = []
    batches: set[tuple[str, datetime]] = set()
    for backup in [*batch, *backups]:
        key = (backup.backup_name, backup.ts)
        if key not in batches:
            if len(batches) == MAX_BACKUPS:
                break
            batches.add(key)
        kept.append(backup)
    return kept


def take_function_backup(
    store: ModelFunctionStore, name: str, remote_functions: Sequence[RemoteFunction]
) -> list[ModelFunctionConfig]:
    """Record the remote code of every function whose model is tracked locally.

    One call is one batch per model: all its entries share a timestamp.
    """
    ts = _now()
    configs: dict[str, ModelFunctionConfig] = {}
    batches: dict[str, list[FunctionBackup]] = {}
    for fn in remote_functions:
        if fn.model_name not in configs:
            config = store.find_model(fn.model_name)
            if config is None:
                continue
            configs[fn.model_name] = config
        batches.setdefault(fn.model_name, []).append(
            FunctionBackup(
                backup_name=name,
                ts=ts,
                data=CodeSnapshot(id=fn.id, code=fn.code.strip() + "\n"),
            )
        )

    for model, config in configs.items():
        config.backups = prepend_function_batch(config.backups, batches[model])
        store.write_model(config)
        logger.debug("Backup %r of %s: %d functions", name, model, len(batches[model]))
    return list(configs.values())


async def restore_function_backup(remote: RemoteStore, backup: FunctionBackup) -> None:
    await remote.update_model_function(backup.data.id, backup.data.code)
