"""Apply classified changes to the remote and advance the local sync markers."""

from __future__ import annotations

import logging
from typing import Sequence

from agrippa.core.errors import AgrippaError, NothingToSync, UpsyncFailure
from agrippa.core.schema import ModelFunctionConfig, PhaseStatus, Status, UpsyncOperation, _now
from agrippa.core.store import ModelFunctionStore, WorkspaceStore
from agrippa.remote.base import RemoteStore

logger = logging.getLogger(__name__)

SKIPPED = (Status.missing, Status.noop)


async def perform_upsync(
    store: WorkspaceStore,
    remote: RemoteStore,
    slug: str,
    statuses: Sequence[PhaseStatus],
) -> list[PhaseStatus]:
    """Push every safe or stale phase, then move the workflow's lastSyncAt to now.

    Code is re-read from disk here rather than taken from classification
    time. The marker moves for the whole workflow, skipped phases included,
    and only once every write went through; a failed write raises
    UpsyncFailure and leaves the marker where it was.
    """
    config = store.get_workflow(slug)
    written = []
    for status in statuses:
        if status.status in SKIPPED:
            continue
        code = store.read_item_text(config, status.id).strip()
        try:
            await remote.update_phase(status.id, code)
        except AgrippaError as e:
            raise UpsyncFailure(f"{config.name} / {status.name}", str(e)) from e
        logger.debug("Wrote phase %s (%s)", status.name, status.status.value)
        written.append(status)

    # re-read: backups may have been added since classification
    config = store.get_workflow(slug)
    config.last_sync_at = max(_now(), config.last_sync_at)
    store.write_workflow(config)
    return written


def plan_function_upsync(operations: Sequence[UpsyncOperation]) -> list[UpsyncOperation]:
    """Return the operations that write, or raise NothingToSync when there are none."""
    writes = [op for op in operations if op.write]
    if not writes:
        raise NothingToSync()
    return writes


async def perform_function_upsync(
    store: ModelFunctionStore,
    remote: RemoteStore,
    operations: Sequence[UpsyncOperation],
) -> list[UpsyncOperation]:
    """Write each writable operation's code and advance that function's marker.

    Stops at the first failing write with UpsyncFailure; functions written
    before it keep their new marker.
    """
    written = []
    for op in operations:
        if not op.write:
            continue
        try:
            await remote.update_model_function(op.id, op.code)
        except AgrippaError as e:
            raise UpsyncFailure(op.name, str(e)) from e
        _mark_synced(store, op.id)
        logger.debug("Wrote function %s (%s)", op.name, op.operation.value)
        written.append(op)
    return written


def _mark_synced(store: ModelFunctionStore, function_id: int) -> ModelFunctionConfig | None:
    for config in store.list_models():
        fn = config.tracked(function_id)
        if fn is not None:
            fn.last_sync_at = max(_now(), fn.last_sync_at)
            store.write_model(config)
            return config
    return None
