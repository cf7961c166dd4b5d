"""Classification of tracked items against their remote counterparts.

Every tracked item gets exactly one status, decided in this order:

- ``missing``: no remote item carries the tracked id.
- ``stale``: the remote was written after the local sync marker, even when
  the text matches.
- ``noop``: local and remote text are equal once leading/trailing whitespace
  is stripped.
- ``safe``: anything else, an ordinary forward edit.

Workflow phases compare against the collection-wide ``lastSyncAt``; model
functions compare against a marker stored per function. Both go through
:func:`classify`, which accepts either a fixed instant or a per-item lookup.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Sequence, Union

from agrippa.core.schema import (
    ModelFunctionConfig,
    Operation,
    PhaseStatus,
    RemoteCode,
    RemoteFunction,
    RemotePhase,
    Status,
    UpsyncOperation,
    as_utc,
)
from agrippa.core.store import ModelFunctionStore, WorkspaceStore

logger = logging.getLogger(__name__)

Marker = Union[datetime, Callable[[int], datetime]]


def same_code(left: str, right: str) -> bool:
    return left.strip() == right.strip()


def find_remote(item_id: int, remote_items: Iterable[RemoteCode]) -> RemoteCode | None:
    return next((r for r in remote_items if r.id == item_id), None)


def classify(
    item_id: int,
    local_code: str,
    remote_items: Sequence[RemoteCode],
    marker: Marker,
) -> Status:
    """Return the sync status of one tracked item."""
    remote = find_remote(item_id, remote_items)
    if remote is None:
        return Status.missing

    last_sync = marker(item_id) if callable(marker) else marker
    if as_utc(remote.write_date) > as_utc(last_sync):
        return Status.stale
    if same_code(remote.code, local_code):
        return Status.noop
    return Status.safe


def compute_phase_status(
    store: WorkspaceStore, slug: str, remote_phases: Sequence[RemotePhase]
) -> list[PhaseStatus]:
    """Classify every tracked phase of a workflow against the workflow's lastSyncAt."""
    config = store.get_workflow(slug)
    statuses = []
    for phase in config.phases:
        # missing remotes never need the file
        if find_remote(phase.id, remote_phases) is None:
            status = Status.missing
        else:
            local = store.read_phase_code(config, phase)
            status = classify(phase.id, local, remote_phases, config.last_sync_at)
        logger.debug("%s / %s: %s", slug, phase.name, status.value)
        statuses.append(PhaseStatus(id=phase.id, name=phase.name, status=status))
    return statuses


def compute_changed_phases(
    store: WorkspaceStore, slug: str, remote_phases: Sequence[RemotePhase]
) -> list[str]:
    """Names of tracked phases whose local text differs from the remote one.

    Phases gone from the remote are skipped; they cannot be overwritten.
    """
    config = store.get_workflow(slug)
    changed = []
    for phase in config.phases:
        remote = find_remote(phase.id, remote_phases)
        if remote is None:
            continue
        if not same_code(store.read_phase_code(config, phase), remote.code):
            changed.append(phase.name)
    return changed


def compute_upsync_operations(
    store: ModelFunctionStore,
    configs: Sequence[ModelFunctionConfig],
    remote_functions: Sequence[RemoteFunction],
) -> list[UpsyncOperation]:
    """Build one UpsyncOperation per tracked function, with per-function markers.

    An unreadable local file aborts the whole computation with
    LocalResourceNotFound: the workspace is inconsistent.
    """
    operations = []
    for config in configs:
        markers = {fn.id: fn.last_sync_at for fn in config.functions}
        for fn in config.functions:
            code = store.read_function_code(config, fn)
            status = classify(fn.id, code, remote_functions, markers.__getitem__)
            operation = Operation.for_status(status)
            logger.debug("%s / %s: %s", config.model, fn.name, operation.value)
            operations.append(
                UpsyncOperation(
                    id=fn.id,
                    name=f"{config.model} / {fn.name}",
                    code=code,
                    operation=operation,
                    write=operation.writes,
                )
            )
    return operations


def is_cloning_safe(
    store: ModelFunctionStore, fn: RemoteFunction, config: ModelFunctionConfig | None
) -> bool:
    """True when cloning `fn` cannot destroy local edits."""
    if config is None:
        return True
    tracked = config.tracked(fn.id)
    if tracked is None:
        return True
    path = store.function_path(config, tracked)
    if not path.is_file():
        return True
    return same_code(path.read_text(encoding="utf-8"), fn.code)
