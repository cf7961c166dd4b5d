"""Model function sync: clone, refresh, upsync and restore, tracked per function."""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from agrippa.core.backup import PRE_FUNCTION_UPSYNC, restore_function_backup, take_function_backup
from agrippa.core.classify import compute_upsync_operations, is_cloning_safe
from agrippa.core.errors import LocalResourceNotFound, RemoteResourceNotFound
from agrippa.core.schema import FunctionBackup, RemoteFunction, UpsyncOperation
from agrippa.core.store import ModelFunctionStore, select_function
from agrippa.core.upsync import perform_function_upsync, plan_function_upsync
from agrippa.remote.base import RemoteStore

logger = logging.getLogger(__name__)

ConfirmOperations = Callable[[Sequence[UpsyncOperation]], bool]


class FunctionSync:
    def __init__(self, store: ModelFunctionStore, remote: RemoteStore) -> None:
        self.store = store
        self.remote = remote

    async def clone(
        self, fn: RemoteFunction, confirm: Callable[[RemoteFunction], bool] | None = None
    ) -> dict:
        """Write `fn` into the workspace, asking first if local edits would be lost."""
        config = self.store.find_model(fn.model_name)
        if not is_cloning_safe(self.store, fn, config):
            if confirm is not None and not confirm(fn):
                return {"status": "declined", "function": fn.label}
        self.store.write_function(fn)
        return {"status": "cloned", "function": fn.label}

    async def upsync(
        self, function_id: int | None = None, confirm: ConfirmOperations | None = None
    ) -> dict:
        """Push local functions (all, or just `function_id`).

        Raises NothingToSync when no tracked function needs a write.
        """
        remote_functions = await self.remote.get_model_functions()
        configs = self.store.list_models()
        if function_id is not None:
            configs = select_function(configs, function_id)

        operations = compute_upsync_operations(self.store, configs, remote_functions)
        writes = plan_function_upsync(operations)
        if confirm is not None and not confirm(writes):
            return {"status": "declined", "operations": len(writes)}

        take_function_backup(self.store, PRE_FUNCTION_UPSYNC, remote_functions)
        written = await perform_function_upsync(self.store, self.remote, operations)
        return {
            "status": "synced",
            "written": [f"{op.operation.value} {op.name}" for op in written],
            "skipped": [f"{op.operation.value} {op.name}" for op in operations if not op.write],
        }

    async def refresh(
        self, function_id: int | None = None, confirm: Callable[[], bool] | None = None
    ) -> dict:
        """Overwrite local functions with their remote code.

        A tracked function that no longer exists remotely raises
        RemoteResourceNotFound.
        """
        remote_functions = await self.remote.get_model_functions()
        configs = self.store.list_models()
        if function_id is not None:
            configs = select_function(configs, function_id)

        if confirm is not None and not confirm():
            return {"status": "declined"}

        by_id = {fn.id: fn for fn in remote_functions}
        refreshed = []
        for config in configs:
            for tracked in config.functions:
                fn = by_id.get(tracked.id)
                if fn is None:
                    raise RemoteResourceNotFound(tracked.name)
                self.store.write_function(fn)
                refreshed.append(fn.label)
        return {"status": "refreshed", "functions": refreshed}

    def backups(self, function_id: int) -> tuple[str, list[FunctionBackup]]:
        """Label and backups (newest first) of the tracked function `function_id`."""
        for config in self.store.list_models():
            fn = config.tracked(function_id)
            if fn is not None:
                label = f"{config.model} / {fn.name}"
                return label, [b for b in config.backups if b.data.id == function_id]
        raise LocalResourceNotFound(f"function {function_id}")

    async def restore(self, function_id: int, index: int = 0) -> dict:
        """Write back the backup at `index` (0 is the newest) of one function.

        Local files and sync markers are left alone, so the restored remote
        code shows up as stale on the next upsync.
        """
        label, backups = self.backups(function_id)
        if not 0 <= index < len(backups):
            raise LocalResourceNotFound(f"{label} backup #{index}")
        backup = backups[index]
        await restore_function_backup(self.remote, backup)
        logger.debug("Restored %r of %s", backup.backup_name, label)
        return {"status": "restored", "function": label, "backup": backup.backup_name}
