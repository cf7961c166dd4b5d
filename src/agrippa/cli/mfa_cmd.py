"""Model function subcommands: clone, upsync, refresh, restore."""

from __future__ import annotations

from typing import Optional, Sequence

import typer

from agrippa.cli._shared import FORMAT_OPTION, choose, get_workspace, run
from agrippa.core.errors import RemoteResourceNotFound
from agrippa.core.schema import RemoteFunction, UpsyncOperation
from agrippa.core.store import ModelFunctionStore
from agrippa.remote.base import RemoteStore
from agrippa.sync.function_sync import FunctionSync
from agrippa.utils.output import console, info, output, success, warn

mfa_app = typer.Typer(no_args_is_help=True)


def _tracked_choice(store: ModelFunctionStore, title: str) -> int:
    choices = [
        (f"{config.model} / {fn.name}", fn.id)
        for config in store.list_models()
        for fn in config.functions
    ]
    return choose(choices, lambda c: c[0], title)[1]


def _confirm_operations(operations: Sequence[UpsyncOperation]) -> bool:
    console.print("Summary of operations:")
    for op in operations:
        console.print(f"- {op.operation.value} {op.name}", markup=False)
    return typer.confirm("Confirm", default=False)


def _confirm_overwrite(fn: RemoteFunction) -> bool:
    warn(f"Local changes to {fn.label} will be overwritten by the cloning.")
    return typer.confirm("Overwrite", default=False)


@mfa_app.command("clone")
def mfa_clone(
    function_id: Optional[int] = typer.Option(None, "--function-id", help="Remote function id"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Clone a remote model function into the workspace."""
    root = get_workspace()
    store = ModelFunctionStore(root)

    async def _clone(remote: RemoteStore) -> dict:
        functions = await remote.get_model_functions()
        if function_id is not None:
            fn = next((f for f in functions if f.id == function_id), None)
            if fn is None:
                raise RemoteResourceNotFound(f"function {function_id}")
        else:
            fn = choose(functions, lambda f: f.label, "Choose a function to clone")
        return await FunctionSync(store, remote).clone(fn, _confirm_overwrite)

    result = run(_clone, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "cloned":
        success(f"Cloned {result['function']}")
    else:
        info("Clone aborted, nothing written")


@mfa_app.command("upsync")
def mfa_upsync(
    choose_one: bool = typer.Option(False, "--choose", "-c", help="Pick a single function"),
    function_id: Optional[int] = typer.Option(None, "--function-id", help="Tracked function id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Push local model function edits to the remote, after a backup."""
    root = get_workspace()
    store = ModelFunctionStore(root)
    selected = function_id
    if selected is None and choose_one:
        selected = _tracked_choice(store, "Choose function to upsync")

    async def _upsync(remote: RemoteStore) -> dict:
        confirm = None if yes else _confirm_operations
        return await FunctionSync(store, remote).upsync(selected, confirm)

    result = run(_upsync, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "synced":
        success(f"Upsync done, {len(result['written'])} functions written")
        for line in result["written"]:
            info(f"  {line}")
    else:
        info("Upsync aborted, nothing written")


@mfa_app.command("refresh")
def mfa_refresh(
    choose_one: bool = typer.Option(False, "--choose", "-c", help="Pick a single function"),
    function_id: Optional[int] = typer.Option(None, "--function-id", help="Tracked function id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Overwrite local model functions with the remote code."""
    root = get_workspace()
    store = ModelFunctionStore(root)
    selected = function_id
    if selected is None and choose_one:
        selected = _tracked_choice(store, "Choose function to refresh")

    def _confirm() -> bool:
        return typer.confirm("Local version will be overwritten", default=False)

    async def _refresh(remote: RemoteStore) -> dict:
        return await FunctionSync(store, remote).refresh(selected, None if yes else _confirm)

    result = run(_refresh, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "refreshed":
        success(f"Refreshed {len(result['functions'])} functions")
    else:
        info("Refresh aborted, nothing written")


@mfa_app.command("restore")
def mfa_restore(
    function_id: Optional[int] = typer.Option(None, "--function-id", help="Tracked function id"),
    index: Optional[int] = typer.Option(None, "--index", help="Backup to restore, 0 is the newest"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Write a backed-up version of a model function back to the remote."""
    root = get_workspace()
    store = ModelFunctionStore(root)
    selected = function_id
    if selected is None:
        selected = _tracked_choice(store, "Choose function to restore")

    async def _restore(remote: RemoteStore) -> dict:
        sync = FunctionSync(store, remote)
        position = index
        if position is None:
            _, backups = sync.backups(selected)
            picked = choose(
                backups,
                lambda b: f"[{b.backup_name}] {b.ts.astimezone():%d/%m/%y %H:%M}",
                "Select backup to restore",
            )
            position = backups.index(picked)
        return await sync.restore(selected, position)

    result = run(_restore, root)
    if fmt == "json":
        output(result, fmt="json")
    else:
        success(f"Restored '{result['backup']}' of {result['function']}")
