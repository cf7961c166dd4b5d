"""Workflow commands: clone, upsync, backup, refresh."""

from __future__ import annotations

from typing import Optional, Sequence

import typer

from agrippa.cli._shared import FORMAT_OPTION, choose, get_workspace, run
from agrippa.core.errors import LocalResourceNotFound, RemoteResourceNotFound
from agrippa.core.schema import Status
from agrippa.core.store import WorkspaceStore
from agrippa.remote.base import RemoteStore
from agrippa.sync.workflow_sync import WorkflowPlan, WorkflowSync
from agrippa.utils.output import console, info, output, success, warn
from agrippa.utils.paths import strip_slug

_SECTIONS = [
    (
        Status.stale,
        "[WARNING - STALE] These phases were modified on the remote after your last sync,\n"
        "make sure you want to overwrite them:",
    ),
    (
        Status.missing,
        "[ERROR - MISSING] These phases can no longer be found on the remote\n"
        "and will not be written:",
    ),
    (Status.safe, "[SAFE] These phases were modified and do NOT conflict with the remote:"),
    (Status.noop, "[NOOP] These phases are the same as on the remote:"),
]


def summarize_plans(plans: Sequence[WorkflowPlan], report_noop: bool = False) -> str:
    """Render the confirmation summary for one or more workflow plans."""
    prefix = len(plans) > 1
    lines = ["Summary of operations that will be performed:", ""]
    for status, header in _SECTIONS:
        if status == Status.noop and not report_noop:
            continue
        names = [
            f"{plan.config.name} / {s.name}" if prefix else s.name
            for plan in plans
            for s in plan.by_status(status)
        ]
        if names:
            lines.append(header)
            lines.extend(f"- {name}" for name in names)
            lines.append("")
    return "\n".join(lines)


def _confirm_plans(report_noop: bool):
    def confirm(plans: Sequence[WorkflowPlan]) -> bool:
        if not any(plan.has_writes for plan in plans):
            info("No phase needs to be written")
        console.print(summarize_plans(plans, report_noop))
        return typer.confirm("Confirm", default=False)

    return confirm


def _confirm_changes(message: str):
    def confirm(changes: Sequence[str]) -> bool:
        warn(message)
        for change in changes:
            console.print(f"- [red]{change}[/red]")
        return typer.confirm("Overwrite", default=False)

    return confirm


def _pick_slug(store: WorkspaceStore, slug: Optional[str], title: str) -> str:
    if slug:
        if not store.is_tracked(slug):
            raise LocalResourceNotFound(slug)
        return slug
    return choose(store.list_workflows(), lambda wf: wf.name, title).slug


def clone(
    workflow_id: Optional[int] = typer.Option(None, "--workflow-id", help="Remote workflow id"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Clone a remote workflow into the workspace."""
    root = get_workspace()
    store = WorkspaceStore(root)

    async def _clone(remote: RemoteStore) -> dict:
        workflows = await remote.get_workflows()
        if workflow_id is not None:
            workflow = next((wf for wf in workflows if wf.id == workflow_id), None)
            if workflow is None:
                raise RemoteResourceNotFound(f"workflow {workflow_id}")
        else:
            workflow = choose(workflows, lambda wf: wf.name, "Select workflow to clone")
        confirm = _confirm_changes(
            "Some of the python code on the local system is different than on the remote.\n"
            "The changes to the following phases will be lost:"
        )
        return await WorkflowSync(store, remote).clone(workflow, confirm)

    result = run(_clone, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "cloned":
        success(f"Cloned {result['phases']} phases into {result['slug']}/")
    else:
        info("Clone aborted, nothing written")


def upsync(
    workflow: Optional[str] = typer.Option(None, "--workflow", "-w", help="Workflow slug"),
    all_: bool = typer.Option(False, "--all", "-a", help="Upsync every tracked workflow"),
    report_noop: bool = typer.Option(False, "--report-noop", help="List unchanged phases too"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Push local phase edits to the remote, after a backup."""
    root = get_workspace()
    store = WorkspaceStore(root)
    slug = strip_slug(workflow)
    confirm = None if yes else _confirm_plans(report_noop)

    async def _upsync(remote: RemoteStore) -> dict:
        sync = WorkflowSync(store, remote)
        if all_:
            return await sync.upsync_all(confirm)
        return await sync.upsync(_pick_slug(store, slug, "Select workflow to upsync"), confirm)

    result = run(_upsync, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "synced":
        success(f"Upsync done, {len(result['written'])} phases written")
        for name in result["written"]:
            info(f"  {name}")
    else:
        info("Upsync aborted, nothing written")


def backup(
    workflow: Optional[str] = typer.Option(None, "--workflow", "-w", help="Workflow slug"),
    restore: bool = typer.Option(False, "--restore", "-r", help="Restore a backup instead"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Backup label"),
    index: Optional[int] = typer.Option(None, "--index", help="Backup to restore, 0 is the newest"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Take a backup of a workflow's remote phases, or restore one."""
    root = get_workspace()
    store = WorkspaceStore(root)
    slug = strip_slug(workflow)

    async def _backup(remote: RemoteStore) -> dict:
        sync = WorkflowSync(store, remote)
        chosen = _pick_slug(store, slug, "Select a workflow")
        if not restore:
            taken = await sync.backup(chosen, name=name)
            return {"status": "backed_up", "slug": chosen, "backup": taken.name, "phases": len(taken.phases)}

        position = index
        if position is None:
            backups = store.get_workflow(chosen).backups
            picked = choose(
                backups,
                lambda b: f"[{b.name}] {b.ts.astimezone():%d/%m/%y %H:%M}",
                "Select backup to restore",
            )
            position = backups.index(picked)
        return await sync.restore(chosen, position)

    result = run(_backup, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "restored":
        success(f"Restored '{result['backup']}' ({result['phases']} phases) of {result['slug']}")
    else:
        success(f"Backup '{result['backup']}' of {result['slug']} taken ({result['phases']} phases)")


def refresh(
    only: Optional[str] = typer.Option(None, "--only", "-o", help="Refresh a single workflow"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation"),
    fmt: Optional[str] = FORMAT_OPTION,
) -> None:
    """Overwrite local workflows with the remote code."""
    root = get_workspace()
    store = WorkspaceStore(root)
    slug = strip_slug(only)
    confirm = None if yes else _confirm_changes(
        "The following phases have local changes that will be overwritten:"
    )

    async def _refresh(remote: RemoteStore) -> dict:
        return await WorkflowSync(store, remote).refresh(slug, confirm)

    result = run(_refresh, root)
    if fmt == "json":
        output(result, fmt="json")
    elif result["status"] == "refreshed":
        success(f"Refreshed {len(result['workflows'])} workflows")
    else:
        info("Refresh aborted, nothing written")


def register_workflow_commands(app: typer.Typer) -> None:
    app.command("clone")(clone)
    app.command("upsync")(upsync)
    app.command("backup")(backup)
    app.command("refresh")(refresh)
