"""Typer app: root commands (init, status) and command registration."""

from __future__ import annotations

from typing import Optional

import typer

from agrippa.cli._shared import FORMAT_OPTION, get_workspace, setup_logging
from agrippa.core.store import ModelFunctionStore, WorkspaceStore
from agrippa.utils.config import FileCredentialStore
from agrippa.utils.output import info, output, output_table, success

app = typer.Typer(
    name="agrippa",
    help="Agrippa: clone workflow phases and model functions, edit them locally, upsync them back.",
    no_args_is_help=True,
)

_INIT_FIELDS = [
    ("keycloak_user", "Keycloak username"),
    ("keycloak_password", "Keycloak password"),
    ("keycloak_client_id", "Keycloak client id"),
    ("keycloak_client_secret", "Keycloak client secret"),
    ("rip_base_url", "Base URL RIP"),
    ("keycloak_url", "URL keycloak"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    setup_logging(verbose)


@app.command()
def init() -> None:
    """Store credentials and endpoints in the current directory."""
    credentials = FileCredentialStore(get_workspace())
    current = credentials.load()
    answers = {
        field: typer.prompt(label, default=getattr(current, field) or "")
        for field, label in _INIT_FIELDS
    }
    credentials.update(**answers)
    success(f"Workspace configured in {credentials.path}")


@app.command()
def status(fmt: Optional[str] = FORMAT_OPTION) -> None:
    """List tracked workflows and model functions."""
    root = get_workspace()
    workflows = WorkspaceStore(root).list_workflows()
    models = ModelFunctionStore(root).list_models()

    rows = [
        {
            "slug": wf.slug,
            "name": wf.name,
            "phases": len(wf.phases),
            "last_sync": wf.last_sync_at.isoformat(),
            "backups": len(wf.backups),
        }
        for wf in workflows
    ]
    functions = [
        {"model": m.model, "function": fn.name, "last_sync": fn.last_sync_at.isoformat()}
        for m in models
        for fn in m.functions
    ]
    if fmt == "json":
        output({"workflows": rows, "functions": functions}, fmt="json")
        return
    if not rows and not functions:
        info("Nothing tracked yet. Run `agrippa clone` first.")
        return
    if rows:
        output_table(rows, ["slug", "name", "phases", "last_sync", "backups"], title="Workflows")
    if functions:
        output_table(functions, ["model", "function", "last_sync"], title="Model functions")


# Register commands
from agrippa.cli.workflow_cmd import register_workflow_commands
from agrippa.cli.mfa_cmd import mfa_app

register_workflow_commands(app)
app.add_typer(mfa_app, name="mfa", help="Clone, upsync and refresh model functions")
