"""Shared CLI utilities: workspace resolution, remote connection, async runner."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import typer
from rich.logging import RichHandler
from rich.prompt import Prompt

from agrippa.core.errors import AgrippaError, NothingToSync
from agrippa.remote.auth import refresh_token
from agrippa.remote.base import RemoteStore
from agrippa.remote.cache import ResponseCache
from agrippa.remote.client import RemoteClient
from agrippa.utils.config import FileCredentialStore
from agrippa.utils.output import error, error_console, info, output_table
from agrippa.utils.paths import CACHE_FILE, find_workspace_root

T = TypeVar("T")

FORMAT_OPTION = typer.Option(None, "--format", "-F", help="Output format: json or text")


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def get_workspace() -> Path:
    """The nearest directory holding a workspace config, else the current directory."""
    return find_workspace_root() or Path.cwd()


async def connect(root: Path) -> RemoteStore:
    """Refresh the auth token, then build a client from the updated config."""
    config = await refresh_token(FileCredentialStore(root))
    return RemoteClient(config, cache=ResponseCache(root / CACHE_FILE))


def run(fn: Callable[[RemoteStore], Awaitable[T]], root: Path) -> T:
    """Connect, run `fn` with the remote, close the client; map errors to exit codes."""

    async def _main() -> T:
        remote = await connect(root)
        try:
            return await fn(remote)
        finally:
            close = getattr(remote, "aclose", None)
            if close is not None:
                await close()

    try:
        return asyncio.run(_main())
    except NothingToSync as e:
        info(str(e))
        raise typer.Exit(0)
    except AgrippaError as e:
        error(str(e))
        raise typer.Exit(1)


def choose(
    items: Sequence[T],
    label: Callable[[T], str],
    title: str,
    prompt_fn: Callable[..., Any] = Prompt.ask,
) -> T:
    """Show a numbered table of `items` and return the one the user picks."""
    if not items:
        error(f"{title}: nothing to choose from")
        raise typer.Exit(1)
    output_table(
        [{"#": i, "name": label(item)} for i, item in enumerate(items, 1)],
        ["#", "name"],
        title=title,
    )
    answer = prompt_fn(title, choices=[str(i) for i in range(1, len(items) + 1)])
    return items[int(answer) - 1]
