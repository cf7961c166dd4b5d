"""RemoteStore: the remote operations the sync engine depends on."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from agrippa.core.schema import RemoteFunction, RemotePhase, RemoteWorkflow


@runtime_checkable
class RemoteStore(Protocol):
    """Interface implemented by the HTTP client and by test doubles."""

    async def get_workflows(self) -> list[RemoteWorkflow]:
        """List the workflows visible to the current user."""
        ...

    async def get_phases(self, workflow_id: int, from_code_only: bool = False) -> list[RemotePhase]:
        """List a workflow's phases, optionally only those driven by code."""
        ...

    async def update_phase(self, phase_id: int, code: str) -> None:
        """Replace a phase's code."""
        ...

    async def get_model_functions(self) -> list[RemoteFunction]:
        """List every model function."""
        ...

    async def update_model_function(self, function_id: int, code: str) -> None:
        """Replace a model function's code."""
        ...
