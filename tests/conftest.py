"""Shared fixtures: temp workspaces, an in-memory remote, cloned workflows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from agrippa.core.errors import ConnectError
from agrippa.core.schema import RemoteFunction, RemotePhase, RemoteWorkflow
from agrippa.core.store import ModelFunctionStore, WorkspaceStore

PAST = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def in_future(hours: int = 1) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)


class FakeRemote:
    """In-memory RemoteStore. Writes are recorded and bump write_date."""

    def __init__(self) -> None:
        self.workflows: list[RemoteWorkflow] = []
        self.phases: dict[int, list[RemotePhase]] = {}
        self.functions: list[RemoteFunction] = []
        self.writes: list[tuple[str, int, str]] = []
        self.fail_on: set[int] = set()

    async def get_workflows(self) -> list[RemoteWorkflow]:
        return list(self.workflows)

    async def get_phases(self, workflow_id: int, from_code_only: bool = False) -> list[RemotePhase]:
        phases = [p.model_copy() for p in self.phases.get(workflow_id, [])]
        if from_code_only:
            return [p for p in phases if p.is_from_code]
        return phases

    async def update_phase(self, phase_id: int, code: str) -> None:
        self._check(phase_id)
        self.writes.append(("phase", phase_id, code))
        for phases in self.phases.values():
            for phase in phases:
                if phase.id == phase_id:
                    phase.code = code
                    phase.write_date = datetime.now(timezone.utc)

    async def get_model_functions(self) -> list[RemoteFunction]:
        return [f.model_copy() for f in self.functions]

    async def update_model_function(self, function_id: int, code: str) -> None:
        self._check(function_id)
        self.writes.append(("function", function_id, code))
        for fn in self.functions:
            if fn.id == function_id:
                fn.code = code
                fn.write_date = datetime.now(timezone.utc)

    def _check(self, item_id: int) -> None:
        if item_id in self.fail_on:
            raise ConnectError(f"http://remote/{item_id}", 500, "boom")

    def phase(self, phase_id: int) -> RemotePhase:
        for phases in self.phases.values():
            for phase in phases:
                if phase.id == phase_id:
                    return phase
        raise KeyError(phase_id)


def make_phase(
    id: int,
    name: str,
    code: str = "result = True\n",
    write_date: datetime = PAST,
    from_code: bool = True,
) -> RemotePhase:
    return RemotePhase(
        id=id,
        name=name,
        code=code,
        write_date=write_date,
        set_result_automatically="from_code" if from_code else "manual",
    )


def make_function(
    id: int, name: str, model: str = "res.partner", code: str = "def run():\n    pass\n",
    write_date: datetime = PAST,
) -> RemoteFunction:
    return RemoteFunction(id=id, name=name, model_name=model, code=code, write_date=write_date)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def store(workspace: Path) -> WorkspaceStore:
    return WorkspaceStore(workspace)


@pytest.fixture
def fn_store(workspace: Path) -> ModelFunctionStore:
    return ModelFunctionStore(workspace)


@pytest.fixture
def lead_intake() -> RemoteWorkflow:
    return RemoteWorkflow(id=7, name="Lead Intake")


@pytest.fixture
def remote(lead_intake: RemoteWorkflow) -> FakeRemote:
    """A remote with one workflow (two code phases, one manual) and two functions."""
    fake = FakeRemote()
    fake.workflows = [lead_intake, RemoteWorkflow(id=8, name="Churn Review")]
    fake.phases = {
        7: [
            make_phase(101, "Check Email", "valid = '@' in email\n"),
            make_phase(102, "Score Lead", "score = 10\n"),
            make_phase(103, "Manual Review", "", from_code=False),
        ],
        8: [make_phase(201, "Notify", "send()\n")],
    }
    fake.functions = [
        make_function(501, "compute_total", code="return 1\n"),
        make_function(502, "compute_tax", code="return 2\n"),
        make_function(601, "close", model="sale.order", code="return 3\n"),
    ]
    return fake


@pytest.fixture
def cloned(store: WorkspaceStore, remote: FakeRemote, lead_intake: RemoteWorkflow) -> str:
    """Clone 'Lead Intake' the way `agrippa clone` does; returns the slug."""
    phases = [p for p in remote.phases[7] if p.is_from_code]
    config = store.generate_workflow("lead-intake", lead_intake, phases)
    return config.slug
