"""Pydantic v2 models for remote records, workspace metadata and sync results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

MAX_BACKUPS = 50
FROM_CODE = "from_code"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive timestamps (the remote sends them without offset) are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())


# -- Remote records --


class RemoteWorkflow(_Record):
    id: int
    name: str


class RemoteCode(_Record):
    id: int
    name: str
    code: str = ""
    write_date: UtcDatetime

    @field_validator("code", mode="before")
    @classmethod
    def _empty_code(cls, value: Any) -> Any:
        # empty text fields come back as false
        if value is None or value is False:
            return ""
        return value


class RemotePhase(RemoteCode):
    set_result_automatically: str = ""

    @field_validator("set_result_automatically", mode="before")
    @classmethod
    def _empty_mode(cls, value: Any) -> Any:
        if value is None or value is False:
            return ""
        return value

    @property
    def is_from_code(self) -> bool:
        return self.set_result_automatically == FROM_CODE


class RemoteFunction(RemoteCode):
    model_name: str

    @property
    def label(self) -> str:
        return f"{self.model_name} / {self.name}"


# -- Workflow metadata (.sorge.wf) --


class TrackedPhase(_Record):
    id: int
    name: str
    slug: str
    filename: str


class CodeSnapshot(_Record):
    id: int
    code: str


class PhaseBackup(_Record):
    name: str
    ts: UtcDatetime = Field(default_factory=_now)
    phases: list[CodeSnapshot] = Field(default_factory=list)


class WorkflowConfig(BaseModel):
    """Metadata of one cloned workflow. Unknown keys survive a rewrite."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    slug: str
    id: int
    name: str
    last_sync_at: UtcDatetime = Field(default_factory=_now, alias="lastSyncAt")
    phases: list[TrackedPhase] = Field(default_factory=list)
    backups: list[PhaseBackup] = Field(default_factory=list)

    def tracked(self, phase_id: int) -> TrackedPhase | None:
        return next((p for p in self.phases if p.id == phase_id), None)


# -- Model function metadata (.sorge.mfa) --


class TrackedFunction(_Record):
    id: int
    name: str
    filename: str
    last_sync_at: UtcDatetime = Field(default_factory=_now, alias="lastSyncAt")


class FunctionBackup(_Record):
    backup_name: str = Field(alias="backupName")
    ts: UtcDatetime = Field(default_factory=_now)
    data: CodeSnapshot


class ModelFunctionConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    model: str
    functions: list[TrackedFunction] = Field(default_factory=list)
    backups: list[FunctionBackup] = Field(default_factory=list)

    def tracked(self, function_id: int) -> TrackedFunction | None:
        return next((f for f in self.functions if f.id == function_id), None)


# -- Classification results --


class Status(str, Enum):
    missing = "missing"
    stale = "stale"
    noop = "noop"
    safe = "safe"


class PhaseStatus(_Record):
    id: int
    name: str
    status: Status


class Operation(str, Enum):
    missing = "[MISSING]"
    danger = "[SYNC-DANGER]"
    noop = "[NOOP]"
    safe = "[SYNC-SAFE]"

    @classmethod
    def for_status(cls, status: Status) -> Operation:
        return _STATUS_OPERATIONS[status]

    @property
    def writes(self) -> bool:
        return self in (Operation.safe, Operation.danger)


_STATUS_OPERATIONS = {
    Status.missing: Operation.missing,
    Status.stale: Operation.danger,
    Status.noop: Operation.noop,
    Status.safe: Operation.safe,
}


class UpsyncOperation(_Record):
    id: int
    name: str
    code: str
    operation: Operation
    write: bool
