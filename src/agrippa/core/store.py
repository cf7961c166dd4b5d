"""Workspace stores: cloned workflows (.sorge.wf) and model functions (.sorge.mfa).

Each tracked collection is a directory directly under the workspace root
holding one code file per item plus a JSON metadata file.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from agrippa.core.errors import LocalResourceNotFound
from agrippa.core.schema import (
    ModelFunctionConfig,
    PhaseBackup,
    RemoteFunction,
    RemotePhase,
    RemoteWorkflow,
    TrackedFunction,
    TrackedPhase,
    WorkflowConfig,
    _now,
)
from agrippa.utils.paths import DOTFILE_MFA, DOTFILE_WF, slugify

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def write_json_atomic(path: Path, model: BaseModel) -> None:
    """Serialize `model` next to `path` then rename over it."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(model.model_dump_json(indent=2, by_alias=True) + "\n")
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _read_model(path: Path, model: type[M]) -> M | None:
    if not path.is_file():
        return None
    return model.model_validate_json(path.read_text(encoding="utf-8"))


def _scan(root: Path, dotfile: str, model: type[M]) -> list[M]:
    found: list[M] = []
    if not root.is_dir():
        return found
    for entry in sorted(root.iterdir()):
        path = entry / dotfile
        if not entry.is_dir() or not path.is_file():
            continue
        try:
            found.append(model.model_validate_json(path.read_text(encoding="utf-8")))
        except (ValidationError, OSError) as e:
            logger.debug("Skipping %s: %s", path, e)
    return found


@dataclass
class WorkflowDirMetadata:
    slug: str
    dir_path: Path
    dotfile_path: Path
    exists_dir: bool
    exists_dotfile: bool


class WorkspaceStore:
    """Read/write cloned workflows under the workspace root."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    # -- Paths --

    def workflow_dir(self, slug: str) -> Path:
        return self.root / slug

    def dotfile_path(self, slug: str) -> Path:
        return self.workflow_dir(slug) / DOTFILE_WF

    def workflow_dir_metadata(
        self, workflow_name: str, workflow_id: int | None = None
    ) -> WorkflowDirMetadata:
        default = f"workflow-{workflow_id}" if workflow_id is not None else None
        slug = slugify(workflow_name, default=default)
        dir_path = self.workflow_dir(slug)
        dotfile_path = self.dotfile_path(slug)
        return WorkflowDirMetadata(
            slug=slug,
            dir_path=dir_path,
            dotfile_path=dotfile_path,
            exists_dir=dir_path.is_dir(),
            exists_dotfile=dotfile_path.is_file(),
        )

    # -- Metadata --

    def find_workflow(self, slug: str) -> WorkflowConfig | None:
        """Return the workflow metadata, or None when `slug` is not tracked."""
        try:
            return _read_model(self.dotfile_path(slug), WorkflowConfig)
        except ValidationError as e:
            logger.debug("Unreadable metadata for %s: %s", slug, e)
            return None

    def get_workflow(self, slug: str) -> WorkflowConfig:
        config = self.find_workflow(slug)
        if config is None:
            raise LocalResourceNotFound(slug)
        return config

    def is_tracked(self, slug: str) -> bool:
        return self.find_workflow(slug) is not None

    def write_workflow(self, config: WorkflowConfig) -> None:
        write_json_atomic(self.dotfile_path(config.slug), config)

    def list_workflows(self) -> list[WorkflowConfig]:
        return _scan(self.root, DOTFILE_WF, WorkflowConfig)

    # -- Phase code --

    def phase_path(self, config: WorkflowConfig, phase: TrackedPhase) -> Path:
        return self.workflow_dir(config.slug) / phase.filename

    def read_phase_code(self, config: WorkflowConfig, phase: TrackedPhase) -> str:
        path = self.phase_path(config, phase)
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            raise LocalResourceNotFound(f"{config.slug}/{phase.filename}")

    def read_item_text(self, config: WorkflowConfig, phase_id: int) -> str:
        phase = config.tracked(phase_id)
        if phase is None:
            raise LocalResourceNotFound(f"{config.slug}#{phase_id}")
        return self.read_phase_code(config, phase)

    # -- Generation --

    def generate_workflow(
        self,
        slug: str,
        workflow: RemoteWorkflow | WorkflowConfig,
        phases: Sequence[RemotePhase],
        preserve_backups: bool = False,
    ) -> WorkflowConfig:
        """Recreate the workflow directory from scratch.

        Any existing directory is removed first. Phase files are written
        verbatim, one per phase: a slug already taken in this workflow gets
        the phase id appended. The sync marker is set to now.
        """
        backups: list[PhaseBackup] = []
        if preserve_backups:
            previous = self.find_workflow(slug)
            if previous is not None:
                backups = previous.backups

        dir_path = self.workflow_dir(slug)
        if dir_path.exists():
            shutil.rmtree(dir_path)
        dir_path.mkdir(parents=True)

        tracked = []
        used: set[str] = set()
        for phase in phases:
            phase_slug = slugify(phase.name, default=f"phase-{phase.id}")
            # names differing only in case or punctuation share a slug
            if phase_slug in used:
                phase_slug = f"{phase_slug}-{phase.id}"
            used.add(phase_slug)
            tracked.append(
                TrackedPhase(id=phase.id, name=phase.name, slug=phase_slug, filename=f"{phase_slug}.py")
            )
        config = WorkflowConfig(
            slug=slug,
            id=workflow.id,
            name=workflow.name,
            last_sync_at=_now(),
            phases=tracked,
            backups=backups,
        )
        self.write_workflow(config)

        for phase, entry in zip(phases, tracked):
            (dir_path / entry.filename).write_text(phase.code, encoding="utf-8")

        logger.debug("Generated %s with %d phases", dir_path, len(tracked))
        return config


class ModelFunctionStore:
    """Read/write cloned model functions, grouped by model under the workspace root."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def model_dir(self, model: str) -> Path:
        return self.root / model

    def dotfile_path(self, model: str) -> Path:
        return self.model_dir(model) / DOTFILE_MFA

    def list_models(self) -> list[ModelFunctionConfig]:
        return _scan(self.root, DOTFILE_MFA, ModelFunctionConfig)

    def find_model(self, model: str) -> ModelFunctionConfig | None:
        try:
            return _read_model(self.dotfile_path(model), ModelFunctionConfig)
        except ValidationError as e:
            logger.debug("Unreadable metadata for %s: %s", model, e)
            return None

    def write_model(self, config: ModelFunctionConfig) -> None:
        write_json_atomic(self.dotfile_path(config.model), config)

    def function_path(self, config: ModelFunctionConfig, fn: TrackedFunction) -> Path:
        return self.model_dir(config.model) / fn.filename

    def read_function_code(self, config: ModelFunctionConfig, fn: TrackedFunction) -> str:
        try:
            return self.function_path(config, fn).read_text(encoding="utf-8")
        except OSError:
            raise LocalResourceNotFound(fn.name)

    def write_function(self, fn: RemoteFunction) -> ModelFunctionConfig:
        """Write a remote function into its model directory and track it.

        The model directory and its metadata are created on first use. The
        function's sync marker is reset to now.
        """
        config = self.find_model(fn.model_name)
        if config is None:
            self.model_dir(fn.model_name).mkdir(parents=True, exist_ok=True)
            config = ModelFunctionConfig(model=fn.model_name)

        filename = f"{fn.name}.py"
        (self.model_dir(fn.model_name) / filename).write_text(fn.code.strip() + "\n", encoding="utf-8")

        existing = config.tracked(fn.id)
        if existing is None:
            config.functions.append(TrackedFunction(id=fn.id, name=fn.name, filename=filename))
        else:
            existing.filename = filename
            existing.last_sync_at = _now()
        self.write_model(config)
        return config


def select_function(
    configs: Sequence[ModelFunctionConfig], function_id: int
) -> list[ModelFunctionConfig]:
    """Narrow `configs` down to the single tracked function `function_id`."""
    selected = []
    for config in configs:
        fn = config.tracked(function_id)
        if fn is not None:
            selected.append(config.model_copy(update={"functions": [fn]}))
    return selected
