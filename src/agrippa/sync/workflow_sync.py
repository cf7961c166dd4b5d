"""Workflow phase sync: clone, refresh, upsync, backup and restore."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Sequence

from agrippa.core.backup import MANUAL_BACKUP, PRE_UPSYNC, backup_workflow, restore_workflow_backup
from agrippa.core.classify import compute_changed_phases, compute_phase_status
from agrippa.core.errors import LocalResourceNotFound
from agrippa.core.schema import PhaseBackup, PhaseStatus, RemotePhase, RemoteWorkflow, Status, WorkflowConfig
from agrippa.core.store import WorkspaceStore
from agrippa.core.upsync import perform_upsync
from agrippa.remote.base import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class WorkflowPlan:
    """Classification of one workflow, kept until the user confirms."""

    config: WorkflowConfig
    phases: list[RemotePhase]
    statuses: list[PhaseStatus] = field(default_factory=list)

    def by_status(self, status: Status) -> list[PhaseStatus]:
        return [s for s in self.statuses if s.status == status]

    def counts(self) -> dict[str, int]:
        return {s.value: len(self.by_status(s)) for s in Status}

    @property
    def has_writes(self) -> bool:
        return any(s.status in (Status.safe, Status.stale) for s in self.statuses)


ConfirmPlans = Callable[[Sequence[WorkflowPlan]], bool]
ConfirmChanges = Callable[[Sequence[str]], bool]


class WorkflowSync:
    """Orchestrates the remote and the workspace for cloned workflows.

    Every confirmation callback receives what is about to happen and returns
    False to abort; aborting never writes anything.
    """

    def __init__(self, store: WorkspaceStore, remote: RemoteStore) -> None:
        self.store = store
        self.remote = remote

    async def clone(self, workflow: RemoteWorkflow, confirm: ConfirmChanges | None = None) -> dict:
        """Clone a workflow's code-driven phases into <slug>/.

        When a clone already exists and holds local edits, `confirm` gets the
        names of the phases that would lose them.
        """
        phases = await self.remote.get_phases(workflow.id, from_code_only=True)
        meta = self.store.workflow_dir_metadata(workflow.name, workflow.id)

        if meta.exists_dotfile:
            changed = compute_changed_phases(self.store, meta.slug, phases)
            if changed and confirm is not None and not confirm(changed):
                return {"status": "declined", "slug": meta.slug, "changed": changed}

        config = self.store.generate_workflow(meta.slug, workflow, phases)
        return {"status": "cloned", "slug": config.slug, "phases": len(config.phases)}

    async def plan(self, slug: str, phases: Sequence[RemotePhase] | None = None) -> WorkflowPlan:
        config = self.store.get_workflow(slug)
        if phases is None:
            phases = await self.remote.get_phases(config.id, from_code_only=True)
        statuses = compute_phase_status(self.store, slug, phases)
        return WorkflowPlan(config=config, phases=list(phases), statuses=statuses)

    async def upsync(self, slug: str, confirm: ConfirmPlans | None = None) -> dict:
        """Classify, confirm, back up, then push one workflow."""
        plan = await self.plan(slug)
        if confirm is not None and not confirm([plan]):
            return {"status": "declined", "slug": slug, "counts": plan.counts()}

        await backup_workflow(self.store, self.remote, slug, name=PRE_UPSYNC, phases=plan.phases)
        written = await perform_upsync(self.store, self.remote, slug, plan.statuses)
        return {
            "status": "synced",
            "slug": slug,
            "counts": plan.counts(),
            "written": [s.name for s in written],
        }

    async def upsync_all(self, confirm: ConfirmPlans | None = None) -> dict:
        """Push every tracked workflow after a single confirmation.

        Backups are taken while planning, before the confirmation prompt.
        """
        plans = []
        for config in self.store.list_workflows():
            phases = await self.remote.get_phases(config.id, from_code_only=True)
            await backup_workflow(self.store, self.remote, config.slug, name=PRE_UPSYNC, phases=phases)
            plans.append(await self.plan(config.slug, phases))

        if confirm is not None and not confirm(plans):
            return {"status": "declined", "workflows": len(plans)}

        written = []
        for plan in plans:
            done = await perform_upsync(self.store, self.remote, plan.config.slug, plan.statuses)
            written.extend(f"{plan.config.name} / {s.name}" for s in done)
        return {"status": "synced", "workflows": len(plans), "written": written}

    async def refresh(self, only: str | None = None, confirm: ConfirmChanges | None = None) -> dict:
        """Overwrite local clones with the remote code, keeping their backups."""
        if only is not None:
            configs = [self.store.get_workflow(only)]
        else:
            configs = self.store.list_workflows()

        fetched: dict[str, list[RemotePhase]] = {}
        changes: list[str] = []
        for config in configs:
            phases = await self.remote.get_phases(config.id, from_code_only=True)
            fetched[config.slug] = phases
            changes.extend(
                f"[{config.name}] {name}"
                for name in compute_changed_phases(self.store, config.slug, phases)
            )

        if changes and confirm is not None and not confirm(changes):
            return {"status": "declined", "changed": changes}

        for config in configs:
            self.store.generate_workflow(
                config.slug, config, fetched[config.slug], preserve_backups=True
            )
        return {"status": "refreshed", "workflows": [c.slug for c in configs], "changed": changes}

    async def backup(self, slug: str, name: str | None = None) -> PhaseBackup:
        return await backup_workflow(self.store, self.remote, slug, name=name or MANUAL_BACKUP)

    async def restore(self, slug: str, index: int = 0) -> dict:
        """Restore the backup at `index` (0 is the newest) of a workflow."""
        config = self.store.get_workflow(slug)
        if not 0 <= index < len(config.backups):
            raise LocalResourceNotFound(f"{slug} backup #{index}")
        backup = config.backups[index]
        count = await restore_workflow_backup(self.remote, backup)
        logger.debug("Restored %r of %s", backup.name, slug)
        return {"status": "restored", "slug": slug, "backup": backup.name, "phases": count}
