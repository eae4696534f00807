"""Persistence for projects, pipeline runs and deployments.

All writes rely on storage-level uniqueness:
- projects: unique (name, created_by)
- pipelines: unique (project_id, run_number)

A write that hits one of these constraints is a PersistenceConflict and is
resolved here by re-reading, never surfaced to the caller.
"""

from datetime import datetime
from typing import Any, Optional

from pipelinehub.ingest.errors import InternalError, PersistenceConflict
from pipelinehub.ingest.models import (
    DeploymentEvent,
    PipelineEvent,
    PipelineStatus,
    elapsed_seconds,
    parse_timestamp,
    utcnow,
)
from pipelinehub.services.supabase_client import SupabaseClient, is_conflict
from pipelinehub.utils.logging import get_logger


def _rows(result: dict[str, Any], action: str) -> list[dict]:
    """Unwrap a store result, raising on failure."""
    if result.get("error"):
        if is_conflict(result):
            raise PersistenceConflict(f"{action}: unique constraint violated")
        raise InternalError(f"{action} failed: {result['error']}")
    data = result.get("data")
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    return list(data)


def _first(result: dict[str, Any], action: str) -> Optional[dict]:
    rows = _rows(result, action)
    return rows[0] if rows else None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ProfileRepository:
    """Read-only access to account profiles."""

    def __init__(self, store: SupabaseClient):
        self.store = store

    async def find_user_by_webhook_token(self, token: str) -> Optional[str]:
        result = await self.store.select(
            "profiles",
            columns="user_id",
            filters={"webhook_token": f"eq.{token}"},
            limit=1,
        )
        profile = _first(result, "Profile lookup")
        return profile.get("user_id") if profile else None


class ProjectResolver:
    """Find-or-create projects keyed by (name, owner)."""

    def __init__(self, store: SupabaseClient):
        self.store = store
        self.log = get_logger(__name__, component="project_resolver")

    async def _find(self, name: str, owner_id: str) -> Optional[dict]:
        result = await self.store.select(
            "projects",
            columns="id,name,repository_url,created_by",
            filters={"name": f"eq.{name}", "created_by": f"eq.{owner_id}"},
            limit=1,
        )
        return _first(result, "Project lookup")

    async def resolve(
        self,
        name: str,
        owner_id: str,
        repository_url: Optional[str] = None,
    ) -> dict:
        """Return the project row for (name, owner), creating it on first sight."""
        project = await self._find(name, owner_id)
        if project:
            if repository_url and not project.get("repository_url"):
                await self._backfill_repository_url(project, repository_url)
            return project

        record = {"name": name, "created_by": owner_id}
        if repository_url:
            record["repository_url"] = repository_url

        try:
            created = _first(await self.store.insert("projects", record), "Project insert")
        except PersistenceConflict:
            # Lost a creation race with a concurrent first event
            self.log.info("Project created concurrently, re-reading", project=name)
            created = await self._find(name, owner_id)

        if not created:
            raise InternalError(f"Failed to create or fetch project '{name}'")

        self.log.info("Project created", project=name, project_id=created.get("id"))
        return created

    async def _backfill_repository_url(self, project: dict, repository_url: str) -> None:
        result = await self.store.update(
            "projects",
            {"id": f"eq.{project['id']}", "repository_url": "is.null"},
            {"repository_url": repository_url},
        )
        _rows(result, "Project repository_url backfill")
        project["repository_url"] = repository_url


class PipelineUpserter:
    """Insert-or-update pipeline runs keyed by (project_id, run_number).

    Updates are compare-and-set on the status last observed, so two
    concurrent events for the same run cannot overwrite each other blindly:
    the loser re-reads and re-applies its change.
    """

    def __init__(self, store: SupabaseClient, max_attempts: int = 3):
        self.store = store
        self.max_attempts = max_attempts
        self.log = get_logger(__name__, component="pipeline_upserter")

    async def find(self, project_id: str, run_number: int) -> Optional[dict]:
        result = await self.store.select(
            "pipelines",
            filters={"project_id": f"eq.{project_id}", "run_number": f"eq.{run_number}"},
            limit=1,
        )
        return _first(result, "Pipeline lookup")

    async def upsert(
        self,
        project_id: str,
        event: PipelineEvent,
        triggered_by: str,
    ) -> tuple[dict, str]:
        """Apply an event to its run.

        Returns:
            (row, outcome) where outcome is "created", "updated" or "unchanged"
        """
        for attempt in range(1, self.max_attempts + 1):
            existing = await self.find(project_id, event.run_number)

            if existing is None:
                try:
                    row = await self._insert(project_id, event, triggered_by)
                    return row, "created"
                except PersistenceConflict:
                    self.log.info(
                        "Pipeline inserted concurrently, retrying as update",
                        run_number=event.run_number,
                        attempt=attempt,
                    )
                    continue

            changes = self.compute_changes(existing, event)
            if not changes:
                return existing, "unchanged"

            result = await self.store.update("pipelines", self._cas_filter(existing), changes)
            updated = _first(result, "Pipeline update")
            if updated:
                return updated, "updated"

            self.log.info(
                "Pipeline changed concurrently, re-reading",
                run_number=event.run_number,
                attempt=attempt,
            )

        raise InternalError(
            f"Could not apply event to run {event.run_number} after {self.max_attempts} attempts"
        )

    async def _insert(self, project_id: str, event: PipelineEvent, triggered_by: str) -> dict:
        started_at = event.started_at or utcnow()
        completed_at = None
        duration = event.duration_seconds
        if event.is_terminal:
            completed_at = event.completed_at or utcnow()
            if duration is None and event.started_at is not None:
                duration = elapsed_seconds(event.started_at, completed_at)

        record = {
            "project_id": project_id,
            "run_number": event.run_number,
            "branch": event.branch,
            "commit_hash": event.commit_hash,
            "status": event.status.value,
            "triggered_by": triggered_by,
            "duration_seconds": duration,
            "started_at": _iso(started_at),
            "completed_at": _iso(completed_at),
        }
        row = _first(await self.store.insert("pipelines", record), "Pipeline insert")
        if not row:
            raise InternalError("Pipeline insert returned no row")
        self.log.info("Pipeline created", run_number=event.run_number, status=event.status.value)
        return row

    @staticmethod
    def _cas_filter(existing: dict) -> dict[str, str]:
        """Match the row only while it still holds the status we read."""
        status = existing.get("status")
        return {
            "id": f"eq.{existing['id']}",
            "status": "is.null" if status is None else f"eq.{status}",
        }

    def compute_changes(self, existing: dict, event: PipelineEvent) -> dict[str, Any]:
        """Mutable-field changes an event implies for a stored run.

        Branch, commit, run number and trigger are never touched. Events that
        sit earlier in the lifecycle than the stored status are stale, as are
        terminal events that completed before the stored terminal state.
        """
        try:
            current = PipelineStatus(existing.get("status"))
        except ValueError:
            current = None

        if current is not None and event.status.rank < current.rank:
            self.log.info(
                "Ignoring stale pipeline event",
                run_number=event.run_number,
                stored=current.value,
                incoming=event.status.value,
            )
            return {}

        if not event.is_terminal:
            if current is event.status:
                return {}
            return {"status": event.status.value}

        if current is not None and current.is_terminal:
            if event.completed_at is None:
                # Completion time and duration are fixed by the first terminal event
                if current is event.status:
                    return {}
                return {"status": event.status.value}

            stored_completed_at = parse_timestamp(existing.get("completed_at"))
            if stored_completed_at is not None and event.completed_at < stored_completed_at:
                self.log.info(
                    "Ignoring terminal event older than stored completion",
                    run_number=event.run_number,
                    stored=current.value,
                    incoming=event.status.value,
                )
                return {}

        completed_at = event.completed_at or utcnow()
        duration = event.duration_seconds
        if duration is None:
            started_at = event.started_at or parse_timestamp(existing.get("started_at"))
            duration = elapsed_seconds(started_at, completed_at)

        changes: dict[str, Any] = {
            "status": event.status.value,
            "completed_at": _iso(completed_at),
        }
        if duration is not None:
            changes["duration_seconds"] = duration
        return changes


class DeploymentRecorder:
    """Always-insert deployment records with a best-effort pipeline link."""

    def __init__(self, store: SupabaseClient, pipelines: PipelineUpserter):
        self.store = store
        self.pipelines = pipelines
        self.log = get_logger(__name__, component="deployment_recorder")

    async def _link_pipeline(self, project_id: str, run_number: Optional[int]) -> Optional[str]:
        if run_number is None:
            return None
        try:
            pipeline = await self.pipelines.find(project_id, run_number)
        except InternalError as e:
            self.log.warning("Pipeline lookup failed, recording without link", run_number=run_number, error=str(e))
            return None
        if not pipeline:
            self.log.warning("Pipeline not found for deployment", run_number=run_number)
            return None
        return pipeline.get("id")

    async def record(self, project_id: str, event: DeploymentEvent, deployed_by: str) -> dict:
        pipeline_id = await self._link_pipeline(project_id, event.pipeline_run_number)

        record = {
            "project_id": project_id,
            "pipeline_id": pipeline_id,
            "environment": event.environment.value,
            "version": event.version,
            "status": event.status.value,
            "deployed_by": deployed_by,
            "deployed_at": _iso(event.deployed_at or utcnow()),
        }
        row = _first(await self.store.insert("deployments", record), "Deployment insert")
        if not row:
            raise InternalError("Deployment insert returned no row")

        self.log.info(
            "Deployment recorded",
            deployment_id=row.get("id"),
            environment=event.environment.value,
            linked=pipeline_id is not None,
        )
        return row
