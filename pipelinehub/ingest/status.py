"""Provider status vocabularies mapped onto the canonical pipeline status.

Every mapper is total: anything it does not recognize becomes FAILED.
"""

from typing import Optional

import structlog

from pipelinehub.ingest.models import PipelineStatus

logger = structlog.get_logger()


GITHUB_PENDING_STATUSES = frozenset({"queued", "requested", "waiting", "pending"})
GITHUB_CONCLUSIONS = {
    "success": PipelineStatus.SUCCESS,
    "neutral": PipelineStatus.SUCCESS,
    "failure": PipelineStatus.FAILED,
    "timed_out": PipelineStatus.FAILED,
    "action_required": PipelineStatus.FAILED,
    "startup_failure": PipelineStatus.FAILED,
    "stale": PipelineStatus.FAILED,
    "skipped": PipelineStatus.FAILED,
    "cancelled": PipelineStatus.CANCELLED,
}

GITLAB_STATUSES = {
    "created": PipelineStatus.PENDING,
    "waiting_for_resource": PipelineStatus.PENDING,
    "preparing": PipelineStatus.PENDING,
    "pending": PipelineStatus.PENDING,
    "scheduled": PipelineStatus.PENDING,
    "manual": PipelineStatus.PENDING,
    "running": PipelineStatus.RUNNING,
    "success": PipelineStatus.SUCCESS,
    "failed": PipelineStatus.FAILED,
    "skipped": PipelineStatus.FAILED,
    "canceled": PipelineStatus.CANCELLED,
    "canceling": PipelineStatus.CANCELLED,
}

JENKINS_COMPLETED_PHASES = frozenset({"COMPLETED", "FINALIZED"})
JENKINS_RESULTS = {
    "SUCCESS": PipelineStatus.SUCCESS,
    "FAILURE": PipelineStatus.FAILED,
    "UNSTABLE": PipelineStatus.FAILED,
    "NOT_BUILT": PipelineStatus.FAILED,
    "ABORTED": PipelineStatus.CANCELLED,
}


def _fallback(provider: str, status: Optional[str], conclusion: Optional[str] = None) -> PipelineStatus:
    logger.warning(
        "Unmapped provider status, treating as failed",
        provider=provider,
        status=status,
        conclusion=conclusion,
    )
    return PipelineStatus.FAILED


def map_github_status(status: Optional[str], conclusion: Optional[str] = None) -> PipelineStatus:
    """Map a GitHub workflow_run status/conclusion pair."""
    if status in GITHUB_PENDING_STATUSES:
        return PipelineStatus.PENDING
    if status == "in_progress":
        return PipelineStatus.RUNNING
    if status == "completed" and conclusion in GITHUB_CONCLUSIONS:
        return GITHUB_CONCLUSIONS[conclusion]
    return _fallback("github", status, conclusion)


def map_gitlab_status(status: Optional[str], conclusion: Optional[str] = None) -> PipelineStatus:
    """Map a GitLab pipeline status. GitLab has no separate conclusion."""
    mapped = GITLAB_STATUSES.get(status or "")
    if mapped is None:
        return _fallback("gitlab", status)
    return mapped


def map_jenkins_status(phase: Optional[str], result: Optional[str] = None) -> PipelineStatus:
    """Map a Jenkins notification phase and build result."""
    if phase == "QUEUED":
        return PipelineStatus.PENDING
    if phase == "STARTED":
        return PipelineStatus.RUNNING
    if phase in JENKINS_COMPLETED_PHASES and result in JENKINS_RESULTS:
        return JENKINS_RESULTS[result]
    return _fallback("jenkins", phase, result)


def map_deployment_status(status: Optional[str], conclusion: Optional[str] = None) -> PipelineStatus:
    """Deployment events already speak the canonical vocabulary."""
    try:
        return PipelineStatus(status)
    except ValueError:
        return _fallback("deployment", status)
