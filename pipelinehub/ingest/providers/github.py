"""GitHub Actions ``workflow_run`` webhooks.

Security:
- Per-account token URL, optionally combined with X-Hub-Signature-256
- Or HMAC SHA256 signature alone, scoped to the default owner
"""

from typing import Literal, Optional

from pydantic import BaseModel

from pipelinehub.config import Settings
from pipelinehub.ingest.adapters import ProviderAdapter, StatusMapper
from pipelinehub.ingest.auth import HmacSignatureAuth, PathTokenAuth
from pipelinehub.ingest.models import PipelineEvent, Provider, WebhookRequest
from pipelinehub.ingest.status import map_github_status
from pipelinehub.ingest.validation import CommitSha, HttpUrlStr, Label, Name, Timestamp

EVENT_HEADER = "x-github-event"
SIGNATURE_HEADER = "x-hub-signature-256"
SUPPORTED_EVENT = "workflow_run"


class GitHubWorkflowRun(BaseModel):
    id: int
    name: Label
    head_branch: Label
    head_sha: CommitSha
    status: Literal["requested", "waiting", "pending", "queued", "in_progress", "completed"]
    conclusion: Optional[Literal[
        "success", "failure", "neutral", "cancelled", "skipped",
        "timed_out", "action_required", "startup_failure", "stale",
    ]] = None
    run_number: int
    created_at: Timestamp
    updated_at: Timestamp
    run_started_at: Optional[Timestamp] = None


class GitHubRepository(BaseModel):
    name: Name
    full_name: Label
    html_url: HttpUrlStr


class GitHubSender(BaseModel):
    login: Label


class GitHubWorkflowRunPayload(BaseModel):
    """Subset of the ``workflow_run`` delivery this service reads."""
    action: str
    workflow_run: GitHubWorkflowRun
    repository: GitHubRepository
    sender: GitHubSender


def skip_unsupported_event(request: WebhookRequest) -> Optional[str]:
    event_type = request.header(EVENT_HEADER)
    if event_type != SUPPORTED_EVENT:
        return event_type or "<missing>"
    return None


def extract_pipeline_event(payload: GitHubWorkflowRunPayload, map_status: StatusMapper) -> PipelineEvent:
    run = payload.workflow_run
    completed = run.status == "completed"

    return PipelineEvent(
        provider=Provider.GITHUB,
        project_name=payload.repository.name,
        repository_url=payload.repository.html_url,
        run_number=run.run_number,
        status=map_status(run.status, run.conclusion),
        branch=run.head_branch,
        commit_hash=run.head_sha,
        started_at=run.run_started_at or run.created_at,
        completed_at=run.updated_at if completed else None,
        response_context={
            "project": payload.repository.name,
            "run_number": run.run_number,
        },
    )


def _adapter(auth) -> ProviderAdapter:
    return ProviderAdapter(
        provider=Provider.GITHUB,
        auth=auth,
        schema=GitHubWorkflowRunPayload,
        status_mapper=map_github_status,
        extract=extract_pipeline_event,
        request_filter=skip_unsupported_event,
        allow_form_payload=True,
        custom_headers=(SIGNATURE_HEADER, EVENT_HEADER),
    )


def build_token_adapter(settings: Settings) -> ProviderAdapter:
    """Adapter for ``/webhooks/github/{token}``."""
    return _adapter(PathTokenAuth(signing_secret=settings.github_webhook_secret, signature_header=SIGNATURE_HEADER))


def build_signature_adapter(settings: Settings) -> ProviderAdapter:
    """Adapter for ``/webhooks/github`` (signature only)."""
    return _adapter(HmacSignatureAuth(
        settings.github_webhook_secret,
        default_owner_id=settings.webhook_default_owner_id,
        signature_header=SIGNATURE_HEADER,
    ))
