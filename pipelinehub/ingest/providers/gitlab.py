"""GitLab CI pipeline webhooks.

Security:
- X-Gitlab-Token header compared against GITLAB_WEBHOOK_SECRET
"""

from typing import Literal, Optional

from pydantic import BaseModel

from pipelinehub.config import Settings
from pipelinehub.ingest.adapters import ProviderAdapter, StatusMapper
from pipelinehub.ingest.auth import SharedTokenAuth
from pipelinehub.ingest.models import PipelineEvent, Provider, WebhookRequest
from pipelinehub.ingest.status import map_gitlab_status
from pipelinehub.ingest.validation import CommitSha, HttpUrlStr, Label, Name, Timestamp, object_kind

TOKEN_HEADER = "x-gitlab-token"
EVENT_HEADER = "x-gitlab-event"
PIPELINE_HOOK = "Pipeline Hook"


class GitLabPipelineAttributes(BaseModel):
    id: int
    iid: int
    ref: Label
    sha: CommitSha
    status: Literal[
        "created", "waiting_for_resource", "preparing", "pending", "running",
        "success", "failed", "canceled", "canceling", "skipped", "manual", "scheduled",
    ]
    duration: Optional[float] = None
    created_at: Timestamp
    finished_at: Optional[Timestamp] = None


class GitLabProject(BaseModel):
    name: Name
    web_url: HttpUrlStr


class GitLabUser(BaseModel):
    username: Label


class GitLabPipelinePayload(BaseModel):
    object_kind: Literal["pipeline"]
    object_attributes: GitLabPipelineAttributes
    project: GitLabProject
    user: Optional[GitLabUser] = None


def skip_non_pipeline_hook(request: WebhookRequest) -> Optional[str]:
    event = request.header(EVENT_HEADER)
    if event and event != PIPELINE_HOOK:
        return event
    return None


def skip_non_pipeline_kind(data) -> Optional[str]:
    kind = object_kind(data)
    if kind and kind != "pipeline":
        return kind
    return None


def extract_pipeline_event(payload: GitLabPipelinePayload, map_status: StatusMapper) -> PipelineEvent:
    attrs = payload.object_attributes
    duration = int(attrs.duration) if attrs.duration is not None else None

    return PipelineEvent(
        provider=Provider.GITLAB,
        project_name=payload.project.name,
        repository_url=payload.project.web_url,
        run_number=attrs.iid,
        status=map_status(attrs.status, None),
        branch=attrs.ref,
        commit_hash=attrs.sha,
        duration_seconds=duration,
        started_at=attrs.created_at,
        completed_at=attrs.finished_at,
        response_context={
            "project": payload.project.name,
            "pipeline_id": attrs.iid,
        },
    )


def build_adapter(settings: Settings) -> ProviderAdapter:
    return ProviderAdapter(
        provider=Provider.GITLAB,
        auth=SharedTokenAuth(
            settings.gitlab_webhook_secret,
            header=TOKEN_HEADER,
            default_owner_id=settings.webhook_default_owner_id,
        ),
        schema=GitLabPipelinePayload,
        status_mapper=map_gitlab_status,
        extract=extract_pipeline_event,
        request_filter=skip_non_pipeline_hook,
        payload_filter=skip_non_pipeline_kind,
        custom_headers=(TOKEN_HEADER, EVENT_HEADER),
    )
