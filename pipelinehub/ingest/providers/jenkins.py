"""Jenkins build notifications (Notification plugin JSON format).

Security:
- X-Jenkins-Token header or ``?token=`` compared against JENKINS_WEBHOOK_SECRET
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from pipelinehub.config import Settings
from pipelinehub.ingest.adapters import ProviderAdapter, StatusMapper
from pipelinehub.ingest.auth import SharedTokenAuth
from pipelinehub.ingest.models import PipelineEvent, Provider, parse_timestamp
from pipelinehub.ingest.status import map_jenkins_status
from pipelinehub.ingest.validation import CommitSha, HttpUrlStr, Label, Name

TOKEN_HEADER = "x-jenkins-token"
TOKEN_QUERY_PARAM = "token"

# Used when the notification carries no SCM section
DEFAULT_BRANCH = "main"
UNKNOWN_COMMIT = "unknown"


class JenkinsScm(BaseModel):
    commit: Optional[CommitSha] = None
    branch: Optional[Label] = None


class JenkinsBuild(BaseModel):
    number: int
    phase: Literal["QUEUED", "STARTED", "COMPLETED", "FINALIZED"]
    status: Optional[Literal["SUCCESS", "FAILURE", "UNSTABLE", "ABORTED", "NOT_BUILT"]] = None
    url: Optional[str] = Field(None, max_length=500)
    full_url: Optional[HttpUrlStr] = None
    scm: Optional[JenkinsScm] = None
    duration: Optional[int] = Field(None, ge=0, description="Milliseconds")
    timestamp: Optional[int] = Field(None, ge=0, description="Build start, epoch milliseconds")


class JenkinsBuildPayload(BaseModel):
    name: Name
    url: HttpUrlStr
    build: JenkinsBuild


def extract_pipeline_event(payload: JenkinsBuildPayload, map_status: StatusMapper) -> PipelineEvent:
    build = payload.build
    scm = build.scm or JenkinsScm()
    # A zero duration means Jenkins has not measured it yet
    duration = build.duration // 1000 if build.duration else None

    return PipelineEvent(
        provider=Provider.JENKINS,
        project_name=payload.name,
        repository_url=payload.url,
        run_number=build.number,
        status=map_status(build.phase, build.status),
        branch=scm.branch or DEFAULT_BRANCH,
        commit_hash=scm.commit or UNKNOWN_COMMIT,
        duration_seconds=duration,
        started_at=parse_timestamp(build.timestamp),
        response_context={
            "project": payload.name,
            "build_number": build.number,
        },
    )


def build_adapter(settings: Settings) -> ProviderAdapter:
    return ProviderAdapter(
        provider=Provider.JENKINS,
        auth=SharedTokenAuth(
            settings.jenkins_webhook_secret,
            header=TOKEN_HEADER,
            query_param=TOKEN_QUERY_PARAM,
            default_owner_id=settings.webhook_default_owner_id,
        ),
        schema=JenkinsBuildPayload,
        status_mapper=map_jenkins_status,
        extract=extract_pipeline_event,
        custom_headers=(TOKEN_HEADER,),
    )
