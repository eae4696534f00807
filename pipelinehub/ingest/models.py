"""
Normalized Events - Unified Pipeline/Deployment Format

Provider payloads are reduced to these records before anything touches
the store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class Provider(str, Enum):
    """Supported webhook sources."""
    GITHUB = "github"
    GITLAB = "gitlab"
    JENKINS = "jenkins"
    DEPLOYMENT = "deployment"


class PipelineStatus(str, Enum):
    """Canonical status shared by pipelines and deployments."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def rank(self) -> int:
        """Lifecycle position: pending < running < any terminal state."""
        if self is PipelineStatus.PENDING:
            return 0
        if self is PipelineStatus.RUNNING:
            return 1
        return 2


TERMINAL_STATUSES = frozenset({
    PipelineStatus.SUCCESS,
    PipelineStatus.FAILED,
    PipelineStatus.CANCELLED,
})


class Environment(str, Enum):
    """Deployment targets."""
    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"


@dataclass
class WebhookRequest:
    """Transport-independent view of an inbound webhook request."""
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)  # lower-cased names
    query: dict[str, str] = field(default_factory=dict)
    path_token: Optional[str] = None
    request_id: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    @property
    def content_type(self) -> str:
        return (self.header("content-type") or "application/json").split(";")[0].strip().lower()


@dataclass
class Account:
    """Resolved owner of an inbound event."""
    user_id: str
    via: str  # "path_token" | "default_owner"


@dataclass
class PipelineEvent:
    """One provider event about a pipeline run."""
    provider: Provider
    project_name: str
    run_number: int
    status: PipelineStatus
    branch: str
    commit_hash: str
    repository_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    # Extra keys echoed back in the success envelope
    response_context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass
class DeploymentEvent:
    """One deployment action reported by a CD tool."""
    project_name: str
    environment: Environment
    version: str
    status: PipelineStatus
    pipeline_run_number: Optional[int] = None
    deployed_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class IngestResult:
    """Outcome of a processed webhook, rendered by the response formatter."""
    message: str
    context: dict[str, Any] = field(default_factory=dict)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse provider timestamps into aware UTC datetimes.

    Accepts ISO 8601 (``2024-01-01T00:00:00Z``), GitLab's
    ``2024-01-01 00:00:00 UTC`` / ``2024-01-01 00:00:00 +0200`` forms and
    epoch milliseconds (Jenkins).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(" UTC"):
            text = text[:-4] + "+00:00"
        text = text.replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = datetime.strptime(text, "%Y-%m-%d %H:%M:%S %z")
            except ValueError as e:
                raise ValueError(f"Unrecognized timestamp: {value!r}") from e
    else:
        raise ValueError(f"Unrecognized timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def elapsed_seconds(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    """Whole seconds between two timestamps, or None if either is unknown."""
    if start is None or end is None:
        return None
    seconds = int((end - start).total_seconds())
    return max(seconds, 0)
