"""Generic deployment webhooks for any CD tool.

Security:
- Per-account token URL
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel

from pipelinehub.config import Settings
from pipelinehub.ingest.adapters import ProviderAdapter, StatusMapper
from pipelinehub.ingest.auth import PathTokenAuth
from pipelinehub.ingest.models import DeploymentEvent, Environment, Provider
from pipelinehub.ingest.status import map_deployment_status
from pipelinehub.ingest.validation import Label, Name, Timestamp


class DeploymentPayload(BaseModel):
    project_name: Name
    environment: Environment
    version: Label
    status: Literal["pending", "running", "success", "failed", "cancelled"]
    pipeline_run_number: Optional[int] = None
    deployed_at: Optional[Timestamp] = None
    metadata: Optional[dict[str, Any]] = None


def extract_deployment_event(payload: DeploymentPayload, map_status: StatusMapper) -> DeploymentEvent:
    return DeploymentEvent(
        project_name=payload.project_name,
        environment=payload.environment,
        version=payload.version,
        status=map_status(payload.status, None),
        pipeline_run_number=payload.pipeline_run_number,
        deployed_at=payload.deployed_at,
        metadata=payload.metadata or {},
    )


def build_adapter(settings: Settings) -> ProviderAdapter:
    return ProviderAdapter(
        provider=Provider.DEPLOYMENT,
        auth=PathTokenAuth(),
        schema=DeploymentPayload,
        status_mapper=map_deployment_status,
        extract=extract_deployment_event,
    )
