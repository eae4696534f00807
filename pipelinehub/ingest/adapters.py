"""Provider adapter capability sets.

An adapter is pure configuration for the generic ingestion pipeline: how to
authenticate, which event kinds to skip, what schema to validate against and
how to turn a validated payload into a normalized event.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel

from pipelinehub.ingest.auth import AuthStrategy
from pipelinehub.ingest.models import DeploymentEvent, PipelineEvent, PipelineStatus, Provider, WebhookRequest

BASE_ALLOW_HEADERS = ("authorization", "x-client-info", "apikey", "content-type")

StatusMapper = Callable[[Optional[str], Optional[str]], PipelineStatus]
Extractor = Callable[[Any, StatusMapper], Union[PipelineEvent, DeploymentEvent]]
# Return the unsupported event kind to skip the request, or None to process it
RequestFilter = Callable[[WebhookRequest], Optional[str]]
PayloadFilter = Callable[[Any], Optional[str]]


@dataclass
class ProviderAdapter:
    """Capabilities that specialize the ingestion pipeline for one provider."""
    provider: Provider
    auth: AuthStrategy
    schema: type[BaseModel]
    status_mapper: StatusMapper
    extract: Extractor
    request_filter: Optional[RequestFilter] = None
    payload_filter: Optional[PayloadFilter] = None
    allow_form_payload: bool = False
    custom_headers: tuple[str, ...] = field(default_factory=tuple)

    @property
    def allow_headers(self) -> str:
        return ", ".join(BASE_ALLOW_HEADERS + self.custom_headers)
