"""Generic webhook ingestion pipeline.

Raw request → authenticate → parse → validate → map status → resolve project
→ upsert pipeline run | record deployment → response envelope.

Each provider is an adapter (see ``adapters.py``) plugged into the same
sequence. Authentication always precedes parsing, and validation always
precedes the first write, so malformed or unauthenticated input can never
leave partial rows behind.
"""

import uuid
from typing import Optional

import structlog
from fastapi.responses import JSONResponse

from pipelinehub.config import Settings
from pipelinehub.ingest.adapters import ProviderAdapter
from pipelinehub.ingest.errors import IgnoredEvent, WebhookError
from pipelinehub.ingest.models import (
    Account,
    DeploymentEvent,
    IngestResult,
    PipelineEvent,
    WebhookRequest,
)
from pipelinehub.ingest.repository import (
    DeploymentRecorder,
    PipelineUpserter,
    ProfileRepository,
    ProjectResolver,
)
from pipelinehub.ingest import responses
from pipelinehub.ingest.validation import parse_body, validate_payload
from pipelinehub.services.supabase_client import SupabaseClient
from pipelinehub.utils.logging import LogContext

logger = structlog.get_logger()


class IngestionPipeline:
    """Runs one webhook request through a provider adapter."""

    def __init__(self, adapter: ProviderAdapter, store: SupabaseClient, settings: Settings):
        self.adapter = adapter
        self.settings = settings
        self.profiles = ProfileRepository(store)
        self.projects = ProjectResolver(store)
        self.pipelines = PipelineUpserter(store, max_attempts=settings.upsert_max_attempts)
        self.deployments = DeploymentRecorder(store, self.pipelines)
        self.log = logger.bind(provider=adapter.provider.value)

    def _check_request_filter(self, request: WebhookRequest) -> None:
        if self.adapter.request_filter is None:
            return
        skipped = self.adapter.request_filter(request)
        if skipped is not None:
            raise IgnoredEvent(skipped)

    def _check_payload_filter(self, data) -> None:
        if self.adapter.payload_filter is None:
            return
        skipped = self.adapter.payload_filter(data)
        if skipped is not None:
            raise IgnoredEvent(skipped)

    async def run(self, request: WebhookRequest) -> IngestResult:
        """Process a request, raising WebhookError subclasses on rejection."""
        self._check_request_filter(request)

        account = await self.adapter.auth.authenticate(request, self.profiles)

        data = parse_body(request, allow_form_payload=self.adapter.allow_form_payload)
        self._check_payload_filter(data)
        payload = validate_payload(self.adapter.schema, data)

        event = self.adapter.extract(payload, self.adapter.status_mapper)

        if isinstance(event, DeploymentEvent):
            return await self._record_deployment(event, account)
        return await self._upsert_pipeline(event, account)

    async def _upsert_pipeline(self, event: PipelineEvent, account: Account) -> IngestResult:
        project = await self.projects.resolve(event.project_name, account.user_id, event.repository_url)
        row, outcome = await self.pipelines.upsert(project["id"], event, triggered_by=account.user_id)

        self.log.info(
            "Pipeline event applied",
            project=event.project_name,
            run_number=event.run_number,
            status=event.status.value,
            outcome=outcome,
            pipeline_id=row.get("id"),
        )
        return IngestResult(message="Pipeline updated successfully", context=dict(event.response_context))

    async def _record_deployment(self, event: DeploymentEvent, account: Account) -> IngestResult:
        project = await self.projects.resolve(event.project_name, account.user_id)
        row = await self.deployments.record(project["id"], event, deployed_by=account.user_id)

        return IngestResult(
            message="Deployment recorded successfully",
            context={
                "deployment_id": row.get("id"),
                "project": event.project_name,
                "environment": event.environment.value,
            },
        )


async def handle_webhook(
    adapter: ProviderAdapter,
    request: WebhookRequest,
    store: SupabaseClient,
    settings: Settings,
) -> JSONResponse:
    """Adapter boundary: run the pipeline and convert every outcome to an envelope."""
    request_id: Optional[str] = request.request_id or str(uuid.uuid4())
    allow_headers = adapter.allow_headers

    with LogContext(provider=adapter.provider.value, request_id=request_id):
        pipeline = IngestionPipeline(adapter, store, settings)
        try:
            result = await pipeline.run(request)
        except IgnoredEvent as e:
            logger.info("Ignoring unsupported event", event_type=e.event_type)
            return responses.ignored_response(e, allow_headers)
        except WebhookError as e:
            if e.status_code >= 500:
                logger.error("Webhook processing failed", error=e.message, error_type=type(e).__name__)
            else:
                logger.warning("Webhook rejected", error=e.message, status=e.status_code)
            return responses.error_response(e, allow_headers, debug=settings.debug)
        except Exception as e:
            logger.exception("Unexpected error processing webhook", error=str(e))
            return responses.unexpected_error_response(e, allow_headers, debug=settings.debug)

        return responses.success_response(result, allow_headers)
