"""Generic deployment endpoint for any CD tool."""

from fastapi import APIRouter, Depends, Request

from pipelinehub.api.webhooks.common import to_webhook_request
from pipelinehub.config import Settings, get_settings
from pipelinehub.ingest.pipeline import handle_webhook
from pipelinehub.ingest.providers import deployment
from pipelinehub.ingest.responses import preflight_response
from pipelinehub.services.supabase_client import SupabaseClient, get_supabase_client

router = APIRouter(prefix="/webhooks/deployments", tags=["Webhooks - Deployments"])


@router.post("/{token}")
async def receive_deployment_webhook(
    token: str,
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Record a deployment for the account owning ``token``."""
    adapter = deployment.build_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request, token), store, settings)


@router.options("/{token}")
async def deployment_preflight(settings: Settings = Depends(get_settings)):
    return preflight_response(deployment.build_adapter(settings).allow_headers)
