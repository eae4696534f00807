"""Jenkins Notification plugin endpoints.

The shared token travels in X-Jenkins-Token or ``?token=``. The optional path
segment is the per-account webhook token, never the shared secret.
"""

from fastapi import APIRouter, Depends, Request

from pipelinehub.api.webhooks.common import to_webhook_request
from pipelinehub.config import Settings, get_settings
from pipelinehub.ingest.pipeline import handle_webhook
from pipelinehub.ingest.providers import jenkins
from pipelinehub.ingest.responses import preflight_response
from pipelinehub.services.supabase_client import SupabaseClient, get_supabase_client

router = APIRouter(prefix="/webhooks/jenkins", tags=["Webhooks - Jenkins"])


@router.post("")
async def receive_jenkins_webhook(
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a build notification."""
    adapter = jenkins.build_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request), store, settings)


@router.post("/{account_token}")
async def receive_scoped_jenkins_webhook(
    account_token: str,
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a build notification for the account owning ``account_token``."""
    adapter = jenkins.build_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request, account_token), store, settings)


@router.options("")
@router.options("/{account_token}")
async def jenkins_preflight(settings: Settings = Depends(get_settings)):
    return preflight_response(jenkins.build_adapter(settings).allow_headers)
