"""GitHub Actions webhook endpoints.

- POST /webhooks/github/{token}: per-account token URL, signature checked
  when GITHUB_WEBHOOK_SECRET is set and the delivery is signed
- POST /webhooks/github: signature only, owned by WEBHOOK_DEFAULT_OWNER_ID
"""

from fastapi import APIRouter, Depends, Request

from pipelinehub.api.webhooks.common import to_webhook_request
from pipelinehub.config import Settings, get_settings
from pipelinehub.ingest.pipeline import handle_webhook
from pipelinehub.ingest.providers import github
from pipelinehub.ingest.responses import preflight_response
from pipelinehub.services.supabase_client import SupabaseClient, get_supabase_client

router = APIRouter(prefix="/webhooks/github", tags=["Webhooks - GitHub"])


@router.post("")
async def receive_signed_github_webhook(
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a signed workflow_run delivery."""
    adapter = github.build_signature_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request), store, settings)


@router.post("/{token}")
async def receive_github_webhook(
    token: str,
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a workflow_run delivery on a per-account token URL."""
    adapter = github.build_token_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request, token), store, settings)


@router.options("")
@router.options("/{token}")
async def github_preflight(settings: Settings = Depends(get_settings)):
    return preflight_response(github.build_token_adapter(settings).allow_headers)
