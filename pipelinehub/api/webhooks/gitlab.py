"""GitLab CI webhook endpoints.

- POST /webhooks/gitlab: X-Gitlab-Token, owned by WEBHOOK_DEFAULT_OWNER_ID
- POST /webhooks/gitlab/{token}: X-Gitlab-Token, owned by the token's account
"""

from fastapi import APIRouter, Depends, Request

from pipelinehub.api.webhooks.common import to_webhook_request
from pipelinehub.config import Settings, get_settings
from pipelinehub.ingest.pipeline import handle_webhook
from pipelinehub.ingest.providers import gitlab
from pipelinehub.ingest.responses import preflight_response
from pipelinehub.services.supabase_client import SupabaseClient, get_supabase_client

router = APIRouter(prefix="/webhooks/gitlab", tags=["Webhooks - GitLab"])


@router.post("")
async def receive_gitlab_webhook(
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a GitLab Pipeline Hook."""
    adapter = gitlab.build_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request), store, settings)


@router.post("/{token}")
async def receive_scoped_gitlab_webhook(
    token: str,
    request: Request,
    store: SupabaseClient = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """Receive a GitLab Pipeline Hook for the account owning ``token``."""
    adapter = gitlab.build_adapter(settings)
    return await handle_webhook(adapter, await to_webhook_request(request, token), store, settings)


@router.options("")
@router.options("/{token}")
async def gitlab_preflight(settings: Settings = Depends(get_settings)):
    return preflight_response(gitlab.build_adapter(settings).allow_headers)
