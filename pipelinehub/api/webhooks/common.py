"""Helpers shared by the webhook routers."""

import uuid
from typing import Optional

from fastapi import Request

from pipelinehub.ingest.models import WebhookRequest

# Headers providers use to identify a single delivery
DELIVERY_ID_HEADERS = ("x-github-delivery", "x-gitlab-event-uuid", "x-request-id")


async def to_webhook_request(request: Request, token: Optional[str] = None) -> WebhookRequest:
    """Snapshot a FastAPI request into the transport-independent form."""
    headers = {name.lower(): value for name, value in request.headers.items()}
    request_id = next((headers[h] for h in DELIVERY_ID_HEADERS if headers.get(h)), None)

    return WebhookRequest(
        body=await request.body(),
        headers=headers,
        query=dict(request.query_params),
        path_token=token,
        request_id=request_id or str(uuid.uuid4()),
    )
