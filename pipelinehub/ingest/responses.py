"""Response envelopes for webhook endpoints.

Every response is ``{"success": bool, "message" | "error": str, ...}`` with
permissive CORS headers listing the adapter's custom request headers.
"""

from typing import Any

from fastapi.responses import JSONResponse, Response

from pipelinehub.ingest.errors import IgnoredEvent, PayloadValidationError, WebhookError
from pipelinehub.ingest.models import IngestResult

INTERNAL_ERROR_MESSAGE = "Internal server error"


def cors_headers(allow_headers: str) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": allow_headers,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


def preflight_response(allow_headers: str) -> Response:
    """Answer a CORS preflight without any other processing."""
    return Response(status_code=200, headers=cors_headers(allow_headers))


def success_response(result: IngestResult, allow_headers: str) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "message": result.message, **result.context}
    return JSONResponse(status_code=200, content=content, headers=cors_headers(allow_headers))


def ignored_response(event: IgnoredEvent, allow_headers: str) -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": event.message, "event_type": event.event_type},
        headers=cors_headers(allow_headers),
    )


def error_response(error: WebhookError, allow_headers: str, debug: bool = False) -> JSONResponse:
    """Render a known ingestion error.

    500s are opaque unless debug is enabled.
    """
    content: dict[str, Any] = {"success": False}
    if error.status_code >= 500:
        content["error"] = error.message if debug else INTERNAL_ERROR_MESSAGE
    else:
        content["error"] = error.message
    if isinstance(error, PayloadValidationError):
        content["details"] = error.details
    return JSONResponse(status_code=error.status_code, content=content, headers=cors_headers(allow_headers))


def unexpected_error_response(exc: Exception, allow_headers: str, debug: bool = False) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc) if debug else INTERNAL_ERROR_MESSAGE},
        headers=cors_headers(allow_headers),
    )
