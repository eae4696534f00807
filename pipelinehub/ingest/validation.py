"""Payload parsing and schema validation.

Bodies are parsed first (BadRequest on failure), then validated against a
provider schema (PayloadValidationError with field diagnostics). Unknown
fields are ignored so providers can add to their payloads freely.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, ValidationError

from pipelinehub.ingest.errors import BadRequest, PayloadValidationError
from pipelinehub.ingest.models import WebhookRequest, parse_timestamp

ModelT = TypeVar("ModelT", bound=BaseModel)


def _check_http_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("must be an absolute http(s) URL")
    return value


# Shared field types
Name = Annotated[str, Field(min_length=1, max_length=255)]
Label = Annotated[str, Field(max_length=255)]
CommitSha = Annotated[str, Field(max_length=40)]
HttpUrlStr = Annotated[str, Field(max_length=500), AfterValidator(_check_http_url)]
Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]


def parse_body(request: WebhookRequest, allow_form_payload: bool = False) -> Any:
    """Decode the raw body as JSON.

    GitHub can deliver ``application/x-www-form-urlencoded`` bodies whose
    ``payload`` field holds the JSON document.
    """
    try:
        text = request.body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadRequest("Request body is not valid UTF-8") from e

    if allow_form_payload and request.content_type == "application/x-www-form-urlencoded":
        fields = parse_qs(text)
        if "payload" not in fields:
            raise BadRequest("Form-encoded body is missing the payload field")
        text = fields["payload"][0]

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise BadRequest("Invalid JSON payload") from e


def validation_details(error: ValidationError) -> list[dict[str, Any]]:
    """Field-level diagnostics safe to return to the caller."""
    return [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": err.get("msg"),
            "type": err.get("type"),
        }
        for err in error.errors()
    ]


def validate_payload(schema: type[ModelT], data: Any) -> ModelT:
    """Validate parsed data against a provider schema."""
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise PayloadValidationError("Invalid webhook payload", details=validation_details(e)) from e


def object_kind(data: Any) -> Optional[str]:
    """The ``object_kind`` discriminator of a dict payload, if any."""
    if isinstance(data, dict):
        kind = data.get("object_kind")
        return kind if isinstance(kind, str) else None
    return None
