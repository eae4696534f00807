"""Credential and identity resolution for inbound webhooks.

Two ways to establish who sent a request:
- Path token: the last URL segment is a per-account webhook token,
  looked up in ``profiles``.
- Shared secret: a provider-wide secret, either sent verbatim in a header
  (GitLab, Jenkins) or used as the HMAC-SHA256 key over the raw body
  (GitHub ``X-Hub-Signature-256``).

Shared-secret requests are scoped to an account by an optional path token or
the configured default owner. There is no "first registered account"
fallback.

Resolution is read-only and always runs before the body is parsed.
"""

import hashlib
import hmac
import secrets
from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import SecretStr

from pipelinehub.ingest.errors import ConfigurationError, Unauthorized
from pipelinehub.ingest.models import Account, WebhookRequest
from pipelinehub.ingest.repository import ProfileRepository
from pipelinehub.utils.logging import redact

logger = structlog.get_logger()


# =============================================================================
# Signature / Token Verification
# =============================================================================


def verify_github_signature(
    payload_body: bytes,
    signature_header: Optional[str],
    webhook_secret: str,
) -> bool:
    """Verify GitHub webhook signature using HMAC SHA256.

    Args:
        payload_body: Raw request body bytes
        signature_header: X-Hub-Signature-256 header value
        webhook_secret: Webhook secret from GitHub settings

    Returns:
        True if signature is valid, False otherwise
    """
    if not signature_header:
        logger.warning("Missing X-Hub-Signature-256 header")
        return False

    if not signature_header.startswith("sha256="):
        logger.warning("Invalid signature format", header=signature_header[:20])
        return False

    expected_signature = signature_header[7:]  # Remove "sha256=" prefix

    mac = hmac.new(
        webhook_secret.encode("utf-8"),
        msg=payload_body,
        digestmod=hashlib.sha256,
    )
    calculated_signature = mac.hexdigest()

    return secrets.compare_digest(expected_signature, calculated_signature)


def verify_shared_token(token: Optional[str], expected_token: Optional[str]) -> bool:
    """Constant-time comparison of a plain shared token.

    An unconfigured secret never matches.
    """
    if not token or not expected_token:
        return False
    return secrets.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8"))


def _secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    return secret.get_secret_value() if secret else None


# =============================================================================
# Account Scoping
# =============================================================================


async def resolve_path_token(request: WebhookRequest, profiles: ProfileRepository) -> Account:
    """Resolve the account owning the webhook token in the URL path."""
    token = request.path_token
    if not token:
        raise Unauthorized("Invalid webhook token")

    user_id = await profiles.find_user_by_webhook_token(token)
    if not user_id:
        logger.warning("Invalid webhook token", token=redact(token))
        raise Unauthorized("Invalid webhook token")

    return Account(user_id=user_id, via="path_token")


async def scope_shared_secret_request(
    request: WebhookRequest,
    profiles: ProfileRepository,
    default_owner_id: Optional[str],
) -> Account:
    """Attribute an already-authenticated shared-secret request to an account."""
    if request.path_token:
        return await resolve_path_token(request, profiles)
    if default_owner_id:
        return Account(user_id=default_owner_id, via="default_owner")
    raise ConfigurationError(
        "No account scope for shared-secret webhook: use a token URL or set WEBHOOK_DEFAULT_OWNER_ID"
    )


# =============================================================================
# Strategies
# =============================================================================


class AuthStrategy(ABC):
    """How an adapter establishes the sender's identity."""

    @abstractmethod
    async def authenticate(self, request: WebhookRequest, profiles: ProfileRepository) -> Account:
        """Return the owning account or raise Unauthorized."""


class PathTokenAuth(AuthStrategy):
    """Per-account token in the URL path.

    When a signing secret is configured and the request carries a signature
    header, the signature is verified as well.
    """

    def __init__(
        self,
        signing_secret: Optional[SecretStr] = None,
        signature_header: str = "x-hub-signature-256",
    ):
        self.signing_secret = _secret_value(signing_secret)
        self.signature_header = signature_header

    async def authenticate(self, request: WebhookRequest, profiles: ProfileRepository) -> Account:
        signature = request.header(self.signature_header)
        if self.signing_secret and signature:
            if not verify_github_signature(request.body, signature, self.signing_secret):
                raise Unauthorized("Invalid signature")
        return await resolve_path_token(request, profiles)


class HmacSignatureAuth(AuthStrategy):
    """HMAC-SHA256 over the raw body, ``sha256=<hex>`` in a header."""

    def __init__(
        self,
        secret: Optional[SecretStr],
        default_owner_id: Optional[str] = None,
        signature_header: str = "x-hub-signature-256",
    ):
        self.secret = _secret_value(secret)
        self.default_owner_id = default_owner_id
        self.signature_header = signature_header

    async def authenticate(self, request: WebhookRequest, profiles: ProfileRepository) -> Account:
        if not self.secret:
            logger.warning("Signature verification requested but no secret configured")
            raise Unauthorized("Invalid signature")

        if not verify_github_signature(request.body, request.header(self.signature_header), self.secret):
            raise Unauthorized("Invalid signature")

        return await scope_shared_secret_request(request, profiles, self.default_owner_id)


class SharedTokenAuth(AuthStrategy):
    """Provider-wide token sent verbatim in a header or query parameter."""

    def __init__(
        self,
        secret: Optional[SecretStr],
        header: str,
        query_param: Optional[str] = None,
        default_owner_id: Optional[str] = None,
    ):
        self.secret = _secret_value(secret)
        self.header = header
        self.query_param = query_param
        self.default_owner_id = default_owner_id

    def _presented_token(self, request: WebhookRequest) -> Optional[str]:
        token = request.header(self.header)
        if not token and self.query_param:
            token = request.query.get(self.query_param)
        return token

    async def authenticate(self, request: WebhookRequest, profiles: ProfileRepository) -> Account:
        if not verify_shared_token(self._presented_token(request), self.secret):
            logger.warning("Invalid shared webhook token", header=self.header)
            raise Unauthorized("Invalid token")

        return await scope_shared_secret_request(request, profiles, self.default_owner_id)
