"""Tests for webhook authentication strategies."""

import hashlib
import hmac

import pytest
from pydantic import SecretStr

from pipelinehub.ingest.auth import (
    HmacSignatureAuth,
    PathTokenAuth,
    SharedTokenAuth,
    verify_github_signature,
    verify_shared_token,
)
from pipelinehub.ingest.errors import ConfigurationError, Unauthorized
from pipelinehub.ingest.repository import ProfileRepository


class TestGitHubSignatureVerification:
    """Tests for GitHub webhook signature verification."""

    def test_verify_valid_signature(self):
        """Test verification with valid signature."""
        payload = b'{"test": "data"}'
        secret = "test-secret"

        mac = hmac.new(secret.encode("utf-8"), msg=payload, digestmod=hashlib.sha256)
        signature = f"sha256={mac.hexdigest()}"

        assert verify_github_signature(payload, signature, secret) is True

    def test_verify_invalid_signature(self):
        """Test verification with invalid signature."""
        assert verify_github_signature(b'{"test": "data"}', "sha256=invalid", "test-secret") is False

    def test_verify_missing_signature(self):
        """Test verification with missing signature."""
        assert verify_github_signature(b'{"test": "data"}', None, "test-secret") is False

    def test_verify_invalid_format(self):
        """Test verification with invalid format."""
        assert verify_github_signature(b'{"test": "data"}', "invalid-format", "test-secret") is False

    def test_signature_covers_exact_bytes(self, github_signature):
        """Re-serialized JSON does not verify."""
        signature = github_signature(b'{"a": 1}')
        assert verify_github_signature(b'{"a":1}', signature, "github-secret") is False


class TestSharedTokenVerification:
    """Tests for verify_shared_token."""

    def test_exact_match(self):
        assert verify_shared_token("s3cret", "s3cret") is True

    def test_mismatch(self):
        assert verify_shared_token("s3cret", "other") is False

    def test_unconfigured_secret_never_matches(self):
        assert verify_shared_token("anything", None) is False
        assert verify_shared_token("", "") is False

    def test_missing_token(self):
        assert verify_shared_token(None, "s3cret") is False


class TestPathTokenAuth:
    """Tests for per-account token URLs."""

    @pytest.mark.asyncio
    async def test_known_token_resolves_account(self, store, webhook_request):
        account = await PathTokenAuth().authenticate(
            webhook_request({}, path_token="tok-123"), ProfileRepository(store)
        )

        assert account.user_id == "user-1"
        assert account.via == "path_token"

    @pytest.mark.asyncio
    async def test_unknown_token_rejected(self, store, webhook_request):
        with pytest.raises(Unauthorized) as exc_info:
            await PathTokenAuth().authenticate(
                webhook_request({}, path_token="nope"), ProfileRepository(store)
            )

        assert exc_info.value.message == "Invalid webhook token"

    @pytest.mark.asyncio
    async def test_missing_token_rejected_without_lookup(self, store, webhook_request):
        with pytest.raises(Unauthorized):
            await PathTokenAuth().authenticate(webhook_request({}), ProfileRepository(store))

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_bad_signature_rejected_when_secret_configured(self, store, webhook_request):
        auth = PathTokenAuth(signing_secret=SecretStr("github-secret"))
        request = webhook_request(
            {}, path_token="tok-123", headers={"X-Hub-Signature-256": "sha256=deadbeef"}
        )

        with pytest.raises(Unauthorized) as exc_info:
            await auth.authenticate(request, ProfileRepository(store))

        assert exc_info.value.message == "Invalid signature"

    @pytest.mark.asyncio
    async def test_unsigned_delivery_allowed_with_token(self, store, webhook_request):
        auth = PathTokenAuth(signing_secret=SecretStr("github-secret"))

        account = await auth.authenticate(
            webhook_request({}, path_token="tok-123"), ProfileRepository(store)
        )

        assert account.user_id == "user-1"


class TestHmacSignatureAuth:
    """Tests for signature-only authentication."""

    @pytest.mark.asyncio
    async def test_valid_signature_scoped_to_default_owner(self, store, webhook_request, github_signature):
        body = b'{"ok": true}'
        auth = HmacSignatureAuth(SecretStr("github-secret"), default_owner_id="owner-default")

        account = await auth.authenticate(
            webhook_request(body=body, headers={"x-hub-signature-256": github_signature(body)}),
            ProfileRepository(store),
        )

        assert account.user_id == "owner-default"
        assert account.via == "default_owner"

    @pytest.mark.asyncio
    async def test_no_secret_configured_rejects(self, store, webhook_request, github_signature):
        body = b"{}"
        auth = HmacSignatureAuth(None, default_owner_id="owner-default")

        with pytest.raises(Unauthorized):
            await auth.authenticate(
                webhook_request(body=body, headers={"x-hub-signature-256": github_signature(body)}),
                ProfileRepository(store),
            )

    @pytest.mark.asyncio
    async def test_valid_signature_without_scope_is_configuration_error(
        self, store, webhook_request, github_signature
    ):
        body = b"{}"
        auth = HmacSignatureAuth(SecretStr("github-secret"), default_owner_id=None)

        with pytest.raises(ConfigurationError):
            await auth.authenticate(
                webhook_request(body=body, headers={"x-hub-signature-256": github_signature(body)}),
                ProfileRepository(store),
            )


class TestSharedTokenAuth:
    """Tests for provider-wide shared tokens."""

    @pytest.mark.asyncio
    async def test_header_token_accepted(self, store, webhook_request):
        auth = SharedTokenAuth(SecretStr("gitlab-secret"), header="x-gitlab-token", default_owner_id="owner-default")

        account = await auth.authenticate(
            webhook_request({}, headers={"X-Gitlab-Token": "gitlab-secret"}), ProfileRepository(store)
        )

        assert account.user_id == "owner-default"

    @pytest.mark.asyncio
    async def test_query_token_accepted(self, store, webhook_request):
        auth = SharedTokenAuth(
            SecretStr("jenkins-secret"),
            header="x-jenkins-token",
            query_param="token",
            default_owner_id="owner-default",
        )

        account = await auth.authenticate(
            webhook_request({}, query={"token": "jenkins-secret"}), ProfileRepository(store)
        )

        assert account.user_id == "owner-default"

    @pytest.mark.asyncio
    async def test_path_token_scopes_account(self, store, webhook_request):
        auth = SharedTokenAuth(SecretStr("gitlab-secret"), header="x-gitlab-token", default_owner_id="owner-default")

        account = await auth.authenticate(
            webhook_request({}, headers={"x-gitlab-token": "gitlab-secret"}, path_token="tok-123"),
            ProfileRepository(store),
        )

        assert account.user_id == "user-1"

    @pytest.mark.asyncio
    async def test_wrong_token_rejected(self, store, webhook_request):
        auth = SharedTokenAuth(SecretStr("gitlab-secret"), header="x-gitlab-token", default_owner_id="owner-default")

        with pytest.raises(Unauthorized) as exc_info:
            await auth.authenticate(
                webhook_request({}, headers={"x-gitlab-token": "wrong"}), ProfileRepository(store)
            )

        assert exc_info.value.message == "Invalid token"
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_unconfigured_secret_rejects_everything(self, store, webhook_request):
        auth = SharedTokenAuth(None, header="x-gitlab-token", default_owner_id="owner-default")

        with pytest.raises(Unauthorized):
            await auth.authenticate(
                webhook_request({}, headers={"x-gitlab-token": ""}), ProfileRepository(store)
            )
