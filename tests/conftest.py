"""Shared fixtures for webhook service tests."""

import asyncio
import copy
import hashlib
import hmac
import json
import uuid
from typing import Any, Optional

import pytest


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring a real store"
    )


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "test-service-key")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "github-secret")
    monkeypatch.setenv("GITLAB_WEBHOOK_SECRET", "gitlab-secret")
    monkeypatch.setenv("JENKINS_WEBHOOK_SECRET", "jenkins-secret")
    monkeypatch.setenv("WEBHOOK_DEFAULT_OWNER_ID", "owner-default")
    monkeypatch.delenv("DEBUG", raising=False)

    from pipelinehub.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# In-memory PostgREST store
# =============================================================================

UNIQUE_KEYS = {
    "projects": ("name", "created_by"),
    "pipelines": ("project_id", "run_number"),
}


def _matches(row: dict, filters: Optional[dict]) -> bool:
    for column, condition in (filters or {}).items():
        op, _, expected = str(condition).partition(".")
        value = row.get(column)
        if op == "eq":
            if value is None or str(value) != expected:
                return False
        elif op == "is" and expected == "null":
            if value is not None:
                return False
        else:
            raise AssertionError(f"Unsupported filter {column}={condition}")
    return True


class FakeStore:
    """Stand-in for SupabaseClient backed by dicts.

    Enforces the same unique constraints as the real schema and answers
    violations with a 409, like PostgREST. Every call yields to the event
    loop once so concurrent tasks interleave between reads and writes.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {
            "profiles": [],
            "projects": [],
            "pipelines": [],
            "deployments": [],
        }
        self.calls: list[tuple[str, str]] = []

    @property
    def is_configured(self) -> bool:
        return True

    def rows(self, table: str) -> list[dict]:
        return self.tables[table]

    def add_profile(self, user_id: str, webhook_token: str) -> None:
        self.tables["profiles"].append({"user_id": user_id, "webhook_token": webhook_token})

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[dict] = None,
        limit: Optional[int] = None,
    ) -> dict[str, Any]:
        self.calls.append(("select", table))
        await asyncio.sleep(0)
        found = [copy.deepcopy(r) for r in self.tables[table] if _matches(r, filters)]
        if limit is not None:
            found = found[:limit]
        return {"data": found, "error": None, "status": 200}

    async def insert(self, table: str, data: dict) -> dict[str, Any]:
        self.calls.append(("insert", table))
        await asyncio.sleep(0)
        key = UNIQUE_KEYS.get(table)
        if key and any(all(r.get(k) == data.get(k) for k in key) for r in self.tables[table]):
            return {
                "data": None,
                "error": '{"code":"23505","message":"duplicate key value violates unique constraint"}',
                "status": 409,
            }
        row = {"id": str(uuid.uuid4()), **copy.deepcopy(data)}
        self.tables[table].append(row)
        return {"data": [copy.deepcopy(row)], "error": None, "status": 201}

    async def update(self, table: str, filters: dict, data: dict) -> dict[str, Any]:
        self.calls.append(("update", table))
        await asyncio.sleep(0)
        updated = []
        for row in self.tables[table]:
            if _matches(row, filters):
                row.update(copy.deepcopy(data))
                updated.append(copy.deepcopy(row))
        return {"data": updated, "error": None, "status": 200}


@pytest.fixture
def store():
    """Empty store with one account whose webhook token is ``tok-123``."""
    fake = FakeStore()
    fake.add_profile("user-1", "tok-123")
    return fake


@pytest.fixture
def settings():
    """Settings with every provider secret configured."""
    from pipelinehub.config import Settings

    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_service_key="test-service-key",
        github_webhook_secret="github-secret",
        gitlab_webhook_secret="gitlab-secret",
        jenkins_webhook_secret="jenkins-secret",
        webhook_default_owner_id="owner-default",
        debug=False,
    )


@pytest.fixture
def client(store, settings):
    """TestClient wired to the in-memory store and test settings."""
    from fastapi.testclient import TestClient

    from pipelinehub.api.server import app
    from pipelinehub.config import get_settings
    from pipelinehub.services.supabase_client import get_supabase_client

    app.dependency_overrides[get_supabase_client] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Provider payloads
# =============================================================================


def sign(body: bytes, secret: str = "github-secret") -> str:
    mac = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha256)
    return f"sha256={mac.hexdigest()}"


@pytest.fixture
def github_signature():
    return sign


@pytest.fixture
def github_payload():
    """Factory for GitHub ``workflow_run`` deliveries."""

    def make(
        status: str = "completed",
        conclusion: Optional[str] = "success",
        run_number: int = 42,
        repo: str = "my-repo",
        run_started_at: Optional[str] = "2024-01-01T00:00:00Z",
        updated_at: str = "2024-01-01T00:02:05Z",
    ) -> dict:
        return {
            "action": "completed" if status == "completed" else "in_progress",
            "workflow_run": {
                "id": 1000 + run_number,
                "name": "CI",
                "head_branch": "main",
                "head_sha": "a" * 40,
                "status": status,
                "conclusion": conclusion,
                "run_number": run_number,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": updated_at,
                "run_started_at": run_started_at,
            },
            "repository": {
                "name": repo,
                "full_name": f"acme/{repo}",
                "html_url": f"https://github.com/acme/{repo}",
            },
            "sender": {"login": "octocat"},
        }

    return make


@pytest.fixture
def gitlab_payload():
    """Factory for GitLab Pipeline Hook deliveries."""

    def make(
        status: str = "success",
        iid: int = 12,
        project: str = "gl-project",
        duration: Optional[float] = 125.0,
        finished_at: Optional[str] = "2024-01-01 00:02:05 UTC",
    ) -> dict:
        return {
            "object_kind": "pipeline",
            "object_attributes": {
                "id": 9000 + iid,
                "iid": iid,
                "ref": "main",
                "sha": "b" * 40,
                "status": status,
                "duration": duration,
                "created_at": "2024-01-01 00:00:00 UTC",
                "finished_at": finished_at,
            },
            "project": {
                "name": project,
                "web_url": f"https://gitlab.com/acme/{project}",
            },
            "user": {"username": "gitlab-user"},
        }

    return make


@pytest.fixture
def jenkins_payload():
    """Factory for Jenkins Notification plugin deliveries."""

    def make(
        phase: str = "COMPLETED",
        status: Optional[str] = "SUCCESS",
        number: int = 5,
        name: str = "jenkins-job",
        duration: Optional[int] = 125000,
        scm: Optional[dict] = None,
    ) -> dict:
        build: dict[str, Any] = {
            "number": number,
            "phase": phase,
            "status": status,
            "url": f"job/{name}/{number}/",
            "full_url": f"https://ci.example.com/job/{name}/{number}/",
            "duration": duration,
            "timestamp": 1704067200000,
        }
        if scm is not None:
            build["scm"] = scm
        return {"name": name, "url": f"https://ci.example.com/job/{name}/", "build": build}

    return make


@pytest.fixture
def deployment_payload():
    """Factory for generic deployment events."""

    def make(**overrides) -> dict:
        payload = {
            "project_name": "my-repo",
            "environment": "production",
            "version": "v1.2.3",
            "status": "success",
        }
        payload.update(overrides)
        return payload

    return make


@pytest.fixture
def webhook_request():
    """Factory for transport-independent webhook requests."""
    from pipelinehub.ingest.models import WebhookRequest

    def make(
        payload: Any = None,
        headers: Optional[dict] = None,
        query: Optional[dict] = None,
        path_token: Optional[str] = None,
        body: Optional[bytes] = None,
    ) -> WebhookRequest:
        if body is None:
            body = json.dumps(payload).encode("utf-8")
        return WebhookRequest(
            body=body,
            headers={k.lower(): v for k, v in (headers or {}).items()},
            query=query or {},
            path_token=path_token,
            request_id="req-test",
        )

    return make
