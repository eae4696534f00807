"""Webhook endpoints for CI/CD providers.

Each router builds its provider adapter and hands the raw request to the
generic ingestion pipeline:
1. Authenticates the sender (token URL, shared token or signature)
2. Parses and validates the payload
3. Normalizes status and upserts the pipeline run or records the deployment
"""

from fastapi import APIRouter

from pipelinehub.api.webhooks.deployments import router as deployment_webhook_router
from pipelinehub.api.webhooks.github import router as github_webhook_router
from pipelinehub.api.webhooks.gitlab import router as gitlab_webhook_router
from pipelinehub.api.webhooks.jenkins import router as jenkins_webhook_router

router = APIRouter()
router.include_router(github_webhook_router)
router.include_router(gitlab_webhook_router)
router.include_router(jenkins_webhook_router)
router.include_router(deployment_webhook_router)

__all__ = [
    "router",
    "github_webhook_router",
    "gitlab_webhook_router",
    "jenkins_webhook_router",
    "deployment_webhook_router",
]
