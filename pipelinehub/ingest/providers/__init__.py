"""Provider adapters for the ingestion pipeline.

- github: workflow_run events (token URL or signature)
- gitlab: pipeline hooks (shared token header)
- jenkins: build notifications (shared token header or query param)
- deployment: generic CD tool deployments (token URL)
"""

from pipelinehub.ingest.providers import deployment, github, gitlab, jenkins

__all__ = ["deployment", "github", "gitlab", "jenkins"]
