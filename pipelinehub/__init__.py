"""PipelineHub: CI/CD webhook ingestion."""

__version__ = "0.1.0"
