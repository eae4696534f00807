"""Main entry point for the PipelineHub webhook service."""

import argparse

import structlog

from .config import get_settings
from .utils.logging import configure_logging

logger = structlog.get_logger()


def serve(host: str, port: int, reload: bool = False) -> None:
    """Run the API server."""
    import uvicorn

    logger.info("Starting server", host=host, port=port, reload=reload)
    uvicorn.run("pipelinehub.api.server:app", host=host, port=port, reload=reload)


def cli(argv: list[str] | None = None):
    """Command-line interface."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="CI/CD webhook ingestion service"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the webhook API server")
    serve_parser.add_argument(
        "--host",
        default=settings.server_host,
        help=f"Bind address (default: {settings.server_host})"
    )
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        default=settings.server_port,
        help=f"Port to listen on (default: {settings.server_port})"
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)"
    )

    args = parser.parse_args(argv)

    configure_logging(level=settings.log_level, json_format=settings.log_json)

    if args.command == "serve":
        serve(args.host, args.port, reload=args.reload)


if __name__ == "__main__":
    cli()
