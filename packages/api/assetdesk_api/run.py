"""Startup script for the AssetDesk API with graceful shutdown configuration."""

import os

import uvicorn

from assetdesk.infrastructure.config.settings import AppSettings


def main() -> None:
    """Start the API server."""
    settings = AppSettings()
    host = os.getenv("ASSETDESK_HOST", "0.0.0.0")
    port = int(os.getenv("ASSETDESK_PORT", "8000"))
    reload = os.getenv("ASSETDESK_RELOAD", "false").lower() == "true"

    config = uvicorn.Config(
        "assetdesk_api.main:app",
        host=host,
        port=port,
        reload=reload,
        timeout_graceful_shutdown=int(settings.shutdown_timeout_seconds),
        log_level=settings.log_level.lower(),
    )

    server = uvicorn.Server(config)
    server.run()


if __name__ == "__main__":
    main()
