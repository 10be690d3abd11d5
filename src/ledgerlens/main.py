from __future__ import annotations

import asyncio
import logging
import os
import sys

import uvicorn

# Install uvloop for better async performance (Linux/macOS only)
if sys.platform != "win32":
    try:
        import uvloop

        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except ImportError:
        pass  # uvloop not available, continue with default event loop

from .envs.server_env import get_settings

logger = logging.getLogger(__name__)


def _setup_prometheus_multiproc_dir() -> None:
    """Prepare the Prometheus multiprocess directory before Uvicorn forks workers."""
    prom_dir = os.environ.get("PROMETHEUS_MULTIPROC_DIR")
    if not prom_dir:
        return

    os.makedirs(prom_dir, exist_ok=True)
    for filename in os.listdir(prom_dir):
        file_path = os.path.join(prom_dir, filename)
        if os.path.isfile(file_path):
            os.remove(file_path)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    logger.info("Ledger RPC: %s", settings.eth_rpc_url)
    logger.info("Gas token: %s", settings.gas_token_address)
    logger.info(
        "Account API will be available at: http://%s:%s",
        settings.api_host,
        settings.api_port,
    )

    _setup_prometheus_multiproc_dir()

    uvicorn.run(
        "ledgerlens.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
