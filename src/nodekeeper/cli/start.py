# src/nodekeeper/cli/start.py
"""
Start command for the nodekeeper CLI: connects to the cluster, loads the
configured cloud provider and runs the controllers until interrupted.
"""

import asyncio
import logging
import signal
import traceback

import typer
from typing_extensions import Annotated

from ..cloudprovider import load_cloud_provider
from ..core.config import config
from ..core.k8s_client import get_api_client
from ..core.telemetry import initialize_telemetry
from ..operator import new_operator
from ..storage.kubernetes_store import KubernetesObjectStore

logger = logging.getLogger(__name__)


async def run(once: bool) -> int:
    api_client = await get_api_client()
    if api_client is None:
        logger.error("No Kubernetes configuration available; cannot start.")
        return 1

    store = KubernetesObjectStore(api_client)
    try:
        operator = new_operator(store, load_cloud_provider(config.CLOUD_PROVIDER))
        if once:
            await operator.run_once()
            return 0

        shutdown = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, shutdown.set)

        operator.start()
        logger.info("nodekeeper is running. Press CTRL+C to exit.")
        await shutdown.wait()
        logger.info("Shutting down nodekeeper gracefully.")
        await operator.stop()
        return 0
    finally:
        await store.close()


def start(
    once: Annotated[
        bool,
        typer.Option("--once", help="Reconcile every object a single time and exit."),
    ] = False,
) -> None:
    """
    Start the NodePool hash, NodeClaim registration and garbage collection controllers.
    """
    if config.TELEMETRY_ENABLED:
        initialize_telemetry()

    try:
        code = asyncio.run(run(once))
    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}")
        logger.debug("Startup failed: %s", traceback.format_exc())
        raise typer.Exit(code=1)
    if code:
        raise typer.Exit(code=code)
