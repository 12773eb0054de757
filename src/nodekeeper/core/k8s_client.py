import asyncio
import logging
import typing

from kubernetes_asyncio import client
from kubernetes_asyncio import config as kube_config

from .config import config

logger = logging.getLogger(__name__)

IN_CLUSTER = "in-cluster"
KUBECONFIG = "kubeconfig"

# Serializes the first load; later callers reuse its outcome
_LOAD_LOCK = asyncio.Lock()
_loaded_from: typing.Optional[str] = None


async def _load() -> typing.Optional[str]:
    try:
        kube_config.load_incluster_config()
        return IN_CLUSTER
    except kube_config.ConfigException as e:
        logger.debug("No in-cluster configuration: %s", e)

    try:
        await kube_config.load_kube_config(context=config.KUBE_CONTEXT)
        return KUBECONFIG
    except kube_config.ConfigException as e:
        logger.warning("No usable kubeconfig (context=%s): %s", config.KUBE_CONTEXT or "current", e)
    return None


async def load_cluster_config() -> typing.Optional[str]:
    """
    Loads cluster credentials once per process, preferring the in-cluster
    service account over a local kubeconfig.

    Returns:
        Where the configuration came from (``IN_CLUSTER`` or ``KUBECONFIG``),
        or None when neither source is usable. A failed load is retried on the
        next call.
    """
    global _loaded_from

    async with _LOAD_LOCK:
        if _loaded_from is None:
            _loaded_from = await _load()
            if _loaded_from is not None:
                logger.info("Loaded Kubernetes configuration from %s.", _loaded_from)
    return _loaded_from


async def get_api_client() -> typing.Optional[client.ApiClient]:
    """
    Returns a configured ApiClient, or None when no configuration could be loaded.
    The caller owns the client and must close it.
    """
    if await load_cluster_config() is None:
        logger.warning("Failed to load any Kubernetes configuration.")
        return None
    return client.ApiClient()
