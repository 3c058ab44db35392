# config/kube.py
import logging
from typing import Optional
from kubernetes import client
from kubernetes import config as kube_config
from config.settings import settings
from util.enums import KubeConfigMode
from util.errors import ClusterUnavailableError

logger = logging.getLogger(__name__)

_api: Optional[client.CoreV1Api] = None


def load_kube_config(mode: KubeConfigMode) -> None:
    """In-cluster service account first; local kubeconfig for development."""
    if mode == KubeConfigMode.INCLUSTER:
        kube_config.load_incluster_config()
    elif mode == KubeConfigMode.KUBECONFIG:
        kube_config.load_kube_config()
    else:
        try:
            kube_config.load_incluster_config()
            logger.info("kube.config source=incluster")
            return
        except kube_config.ConfigException:
            kube_config.load_kube_config()
    logger.info("kube.config source=%s", "kubeconfig" if mode != KubeConfigMode.INCLUSTER else "incluster")


def get_core_api() -> client.CoreV1Api:
    global _api
    if _api is None:
        try:
            load_kube_config(settings.KUBE_CONFIG_MODE)
            api = client.CoreV1Api()
            # Fail fast on startup if the API is unreachable or RBAC forbids listing pods.
            api.list_pod_for_all_namespaces(limit=1, _request_timeout=10)
        except Exception as e:
            raise ClusterUnavailableError(f"Kubernetes API unavailable: {e}") from e
        _api = api
    return _api


def close_core_api() -> None:
    global _api
    if _api is not None:
        _api.api_client.close()
        _api = None
