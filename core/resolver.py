# core/resolver.py
import glob
import logging
import os
from typing import List
from model.pod import PodRef

logger = logging.getLogger(__name__)


def _dirs(expr: str) -> List[str]:
    return sorted(p for p in glob.glob(expr) if os.path.isdir(p))


def resolve_pod_dirs(log_root: str, namespace: str, pod: str) -> List[str]:
    """
    Forward lookup for the event path: {log_root}/{namespace}_{pod}_* directories.
    An empty list is normal (the pod never ran on this node).
    """
    expr = os.path.join(log_root, f"{glob.escape(namespace)}_{glob.escape(pod)}_*")
    found = _dirs(expr)
    if not found:
        logger.warning("resolve.none pod=%s/%s glob=%s", namespace, pod, expr)
    return found


def sweep_dirs(log_root: str, pattern: str) -> List[str]:
    # Pattern is used verbatim as a glob; this is where the sweep filters namespaces.
    return _dirs(os.path.join(log_root, f"{pattern}_*"))


def parse_pod_dir(path: str) -> PodRef:
    """
    Reverse lookup: "team-a_worker-7_abc123" -> team-a/worker-7.
    Names that don't split into namespace and pod give the unknown/unknown sentinel.
    """
    parts = os.path.basename(os.path.normpath(path)).split("_")
    if len(parts) >= 2 and parts[0] and parts[1]:
        return PodRef(namespace=parts[0], name=parts[1])
    return PodRef.unknown()
