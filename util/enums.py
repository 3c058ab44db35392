# util/enums.py
from enum import Enum


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class NamingMode(str, Enum):
    # Destination key: wall-clock second of the copy, or the source's mtime.
    TIMESTAMP = "timestamp"
    MTIME = "mtime"


class KubeConfigMode(str, Enum):
    AUTO = "auto"
    INCLUSTER = "incluster"
    KUBECONFIG = "kubeconfig"


class WatchEventType(str, Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    BOOKMARK = "BOOKMARK"
    ERROR = "ERROR"


class ComponentState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    FAILED = "failed"


class ArchiveStage(str, Enum):
    """Step of the per-file pipeline where an error was raised."""

    STAT = "stat"
    MKDIR = "mkdir"
    COPY = "copy"
    REMOVE = "remove"
    WALK = "walk"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
