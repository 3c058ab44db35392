# util/constants.py
from typing import Final, Tuple

VERSION: Final[str] = "1.0.0"


class InternalURIs:
    HEALTHZ = "/healthz"
    READYZ = "/readyz"


class LogFiles:
    COMPRESSED_SUFFIX = ".gz"
    PLAIN_SUFFIX = ".log"
    # kubelet rotation renames 0.log to 0.log.20240101-120000 before compressing
    ROTATED_INFIX = ".log."

    SWEEP_SUFFIXES: Tuple[str, ...] = (COMPRESSED_SUFFIX,)
    EVENT_SUFFIXES: Tuple[str, ...] = (COMPRESSED_SUFFIX, PLAIN_SUFFIX)
    EVENT_INFIXES: Tuple[str, ...] = (ROTATED_INFIX,)


UNKNOWN: Final[str] = "unknown"
TIMESTAMP_FORMAT: Final[str] = "%Y%m%d-%H%M%S"
PARTIAL_PREFIX: Final[str] = "."
PARTIAL_SUFFIX: Final[str] = ".part"
