# util/timing.py
import time
from contextlib import contextmanager
from typing import Iterator, Dict, Any
import logging


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """
    Usage:
      with timed(logger, "sweep.pass", patterns=2) as extra:
          ...
          extra["copied"] = 3
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    Keys added to the yielded dict inside the block are appended too.
    """
    extra: Dict[str, Any] = {}
    t0 = time.perf_counter()
    try:
        yield extra
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in {**kv, **extra}.items())
        logger.info("%s.done ms=%d%s", name, dt_ms, suffix)
