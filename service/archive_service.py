# service/archive_service.py
import asyncio
import logging
import time
from typing import List, Optional
from core.archive_engine import ArchiveEngine
from core.entities import ArchiveResult, ArchiveStats
from core.matcher import NamespaceMatcher
from core.resolver import parse_pod_dir, resolve_pod_dirs, sweep_dirs
from model.archive import ArchivePolicy, ArchiverConfig
from model.pod import PodRef
from util.timing import timed

logger = logging.getLogger(__name__)


class ArchiveService:
    """
    Ties the resolver to the engine for both triggers.
    Filesystem work goes through asyncio.to_thread; stats are only touched on the loop.
    """

    def __init__(
        self,
        config: ArchiverConfig,
        engine: Optional[ArchiveEngine] = None,
        matcher: Optional[NamespaceMatcher] = None,
    ) -> None:
        self._config = config
        self._engine = engine or ArchiveEngine(config)
        self._matcher = matcher or NamespaceMatcher(config.patterns)
        self._event_policy = ArchivePolicy.for_event()
        self._sweep_policy = ArchivePolicy.for_sweep(config.staleness_seconds)
        self.stats = ArchiveStats()

    @property
    def matcher(self) -> NamespaceMatcher:
        return self._matcher

    @property
    def config(self) -> ArchiverConfig:
        return self._config

    async def archive_pod(self, pod: PodRef) -> List[ArchiveResult]:
        """
        Event path: every {log_root}/{ns}_{pod}_* directory, event policy.
        """
        self.stats.events += 1
        dirs = await asyncio.to_thread(
            resolve_pod_dirs, self._config.log_root, pod.namespace, pod.name
        )
        results: List[ArchiveResult] = []
        for directory in dirs:
            logger.info("event.archive.dir pod=%s dir=%s", pod, directory)
            result = await asyncio.to_thread(
                self._engine.archive, directory, pod, self._event_policy
            )
            self.stats.add(result)
            results.append(result)
        return results

    async def sweep_once(self) -> List[ArchiveResult]:
        """
        One sweep pass: {log_root}/{pattern}_* for every pattern, sweep policy.
        A failing directory is logged and the pass moves on.
        """
        results: List[ArchiveResult] = []
        with timed(logger, "sweep.pass", patterns=len(self._config.patterns)) as extra:
            for pattern in self._config.patterns:
                dirs = await asyncio.to_thread(sweep_dirs, self._config.log_root, pattern)
                logger.debug("sweep.pattern pattern=%s dirs=%d", pattern, len(dirs))
                for directory in dirs:
                    pod = parse_pod_dir(directory)
                    try:
                        result = await asyncio.to_thread(
                            self._engine.archive, directory, pod, self._sweep_policy
                        )
                    except Exception:
                        logger.error("sweep.dir.error dir=%s", directory, exc_info=True)
                        continue
                    self.stats.add(result)
                    results.append(result)
            extra["dirs"] = len(results)
            extra["copied"] = sum(r.copied for r in results)
            extra["errors"] = sum(len(r.errors) for r in results)

        self.stats.sweeps += 1
        self.stats.last_sweep_at = time.time()
        return results
