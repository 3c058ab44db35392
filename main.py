# main.py
import asyncio
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
import routes
from config.kube import close_core_api, get_core_api
from config.settings import settings
from core.pod_watch import PodWatchSource
from model.archive import ArchiverConfig
from service.runtime import ArchiverRuntime
from util.constants import VERSION
from util.enums import Color, Environment
from util.logger import init_logger

logger = logging.getLogger(__name__)


def print_banner(config: ArchiverConfig) -> None:
    print(f"{Color.GREEN}podlog-keeper - pod log backup v{VERSION}{Color.RESET}")
    print(f"  log root:    {config.log_root}")
    print(f"  backup root: {config.backup_root}")
    print(f"  patterns:    {', '.join(config.patterns)}")
    if config.remove_after_copy:
        print(f"  {Color.YELLOW}REMOVE_AFTER_COPY on: originals are deleted after backup{Color.RESET}")
    else:
        print("  REMOVE_AFTER_COPY off: originals are preserved")
    print()


def exit_on_fatal(exc: BaseException) -> None:
    # Watch loss after startup: exit non-zero and let the supervisor restart us.
    logger.critical("fatal.exit err=%s", exc)
    logging.shutdown()
    os._exit(1)


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    config = ArchiverConfig.from_settings(settings)
    print_banner(config)
    if settings.BACKUP_PATTERN.strip() in ("", "*"):
        logger.warning("config.patterns BACKUP_PATTERN unset or '*': archiving every namespace")

    try:
        api = await asyncio.to_thread(get_core_api)
    except Exception as e:
        print(f"{Color.RED}Failed to reach the Kubernetes API: {e}{Color.RESET}")
        raise

    runtime = ArchiverRuntime(
        config,
        PodWatchSource(api, timeout_seconds=config.watch_timeout_seconds),
        fatal_hook=exit_on_fatal,
    )
    fastApi.state.runtime = runtime
    await runtime.start()
    print(f"{Color.BLUE}Archiver Started{Color.RESET}")

    try:
        yield
    finally:
        try:
            await runtime.stop()
        finally:
            fastApi.state.runtime = None
            close_core_api()
        print(f"{Color.RED}Archiver Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=reload)
