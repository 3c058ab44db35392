# config/settings.py
import os
import sys
from typing import Tuple
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from util.enums import Environment, KubeConfigMode, LogFormat, NamingMode
import logging


if os.getenv("APP_ENV", Environment.PROD) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # Unset and empty variables both fall back to the defaults below
    model_config = SettingsConfigDict(env_ignore_empty=True)

    # App
    APP_ENV: str = Field(default=Environment.PROD.value, validation_alias="APP_ENV")
    HOST: str = Field(default="0.0.0.0", validation_alias="HOST")
    PORT: int = Field(default=8080, validation_alias="PORT")

    # Archival
    LOG_ROOT: str = Field(default="/var/log/pods", validation_alias="LOG_ROOT")
    BACKUP_ROOT: str = Field(default="/backup", validation_alias="BACKUP_ROOT")
    BACKUP_PATTERN: str = Field(default="*", validation_alias="BACKUP_PATTERN")
    REMOVE_AFTER_COPY: bool = Field(default=False, validation_alias="REMOVE_AFTER_COPY")
    NAMING_MODE: NamingMode = Field(
        default=NamingMode.TIMESTAMP, validation_alias="NAMING_MODE"
    )

    # Timers
    SWEEP_INTERVAL_SECONDS: float = Field(
        default=60.0, gt=0, validation_alias="SWEEP_INTERVAL_SECONDS"
    )
    STALENESS_SECONDS: float = Field(
        default=60.0, ge=0, validation_alias="STALENESS_SECONDS"
    )
    SHUTDOWN_GRACE_SECONDS: float = Field(
        default=10.0, ge=0, validation_alias="SHUTDOWN_GRACE_SECONDS"
    )

    # Kubernetes
    KUBE_CONFIG_MODE: KubeConfigMode = Field(
        default=KubeConfigMode.AUTO, validation_alias="KUBE_CONFIG_MODE"
    )
    WATCH_TIMEOUT_SECONDS: int = Field(
        default=300, gt=0, validation_alias="WATCH_TIMEOUT_SECONDS"
    )

    # Logging knobs
    LOGGER_NAME: str = "podlog-keeper"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_FORMAT: LogFormat = Field(default=LogFormat.TEXT, validation_alias="LOG_FORMAT")
    LOG_COLOR: bool = Field(default=False, validation_alias="LOG_COLOR")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(
        default="podlog-keeper.log", validation_alias="LOG_FILE_NAME"
    )
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    @property
    def patterns(self) -> Tuple[str, ...]:
        """BACKUP_PATTERN split on commas; blank entries dropped, empty means '*'."""
        parts = tuple(p.strip() for p in self.BACKUP_PATTERN.split(",") if p.strip())
        return parts or ("*",)


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
