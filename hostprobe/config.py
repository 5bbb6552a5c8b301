from typing import List, Literal
from pydantic import BaseModel, Field, field_validator
import os
from functools import lru_cache


class Settings(BaseModel):
    # Evidence sources
    root_path: str = Field(
        default="/",
        description="Filesystem root all evidence paths are resolved against, e.g. /host",
    )
    detect_virt_command: List[str] = Field(
        default_factory=lambda: ["systemd-detect-virt"],
        description="External virtualization detection helper; empty list disables it",
    )
    command_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Timeout for the external detection helper",
    )

    # Sampling
    sample_interval_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Wait between the baseline and the final CPU counter capture",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Root log level, e.g. DEBUG or INFO",
    )
    log_format: Literal["simple", "detailed", "json"] = Field(
        default="simple",
        description="Console log formatter",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}

        root = os.getenv("HOSTPROBE_ROOT")
        if root:
            values["root_path"] = root

        # Leerer Wert schaltet den Helper ab, fehlende Variable nimmt den Default
        raw_command = os.getenv("HOSTPROBE_DETECT_VIRT_COMMAND")
        if raw_command is not None:
            values["detect_virt_command"] = raw_command.split()

        for env_name, field_name in (
            ("HOSTPROBE_COMMAND_TIMEOUT", "command_timeout_seconds"),
            ("HOSTPROBE_SAMPLE_INTERVAL", "sample_interval_seconds"),
            ("HOSTPROBE_LOG_LEVEL", "log_level"),
            ("HOSTPROBE_LOG_FORMAT", "log_format"),
        ):
            raw = os.getenv(env_name, "").strip()
            if raw:
                values[field_name] = raw

        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
