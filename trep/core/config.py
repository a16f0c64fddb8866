"""Configuration management for trep."""

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trep.core.resolver import RESOLVERS

CLI_MODE = "cli"
CI_MODE = "ci"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TrepSettings(BaseSettings):
    """trep configuration loaded from environment variables.

    Command-line options take precedence over these values.
    """

    # Display
    mode: str = Field(CLI_MODE, alias="TREP_MODE")
    only_fail: bool = Field(False, alias="TREP_ONLY_FAIL")

    # HTML report
    report: bool = Field(False, alias="TREP_REPORT")
    report_path: str = Field("./", alias="TREP_REPORT_PATH")
    report_name: str = Field("", alias="TREP_REPORT_NAME")

    # Engine
    resolver: str = Field("leaf-name", alias="TREP_RESOLVER")

    # Logging configuration
    log_level: str = Field("WARNING", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Validate run mode is cli or ci."""
        v_lower = v.lower()
        if v_lower not in (CLI_MODE, CI_MODE):
            raise ValueError(f"TREP_MODE must be one of ['{CLI_MODE}', '{CI_MODE}'], got: {v}")
        return v_lower

    @field_validator("resolver")
    @classmethod
    def validate_resolver(cls, v: str) -> str:
        if v not in RESOLVERS:
            raise ValueError(f"TREP_RESOLVER must be one of {list(RESOLVERS)}, got: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}, got: {v}")
        return v_upper

    @property
    def ci_mode(self) -> bool:
        return self.mode == CI_MODE


def load_environment(cwd: Optional[Path] = None) -> None:
    """Load environment variables from .env files.

    Priority: working directory .env > home .env
    """
    home_env = Path.home() / ".env"
    cwd_env = (cwd or Path.cwd()) / ".env"

    if home_env.exists():
        load_dotenv(home_env)
    if cwd_env.exists():
        load_dotenv(cwd_env, override=True)


def configure_logging(level: str = "WARNING", log_file: Optional[str] = None) -> None:
    """Configure root logging for a CLI run.

    Logs go to stderr (or log_file) so they never interleave with the
    rendered table on stdout.
    """
    handlers: list[logging.Handler]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers = [logging.FileHandler(log_path, encoding="utf-8")]
    else:
        handlers = [logging.StreamHandler()]

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
