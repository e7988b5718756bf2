import codecs
import logging
import os

import yaml
from pydantic import BaseModel, ValidationError, field_validator


class Settings(BaseModel):
    """Configuration options loaded from YAML or environment variables."""

    results_dir: str = "build/test-results"
    log_level: str = "INFO"
    metrics_port: int = 8000
    output_encoding: str = "utf-8"

    @field_validator("metrics_port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        """Ensure the metrics port is within the valid TCP range."""
        if not (1 <= value <= 65535):
            raise ValueError("metrics_port must be between 1 and 65535")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        """Accept only level names known to :mod:`logging`."""
        name = value.upper()
        if not isinstance(logging.getLevelName(name), int):
            raise ValueError(f"unknown log level: {value}")
        return name

    @field_validator("output_encoding")
    @classmethod
    def _check_encoding(cls, value: str) -> str:
        """Ensure the output encoding names a registered codec."""
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown encoding: {value}") from exc
        return value


def load_settings(path: str | None = None) -> Settings:
    """Return :class:`Settings` from ``path`` and environment variables."""

    data: dict[str, object] = {}
    if path:
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    env = os.getenv
    if "results_dir" not in data and env("RESULTLOG_RESULTS_DIR"):
        data["results_dir"] = env("RESULTLOG_RESULTS_DIR")
    if "log_level" not in data and env("RESULTLOG_LOG_LEVEL"):
        data["log_level"] = env("RESULTLOG_LOG_LEVEL")
    if "metrics_port" not in data and env("RESULTLOG_METRICS_PORT"):
        try:
            data["metrics_port"] = int(env("RESULTLOG_METRICS_PORT"))
        except ValueError:
            pass
    if "output_encoding" not in data and env("RESULTLOG_OUTPUT_ENCODING"):
        data["output_encoding"] = env("RESULTLOG_OUTPUT_ENCODING")

    try:
        settings_obj = Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
    globals()["settings"] = settings_obj
    return settings_obj


# Global settings instance used by the package
settings = load_settings()
