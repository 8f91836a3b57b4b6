"""Application configuration via environment variables."""

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Concurrency Gate capacity (unset → derived from CPU count)
    YAML_CONCURRENCY: Optional[int] = None

    # Tool configuration defaults
    SPECTRAL_RULESET: str = ""
    YAMLLINT_CONFIG: str = ""
    TOOL_TIMEOUT_SECONDS: float = 10.0
    STRICT_TOOLS: bool = False
    DISABLE_CFN_LINT: bool = False

    # Provider analyzers (empty → embedded schema)
    AZURE_PIPELINES_SCHEMA_PATH: str = ""
    CFN_SPEC_PATH: str = ""

    # Tool binaries
    YAMLLINT_COMMAND: str = "yamllint"
    SPECTRAL_COMMAND: str = "spectral"
    CFN_LINT_COMMAND: str = "cfn-lint"

    # Content preflight limits
    MAX_BYTES: int = 2_097_152  # 2 MiB
    MAX_LINES: int = 15_000

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8787
    DEBUG: bool = False
    LOG_LEVEL: str = "info"

    # Rate Limiting
    RATE_LIMIT_MAX_REQUESTS: int = 120
    RATE_LIMIT_WINDOW_SECONDS: int = 60

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("YAML_CONCURRENCY", mode="before")
    @classmethod
    def _lenient_concurrency(cls, value):
        # Unset, non-numeric and non-positive values all mean "use the default"
        if value is None or value == "":
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        return parsed if parsed >= 1 else None


@lru_cache
def get_settings() -> Settings:
    return Settings()
