"""Configuration schema using Pydantic.

Persisted to ~/.dyfunc/config.json; every field can also be set through
``DYFUNC_<SECTION>__<FIELD>`` environment variables.
"""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewayConfig(BaseModel):
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = 5001
    # Single path accepting batch calls.
    path: str = "/call-remote"


class AuthConfig(BaseModel):
    """HTTP Basic credentials. Leaving either field empty disables authentication."""
    username: str = ""
    password: str = ""


class DispatchConfig(BaseModel):
    """Batch execution settings."""
    # Worker threads for concurrent calls (None = ThreadPoolExecutor default).
    max_workers: int | None = Field(default=None, ge=1)
    # Per-call deadline; None waits for every call however long it takes.
    call_timeout_seconds: float | None = Field(default=None, gt=0)
    # reject: duplicate ids fail the whole batch; last_wins: later request in the batch wins.
    duplicate_ids: Literal["reject", "last_wins"] = "reject"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    # Also write a rotating log file under ~/.dyfunc/logs.
    file: bool = False


class Config(BaseSettings):
    """Root configuration for dyfunc."""
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="DYFUNC_",
        env_nested_delimiter="__",
    )
