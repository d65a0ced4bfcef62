from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Relay configuration.

    Every field can be overridden from the environment with the `PARLEY_`
    prefix, e.g. `PARLEY_PORT=9000` or `PARLEY_IDLE_TIMEOUT=300`.
    """

    model_config = SettingsConfigDict(env_prefix="PARLEY_")

    host: str = "0.0.0.0"
    port: int = Field(default=9502, ge=0, le=65535)
    path: str = "/ws"

    tls: bool = False
    ssl_certfile: Optional[str] = None
    ssl_keyfile: Optional[str] = None

    mailbox_capacity: int = Field(default=2, ge=1)
    max_frame_size: Optional[int] = Field(default=2048, ge=1)
    idle_timeout: Optional[float] = Field(default=None, gt=0)
    write_timeout: Optional[float] = Field(default=10.0, gt=0)
    ping_interval: Optional[float] = Field(default=54.0, gt=0)
    dead_letter_limit: int = Field(default=1000, ge=0)

    health_path: str = "/healthz"
    metrics_path: str = "/metrics"

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_tls(self) -> "Settings":
        if self.tls and not (self.ssl_certfile and self.ssl_keyfile):
            raise ValueError("tls requires both ssl_certfile and ssl_keyfile")
        return self
