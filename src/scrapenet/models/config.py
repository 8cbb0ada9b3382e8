"""Pydantic configuration models for scrapenet."""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..logging_config import setup_logging

DEFAULT_MAX_REDIRECTS = 20
MAX_REDIRECTS_ENV = "HTTP_MAX_REDIRECTS"


def default_max_redirects() -> int:
    """
    Maximum redirect hops when nothing else is configured.

    Reads ``HTTP_MAX_REDIRECTS`` from the environment and falls back to 20
    when the variable is unset or not a positive integer.
    """
    value = os.environ.get(MAX_REDIRECTS_ENV)
    if value is None:
        return DEFAULT_MAX_REDIRECTS
    try:
        parsed = int(value.strip())
    except ValueError:
        return DEFAULT_MAX_REDIRECTS
    return parsed if parsed > 0 else DEFAULT_MAX_REDIRECTS


class NetworkConfig(BaseModel):
    """
    Defaults shared by every request executed through one transport.

    Example:
        config = NetworkConfig(connect_timeout=5, proxy="http://proxy:8080")
        transport = Transport.from_config(config)

    YAML format:
        proxy: http://proxy:8080
        connect_timeout: 5
        read_timeout: 30
        max_redirects: 10
        headers:
          Referer: https://example.com/
    """

    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    user_agent: Optional[str] = Field(None, description="Custom User-Agent header")
    connect_timeout: Optional[float] = Field(
        None, gt=0, description="Connection timeout in seconds (None = no timeout)"
    )
    read_timeout: Optional[float] = Field(
        None, gt=0, description="Read timeout in seconds (None = no timeout)"
    )
    max_redirects: int = Field(
        default_factory=default_max_redirects,
        ge=0,
        description="Maximum redirect hops before failing",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra default headers sent with every request",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")
    log_wire: bool = Field(False, description="Also log urllib3 connection pool activity")

    model_config = {"extra": "forbid"}

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        return yaml.dump(self.model_dump(mode="json", exclude_none=True), default_flow_style=False)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "NetworkConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "NetworkConfig":
        """Load config from YAML file."""
        return cls.from_yaml(Path(path).read_text())

    def configure_logging(self, force: bool = False) -> logging.Logger:
        """Apply the logging fields to the ``scrapenet`` logger."""
        log_file = str(self.log_file) if self.log_file else None
        return setup_logging(self.log_level, log_file, force=force, wire=self.log_wire)
