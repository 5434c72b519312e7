"""
Relay runtime configuration.

Defaults, overridden by an optional JSON config file, overridden by CLI
options.
"""

import json
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from steam_relay.errors import ConfigError

DEFAULT_PORT = 3000
DEFAULT_CREDENTIALS_FILE = "./steam-credentials.json"


class RelayConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = "localhost"
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    credentials_file: str = DEFAULT_CREDENTIALS_FILE
    static_dir: Optional[str] = None
    status_interval: float = Field(default=30.0, ge=0)
    log_level: str = "INFO"

    def with_overrides(self, **overrides: Any) -> "RelayConfig":
        """Apply CLI options; None means 'not given'."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        try:
            return RelayConfig.model_validate({**self.model_dump(), **values})
        except ValidationError as e:
            raise ConfigError(f"Invalid option: {e}")


def load_config(path: Optional[Union[str, Path]] = None) -> RelayConfig:
    if path is None:
        return RelayConfig()
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        return RelayConfig()
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}")
    try:
        return RelayConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}")
