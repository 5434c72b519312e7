"""
Credential file: `{accountName, password}` JSON next to the relay.

Read on startup when present; otherwise asked for interactively and
written out so the next start is non-interactive.
"""

import json
import logging
import os
from pathlib import Path
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from steam_relay.errors import ConfigError

logger = logging.getLogger("steam_relay.credentials")

PathLike = Union[str, Path]


class Credentials(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_name: str = Field(alias="accountName", min_length=1)
    password: str = Field(min_length=1)


def load_credentials(path: PathLike) -> Optional[Credentials]:
    """Returns None if the file does not exist."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    try:
        return Credentials.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid credentials file {path}: {e}")


def save_credentials(path: PathLike, creds: Credentials) -> None:
    path = Path(path)
    if path.parent:
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(creds.model_dump(by_alias=True), indent=2), encoding="utf-8")
    try:
        os.chmod(path, 0o600)
    except OSError:
        logger.warning(f"Could not restrict permissions on {path}")


def prompt_credentials(prompt: Callable[..., str]) -> Credentials:
    account_name = prompt("Steam Username")
    password = prompt("Steam Password", hide_input=True)
    return Credentials(account_name=account_name, password=password)


def get_credentials(path: PathLike, prompt: Callable[..., str]) -> Credentials:
    """Load saved credentials or ask for them and save them."""
    creds = load_credentials(path)
    if creds is not None:
        logger.info(f"Loading credentials from {path}")
        return creds
    logger.info("No saved credentials found, prompting")
    creds = prompt_credentials(prompt)
    save_credentials(path, creds)
    logger.info(f"Credentials saved to {path}")
    return creds
