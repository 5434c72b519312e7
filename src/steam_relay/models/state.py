"""
Relay state records: friends, their message logs, pending requests.

Field names follow the push-channel wire format (camelCase where the
browser client expects it).
"""

import time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    return int(time.time() * 1000)


class MessageRecord(BaseModel):
    """One chat line. `sender` goes over the wire as `from`."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sender: Literal["me", "them"] = Field(alias="from")
    text: str
    timestamp: int = Field(default_factory=now_ms)


class FriendRecord(BaseModel):
    name: str
    messages: list[MessageRecord] = Field(default_factory=list)


class FriendRequest(BaseModel):
    """Pending incoming request; name is a snapshot taken on arrival."""
    steamId: str
    name: str
