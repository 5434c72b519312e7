"""
Upstream event variants: what the session adapter reports.

Each variant is a small pydantic model tagged by `type`; the relay
dispatches on that tag.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class UpstreamEvent:
    SESSION_ESTABLISHED = "session:established"
    FRIEND_LIST_SYNCED = "friends:synced"
    PERSONA_UPDATED = "persona:updated"
    RELATIONSHIP_CHANGED = "relationship:changed"
    MESSAGE_RECEIVED = "message:received"
    DISCONNECTED = "session:disconnected"


class Relationship(str, Enum):
    FRIEND = "Friend"
    PENDING_INCOMING = "PendingIncoming"
    NONE = "None"


class SessionEstablished(BaseModel):
    type: Literal["session:established"] = UpstreamEvent.SESSION_ESTABLISHED
    steam_id: Optional[str] = None


class FriendListSynced(BaseModel):
    type: Literal["friends:synced"] = UpstreamEvent.FRIEND_LIST_SYNCED


class PersonaUpdated(BaseModel):
    type: Literal["persona:updated"] = UpstreamEvent.PERSONA_UPDATED
    steam_id: str
    name: str


class RelationshipChanged(BaseModel):
    type: Literal["relationship:changed"] = UpstreamEvent.RELATIONSHIP_CHANGED
    steam_id: str
    relationship: Relationship


class MessageReceived(BaseModel):
    type: Literal["message:received"] = UpstreamEvent.MESSAGE_RECEIVED
    steam_id: str
    text: str


class Disconnected(BaseModel):
    type: Literal["session:disconnected"] = UpstreamEvent.DISCONNECTED
    reason: str = ""


UpstreamEventModel = Annotated[
    Union[
        SessionEstablished,
        FriendListSynced,
        PersonaUpdated,
        RelationshipChanged,
        MessageReceived,
        Disconnected,
    ],
    Field(discriminator="type"),
]
