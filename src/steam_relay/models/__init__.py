from steam_relay.models.state import FriendRecord, FriendRequest, MessageRecord, now_ms
from steam_relay.models.events import Relationship, UpstreamEvent
from steam_relay.models.protocol import ClientCommand, ServerEvent, parse_command, encode_event

__all__ = [
    "FriendRecord",
    "FriendRequest",
    "MessageRecord",
    "now_ms",
    "Relationship",
    "UpstreamEvent",
    "ClientCommand",
    "ServerEvent",
    "parse_command",
    "encode_event",
]
