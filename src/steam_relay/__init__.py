"""
steam-chat-relay: Steam chat to browser relay.

Logs on once to Steam, keeps friends, message logs and pending friend
requests in memory, and fans every change out to browser clients over a
WebSocket push channel.
"""

from steam_relay.broadcast import ConnectionRegistry, PushConnection
from steam_relay.commands import CommandHandler
from steam_relay.config import RelayConfig, load_config
from steam_relay.credentials import Credentials
from steam_relay.errors import (
    RelayError,
    AuthError,
    DeliveryError,
    MalformedCommand,
    ChannelSendFailure,
    ConfigError,
)
from steam_relay.models.events import Relationship, UpstreamEvent
from steam_relay.relay import Relay
from steam_relay.state import RelayState
from steam_relay.upstream import UpstreamAdapter

__version__ = "0.1.0"
__all__ = [
    "ConnectionRegistry",
    "PushConnection",
    "CommandHandler",
    "RelayConfig",
    "load_config",
    "Credentials",
    "RelayError",
    "AuthError",
    "DeliveryError",
    "MalformedCommand",
    "ChannelSendFailure",
    "ConfigError",
    "Relationship",
    "UpstreamEvent",
    "Relay",
    "RelayState",
    "UpstreamAdapter",
]
