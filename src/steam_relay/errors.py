"""
Relay error types.

Only AuthError is fatal (at startup). Everything else is recovered inside
the event core and reported or logged.
"""

from typing import Any, Optional


class RelayError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AuthError(RelayError):
    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class DeliveryError(RelayError):
    """Upstream rejected a send/add/remove call."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("delivery_error", message, details)


class MalformedCommand(RelayError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("malformed_command", message, details)


class ChannelSendFailure(RelayError):
    def __init__(self, connection_id: str, message: str):
        super().__init__("channel_send_failure", message, {"connection_id": connection_id})
        self.connection_id = connection_id


class ConfigError(RelayError):
    def __init__(self, message: str):
        super().__init__("config_error", message)
