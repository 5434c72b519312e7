"""
Command handler: inbound push-channel frames from browser clients.

`send` forwards a chat message upstream and logs it locally;
`friendRequest` accepts or declines a pending request. Upstream rejections
are reported to the originating connection only; malformed frames are
logged and dropped.
"""

import logging
from typing import Union

from steam_relay.broadcast import PushConnection
from steam_relay.errors import DeliveryError, MalformedCommand
from steam_relay.models.events import Relationship
from steam_relay.models.protocol import (
    ClientCommandType,
    ErrorEvent,
    FriendRequestCommand,
    MessageEvent,
    SendCommand,
    parse_command,
)
from steam_relay.models.state import MessageRecord
from steam_relay.relay import Relay

logger = logging.getLogger("steam_relay.commands")


class CommandHandler:
    def __init__(self, relay: Relay):
        self._relay = relay

    async def handle(self, conn: PushConnection, raw: Union[str, bytes]) -> None:
        try:
            command = parse_command(raw)
        except MalformedCommand as e:
            logger.warning(f"Bad WS message from {conn.id}: {e}")
            return

        logger.debug(f"Command from {conn.id}: {command.type}")
        if command.type == ClientCommandType.SEND:
            await self.send(conn, command)
        elif command.type == ClientCommandType.FRIEND_REQUEST:
            await self.friend_request(conn, command)

    async def send(self, conn: PushConnection, command: SendCommand) -> None:
        relay = self._relay
        friend = relay.state.get_friend(command.to)
        was_friend = relay.adapter.relationship(command.to) == Relationship.FRIEND
        logger.info(f"Sending message to {friend.name if friend else command.to} ({command.to})")

        try:
            await relay.adapter.send_message(command.to, command.text)
        except DeliveryError as e:
            logger.error(f"Failed to send message to {command.to}: {e}")
            relay.registry.send_to(conn, ErrorEvent(message=f"Failed to send message: {e}"))
            return

        # Other tasks may have run during the send; a friend removed meanwhile stays removed.
        if was_friend and relay.adapter.relationship(command.to) != Relationship.FRIEND:
            logger.warning(f"{command.to} stopped being a friend while sending, not logging the message")
            relay.registry.send_to(conn, ErrorEvent(message=f"Message sent, but {command.to} is no longer a friend"))
            return
        record = MessageRecord(sender="me", text=command.text)
        created = relay.state.append_message(command.to, record)
        relay.registry.broadcast(MessageEvent(friendId=command.to, message=record))
        if created:
            relay.registry.broadcast(relay.state.friends_event())
        logger.info("Message sent successfully")

    async def friend_request(self, conn: PushConnection, command: FriendRequestCommand) -> None:
        relay = self._relay
        steam_id, action = command.steamId, command.action
        logger.info(f"Friend request from {steam_id}: {action}")

        try:
            if action == "accept":
                await relay.adapter.add_friend(steam_id)
            else:
                await relay.adapter.remove_friend(steam_id)
        except DeliveryError as e:
            logger.error(f"Failed to {action} friend request from {steam_id}: {e}")
            relay.registry.send_to(conn, ErrorEvent(message=f"Failed to {action} friend request: {e}"))
            return

        relay.state.remove_request(steam_id)
        relay.registry.broadcast(relay.state.requests_event())
