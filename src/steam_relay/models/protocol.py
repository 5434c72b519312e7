"""
Push-channel protocol: JSON text frames between relay and browser.

Server -> client: friends, friendRequests, message, error.
Client -> server: send, friendRequest.
Both directions are tagged unions keyed on `type`.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from steam_relay.errors import MalformedCommand
from steam_relay.models.state import FriendRecord, FriendRequest, MessageRecord


class ClientCommandType:
    SEND = "send"
    FRIEND_REQUEST = "friendRequest"


class ServerEventType:
    FRIENDS = "friends"
    FRIEND_REQUESTS = "friendRequests"
    MESSAGE = "message"
    ERROR = "error"


# --- Client -> server ---

class SendCommand(BaseModel):
    type: Literal["send"]
    to: str = Field(min_length=1)
    text: str


class FriendRequestCommand(BaseModel):
    type: Literal["friendRequest"]
    steamId: str = Field(min_length=1)
    action: Literal["accept", "decline"]


ClientCommand = Annotated[Union[SendCommand, FriendRequestCommand], Field(discriminator="type")]

_COMMAND_ADAPTER: TypeAdapter[ClientCommand] = TypeAdapter(ClientCommand)


def parse_command(raw: Union[str, bytes]) -> Union[SendCommand, FriendRequestCommand]:
    """Validate one inbound frame. Raises MalformedCommand on anything unexpected."""
    try:
        return _COMMAND_ADAPTER.validate_json(raw)
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise MalformedCommand(f"Invalid command: {errors[0]['msg'] if errors else e}", {"errors": errors})


# --- Server -> client ---

class FriendsEvent(BaseModel):
    type: Literal["friends"] = ServerEventType.FRIENDS
    friends: dict[str, FriendRecord]


class FriendRequestsEvent(BaseModel):
    type: Literal["friendRequests"] = ServerEventType.FRIEND_REQUESTS
    requests: list[FriendRequest]


class MessageEvent(BaseModel):
    type: Literal["message"] = ServerEventType.MESSAGE
    friendId: str
    message: MessageRecord


class ErrorEvent(BaseModel):
    type: Literal["error"] = ServerEventType.ERROR
    message: str


ServerEvent = Union[FriendsEvent, FriendRequestsEvent, MessageEvent, ErrorEvent]


def encode_event(event: ServerEvent) -> str:
    return event.model_dump_json(by_alias=True)
