"""Pydantic models for inbound WebSocket frames."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from game.errors import InvalidNickname
from game.rules import MAX_CHAT_LENGTH, MAX_NICKNAME_LENGTH, NightActionKind, VoteChoice


class _Data(BaseModel):
    """Payload base: accepts camelCase keys from the client, ignores extras."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CreateRoomData(_Data):
    nickname: str = ""


class JoinRoomData(_Data):
    room_code: str = Field(default="", alias="roomCode")
    nickname: str = ""


class NightActionData(_Data):
    action: NightActionKind
    target: str


class DayChatData(_Data):
    message: str = Field(..., max_length=MAX_CHAT_LENGTH)


class AccuseData(_Data):
    target: str


class VoteData(_Data):
    vote: VoteChoice
    target: str | None = Field(default=None, description="Accused player id; informational only")


class CreateRoomMessage(BaseModel):
    event: Literal["create_room"]
    data: CreateRoomData = Field(default_factory=CreateRoomData)


class JoinRoomMessage(BaseModel):
    event: Literal["join_room"]
    data: JoinRoomData = Field(default_factory=JoinRoomData)


class StartGameMessage(BaseModel):
    event: Literal["start_game"]


class NightActionMessage(BaseModel):
    event: Literal["night_action"]
    data: NightActionData


class DayChatMessage(BaseModel):
    event: Literal["day_chat"]
    data: DayChatData


class AccuseMessage(BaseModel):
    event: Literal["accuse_player"]
    data: AccuseData


class VoteMessage(BaseModel):
    event: Literal["vote"]
    data: VoteData


InboundMessage = Annotated[
    Union[
        CreateRoomMessage,
        JoinRoomMessage,
        StartGameMessage,
        NightActionMessage,
        DayChatMessage,
        AccuseMessage,
        VoteMessage,
    ],
    Field(discriminator="event"),
]

inbound_adapter = TypeAdapter(InboundMessage)


def parse_inbound(frame: object) -> InboundMessage:
    """Validate a decoded JSON frame. Raises pydantic.ValidationError."""
    return inbound_adapter.validate_python(frame)


def clean_nickname(nickname: str) -> str:
    """Trim and length-check a display name. Raises InvalidNickname."""
    nickname = (nickname or "").strip()
    if not nickname or len(nickname) > MAX_NICKNAME_LENGTH:
        raise InvalidNickname()
    return nickname
