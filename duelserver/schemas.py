"""Inbound Socket.IO message schemas.

Wire fields are camelCase; the models expose them as snake_case
attributes. Unknown fields are ignored, missing required fields or wrong
types raise ``pydantic.ValidationError``.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_NAME_LENGTH = 16
DEFAULT_PLAYER_NAME = 'Player'


class Message(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore', allow_inf_nan=False)


class ShieldState(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    active: bool = True
    angle: float = 0


class SwordHitbox(BaseModel):
    model_config = ConfigDict(extra='allow', allow_inf_nan=False)

    visible: bool = False
    x: float = 0
    y: float = 0
    angle: float = 0


class NamedMessage(Message):
    player_name: str = DEFAULT_PLAYER_NAME

    @field_validator('player_name', mode='before')
    @classmethod
    def _clean_name(cls, value):
        name = str(value or '').strip()
        if not name:
            return DEFAULT_PLAYER_NAME
        return name[:MAX_NAME_LENGTH]


class RoomMessage(Message):
    room_code: str

    @field_validator('room_code')
    @classmethod
    def _normalise_code(cls, value):
        return value.strip().upper()


class CreateRoom(NamedMessage):
    pass


class JoinRandomRoom(NamedMessage):
    pass


class JoinRoom(NamedMessage, RoomMessage):
    pass


class JoinGame(NamedMessage, RoomMessage):
    player_id: str


class PlayerMessage(RoomMessage):
    player_id: str


class PlayerState(PlayerMessage):
    x: float
    y: float
    velocity_x: float = 0.0
    velocity_y: float = 0.0
    health: Optional[float] = None
    is_dead: bool = False
    shield: Optional[ShieldState] = None


class PlayerUpdate(PlayerMessage):
    mouse_x: float
    mouse_y: float


class SwordSwing(PlayerMessage):
    hitbox: SwordHitbox = Field(default_factory=SwordHitbox)


class SwordRelease(PlayerMessage):
    pass


class PlayerHit(RoomMessage):
    target_id: str
    attacker_id: str


class PlayerDied(PlayerMessage):
    pass


class PlayerRespawn(PlayerMessage):
    pass
