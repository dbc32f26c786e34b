"""
WebSocket message schemas (inbound payloads and the frame envelope).
"""
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models import Round, Song, User


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRegister(Payload):
    name: Optional[str] = None
    photo: Optional[str] = None


class VoteSubmit(Payload):
    user_id: int
    song_id: int


class Frame(BaseModel):
    """
    One WebSocket frame in either direction.

    Clients send ``{"event": ..., "data": ..., "ack": ...}``; ``ack`` is an
    opaque request id echoed back in the direct reply.
    """
    event: str
    data: Any = None
    ack: Optional[Union[str, int]] = None


class InitState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    songs: List[Song]
    users: List[User]
    current_round: Optional[Round] = None
