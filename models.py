"""
Domain models for the karaoke round coordinator.

All models serialize with camelCase aliases so the wire format matches what
the browser clients expect (``votingOpen``, ``userId``, ``joinedAt``).
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


NONE_SONG_ID = -1


class RoundType(str, Enum):
    POLL = "poll"


class RoundState(str, Enum):
    PREPARED = "prepared"
    VOTING = "voting"


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Song(WireModel):
    # Unknown fields (e.g. chord_sheet) are kept and sent back untouched
    model_config = ConfigDict(frozen=True, extra="allow")

    id: int
    title: str = ""
    artist: str = ""
    year: Optional[int] = None

    @field_validator("title", "artist", mode="before")
    @classmethod
    def blank_text(cls, value):
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("year", mode="before")
    @classmethod
    def loose_year(cls, value):
        """Blank or non-numeric years (importer forms send "") become None."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        try:
            return int(str(value).strip())
        except ValueError:
            return None


class User(WireModel):
    id: int
    name: str
    photo: Optional[str] = None
    joined_at: datetime


class Vote(WireModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    song_id: int
    round_id: int


class Round(WireModel):
    id: int
    type: RoundType = RoundType.POLL
    category: RoundType = RoundType.POLL
    songs: List[Song] = Field(default_factory=list)
    voting_open: bool = False
    state: RoundState = RoundState.PREPARED
    votes: List[Vote] = Field(default_factory=list)

    def snapshot(self) -> "Round":
        """Independent copy; later mutations of this round do not leak into it."""
        return self.model_copy(deep=True)


class PollStat(WireModel):
    song: Song
    votes: int


class PollResult(WireModel):
    winner: Optional[Song] = None
    stats: List[PollStat] = Field(default_factory=list)
    ties: List[Song] = Field(default_factory=list)


class ArchivedRound(Round):
    """A closed round as kept in history. Never mutated once archived."""
    model_config = ConfigDict(frozen=True)

    results: PollResult


def none_option() -> Song:
    """The synthetic "no song" candidate present in every poll."""
    return Song(id=NONE_SONG_ID, title="None", artist="—", year=None)
