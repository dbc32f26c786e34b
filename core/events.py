"""
Outbound events.

Managers never talk to the transport. Each transition returns the events it
produced and the WebSocket layer publishes them, in order, to every client.
"""
from dataclasses import dataclass
from typing import Any, List

from core.state import KaraokeState


@dataclass(frozen=True)
class Event:
    name: str
    data: Any = None

    def to_frame(self) -> dict:
        return {"event": self.name, "data": self.data}


SONGS_UPDATED = "songs:updated"
ROUND_RESET = "round:reset"
ROUND_UPDATED = "round:updated"
ROUND_STARTED = "round:started"
ROUND_ENDED = "round:ended"
ROUND_ERROR = "round:error"
USER_REGISTERED = "user:registered"
USER_REMOVED = "user:removed"
VOTE_REGISTERED = "vote:registered"
STATE_INIT = "state:init"


def round_updated(state: KaraokeState) -> Event:
    """Publish-snapshot step: the full current round, or None."""
    snapshot = state.round_snapshot()
    return Event(ROUND_UPDATED, snapshot.to_wire() if snapshot else None)


def names(events: List[Event]) -> List[str]:
    return [event.name for event in events]
