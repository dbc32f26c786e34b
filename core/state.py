"""
In-memory coordinator state.

One ``KaraokeState`` instance is created per application and handed by
reference to every manager. Nothing else keeps a reference to the
collections it owns.
"""
import asyncio
import logging
import random
from dataclasses import dataclass, field
from functools import wraps
from typing import List, Optional

from core.exceptions import KaraokeException
from models import ArchivedRound, Round, Song, User
from services.id_service import TimestampIdGenerator

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class KaraokeState:
    songs: List[Song] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    current_round: Optional[Round] = None
    rounds: List[ArchivedRound] = field(default_factory=list)

    rng: random.Random = field(default_factory=random.Random)
    ids: TimestampIdGenerator = field(default_factory=TimestampIdGenerator)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def round_snapshot(self) -> Optional[Round]:
        if self.current_round is None:
            return None
        return self.current_round.snapshot()


def transactional(func):
    """
    Transaction decorator：確保狀態操作的原子性

    使用方式：
        @transactional
        def some_business_logic(state: KaraokeState, ...):
            state.users.append(user)
            # 如果之後拋出異常，users 會回到呼叫前的內容

    如果函式內發生異常：
        - 自動還原 songs / users / current_round / rounds
        - 異常會被重新拋出（讓上層處理）

    注意：
        - 第一個參數必須是 state: KaraokeState
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        state = None
        if args and isinstance(args[0], KaraokeState):
            state = args[0]
        elif 'state' in kwargs:
            state = kwargs['state']

        if state is None:
            raise ValueError(
                f"@transactional requires 'state: KaraokeState' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        saved = (
            list(state.songs),
            list(state.users),
            state.round_snapshot(),
            list(state.rounds),
        )
        try:
            return func(*args, **kwargs)
        except KaraokeException:
            state.songs, state.users, state.current_round, state.rounds = saved
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            state.songs, state.users, state.current_round, state.rounds = saved
            raise

    return wrapper
