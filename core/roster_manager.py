"""
Roster Manager：管理參加者名單

職責：
1. 註冊使用者（廣播 + 回覆請求者）
2. 移除使用者（同時刪除他在進行中回合的所有投票）
"""
import logging
from datetime import datetime, timezone
from typing import Any, List, Tuple

from pydantic import ValidationError

from config import get_settings
from core.events import Event, USER_REGISTERED, USER_REMOVED, round_updated
from core.exceptions import InvalidPayload
from core.state import KaraokeState, transactional
from models import User
from schemas import UserRegister

logger = logging.getLogger(__name__)


class RosterManager:
    """參加者名單管理器"""

    @staticmethod
    @transactional
    def register(state: KaraokeState, payload: Any = None) -> Tuple[User, List[Event]]:
        """
        註冊新使用者

        流程：
        1. 解析 payload（name / photo 皆可省略）
        2. 建立 User（時間戳 ID、預設名稱、加入時間）
        3. 加入名單

        參數：
            state: 協調器狀態
            payload: {"name"?: str, "photo"?: str}

        返回：
            (User, [user:registered])

        注意：
            - 回覆請求者（ack）由 WebSocket 層處理，與廣播是兩個獨立效果
        """
        try:
            data = UserRegister.model_validate(payload or {})
        except ValidationError as e:
            raise InvalidPayload("user:register", str(e))

        user = User(
            id=state.ids.next_id(),
            name=data.name or get_settings().default_user_name,
            photo=data.photo,
            joined_at=datetime.now(timezone.utc),
        )
        state.users.append(user)

        logger.info(f"Registered user {user.id} ({user.name})")

        return user, [Event(USER_REGISTERED, user.to_wire())]

    @staticmethod
    @transactional
    def remove(state: KaraokeState, user_id: Any) -> List[Event]:
        """
        移除使用者

        流程：
        1. 從名單刪除（不存在時不做事）
        2. 如果有進行中的回合，刪除該使用者的所有投票
        3. 廣播移除事件與最新的回合快照

        注意：
            - 移除投票可能改變目前領先的歌曲，但不會重新檢查門檻
        """
        if isinstance(user_id, bool) or not isinstance(user_id, (int, str)):
            raise InvalidPayload("user:remove", f"bad user id {user_id!r}")
        try:
            user_id = int(user_id)
        except ValueError:
            raise InvalidPayload("user:remove", f"bad user id {user_id!r}")

        before = len(state.users)
        state.users = [user for user in state.users if user.id != user_id]

        purged = 0
        if state.current_round is not None:
            kept = [vote for vote in state.current_round.votes if vote.user_id != user_id]
            purged = len(state.current_round.votes) - len(kept)
            state.current_round.votes = kept

        logger.info(
            f"Removed user {user_id} (found={before != len(state.users)}, votes purged={purged})"
        )

        return [Event(USER_REMOVED, user_id), round_updated(state)]
