"""
Round Manager：管理投票回合的完整生命週期

狀態：
    (無回合) -> prepared -> voting -> (結算後回到無回合)
    reset 可以從任何狀態回到無回合，並清除歷史

職責：
1. 準備 Poll 回合（隨機抽 10 首 + None 選項）
2. 開放投票
3. 登記投票
4. 結算並封存回合
5. 重置

原則：
- 每個操作只改狀態並回傳事件，不直接碰傳輸層
- 不合法的操作拋出異常，由 WebSocket 層決定要回報還是忽略
"""
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from config import Settings, get_settings
from core.events import (
    Event,
    ROUND_ENDED,
    ROUND_RESET,
    ROUND_STARTED,
    VOTE_REGISTERED,
    round_updated,
)
from core.exceptions import (
    InvalidPayload,
    InvalidStateTransition,
    NoActiveRound,
    NotEnoughSongs,
    VotingClosed,
)
from core.state import KaraokeState, transactional
from models import ArchivedRound, Round, RoundState, RoundType, Vote, none_option
from schemas import VoteSubmit
from services.catalog_service import sample_candidates
from services.poll_service import calculate_poll_results

logger = logging.getLogger(__name__)


def _require_poll_round(state: KaraokeState) -> Round:
    if state.current_round is None:
        raise NoActiveRound()
    if state.current_round.type != RoundType.POLL:
        raise InvalidStateTransition(
            f"Round {state.current_round.id} is {state.current_round.type.value}, not poll"
        )
    return state.current_round


class RoundManager:
    """投票回合管理器"""

    @staticmethod
    @transactional
    def prepare_poll(state: KaraokeState, settings: Optional[Settings] = None) -> List[Event]:
        """
        準備新的 Poll 回合

        前置條件：
        - 目錄至少有 min_poll_songs 首歌

        流程：
        1. 檢查目錄大小
        2. 隨機抽出 poll_size 首歌（不重複、不加權）
        3. 加上 None 選項
        4. 建立 prepared 狀態的回合（直接取代任何進行中的回合）

        返回：
            [round:updated]

        異常：
            NotEnoughSongs: 目錄歌曲不足（只回報給請求者，不廣播）
        """
        settings = settings or get_settings()

        if len(state.songs) < settings.min_poll_songs:
            raise NotEnoughSongs(settings.min_poll_songs, len(state.songs))

        candidates = sample_candidates(state.songs, settings.poll_size, state.rng)

        if state.current_round is not None:
            logger.warning(f"Preparing a new poll replaces active round {state.current_round.id}")

        state.current_round = Round(
            id=state.ids.next_id(),
            type=RoundType.POLL,
            category=RoundType.POLL,
            songs=[*candidates, none_option()],
            voting_open=False,
            state=RoundState.PREPARED,
            votes=[],
        )

        logger.info(
            f"Prepared poll round {state.current_round.id} with {len(candidates)} songs"
        )

        return [round_updated(state)]

    @staticmethod
    @transactional
    def open_voting(state: KaraokeState) -> List[Event]:
        """
        開放投票（prepared -> voting）

        返回：
            [round:started, round:updated]，兩者都帶完整快照
        """
        round_obj = _require_poll_round(state)

        round_obj.voting_open = True
        round_obj.state = RoundState.VOTING

        logger.info(f"Voting opened for round {round_obj.id}")

        updated = round_updated(state)
        return [Event(ROUND_STARTED, updated.data), updated]

    @staticmethod
    @transactional
    def vote(state: KaraokeState, payload: Any) -> List[Event]:
        """
        登記一票

        注意：
            - 同一使用者可以投多次，每次都會新增一筆 Vote
            - 是否只計最後一票由結算時的 one_vote_per_user 設定決定

        返回：
            [round:updated, vote:registered]

        異常：
            NoActiveRound: 沒有進行中的回合
            VotingClosed: 回合尚未開放投票
            InvalidPayload: payload 缺少 userId / songId
        """
        if state.current_round is None:
            raise NoActiveRound()
        if not state.current_round.voting_open:
            raise VotingClosed(state.current_round.id)

        try:
            data = VoteSubmit.model_validate(payload)
        except ValidationError as e:
            raise InvalidPayload("round:vote", str(e))

        round_obj = state.current_round
        round_obj.votes.append(
            Vote(user_id=data.user_id, song_id=data.song_id, round_id=round_obj.id)
        )

        logger.debug(f"User {data.user_id} voted for song {data.song_id} in round {round_obj.id}")

        return [
            round_updated(state),
            Event(VOTE_REGISTERED, {"userId": data.user_id, "songId": data.song_id}),
        ]

    @staticmethod
    @transactional
    def close_round(state: KaraokeState, settings: Optional[Settings] = None) -> List[Event]:
        """
        結算並關閉回合

        流程：
        1. 從快照計算結果
        2. 把 {快照, 結果} 封存到 rounds 歷史
        3. 清除 current_round

        返回：
            [round:ended, round:updated(None)]
        """
        settings = settings or get_settings()
        _require_poll_round(state)

        snapshot = state.round_snapshot()
        results = calculate_poll_results(
            snapshot,
            threshold=settings.quorum_threshold,
            detect_ties=settings.detect_ties,
            one_vote_per_user=settings.one_vote_per_user,
        )
        state.rounds.append(
            ArchivedRound.model_validate({**snapshot.model_dump(), "results": results})
        )
        state.current_round = None

        winner = results.winner.title if results.winner else None
        logger.info(
            f"Closed round {snapshot.id}: winner={winner!r}, "
            f"votes={len(snapshot.votes)}, ties={len(results.ties)}"
        )

        return [Event(ROUND_ENDED, results.to_wire()), round_updated(state)]

    @staticmethod
    @transactional
    def reset(state: KaraokeState) -> List[Event]:
        """
        重置：清除進行中的回合與所有歷史（沒有確認步驟）

        返回：
            [round:reset]
        """
        state.current_round = None
        state.rounds = []

        logger.info("Round state reset")

        return [Event(ROUND_RESET)]
