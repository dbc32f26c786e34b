"""
Catalog Manager：管理歌曲目錄

職責：
1. 整批替換目錄（全有或全無，沒有部分更新）
2. 替換時一併清除進行中的回合與歷史紀錄
"""
import logging
from typing import Any, List

from core.events import Event, ROUND_RESET, SONGS_UPDATED
from core.state import KaraokeState, transactional
from services.catalog_service import normalize_catalog

logger = logging.getLogger(__name__)


class CatalogManager:
    """歌曲目錄管理器"""

    @staticmethod
    @transactional
    def replace(state: KaraokeState, raw_songs: Any) -> List[Event]:
        """
        替換整個歌曲目錄

        流程：
        1. 驗證並整理新目錄（非 list 會變成空目錄）
        2. 清除 current_round 與 rounds 歷史
        3. 通知所有客戶端新目錄與回合重置

        參數：
            state: 協調器狀態
            raw_songs: 客戶端送來的歌曲列表

        返回：
            [songs:updated, round:reset]
        """
        songs = normalize_catalog(raw_songs)

        state.songs = songs
        state.current_round = None
        state.rounds = []

        logger.info(f"Catalog replaced with {len(songs)} songs; round and history cleared")

        return [
            Event(SONGS_UPDATED, [song.to_wire() for song in songs]),
            Event(ROUND_RESET),
        ]
