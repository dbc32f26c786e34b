"""
投票結算服務：Poll 回合的結果計算

純計算邏輯，不改變任何狀態
"""
import unicodedata
from collections import Counter
from typing import Dict, List, Optional, Tuple

from models import PollResult, PollStat, Round, Song, Vote


def title_sort_key(title: Optional[str]) -> Tuple[str, str]:
    """
    歌名排序鍵（近似 locale-aware 比較）

    先比較去除重音、忽略大小寫的主鍵，相同時再比較原始字串，
    所以 "apple" 與 "Apple" 仍有穩定順序。缺少歌名視為空字串。
    """
    title = title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    primary = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return (primary, title)


def latest_vote_per_user(votes: List[Vote]) -> List[Vote]:
    """
    每位使用者只保留最後一票

    用途：
        one_vote_per_user 開啟時，在計票前去重；不會改寫回合內的 votes
    """
    latest: Dict[int, Vote] = {}
    for vote in votes:
        latest.pop(vote.user_id, None)
        latest[vote.user_id] = vote
    return list(latest.values())


def tally_votes(round_obj: Round, one_vote_per_user: bool = False) -> Dict[int, int]:
    """
    計算每首歌的票數

    每個候選（包含 None 選項）都會有明確的項目，沒有票時為 0。
    """
    votes = latest_vote_per_user(round_obj.votes) if one_vote_per_user else round_obj.votes
    counts = Counter(vote.song_id for vote in votes)
    for song in round_obj.songs:
        counts.setdefault(song.id, 0)
    return dict(counts)


def calculate_poll_results(
    round_obj: Optional[Round],
    threshold: int = 3,
    detect_ties: bool = True,
    one_vote_per_user: bool = False,
) -> PollResult:
    """
    計算 Poll 回合的結果

    規則：
    1. 依票數遞減排序，同票時依歌名遞增排序
    2. 票數 >= threshold 的候選中排名最高者獲勝；
       沒有任何候選達到門檻時，整體排名第一者獲勝
    3. detect_ties 開啟時，若最高票有兩首以上同票，
       則沒有贏家，同票歌曲放在 ties

    參數：
        round_obj: 回合快照
        threshold: 法定票數門檻
        detect_ties: 是否啟用同票判定
        one_vote_per_user: 是否每人只計最後一票

    返回：
        PollResult(winner, stats, ties)

    範例：
        A=5, B=5, None=0, detect_ties=True  -> winner=None, ties=[A, B]
        A=5, B=5, None=0, detect_ties=False -> winner=A
        A=2, B=1（都未達門檻）               -> winner=A
    """
    if round_obj is None:
        return PollResult()

    songs_by_id = {song.id: song for song in round_obj.songs}
    counts = tally_votes(round_obj, one_vote_per_user)

    def sort_key(item):
        song_id, count = item
        song = songs_by_id.get(song_id)
        return (-count, title_sort_key(song.title if song else None))

    ranked = sorted(counts.items(), key=sort_key)
    # 票投給了不在候選名單的歌，沒有 Song 可以顯示，不列入統計
    ranked = [(song_id, count) for song_id, count in ranked if song_id in songs_by_id]

    if not ranked:
        return PollResult()

    stats = [PollStat(song=songs_by_id[song_id], votes=count) for song_id, count in ranked]

    top_count = ranked[0][1]
    tied = [songs_by_id[song_id] for song_id, count in ranked if count == top_count]
    if detect_ties and len(tied) > 1:
        return PollResult(winner=None, stats=stats, ties=tied)

    qualified = [(song_id, count) for song_id, count in ranked if count >= threshold]
    winner_id = qualified[0][0] if qualified else ranked[0][0]

    return PollResult(winner=songs_by_id[winner_id], stats=stats)
