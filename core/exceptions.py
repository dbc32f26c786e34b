"""
自定義異常類別

集中管理所有業務邏輯異常，方便 WebSocket 層統一處理
"""


class KaraokeException(Exception):
    """所有協調器異常的基類"""
    pass


# ============ Catalog 相關異常 ============

class NotEnoughSongs(KaraokeException):
    """歌曲數量不足，無法建立投票（唯一會回報給請求者的錯誤）"""
    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__(f"need at least {required} songs")


# ============ Round 相關異常 ============

class NoActiveRound(KaraokeException):
    """目前沒有進行中的回合"""
    def __init__(self):
        super().__init__("No active round")


class InvalidStateTransition(KaraokeException):
    """非法的狀態轉換（例如回合類型不是 poll）"""
    pass


class VotingClosed(KaraokeException):
    """投票尚未開放"""
    def __init__(self, round_id):
        self.round_id = round_id
        super().__init__(f"Voting is not open for round {round_id}")


# ============ Payload 相關異常 ============

class InvalidPayload(KaraokeException):
    """客戶端送來的資料格式錯誤"""
    def __init__(self, event, detail=""):
        self.event = event
        super().__init__(f"Invalid payload for {event}: {detail}".rstrip(": "))
