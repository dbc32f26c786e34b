"""
ID 服務：生成以時間戳為基礎的唯一 ID

User 和 Round 的 ID 都是毫秒時間戳，同一毫秒內連續產生時自動 +1
"""
import time


class TimestampIdGenerator:
    """
    產生單調遞增的毫秒時間戳 ID

    範例：
        ids = TimestampIdGenerator()
        ids.next_id()  # 1760000000000
        ids.next_id()  # 1760000000001（同一毫秒內）
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0

    def next_id(self) -> int:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return candidate
