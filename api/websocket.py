"""
WebSocket Endpoint - 即時事件通道

重點：
1. 所有客戶端在同一個房間，所有廣播都會送給每個連線
2. 每個事件處理都在 state.lock 內完成「改狀態 + 排入佇列」，廣播順序與狀態轉換順序一致
3. 真正的網路傳送由每個連線自己的 writer task 負責，不在 lock 內等待 I/O；
   佇列滿了（客戶端不讀）就直接斷開該連線
4. 業務邏輯集中在 core 的 Manager，這裡只負責解析、分派、回報錯誤
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from core.catalog_manager import CatalogManager
from core.events import Event, ROUND_ERROR, STATE_INIT
from core.exceptions import KaraokeException, NotEnoughSongs
from core.roster_manager import RosterManager
from core.round_manager import RoundManager
from core.state import KaraokeState
from schemas import Frame, InitState

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    追蹤所有連線並負責廣播

    每個連線有一個有上限的 outbox 和一個 writer task：
    - send() / broadcast() 只把 frame 放進 outbox，不會等待網路
    - writer task 依序把 outbox 的 frame 送出
    - outbox 滿了表示客戶端跟不上，該連線會被移除並關閉
    """

    def __init__(self, max_pending: int = 256):
        self.max_pending = max_pending
        self.active: Dict[WebSocket, asyncio.Queue] = {}
        self._writers: Dict[WebSocket, asyncio.Task] = {}
        self._closing: Set[asyncio.Task] = set()

    async def accept(self, websocket: WebSocket) -> None:
        await websocket.accept()

    def register(self, websocket: WebSocket) -> None:
        outbox: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self.active[websocket] = outbox
        self._writers[websocket] = asyncio.create_task(self._write(websocket, outbox))
        logger.info(f"Client connected ({len(self.active)} total)")

    async def connect(self, websocket: WebSocket) -> None:
        await self.accept(websocket)
        self.register(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket not in self.active:
            return
        del self.active[websocket]
        writer = self._writers.pop(websocket, None)
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
        logger.info(f"Client disconnected ({len(self.active)} total)")

    def send(self, websocket: WebSocket, frame: dict) -> None:
        outbox = self.active.get(websocket)
        if outbox is None:
            return
        try:
            outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(f"Dropping slow connection: {self.max_pending} frames pending")
            self.disconnect(websocket)
            task = asyncio.create_task(self._close(websocket))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    def broadcast(self, events: List[Event]) -> None:
        """依序把事件排入所有連線的 outbox"""
        for event in events:
            frame = event.to_frame()
            for websocket in list(self.active):
                self.send(websocket, frame)

    async def _write(self, websocket: WebSocket, outbox: asyncio.Queue) -> None:
        while True:
            frame = await outbox.get()
            try:
                await websocket.send_json(frame)
            except Exception as e:
                logger.warning(f"Dropping connection after failed send of {frame.get('event')}: {e}")
                self.disconnect(websocket)
                return

    async def _close(self, websocket: WebSocket) -> None:
        try:
            await websocket.close(code=1013)
        except Exception as e:
            logger.debug(f"Close of dropped connection failed: {e}")


def init_state_frame(state: KaraokeState) -> dict:
    init = InitState(
        songs=state.songs,
        users=state.users,
        current_round=state.round_snapshot(),
    )
    return Event(STATE_INIT, init.model_dump(mode="json", by_alias=True)).to_frame()


# ============ 事件處理 ============
#
# 每個 handler 在 state.lock 內執行，回傳要廣播的事件。
# 需要回覆請求者時，handler 呼叫 reply()，回覆會排在廣播之後。

Reply = Callable[[Any], Awaitable[None]]
Handler = Callable[[KaraokeState, Any, Reply], Awaitable[List[Event]]]


async def handle_songs_replace(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return CatalogManager.replace(state, data)


async def handle_user_register(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    user, events = RosterManager.register(state, data)
    await reply(user.to_wire())
    return events


async def handle_user_remove(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RosterManager.remove(state, data)


async def handle_prepare_poll(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RoundManager.prepare_poll(state)


async def handle_open_voting(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RoundManager.open_voting(state)


async def handle_vote(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RoundManager.vote(state, data)


async def handle_close(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RoundManager.close_round(state)


async def handle_reset(state: KaraokeState, data: Any, reply: Reply) -> List[Event]:
    return RoundManager.reset(state)


HANDLERS: Dict[str, Handler] = {
    "songs:replace": handle_songs_replace,
    "user:register": handle_user_register,
    "user:remove": handle_user_remove,
    "round:preparePoll": handle_prepare_poll,
    "round:openVoting": handle_open_voting,
    "round:vote": handle_vote,
    "round:close": handle_close,
    "round:reset": handle_reset,
}


async def dispatch(
    state: KaraokeState,
    connections: ConnectionManager,
    websocket: WebSocket,
    raw: str,
) -> None:
    """
    處理一個客戶端 frame

    錯誤處理：
    - NotEnoughSongs：送 round:error 給請求者（不廣播）
    - 其他 KaraokeException：不合法操作，直接忽略
    - 格式錯誤或未知事件：記錄後忽略，連線保持開啟
    """
    try:
        frame = Frame.model_validate_json(raw)
    except ValidationError:
        logger.warning(f"Ignoring malformed frame: {raw!r}")
        return

    handler = HANDLERS.get(frame.event)
    if handler is None:
        logger.warning(f"Ignoring unknown event {frame.event!r}")
        return

    replies: List[Any] = []

    async def reply(payload: Any) -> None:
        if frame.ack is not None:
            replies.append({"event": "ack", "ack": frame.ack, "data": payload})

    async with state.lock:
        try:
            events = await handler(state, frame.data, reply)
        except NotEnoughSongs as e:
            connections.send(websocket, Event(ROUND_ERROR, str(e)).to_frame())
            return
        except KaraokeException as e:
            logger.debug(f"Ignoring {frame.event}: {e}")
            return

        connections.broadcast(events)
        for ack in replies:
            connections.send(websocket, ack)


@router.websocket("/ws")
async def realtime(websocket: WebSocket):
    """
    即時連線

    流程：
    1. 接受連線，送出 state:init（目錄、名單、目前回合）
    2. 逐一處理客戶端事件，直到斷線
    """
    state: KaraokeState = websocket.app.state.karaoke
    connections: ConnectionManager = websocket.app.state.connections

    await connections.accept(websocket)
    async with state.lock:
        connections.register(websocket)
        connections.send(websocket, init_state_frame(state))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                await dispatch(state, connections, websocket, raw)
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error(f"Failed to handle frame {raw!r}: {e}", exc_info=True)
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(websocket)
