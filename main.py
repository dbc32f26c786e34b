from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from config import get_settings
from core.state import KaraokeState
from api import websocket
from api.websocket import ConnectionManager
from services.catalog_service import demo_catalog

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立唯一的協調器狀態（只存在記憶體，重啟即遺失）
    state = KaraokeState()
    if settings.seed_demo_catalog:
        state.songs = demo_catalog(state.rng)
    app.state.karaoke = state
    app.state.connections = ConnectionManager(max_pending=settings.outbox_size)
    logger.info(f"Coordinator ready with {len(state.songs)} songs")
    yield


app = FastAPI(
    title="Karaoke Night Coordinator",
    description="Realtime song catalog, roster and voting rounds for karaoke nights",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(websocket.router)


@app.get("/")
def root():
    return {"message": "Karaoke Night Coordinator", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
