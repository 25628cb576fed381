"""
Tic-tac-toe API и WebSocket.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import get_config
from .constants import CHANNEL_NAME
from .ws_handlers import registry, ws_auth_and_loop
from .ws_manager import manager

config = get_config()

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await registry.restore()
    for session in registry.all():
        manager.restore_channel(session.channel_id, CHANNEL_NAME, [p.id for p in session.state.players])
    yield
    # незавершённые партии уходят в хранилище
    await registry.shutdown()


app = FastAPI(title="Tic-tac-toe API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/sessions")
def sessions():
    return {"sessions": registry.list_sessions()}


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    logger.info("WS: connection attempt from %s", ws.client)
    await ws_auth_and_loop(ws)
