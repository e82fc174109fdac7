import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace

from fastapi import FastAPI, HTTPException, WebSocket
from pydantic import BaseModel

from matchclient.channel import WebSocketChannel
from matchclient.config import Settings
from matchclient.errors import IllegalMove, MoveRejected
from matchclient.match import Click, LocalMove, LocalReset, Match
from matchclient.models import ClickRequest, MovePayload, Player, Seat
from matchclient.notices import Notice

logger = logging.getLogger(__name__)

settings = Settings()
logging.getLogger("matchclient").setLevel(settings.log_level)

# --- Match instance ---

channel = WebSocketChannel(timeout=settings.channel_timeout)
match = Match(
    room=settings.room_id,
    seat=Seat(settings.seat),
    channel=channel,
    players=[Player(username=settings.username)],
    promotion=settings.promotion_piece,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(match.run())
    yield
    task.cancel()
    await channel.disconnect()


app = FastAPI(title="Chess Match Client", lifespan=lifespan)


# --- Request/Response models ---

class MoveResponse(BaseModel):
    san: str
    uci: str
    fen: str
    status: str


def _notices(notices: list[Notice]) -> list[dict]:
    return [{"title": n.title, "message": n.message} for n in notices]


def _with_notices() -> dict:
    return {**match.snapshot(), "notices": _notices(match.notices.drain())}


# --- Endpoints ---

@app.get("/api/health")
async def health():
    return {"status": "ok", "relay_connected": channel.connected}


@app.get("/api/match")
async def match_state():
    match.process_pending()
    return match.snapshot()


@app.get("/api/notices")
async def notices():
    match.process_pending()
    return _notices(match.notices.drain())


@app.post("/api/match/click")
async def click(req: ClickRequest):
    try:
        match.handle(Click(req.square))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _with_notices()


@app.post("/api/match/move", response_model=MoveResponse)
async def move(req: MovePayload):
    candidate = req.to_candidate()
    if candidate.promotion is None:
        candidate = replace(candidate, promotion=settings.promotion_piece)
    try:
        result = match.handle(LocalMove(candidate))
    except IllegalMove as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MoveRejected as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MoveResponse(
        san=result.san,
        uci=result.uci,
        fen=match.orchestrator.fen,
        status=match.orchestrator.status.kind.value,
    )


@app.post("/api/match/reset")
async def reset():
    match.process_pending()
    if not match.gate.match_ready:
        raise HTTPException(status_code=409, detail="Waiting for opponent")
    match.handle(LocalReset())
    return _with_notices()


@app.websocket("/ws/relay")
async def relay(ws: WebSocket):
    await ws.accept()
    logger.info("Relay connection attached for room %s", match.room)
    channel.attach(ws)
    await channel.wait_closed()
