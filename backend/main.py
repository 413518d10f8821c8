from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, List, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from app.api.rooms import router as rooms_router
from app.settings import get_settings
from clock import TurnClock
from errors import GameError
from game import Room, RoomRegistry
from models import (
    ChatIntent,
    CreateRoomIntent,
    JoinRoomIntent,
    PlayCardIntent,
    ReadyIntent,
    RoomIntent,
)

load_dotenv()
settings = get_settings()
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

ALLOWED_ORIGINS = settings.allowed_origins()

app = FastAPI(title="Serra game server")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials="*" not in ALLOWED_ORIGINS,
)

logger.info("[CORS] allow_origins: %s", ALLOWED_ORIGINS)

app.state.registry = RoomRegistry(settings)
app.include_router(rooms_router)


# ---------- REST ----------
@app.get("/")
async def root():
    return {"message": "serra server ok"}


@app.get("/health")
async def health():
    return {"status": "ok", "rooms": len(app.state.registry)}


# ---------- WebSockets hub ----------
class Hub:
    def __init__(self, registry: RoomRegistry):
        self.registry = registry
        self.sockets: Dict[str, WebSocket] = {}

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        conn_id = uuid.uuid4().hex
        self.sockets[conn_id] = ws
        logger.info("Connected: %s", conn_id)
        return conn_id

    async def disconnect(self, conn_id: str):
        self.sockets.pop(conn_id, None)
        for code, room in self.registry.disconnect(conn_id):
            logger.info("Connection %s dropped from room %s", conn_id, code)
            if room is not None:
                await self.send_room_state(room)

    async def send(self, conn_id: str, message: dict):
        ws = self.sockets.get(conn_id)
        if ws is None:
            return
        try:
            await ws.send_json(message)
        except RuntimeError:
            pass

    async def send_room_state(self, room: Room):
        payload = room.public_state().model_dump(by_alias=True)
        for conn_id in room.seats:
            if conn_id:
                await self.send(conn_id, {"type": "state", "payload": payload})
        await self.send_hands(room)

    async def send_hands(self, room: Room):
        for seat, conn_id in enumerate(room.seats):
            if conn_id:
                hand = [card.model_dump() for card in room.hand_of(seat)]
                await self.send(conn_id, {"type": "hand", "payload": hand, "canSwap": room.can_swap(seat)})


hub = Hub(app.state.registry)
clock = TurnClock(app.state.registry, hub.send_room_state, interval=settings.tick_interval_ms / 1000)


@app.on_event("startup")
async def _start_clock() -> None:
    clock.start()


@app.on_event("shutdown")
async def _stop_clock() -> None:
    await clock.stop()


# ---------- intents ----------
Reply = Dict[str, Any]
Handler = Callable[[RoomRegistry, str, dict], Tuple[Reply, List[Room]]]


def _state(room: Room) -> dict:
    return room.public_state().model_dump(by_alias=True)


def on_create_room(registry: RoomRegistry, conn_id: str, data: dict):
    req = CreateRoomIntent.model_validate(data)
    room, seat = registry.create_room(conn_id, req.name)
    return {"code": room.code, "seat": seat, "state": _state(room)}, [room]


def on_join_room(registry: RoomRegistry, conn_id: str, data: dict):
    req = JoinRoomIntent.model_validate(data)
    room, seat = registry.join_room(conn_id, req.code, req.name)
    return {"code": room.code, "seat": seat, "state": _state(room)}, [room]


def on_set_ready(registry: RoomRegistry, conn_id: str, data: dict):
    req = ReadyIntent.model_validate(data)
    room = registry.get(req.code)
    room.set_ready(conn_id, req.ready)
    return {}, [room]


def on_play_card(registry: RoomRegistry, conn_id: str, data: dict):
    req = PlayCardIntent.model_validate(data)
    room = registry.get(req.code)
    room.play_card(conn_id, req.card_id)
    return {}, [room]


def on_swap_trump(registry: RoomRegistry, conn_id: str, data: dict):
    req = RoomIntent.model_validate(data)
    room = registry.get(req.code)
    taken = room.swap_trump(conn_id)
    return {"card": taken.model_dump()}, [room]


def on_chat(registry: RoomRegistry, conn_id: str, data: dict):
    req = ChatIntent.model_validate(data)
    room = registry.get(req.code)
    room.send_chat(conn_id, req.msg)
    return {}, [room]


def on_leave_room(registry: RoomRegistry, conn_id: str, data: dict):
    req = RoomIntent.model_validate(data)
    room = registry.leave_room(conn_id, req.code)
    return {}, [room] if room is not None else []


HANDLERS: Dict[str, Handler] = {
    "create_room": on_create_room,
    "join_room": on_join_room,
    "set_ready": on_set_ready,
    "play_card": on_play_card,
    "swap_trump": on_swap_trump,
    "chat": on_chat,
    "leave_room": on_leave_room,
}


def dispatch(registry: RoomRegistry, conn_id: str, data: Any) -> Tuple[Reply, List[Room]]:
    """Run one client intent and build the reply for the sender.

    Every failure is turned into ``ok=false`` so a bad request never drops
    the socket or touches other rooms.
    """
    event = data.get("type") if isinstance(data, dict) else None
    if not isinstance(event, str):
        event = None
    reply: Reply = {"type": "reply", "event": event}
    if isinstance(data, dict) and "requestId" in data:
        reply["requestId"] = data["requestId"]

    handler = HANDLERS.get(event) if event else None
    if handler is None:
        reply.update(ok=False, error="UnknownEvent", message=f"Unknown event: {event}")
        return reply, []
    try:
        result, rooms = handler(registry, conn_id, data)
    except GameError as exc:
        reply.update(ok=False, error=exc.code, message=exc.message)
        return reply, []
    except ValidationError as exc:
        reply.update(ok=False, error="BadRequest", message=str(exc.errors()[0].get("msg", "invalid payload")))
        return reply, []
    except Exception:
        logger.exception("Handler %s failed for %s", event, conn_id)
        reply.update(ok=False, error="InternalError", message="Internal error")
        return reply, []
    reply.update(ok=True, **result)
    return reply, rooms


# ---------- WS endpoint ----------
@app.websocket("/ws")
async def ws_endpoint(ws: WebSocket):
    conn_id = await hub.connect(ws)
    try:
        while True:
            try:
                data = await ws.receive_json()
            except (ValueError, KeyError):
                await ws.send_json({"type": "reply", "event": None, "ok": False, "error": "BadRequest", "message": "Invalid JSON"})
                continue
            reply, rooms = dispatch(hub.registry, conn_id, data)
            await ws.send_json(reply)
            for room in rooms:
                await hub.send_room_state(room)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(conn_id)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
