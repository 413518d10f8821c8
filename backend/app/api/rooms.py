import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from errors import RoomNotFound
from game import RoomRegistry

router = APIRouter()
logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


@router.get("/api/rooms")
async def list_rooms(registry: RoomRegistry = Depends(get_registry)):
    return [summary.model_dump() for summary in registry.summary()]


@router.get("/api/rooms/{code}")
async def room_state(code: str, registry: RoomRegistry = Depends(get_registry)):
    try:
        room = registry.get(code)
    except RoomNotFound:
        logger.info("State requested for unknown room %s", code)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="room_not_found")
    return room.public_state().model_dump(by_alias=True)
