from fastapi import APIRouter, HTTPException
from schemas.rooms import RoomListResponse, RoomSummary, RoomDetailsResponse, RoomMember
from coordinator import coordinator
from logging_config import get_logger

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=RoomListResponse)
async def list_rooms():
    rooms = coordinator.registry.rooms()
    return RoomListResponse(
        rooms=[RoomSummary(roomId=room_id, memberCount=len(members)) for room_id, members in rooms.items()],
        total=len(rooms),
        connections=len(coordinator.connections),
    )


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str):
    """
    Get the live members of a room.

    Returns:
    - roomId: Room identifier
    - memberCount: Number of connections currently in the room
    - members: connection id, display name, idle flag and connect time per member
    """
    members = coordinator.room_members(room_id)
    if not members:
        logger.info(f"Room details failed: Room {room_id} has no members")
        raise HTTPException(status_code=404, detail="Room not found")
    return RoomDetailsResponse(
        roomId=room_id,
        memberCount=len(members),
        members=[RoomMember(**member) for member in members],
    )
