from pydantic import BaseModel
from typing import Optional


class RoomMember(BaseModel):
    connectionId: str
    username: Optional[str] = None
    isIdle: bool = False
    connectedAt: str

class RoomSummary(BaseModel):
    roomId: str
    memberCount: int

class RoomListResponse(BaseModel):
    rooms: list[RoomSummary]
    total: int
    connections: int

class RoomDetailsResponse(BaseModel):
    roomId: str
    memberCount: int
    members: list[RoomMember]
