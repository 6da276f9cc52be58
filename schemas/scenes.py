from datetime import datetime
from pydantic import BaseModel
from typing import Any, Optional


class SceneWriteRequest(BaseModel):
    # validated by the store so a missing payload is reported as invalid input
    data: Optional[Any] = None

class SceneUpdateResponse(BaseModel):
    id: str
    success: bool = True
    updatedAt: datetime

class SceneCreateResponse(BaseModel):
    id: str
    success: bool = True
    createdAt: datetime

class SceneDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Scene deleted successfully"

class SceneSummary(BaseModel):
    id: str
    createdAt: datetime
    updatedAt: datetime
    dataSize: int

class SceneListResponse(BaseModel):
    scenes: list[SceneSummary]
    total: int
