from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    scenes: int
    files: int
