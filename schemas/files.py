from pydantic import BaseModel
from typing import Optional


class UploadFileRequest(BaseModel):
    # base64 data URL or plain text
    data: Optional[str] = None
    mimeType: Optional[str] = None
    prefix: Optional[str] = None
    fileId: Optional[str] = None

class UploadFileResponse(BaseModel):
    id: str
    success: bool = True
    url: str