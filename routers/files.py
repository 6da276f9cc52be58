import binascii

from fastapi import APIRouter, HTTPException, Request, Response
from schemas.files import UploadFileRequest, UploadFileResponse
from backend import scene_backend
from constants import PUBLIC_BASE_URL, FILE_CACHE_MAX_AGE_SEC
from elements import parse_data_url
from logging_config import get_logger

logger = get_logger(__name__)

files_router = APIRouter(prefix="/files", tags=["files"])


@files_router.post("", response_model=UploadFileResponse)
async def upload_file(body: UploadFileRequest, request: Request):
    # POST /files Body: { "data": "data:image/png;base64,...", "mimeType": "image/png" }
    # Response 200: { "id": "...", "success": true, "url": "http://.../files/{id}" }
    if not body.data:
        logger.warning("Rejected file upload without data")
        raise HTTPException(status_code=400, detail="File data is required")
    try:
        payload, data_url_type = parse_data_url(body.data)
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Rejected file upload with malformed data URL: {e}")
        raise HTTPException(status_code=400, detail="File data is not valid base64")

    blob_id = scene_backend.put_blob(payload, body.mimeType or data_url_type)

    base_url = (PUBLIC_BASE_URL or str(request.base_url)).rstrip("/")
    logger.info(f"File {blob_id} uploaded ({len(payload)} bytes, prefix={body.prefix}, fileId={body.fileId})")
    return UploadFileResponse(id=blob_id, url=f"{base_url}/files/{blob_id}")


@files_router.get("/{blob_id}")
async def get_file(blob_id: str):
    blob = scene_backend.get_blob(blob_id)
    if blob is None:
        logger.info(f"File {blob_id} not found")
        raise HTTPException(status_code=404, detail="File not found")
    return Response(
        content=blob.data,
        media_type=blob.mime_type,
        headers={"Cache-Control": f"public, max-age={FILE_CACHE_MAX_AGE_SEC}"},
    )
