from fastapi import APIRouter, HTTPException, Request
from schemas.scenes import SceneWriteRequest, SceneUpdateResponse, SceneCreateResponse, SceneDeleteResponse, SceneListResponse, SceneSummary
from backend import scene_backend
from errors import InvalidInput
from logging_config import get_logger

logger = get_logger(__name__)

scenes_router = APIRouter(prefix="/scenes", tags=["scenes"])


@scenes_router.get("", response_model=SceneListResponse)
async def list_scenes():
    """List stored scenes with their timestamps and serialized size (diagnostics)."""
    scenes = scene_backend.list()
    return SceneListResponse(
        scenes=[
            SceneSummary(id=scene.id, createdAt=scene.created_at, updatedAt=scene.updated_at, dataSize=scene.data_size)
            for scene in scenes
        ],
        total=len(scenes),
    )


@scenes_router.get("/{scene_id}")
async def get_scene(scene_id: str):
    # Response 200: { "sceneVersion": 12, "elements": [...] }
    scene = scene_backend.get(scene_id)
    if scene is None:
        logger.info(f"Scene {scene_id} not found")
        raise HTTPException(status_code=404, detail="Scene not found")
    return {**scene.data, "sceneVersion": scene.version}


@scenes_router.put("/{scene_id}", response_model=SceneUpdateResponse)
async def put_scene(scene_id: str, body: SceneWriteRequest, request: Request):
    # PUT /scenes/{scene_id} Body: { "data": { "sceneVersion": 12, "elements": [...] } }
    # Overwrites unconditionally, callers reconcile before saving.
    try:
        scene = scene_backend.put(scene_id, body.data)
    except InvalidInput as e:
        logger.warning(f"Rejected save of scene {scene_id} from {request.client.host if request.client else 'unknown'}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Scene {scene_id} saved at {scene.updated_at.isoformat()} (version {scene.version})")
    return SceneUpdateResponse(id=scene.id, updatedAt=scene.updated_at)


@scenes_router.post("", response_model=SceneCreateResponse)
async def create_scene(body: SceneWriteRequest):
    try:
        scene = scene_backend.create(body.data)
    except InvalidInput as e:
        logger.warning(f"Rejected scene creation: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"New scene {scene.id} created at {scene.created_at.isoformat()}")
    return SceneCreateResponse(id=scene.id, createdAt=scene.created_at)


@scenes_router.delete("/{scene_id}", response_model=SceneDeleteResponse)
async def delete_scene(scene_id: str):
    if not scene_backend.delete(scene_id):
        logger.info(f"Delete of unknown scene {scene_id}")
        raise HTTPException(status_code=404, detail="Scene not found")
    logger.info(f"Scene {scene_id} deleted")
    return SceneDeleteResponse()
