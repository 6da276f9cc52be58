from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from routers.rooms import rooms_router
from routers.scenes import scenes_router
from routers.files import files_router
from schemas.health import HealthResponse
from backend import scene_backend
from coordinator import coordinator, Connection
from constants import CORS_ORIGINS, LOG_LEVEL, LOG_FILE
import json
import asyncio
from typing import Optional
from datetime import datetime, timezone
from logging_config import get_logger, setup_logging

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

app = FastAPI(title="SceneSync")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router)
app.include_router(scenes_router)
app.include_router(files_router)

logger.info("FastAPI application initialized")


@app.get("/health", response_model=HealthResponse)
async def health():
    stats = scene_backend.stats()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        scenes=stats["scenes"],
        files=stats["files"],
    )


async def pump_outbox(websocket: WebSocket, connection: Connection):
    """Write queued messages to the socket in order until the connection is removed."""
    while True:
        message = await connection.outbox.get()
        if message is None:
            break
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            # Recipient is gone; its own receive loop performs the cleanup
            logger.warning(f"Error sending to connection {connection.connection_id}: {e}")
            break


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, username: Optional[str] = None):
    """Room/presence channel.

    Every frame is a JSON object with a ``type`` field. The server greets with
    ``init-room``; clients then send ``join-room``, ``server-broadcast``,
    ``server-volatile-broadcast``, ``user-follow-change`` and ``idle-state``.
    Closing the socket leaves the current room.
    """
    await websocket.accept()
    connection = coordinator.connect(username=username)
    connection_id = connection.connection_id
    writer = asyncio.create_task(pump_outbox(websocket, connection))
    logger.info(f"WebSocket connection accepted: {connection_id}")

    message_count = 0
    try:
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break
            message_count += 1

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring non-JSON frame #{message_count} from connection {connection_id}")
                continue

            coordinator.handle_message(connection_id, message)
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        coordinator.disconnect(connection_id)
        await writer
        try:
            await websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
