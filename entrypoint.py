import uvicorn
import os
from constants import HOST, PORT, LOG_LEVEL, LOG_FILE
from logging_config import setup_logging

# Setup logging before importing app
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)

from app import app  # noqa: F401  fail fast on import errors
from logging_config import get_logger

logger = get_logger(__name__)


def main():
    logger.info(f"Starting SceneSync server on {HOST}:{PORT}")
    uvicorn.run("app:app", host=HOST, port=PORT, reload=os.getenv("RELOAD", "") == "1")


if __name__ == "__main__":
    main()
