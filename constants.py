import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

# "memory" keeps scenes and files in process, "redis" persists them in Redis
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory")

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", None)
CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

# Volatile relays are dropped for recipients whose outbox holds this many messages
VOLATILE_QUEUE_LIMIT = int(os.getenv("VOLATILE_QUEUE_LIMIT", 32))

FILE_CACHE_MAX_AGE_SEC = int(os.getenv("FILE_CACHE_MAX_AGE_SEC", 31536000))
DEFAULT_MIME_TYPE = "application/octet-stream"
