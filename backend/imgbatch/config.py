"""Application configuration. Loads from environment and .env file."""
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# Target formats offered to the user (lowercase, also used as archive extension)
TARGET_FORMATS = ["png", "jpeg", "webp"]
DEFAULT_TARGET_FORMAT = os.getenv("DEFAULT_TARGET_FORMAT", "png").strip().lower()
if DEFAULT_TARGET_FORMAT not in TARGET_FORMATS:
    DEFAULT_TARGET_FORMAT = "png"

# Remote fetch (0 disables the timeout)
URL_FETCH_TIMEOUT = float(os.getenv("URL_FETCH_TIMEOUT", "60"))
URL_FETCH_USER_AGENT = os.getenv("URL_FETCH_USER_AGENT", "ImgBatch/1.0")

# Conversion: per-item decode/encode timeout in seconds
DECODE_TIMEOUT = float(os.getenv("DECODE_TIMEOUT", "30"))

# Pending list thumbnails (bounding box in px)
THUMBNAIL_SIZE = int(os.getenv("THUMBNAIL_SIZE", "40"))

# Workspaces: idle sessions are evicted after this many seconds (0 = never),
# and the least recently used are evicted beyond MAX_WORKSPACES (0 = no limit)
WORKSPACE_IDLE_TTL = float(os.getenv("WORKSPACE_IDLE_TTL", "3600"))
MAX_WORKSPACES = int(os.getenv("MAX_WORKSPACES", "100"))

# Concurrency
MAX_WORKERS = int(os.getenv("MAX_WORKERS", str(min(32, (os.cpu_count() or 4) + 4))))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("imgbatch")
