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

# Service identity (reported by the health probes)
SERVICE_NAME = os.getenv("SERVICE_NAME", "Universal Image Converter")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "2.0.0")
DOCUMENT_SERVICE_NAME = os.getenv("DOCUMENT_SERVICE_NAME", "Universal Document Converter")
DOCUMENT_SERVICE_VERSION = os.getenv("DOCUMENT_SERVICE_VERSION", "1.0.0")

# Route prefix for POST/OPTIONS {CONVERT_PREFIX}/{conversion_type}
CONVERT_PREFIX = "/" + os.getenv("CONVERT_PREFIX", "/api/convert").strip().strip("/")

# Rate limiting: fixed window per client IP
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "200"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", str(24 * 60 * 60)))

# Video transcoding
FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
FFMPEG_TIMEOUT = int(os.getenv("FFMPEG_TIMEOUT", "300"))

# Server (for uvicorn)
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("converter")
