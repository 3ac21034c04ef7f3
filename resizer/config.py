import json
import logging
import os
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

APP_PORT = int(os.getenv("PORT", "5060"))
APP_STDOUT = os.getenv("APP_STDOUT", "true").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# External raster engine (ImageMagick)
CONVERT_CMD = os.getenv("CONVERT_CMD", "convert")

CACHE_DIR = Path(os.getenv("CACHE_DIR", str(BASE_DIR / "cache")))

# Response caching headers, in seconds
CACHE_MAX_AGE = int(os.getenv("CACHE_MAX_AGE", "315360"))
CACHE_EXPIRES = int(os.getenv("CACHE_EXPIRES", "1209600"))

HEAD_TIMEOUT = float(os.getenv("HEAD_TIMEOUT", "5.0"))

# Blob name -> base URL, e.g. {"assets": "assets.blob.core.windows.net/public"}
BLOB_STORAGE_URLS = json.loads(os.getenv("BLOB_STORAGE_URLS", "{}"))

JWT_EXPIRE_TIME = int(os.getenv("jwt_expire_time", "900"))

# Ensure the cache dir exists
CACHE_DIR.mkdir(parents=True, exist_ok=True)


def configure_logging() -> None:
    """Send log records to stdout when APP_STDOUT is enabled."""
    if not APP_STDOUT:
        return
    logging.basicConfig(
        stream=sys.stdout,
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
