import hashlib
import json
import os
import uuid
from pathlib import Path
from typing import Optional

from resizer.config import CACHE_DIR
from resizer.options import TransformOptions


def cache_filename(options: TransformOptions) -> str:
    """``<sha1 of the options>.<format>``, stable regardless of field order."""
    payload = json.dumps(options.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest() + "." + options.format


def cache_path(options: TransformOptions, cache_dir: Optional[Path] = None) -> Path:
    return Path(cache_dir or CACHE_DIR) / cache_filename(options)


def is_cached(path: Path) -> bool:
    return path.is_file()


def partial_path(path: Path) -> Path:
    """A unique sibling of ``path`` to write into before publishing."""
    return path.with_name(f".{path.name}.{uuid.uuid4().hex}.part")


def publish(partial: Path, path: Path) -> None:
    # Atomic on the same filesystem, readers see the old file or the whole new one
    os.replace(partial, path)


def discard(path: Path) -> None:
    """Remove a partially written file."""
    path.unlink(missing_ok=True)
