import io
import os
import stat
import tempfile

# Point the cache somewhere disposable before resizer.config is imported
os.environ.setdefault("CACHE_DIR", tempfile.mkdtemp(prefix="resize-cache-"))
os.environ.setdefault("APP_STDOUT", "false")

import httpx
import pytest
from PIL import Image

from resizer.options import TransformOptions


def make_png(size=(200, 100), mode="RGB", color="red") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_options(**overrides) -> TransformOptions:
    fields = {
        "action": "resize",
        "width": "100",
        "height": "",
        "gravity": "c",
        "format": "png",
        "quality": "80",
        "imagefile": "http://images.example.com/photo.png",
        "url": "http://images.example.com/photo.png",
        "suffix": ".png",
    }
    fields.update(overrides)
    return TransformOptions(**fields)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def serving(body: bytes, content_type: str = "image/png", status: int = 200, get_status: int = 200):
    """A MockTransport handler answering HEAD with ``status`` and GET with ``body``."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.method)
        if request.method == "HEAD":
            return httpx.Response(status, headers={"content-type": content_type})
        return httpx.Response(get_status, content=body, headers={"content-type": content_type})

    handler.seen = seen
    return handler


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def fake_engine(tmp_path):
    """Write an executable shell script standing in for ImageMagick."""

    def _write(body: str) -> str:
        script = tmp_path / "fake-convert"
        script.write_text("#!/bin/sh\n" + body + "\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _write
