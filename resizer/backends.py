# Two ways to produce a cache file: an external ImageMagick process or Pillow in process

import asyncio
import contextlib
import io
import logging
import re
from pathlib import Path

import httpx
import pillow_heif
from PIL import Image, ImageOps

from resizer.command import (
    EncodeParams,
    Fit,
    ResizeParams,
    build_command,
    build_encode_params,
    build_resize_params,
)
from resizer.config import CONVERT_CMD
from resizer.errors import EngineFailure, WriteFailure
from resizer.options import FileTargets, TransformOptions

log = logging.getLogger(__name__)

# Lets Pillow open and save HEIC/HEIF
pillow_heif.register_heif_opener()

PILLOW_FORMATS = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
    "gif": "GIF",
    "heic": "HEIF",
    "heif": "HEIF",
}

_HEIF_SUFFIX = re.compile(r"\.(heic|heif)$")

# Decode and encode failures, including images over MAX_IMAGE_PIXELS
RENDER_ERRORS = (OSError, ValueError, KeyError, Image.DecompressionBombError)


class MagickBackend:
    name = "imagemagick"

    def __init__(self, convert_cmd: str = CONVERT_CMD):
        self.convert_cmd = convert_cmd

    async def transform(self, options: TransformOptions, target: Path, client: httpx.AsyncClient) -> None:
        args = build_command(options, FileTargets(), self.convert_cmd)
        log.info("ImageMagick command: %s", " ".join(args))

        try:
            sink = open(target, "wb")
        except OSError as e:
            raise WriteFailure(options.url, reason=str(e)) from e

        with sink:
            try:
                process = await asyncio.create_subprocess_exec(
                    *args,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=sink,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise EngineFailure(options.url, reason=f"cannot start {self.convert_cmd}: {e}") from e

            stderr_task = asyncio.create_task(_log_stderr(process.stderr))
            try:
                await _feed(process, options.url, client)
            except (httpx.HTTPError, OSError) as e:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()
                await stderr_task
                raise EngineFailure(options.url, reason=f"source stream failed: {e}") from e

            code = await process.wait()
            await stderr_task

        if code != 0:
            log.warning("ImageMagick process exited with code %s", code)
            raise EngineFailure(options.url, reason=f"exit code {code}")


async def _feed(process, url: str, client: httpx.AsyncClient) -> None:
    """Pipe the source body into the engine's stdin."""
    async with client.stream("GET", url, follow_redirects=True) as response:
        response.raise_for_status()
        async for chunk in response.aiter_bytes():
            process.stdin.write(chunk)
            await process.stdin.drain()
    process.stdin.close()
    await process.stdin.wait_closed()


async def _log_stderr(stream) -> None:
    async for line in stream:
        log.warning("ImageMagick stderr: %s", line.decode(errors="replace").rstrip())


class PillowBackend:
    name = "pillow"

    async def transform(self, options: TransformOptions, target: Path, client: httpx.AsyncClient) -> None:
        try:
            response = await client.get(options.url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise EngineFailure(options.url, reason=f"fetch failed: {e}") from e

        heif_hint = looks_like_heif(response.headers.get("content-type", ""), options.imagefile)
        try:
            data = await asyncio.to_thread(render_image, response.content, options, heif_hint)
        except RENDER_ERRORS as e:
            log.warning("Pillow processing error: %s", e)
            raise EngineFailure(options.url, reason=str(e)) from e

        try:
            target.write_bytes(data)
        except OSError as e:
            raise WriteFailure(options.url, reason=str(e)) from e


def looks_like_heif(content_type: str, locator: str) -> bool:
    content_type = content_type.lower()
    return "heic" in content_type or "heif" in content_type or bool(_HEIF_SUFFIX.search(locator.lower()))


def render_image(data: bytes, options: TransformOptions, heif_hint: bool = False) -> bytes:
    """Decode, transform and re-encode an image held in memory."""
    image = decode_image(data, heif_hint)
    params = build_resize_params(options)
    if params is not None:
        image = apply_geometry(image, params)
    return encode_image(image, build_encode_params(options))


def decode_image(data: bytes, heif_hint: bool = False) -> Image.Image:
    if heif_hint:
        try:
            return pillow_heif.open_heif(io.BytesIO(data)).to_pillow()
        except Exception as e:
            log.info("HEIF decode failed (%s), decoding directly", e)
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


def apply_geometry(image: Image.Image, params: ResizeParams) -> Image.Image:
    if params.fit is None:
        # One axis given, the other follows the aspect ratio
        if params.width:
            size = (params.width, max(1, round(image.height * params.width / image.width)))
        else:
            size = (max(1, round(image.width * params.height / image.height)), params.height)
        return image.resize(size)

    size = (params.width, params.height)
    if params.fit == Fit.COVER:
        return ImageOps.fit(image, size, centering=params.centering)
    if params.fit == Fit.FILL:
        return image.resize(size)
    return ImageOps.contain(image, size)


def flatten(image: Image.Image) -> Image.Image:
    """Composite transparency onto white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, "white")
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image if image.mode == "RGB" else image.convert("RGB")


def encode_image(image: Image.Image, params: EncodeParams) -> bytes:
    pillow_format = PILLOW_FORMATS.get(params.codec, params.codec.upper())
    if pillow_format == "JPEG":
        image = flatten(image)

    buffer = io.BytesIO()
    if pillow_format in ("PNG", "GIF"):
        image.save(buffer, format=pillow_format)
    else:
        image.save(buffer, format=pillow_format, quality=params.quality)
    return buffer.getvalue()
