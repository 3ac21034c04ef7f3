import asyncio
import logging
import time
from email.utils import formatdate
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from api.auth import issue_token, parse_basic_auth, secret_key, verify_bearer
from resizer.backends import RENDER_ERRORS, MagickBackend, PillowBackend, render_image
from resizer.config import APP_PORT, BLOB_STORAGE_URLS, CACHE_EXPIRES, CACHE_MAX_AGE, configure_logging
from resizer.errors import InvalidFormat
from resizer.job import JobFailure, JobOutcome, ResizeJob
from resizer.query import parse_query_options
from resizer.splitter import split_request

configure_logging()
log = logging.getLogger(__name__)

app = FastAPI(title="Resize Server")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

magick_backend = MagickBackend()
pillow_backend = PillowBackend()

MEDIA_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "avif": "image/avif",
    "gif": "image/gif",
    "heic": "image/heic",
    "heif": "image/heif",
}


def job_response(outcome: JobOutcome, started: float) -> Response:
    """Serve the cache file, or the failure as JSON. The timeout token becomes a 504."""
    if isinstance(outcome, JobFailure):
        status_code = outcome.status if isinstance(outcome.status, int) else 504
        return JSONResponse(status_code=status_code, content=outcome.model_dump())

    duration = 0 if outcome.cached else int((time.monotonic() - started) * 1000)
    headers = {
        "X-ResizeJobDuration": str(duration),
        "Expires": formatdate(time.time() + CACHE_EXPIRES, usegmt=True),
        "Cache-Control": f"public, max-age={CACHE_MAX_AGE}",
    }
    return FileResponse(outcome.file, headers=headers)


# ---------- Service endpoints ----------

@app.get("/health", response_class=PlainTextResponse)
def health():
    return "OK"


@app.get("/", response_class=HTMLResponse)
def help_page(request: Request):
    return templates.TemplateResponse(
        request,
        "help.html",
        {"hostname": request.headers.get("host", "localhost")},
    )


@app.post("/auth")
def auth(request: Request):
    credentials = parse_basic_auth(request.headers.get("authorization"))
    token = issue_token(*credentials) if credentials else None
    if not token:
        return JSONResponse(status_code=400, content={"error": "Invalid credential"})
    return token


# ---------- Blob storage endpoints ----------

@app.post("/media")
async def upload_media(request: Request):
    authorization = request.headers.get("authorization")
    signing_key = secret_key()
    if authorization and authorization.startswith("Bearer ") and not signing_key:
        return JSONResponse(status_code=500, content={"error": "JWT secret key not configured"})
    if not signing_key or not verify_bearer(authorization, signing_key):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    body = await request.body()
    options = parse_query_options(dict(request.query_params), "", "")
    try:
        data = await asyncio.to_thread(render_image, body, options, True)
    except RENDER_ERRORS as e:
        log.error("Processing error: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return Response(content=data, media_type=MEDIA_TYPES.get(options.format, "image/png"))


@app.get("/media/{blob_name}/{image_path:path}")
async def get_media(request: Request, blob_name: str, image_path: str):
    started = time.monotonic()
    base_url = BLOB_STORAGE_URLS.get(blob_name)
    if not base_url:
        return JSONResponse(
            status_code=404,
            content={"status": 404, "message": f"Blob storage '{blob_name}' not found."},
        )

    protocol = "" if base_url.startswith(("http://", "https://")) else "https://"
    full_url = f"{protocol}{base_url}/{image_path}"
    options = parse_query_options(dict(request.query_params), full_url, image_path)

    outcome = await ResizeJob(options, pillow_backend).run()
    return job_response(outcome, started)


# ---------- Legacy compact URLs, e.g. /c300x300/jpg,90/http://example.com/image.jpg ----------

@app.get("/{legacy_path:path}")
async def legacy_resize(request: Request, legacy_path: str):
    started = time.monotonic()
    try:
        options = split_request(request.url.path, dict(request.query_params))
    except InvalidFormat:
        return JSONResponse(status_code=400, content={"status": 400, "message": "Invalid request format"})

    outcome = await ResizeJob(options, magick_backend).run()
    return job_response(outcome, started)


def run():
    log.info("resize server listening on %s", APP_PORT)
    uvicorn.run(app, host="0.0.0.0", port=APP_PORT)


if __name__ == "__main__":
    run()
