# Lifecycle of one request: validate source -> cache check -> transform or direct download -> outcome

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import urlparse

import httpx
from pydantic import BaseModel

from resizer.cache import cache_path, discard, is_cached, partial_path, publish
from resizer.config import HEAD_TIMEOUT
from resizer.errors import (
    BadSource,
    EngineFailure,
    ResizeError,
    SourceTimeout,
    SourceUnreachable,
    Status,
    WriteFailure,
)
from resizer.options import TransformOptions

log = logging.getLogger(__name__)


class JobSuccess(BaseModel):
    file: str
    cached: bool = False


class JobFailure(BaseModel):
    status: Status
    url: str


JobOutcome = Union[JobSuccess, JobFailure]


async def download_direct(options: TransformOptions, target: Path, client: httpx.AsyncClient) -> None:
    """Copy the source bytes into ``target`` unchanged."""
    try:
        sink = open(target, "wb")
    except OSError as e:
        raise WriteFailure(options.url, reason=str(e)) from e

    with sink:
        try:
            async with client.stream("GET", options.url, follow_redirects=True) as response:
                response.raise_for_status()
                async for chunk in response.aiter_bytes():
                    sink.write(chunk)
        except httpx.HTTPError as e:
            raise EngineFailure(options.url, reason=f"download failed: {e}") from e
        except OSError as e:
            raise WriteFailure(options.url, reason=str(e)) from e


class ResizeJob:
    def __init__(
        self,
        options: TransformOptions,
        backend,
        cache_dir: Optional[Path] = None,
        client: Optional[httpx.AsyncClient] = None,
        head_timeout: float = HEAD_TIMEOUT,
    ):
        self.options = options
        self.backend = backend
        self.cache_file = cache_path(options, cache_dir)
        self.head_timeout = head_timeout
        self._client = client

    async def validate_remote_source(self, client: httpx.AsyncClient) -> bool:
        """Check the source with a HEAD request. Returns whether it declares an image type."""
        url = self.options.url
        try:
            host = urlparse(url).hostname
        except ValueError as e:
            raise BadSource(url, reason=str(e)) from e
        if not host:
            raise BadSource(url, reason="no host")

        try:
            response = await client.head(url, timeout=self.head_timeout, follow_redirects=True)
        except httpx.TimeoutException as e:
            raise SourceTimeout(url, reason=str(e)) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResizeError(url, reason=str(e)) from e

        if response.status_code != 200:
            raise SourceUnreachable(url, status=response.status_code)

        content_type = response.headers.get("content-type", "")
        return "image" in content_type.split("/")[0]

    async def run(self) -> JobOutcome:
        if self._client is not None:
            return await self._run(self._client)
        async with httpx.AsyncClient() as client:
            return await self._run(client)

    async def _run(self, client: httpx.AsyncClient) -> JobOutcome:
        imagefile = self.options.imagefile
        try:
            is_image = await self.validate_remote_source(client)

            if is_cached(self.cache_file):
                log.info("CACHE HIT: %s", imagefile)
                return JobSuccess(file=str(self.cache_file), cached=True)

            if is_image:
                log.info("RESIZE START (%s): %s", self.backend.name, imagefile)
                await self._produce(self.backend.transform, client)
            else:
                log.info("DIRECT DOWNLOAD (non-image): %s", imagefile)
                await self._produce(download_direct, client)
        except ResizeError as e:
            log.warning("job failed with %s for %s %s", e.status, e.url, e.reason)
            return JobFailure(status=e.status, url=e.url)

        return JobSuccess(file=str(self.cache_file))

    async def _produce(self, step, client: httpx.AsyncClient) -> None:
        # The cache file only ever appears complete
        partial = partial_path(self.cache_file)
        try:
            await step(self.options, partial, client)
            try:
                publish(partial, self.cache_file)
            except OSError as e:
                raise WriteFailure(self.options.url, reason=str(e)) from e
        finally:
            discard(partial)

    def start(self, callback: Callable[[JobOutcome], None]) -> asyncio.Task:
        """Run the job as a task and hand its outcome to ``callback`` once."""
        task = asyncio.ensure_future(self.run())

        def _deliver(finished: asyncio.Task) -> None:
            if finished.cancelled():
                callback(JobFailure(status=500, url=self.options.url))
                return
            error = finished.exception()
            if error is not None:
                log.error("job crashed for %s", self.options.url, exc_info=error)
                callback(JobFailure(status=500, url=self.options.url))
                return
            callback(finished.result())

        task.add_done_callback(_deliver)
        return task
