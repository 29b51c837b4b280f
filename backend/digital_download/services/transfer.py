"""Chunked delivery of a located file.

Opening the source happens before any response header is produced, so a
missing or unreadable file still turns into a clean error response. Once
bytes are flowing, any failure aborts the response; nothing is retried.
"""

from __future__ import annotations

import logging
import time
import urllib.parse
from typing import AsyncIterator, Awaitable, Callable, Mapping, Optional, Protocol

import anyio
import httpx

from digital_download.core.config import settings
from digital_download.errors import DownloadError, ResourceUnreadable, TransferAborted
from digital_download.monitoring.setup import report_transfer
from digital_download.services.locator import LocalFile, RemoteFile

logger = logging.getLogger("digital-download")

DEFAULT_CHUNK_SIZE = 1024 * 8


class ChunkSource(Protocol):
    async def read(self, size: int) -> bytes: ...

    async def aclose(self) -> None: ...


class LocalSource:
    def __init__(self, handle: anyio.AsyncFile):
        self._handle = handle

    async def read(self, size: int) -> bytes:
        return await self._handle.read(size)

    async def aclose(self) -> None:
        await self._handle.aclose()


class RemoteSource:
    def __init__(self, client: httpx.AsyncClient, response: httpx.Response):
        self._client = client
        self._response = response
        self._chunks: AsyncIterator[bytes] | None = None

    async def read(self, size: int) -> bytes:
        if self._chunks is None:
            self._chunks = self._response.aiter_bytes(chunk_size=size)
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return b""

    async def aclose(self) -> None:
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()


def default_http_client() -> httpx.AsyncClient:
    # Transfer time grows with file size, only connecting is bounded.
    timeout = httpx.Timeout(None, connect=settings.REMOTE_CONNECT_TIMEOUT)
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


# -----------------------------
# Headers
# -----------------------------

def _rfc5987_filename(value: str) -> str:
    quoted = urllib.parse.quote(value, safe="")
    plain = value.encode("latin-1", "ignore").decode("latin-1").replace('"', '\\"')
    return f'filename="{plain}"; filename*=UTF-8\'\'{quoted}'


def build_headers(filename: str, size: int | None, optional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Default attachment headers, overridden by any same-named optional header."""
    headers = {
        "Content-Type": "application/octet-stream",
        "Content-Disposition": f"attachment; {_rfc5987_filename(filename)}",
    }
    if size is not None:
        headers["Content-Length"] = str(size)

    for name, value in (optional or {}).items():
        for existing in [key for key in headers if key.lower() == name.lower()]:
            del headers[existing]
        headers[name] = str(value)
    return headers


# -----------------------------
# Sources
# -----------------------------

async def open_local(path: str) -> LocalSource:
    try:
        handle = await anyio.open_file(path, "rb")
    except OSError as e:
        logger.error("Cannot open %s for reading: %s", path, e)
        raise ResourceUnreadable() from e
    return LocalSource(handle)


async def open_remote(
    url: str,
    client_factory: Callable[[], httpx.AsyncClient] = default_http_client,
) -> RemoteSource:
    client = client_factory()
    try:
        response = await client.send(client.build_request("GET", url), stream=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        await client.aclose()
        logger.error("Cannot fetch %s: %s", url, e)
        raise ResourceUnreadable() from e

    if response.status_code >= 400:
        await response.aclose()
        await client.aclose()
        logger.error("Cannot fetch %s: upstream answered %s", url, response.status_code)
        raise ResourceUnreadable()
    return RemoteSource(client, response)


async def open_source(
    target: LocalFile | RemoteFile,
    client_factory: Callable[[], httpx.AsyncClient] = default_http_client,
) -> ChunkSource:
    if isinstance(target, LocalFile):
        return await open_local(target.path)
    return await open_remote(target.url, client_factory)


# -----------------------------
# Streaming
# -----------------------------

async def stream_file(
    source: ChunkSource,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    on_finish: Optional[Callable[[Optional[DownloadError]], Awaitable[None]]] = None,
    expected_size: int | None = None,
) -> AsyncIterator[bytes]:
    """Yield the source one chunk at a time, reading the next chunk only after
    the previous one has been handed on.

    ``on_finish`` receives None when every byte was delivered and a
    ``TransferAborted`` otherwise, including client disconnects and a source
    whose length differs from ``expected_size`` (the advertised Content-Length).
    """
    chunk_size = max(1, chunk_size)
    started = time.monotonic()
    sent = 0
    failure: DownloadError | None = TransferAborted()
    try:
        while True:
            chunk = await source.read(chunk_size)
            if not chunk:
                break
            yield chunk
            sent += len(chunk)
        if expected_size is None or sent == expected_size:
            failure = None
        else:
            logger.error("Source delivered %s bytes, %s were announced", sent, expected_size)
    finally:
        # Runs on disconnect too, so it must survive the cancellation.
        with anyio.CancelScope(shield=True):
            try:
                await source.aclose()
            except Exception as e:
                logger.warning("Closing download source failed: %s", e)
            report_transfer(sent, time.monotonic() - started)
            if failure is not None:
                logger.warning("Transfer aborted after %s bytes", sent)
            if on_finish is not None:
                await on_finish(failure)
