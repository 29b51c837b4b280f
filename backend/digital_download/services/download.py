"""Download pipeline: resolve → authorize → locate → transfer → track.

Every attempt whose token resolves is handed to the usage tracker exactly
once. Failures before streaming are tracked and then raised; the outcome
of a started stream is tracked by the stream itself when it ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from digital_download.core.config import settings
from digital_download.errors import DownloadError, MissingToken, TokenNotFound, UnknownFailure
from digital_download.services.assets import get_asset
from digital_download.services.authorization import CallerContext, authorize
from digital_download.services.links import resolve_link
from digital_download.services.locator import locate
from digital_download.services.tracker import Attempt, UsageTracker
from digital_download.services.transfer import build_headers, default_http_client, open_source, stream_file

logger = logging.getLogger("digital-download")


@dataclass
class PreparedDownload:
    filename: str
    headers: dict[str, str]
    body: AsyncIterator[bytes]


class DownloadService:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        tracker: UsageTracker | None = None,
        chunk_size: int | None = None,
        http_client_factory: Callable[[], httpx.AsyncClient] = default_http_client,
    ):
        self._session_factory = session_factory
        self.tracker = tracker or UsageTracker(session_factory)
        self._chunk_size = chunk_size
        self._http_client_factory = http_client_factory

    @property
    def chunk_size(self) -> int:
        return self._chunk_size or settings.DOWNLOAD_CHUNK_SIZE

    async def start_download(
        self,
        token: str | None,
        caller: CallerContext,
        client_ip: str | None = None,
    ) -> PreparedDownload:
        """Authorize and open the file behind ``token``.

        Raises a ``DownloadError`` subclass on any expected failure; anything
        else is recorded as an unknown failure and re-raised. On success the
        returned body must be iterated to completion for the download to
        count.
        """
        if not token:
            raise MissingToken()

        attempt: Attempt | None = None
        try:
            async with self._session_factory() as db:
                link = await resolve_link(db, token)
                if link is None:
                    raise TokenNotFound()

                attempt = Attempt(token=link.token, user_id=caller.user_id, ip_address=client_ip)

                decision = authorize(link, caller)
                if not decision.allowed:
                    raise decision.failure or UnknownFailure()

                asset = await get_asset(db, link.asset_id)
                target = locate(asset)
                source = await open_source(target, self._http_client_factory)
        except DownloadError as e:
            if attempt is not None:
                logger.info("Download refused for token %s: %s", token, e.reason)
                await self.tracker.track(attempt, e)
            raise
        except Exception:
            logger.exception("Unexpected error preparing download for token %s", token)
            if attempt is not None:
                await self.tracker.track(attempt, UnknownFailure())
            raise

        async def finish(outcome: DownloadError | None) -> None:
            await self.tracker.track(attempt, outcome)

        headers = build_headers(asset.filename, asset.size, link.headers)
        body = stream_file(source, self.chunk_size, on_finish=finish, expected_size=asset.size)
        return PreparedDownload(filename=asset.filename, headers=headers, body=body)
