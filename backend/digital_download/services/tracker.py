from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from digital_download.core.config import settings
from digital_download.errors import DownloadError
from digital_download.models.download_log import DownloadLog
from digital_download.models.token import Token
from digital_download.monitoring.setup import report_attempt

logger = logging.getLogger("digital-download")


@dataclass
class Attempt:
    """One download attempt against a token, tracked at most once."""

    token: str
    user_id: int | None = None
    ip_address: str | None = None
    tracked: bool = False


class UsageTracker:
    def __init__(self, session_factory: async_sessionmaker, keep_log: bool | None = None):
        self._session_factory = session_factory
        self._keep_log = keep_log

    @property
    def keep_log(self) -> bool:
        if self._keep_log is not None:
            return self._keep_log
        return settings.KEEP_DOWNLOAD_LOG

    async def track(self, attempt: Attempt, failure: DownloadError | None = None) -> None:
        """Record the outcome of ``attempt``.

        Success bumps the token counters in a single UPDATE. Every outcome
        is appended to the download log when logging is enabled. Tracking
        problems are logged and swallowed so they never hide the outcome
        the caller is about to report.
        """
        if attempt.tracked:
            return
        attempt.tracked = True

        outcome = "success" if failure is None else type(failure).__name__
        report_attempt(outcome)

        try:
            async with self._session_factory() as db:
                res = await db.execute(
                    select(Token.id, Token.asset_id).where(Token.token == attempt.token)
                )
                row = res.first()
                if row is None:
                    logger.info("Not tracking download for unknown token %s", attempt.token)
                    return

                if failure is None:
                    await db.execute(
                        update(Token)
                        .where(Token.id == row.id)
                        .values(
                            total_downloads=Token.total_downloads + 1,
                            last_downloaded=datetime.now(timezone.utc),
                        )
                    )

                if self.keep_log:
                    db.add(DownloadLog(
                        token_id=row.id,
                        asset_id=row.asset_id,
                        user_id=attempt.user_id,
                        ip_address=attempt.ip_address,
                        success=failure is None,
                        error=failure.reason if failure is not None else None,
                    ))

                await db.commit()
        except SQLAlchemyError as e:
            logger.exception("Failed to track download for token %s: %s", attempt.token, e)
            return

        logger.info(
            "download token=%s user=%s ip=%s outcome=%s",
            attempt.token, attempt.user_id, attempt.ip_address, outcome,
        )
