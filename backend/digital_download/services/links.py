from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from digital_download.models.token import Token
from digital_download.services.authorization import AnyUser, Requirement, parse_requirement

logger = logging.getLogger(__name__)


@dataclass
class Link:
    """Authorization context for one download request, built from a token record."""

    token: str
    asset_id: int | None
    enabled: bool = True
    expires: datetime | str | None = None
    max_downloads: int | None = None
    total_downloads: int = 0
    requirement: Requirement = field(default_factory=AnyUser)
    headers: dict[str, str] = field(default_factory=dict)


def parse_headers(raw: str | None, token: str | None = None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring unreadable optional headers on token %s", token)
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring optional headers on token %s: expected an object", token)
        return {}
    return {str(name): str(v) for name, v in value.items() if v is not None}


def link_from_record(record: Token) -> Link:
    return Link(
        token=record.token,
        asset_id=record.asset_id,
        enabled=bool(record.enabled),
        expires=record.expires,
        max_downloads=record.max_downloads,
        total_downloads=record.total_downloads or 0,
        requirement=parse_requirement(record.require_user),
        headers=parse_headers(record.headers, record.token),
    )


async def resolve_link(db: AsyncSession, token: str) -> Link | None:
    res = await db.execute(select(Token).where(Token.token == token))
    record: Token | None = res.scalars().first()
    if record is None:
        return None
    return link_from_record(record)
