import logging

import jwt
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from digital_download.core.config import settings
from digital_download.core.database import get_db
from digital_download.models.user import User
from digital_download.services.authorization import CallerContext

logger = logging.getLogger("digital-download")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def decode_user_id(token: str) -> int | None:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"Ignoring invalid access token: {e}")
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


async def load_caller(db: AsyncSession, user_id: int | None) -> CallerContext:
    if user_id is None:
        return CallerContext.anonymous()
    res = await db.execute(
        select(User).options(selectinload(User.groups)).where(User.id == user_id)
    )
    user = res.scalars().first()
    if not user or not user.is_active:
        return CallerContext.anonymous()
    return CallerContext(user_id=user.id, groups=frozenset(g.handle for g in user.groups))


async def get_caller(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CallerContext:
    """Identity of the current request; anonymous when no valid token is presented."""
    token = token or request.cookies.get(settings.ACCESS_COOKIE_NAME)
    if not token:
        return CallerContext.anonymous()
    return await load_caller(db, decode_user_id(token))
