from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse, StreamingResponse
from sqlalchemy.ext.asyncio import async_sessionmaker

from digital_download.core.config import settings
from digital_download.core.database import get_session_factory
from digital_download.core.security import get_caller
from digital_download.errors import AuthenticationRequired, DownloadError
from digital_download.schemas.download import ErrorResponse
from digital_download.services.authorization import CallerContext
from digital_download.services.download import DownloadService
from digital_download.utils.urls import client_address, login_redirect_url

logger = logging.getLogger("digital-download")

router = APIRouter(tags=["Download"])

_error_responses = {
    400: {"model": ErrorResponse, "description": "No download token provided"},
    401: {"model": ErrorResponse, "description": "Login required"},
    403: {"model": ErrorResponse, "description": "Download refused"},
    404: {"model": ErrorResponse, "description": "Unknown token"},
    500: {"model": ErrorResponse, "description": "File missing from storage"},
}


def get_download_service(
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> DownloadService:
    return DownloadService(session_factory)


async def _serve(
    token: Optional[str],
    request: Request,
    caller: CallerContext,
    service: DownloadService,
):
    try:
        prepared = await service.start_download(token, caller, client_address(request))
    except AuthenticationRequired as e:
        if settings.LOGIN_URL:
            return RedirectResponse(login_redirect_url(request), status_code=302)
        raise HTTPException(status_code=e.status_code, detail=e.reason,
                            headers={"WWW-Authenticate": "Bearer"})
    except DownloadError as e:
        raise HTTPException(status_code=e.status_code, detail=e.reason)

    logger.info("Streaming %s for token %s", prepared.filename, token)
    return StreamingResponse(prepared.body, headers=prepared.headers)


@router.get("/download", responses=_error_responses)
async def download_by_query(
    request: Request,
    u: Optional[str] = Query(None, description="Download token"),
    caller: CallerContext = Depends(get_caller),
    service: DownloadService = Depends(get_download_service),
):
    return await _serve(u, request, caller, service)


@router.get("/download/{token}", responses=_error_responses)
async def download_by_token(
    token: str,
    request: Request,
    caller: CallerContext = Depends(get_caller),
    service: DownloadService = Depends(get_download_service),
):
    return await _serve(token, request, caller, service)
