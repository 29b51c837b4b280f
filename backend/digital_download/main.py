import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.concurrency import run_in_threadpool

from digital_download import __version__, models  # noqa: F401  (registers tables)
from digital_download.core.database import Base, engine, get_session_factory
from digital_download.core.minio_client import minio_client
from digital_download.monitoring.setup import setup_monitoring
from digital_download.routes import download
from digital_download.schemas.download import HealthResponse

logger = logging.getLogger("digital-download")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        async with engine.begin() as conn:
            if engine.dialect.name == "sqlite":
                await conn.execute(text("PRAGMA journal_mode=WAL;"))
            logger.info("Creating database tables:")
            for table in Base.metadata.tables.values():
                logger.info(f" - Table: {table.name}")

            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    yield

    await engine.dispose()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Digital Download",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Length"],
)

app.include_router(download)

setup_monitoring(app)


@app.get("/health", response_model=HealthResponse)
async def health_check(session_factory: async_sessionmaker = Depends(get_session_factory)):
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        db_status = f"error: {str(e)}"

    try:
        await run_in_threadpool(minio_client.list_buckets)
        minio_status = "ok"
    except Exception as e:
        minio_status = f"error: {str(e)}"

    return HealthResponse(
        status="running",
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        storage=minio_status,
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info",
        timeout_keep_alive=60,
        limit_concurrency=100
    )
