import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

download_attempts = Counter(
    "digital_download_attempts_total", "Download attempts by outcome", ["outcome"]
)
download_bytes = Counter("digital_download_bytes_total", "Bytes streamed to clients")
transfer_duration = Histogram(
    "digital_download_transfer_seconds", "Duration of a file transfer in seconds"
)


def report_attempt(outcome: str) -> None:
    """Count one tracked attempt; ``outcome`` is "success" or the failure class name."""
    download_attempts.labels(outcome=outcome).inc()


def report_transfer(bytes_sent: int, duration: float) -> None:
    if bytes_sent:
        download_bytes.inc(bytes_sent)
    transfer_duration.observe(duration)


def setup_monitoring(app: ASGIApp):
    Instrumentator().instrument(app).expose(app, endpoint="/api/metrics", include_in_schema=False)

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except HTTPException as e:
            logger.exception("HTTP exception: %s %s -> %s", request.method, request.url.path, e.detail)
            response = JSONResponse(status_code=e.status_code, content={"detail": e.detail})
        except Exception as e:
            logger.exception("Unhandled error: %s %s -> %s", request.method, request.url.path, e)
            response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
        finally:
            process_time = time.time() - start_time
            logger.info("method=%s path=%s status=%s duration=%.4fs",
                        request.method, request.url.path,
                        getattr(response, "status_code", "?"), process_time)
        return response
