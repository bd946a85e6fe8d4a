import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

purge_runs = Counter("dropbin_purge_runs_total", "Purge sweeps run")
purge_buckets_removed = Counter("dropbin_purge_buckets_removed_total", "Expired buckets removed by purge")
purge_files_removed = Counter("dropbin_purge_files_removed_total", "Blob objects removed by purge")
purge_buckets_skipped = Counter("dropbin_purge_buckets_skipped_total", "Expired buckets left for retry after a blob failure")
purge_duration = Histogram("dropbin_purge_duration_seconds", "Duration of a purge sweep in seconds")


def report_purge(result, duration: float) -> None:
    """Record purge metrics to Prometheus."""
    purge_runs.inc()
    if result.buckets_removed:
        purge_buckets_removed.inc(result.buckets_removed)
    if result.files_removed:
        purge_files_removed.inc(result.files_removed)
    if result.buckets_skipped:
        purge_buckets_skipped.inc(result.buckets_skipped)
    purge_duration.observe(duration)


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
