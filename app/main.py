"""
Catalog Radar - cache refresh service
Keeps the public listing caches (Top 10s, carousels, release calendars) fresh.
"""
import logging
import secrets
import time
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

from app.cache import (
    CALENDAR_KEYS,
    CAROUSEL_KEYS,
    CacheStore,
    DocumentStore,
    StalenessEvaluator,
    is_known_key,
    needs_update,
)
from app.clients import RequestQueue, TMDBClient, Top10Client
from app.errors import CacheReadError
from app.refresh import ClassRefreshers, Enricher, RefreshScheduler, RunResult
from config.settings import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cron")

# Version tracking
APP_VERSION = "v0.1.0"
APP_NAME = "Catalog Radar"
APP_STAGE = "Beta"

app = FastAPI(
    title=f"{APP_NAME} ({APP_STAGE})",
    description="Background refresh of cached catalog listings",
    version=APP_VERSION
)


# Process-wide wiring, built on first use
_scheduler: Optional[RefreshScheduler] = None
_evaluator: Optional[StalenessEvaluator] = None
_queue: Optional[RequestQueue] = None


def _build() -> None:
    global _scheduler, _evaluator, _queue

    _queue = RequestQueue(
        delay_seconds=settings.request_queue_delay_seconds,
        max_pending=settings.request_queue_max_pending,
    )
    tmdb = TMDBClient(
        api_key=settings.tmdb_api_key,
        base_url=settings.tmdb_base_url,
        language=settings.tmdb_language,
        fallback_language=settings.tmdb_fallback_language,
        region=settings.tmdb_region,
        queue=_queue,
        timeout=settings.request_timeout_seconds,
    )
    top10 = Top10Client(
        api_key=settings.top10_api_key,
        base_url=settings.top10_base_url,
        timeout=settings.request_timeout_seconds,
    )
    for client in (tmdb, top10):
        if not client.is_configured:
            logger.warning(f"{client.SERVICE_NAME} API key not set, its refreshers will fail")
    store = CacheStore(DocumentStore(settings.cache_db_path))

    _evaluator = StalenessEvaluator(store)
    refreshers = ClassRefreshers(
        store=store,
        tmdb=tmdb,
        top10=top10,
        enricher=Enricher(tmdb, image_base_url=settings.tmdb_image_base_url),
        enrich_delay_seconds=settings.enrich_delay_seconds,
        image_base_url=settings.tmdb_image_base_url,
    )
    _scheduler = RefreshScheduler(_evaluator, refreshers)


def get_scheduler() -> RefreshScheduler:
    """Get or create the process-wide scheduler."""
    if _scheduler is None:
        _build()
    return _scheduler


def get_evaluator() -> StalenessEvaluator:
    """Get or create the process-wide staleness evaluator."""
    if _evaluator is None:
        _build()
    return _evaluator


def get_request_queue() -> RequestQueue:
    """Get or create the process-wide request queue."""
    if _queue is None:
        _build()
    return _queue


@app.on_event("shutdown")
def shutdown_request_queue():
    if _queue is not None:
        _queue.shutdown(wait=False)


def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """
    Reject requests without the shared bearer secret.

    Runs before any scheduling logic. An unset secret rejects everything.
    """
    expected = settings.cron_secret
    if not expected or not authorization:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not secrets.compare_digest(authorization.encode(), f"Bearer {expected}".encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def _timestamp() -> str:
    return datetime.utcnow().isoformat() + "Z"


def _success_payload(update_id: str, result: RunResult) -> dict:
    payload = {"success": True, "updateId": update_id}
    if result.processed_key:
        payload["processed"] = result.processed_key
    payload["updates"] = result.updates
    if result.errors:
        payload["errors"] = result.errors
    payload["nextInQueue"] = result.next_key
    payload["duration"] = result.duration_display
    payload["timestamp"] = _timestamp()
    return payload


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "stage": APP_STAGE,
        "full": f"{APP_NAME} {APP_VERSION} ({APP_STAGE})"
    }


@app.api_route("/api/cron/update", methods=["GET", "POST"], dependencies=[Depends(verify_cron_secret)])
def cron_update(scheduler: RefreshScheduler = Depends(get_scheduler)):
    """
    Periodic trigger: refresh the most urgent stale cache.

    Always answers success unless cache metadata is unreadable.
    """
    update_id = f"update-{int(time.time() * 1000)}"
    started = time.monotonic()
    logger.info(f"[{update_id}] Update triggered")

    try:
        result = scheduler.run_once()
    except CacheReadError as e:
        duration = f"{time.monotonic() - started:.1f}s"
        logger.error(f"[{update_id}] Fatal error after {duration}: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "updateId": update_id,
                "error": str(e),
                "duration": duration,
                "timestamp": _timestamp(),
            },
        )

    if result.errors:
        logger.warning(f"[{update_id}] Errors: {result.errors}")
    logger.info(f"[{update_id}] Complete in {result.duration_display}: {result.updates}")
    return _success_payload(update_id, result)


@app.post("/api/cron/refresh/{cache_key}", dependencies=[Depends(verify_cron_secret)])
def cron_refresh_key(cache_key: str, scheduler: RefreshScheduler = Depends(get_scheduler)):
    """Refresh one named cache (and its co-scheduled group) immediately."""
    if not is_known_key(cache_key):
        raise HTTPException(status_code=404, detail=f"Unknown cache key: {cache_key}")

    update_id = f"refresh-{int(time.time() * 1000)}"
    logger.info(f"[{update_id}] Manual refresh of {cache_key}")
    result = scheduler.refresh_key(cache_key)
    return _success_payload(update_id, result)


@app.get("/cache/stats", dependencies=[Depends(verify_cron_secret)])
def cache_stats(
    evaluator: StalenessEvaluator = Depends(get_evaluator),
    queue: RequestQueue = Depends(get_request_queue),
):
    """Current staleness ranking of every cache, per-group flags and queue load."""
    try:
        candidates = evaluator.evaluate()
    except CacheReadError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "stale": sum(1 for c in candidates if c.is_stale),
        "total": len(candidates),
        "needsUpdate": {
            "top10": needs_update(candidates, ["top10", "global"]),
            "carousels": needs_update(candidates, CAROUSEL_KEYS),
            "calendar": needs_update(candidates, CALENDAR_KEYS),
        },
        "requestQueue": queue.get_stats(),
        "candidates": [c.to_dict() for c in candidates],
    }
