import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from coursehub.core.config import settings
from coursehub.store.base import DocumentStore
from coursehub.store.manager import get_store_or_none

router = APIRouter(tags=["System"])


async def check_store(store: Optional[DocumentStore]) -> dict:
    """Ping the document store once and time it"""
    if store is None:
        return {"backend": settings.DOCUMENT_STORE, "status": "DOWN", "latency_ms": None}

    start = time.perf_counter()
    is_up = await store.ping()
    return {
        "backend": store.name,
        "status": "UP" if is_up else "DOWN",
        "latency_ms": round((time.perf_counter() - start) * 1000, 2),
    }


@router.get("/health")
async def health(store: Optional[DocumentStore] = Depends(get_store_or_none)):
    store_status = await check_store(store)
    is_up = store_status["status"] == "UP"
    record = {
        "success": is_up,
        "status": "UP" if is_up else "DEGRADED",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.ENVIRONMENT,
        "services": {"store": store_status},
    }
    return JSONResponse(status_code=200 if is_up else 503, content=record)
