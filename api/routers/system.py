"""
System API Router - Status monitoring
"""

import logging
import time
from datetime import datetime

import psutil
from fastapi import APIRouter, Depends, Request

from api.dependencies import get_repository, get_storage
from api.exceptions import safe_endpoint
from schemas import SystemStatus

logger = logging.getLogger(__name__)

router = APIRouter()

# Track start time
START_TIME = time.time()


@router.get("/status")
@safe_endpoint
async def get_status(
    storage=Depends(get_storage),
    repository=Depends(get_repository),
) -> SystemStatus:
    """Get system status"""
    process = psutil.Process()
    memory_info = process.memory_info()
    virtual_memory = psutil.virtual_memory()

    return SystemStatus(
        status="healthy",
        uptime=time.time() - START_TIME,
        memory_usage={
            "process_mb": memory_info.rss / 1024 / 1024,
            "system_percent": virtual_memory.percent,
            "available_mb": virtual_memory.available / 1024 / 1024,
        },
        library_items=repository.count(),
        storage_usage=storage.get_stats(),
    )


@router.get("/config")
@safe_endpoint
async def get_config(request: Request) -> dict:
    """Get current configuration (tokens are never exposed)"""
    return request.app.state.config


@router.get("/health")
async def health_check() -> dict:
    """Simple health check"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
