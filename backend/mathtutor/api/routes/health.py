from fastapi import APIRouter, Depends
from typing import Dict, Any
import time
import psutil
import logging
from datetime import datetime, timezone

from mathtutor.core.config import Settings, get_settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Basic health check endpoint"""
    return {
        "status": "healthy" if settings.api_key_configured else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "provider": settings.LLM_PROVIDER,
        "api_key_configured": settings.api_key_configured,
        "environment": "production" if not settings.DEBUG else "development"
    }


@router.get("/health/detailed")
async def detailed_health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Detailed health check with process information"""
    process = psutil.Process()
    memory = process.memory_info()

    return {
        "status": "healthy" if settings.api_key_configured else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "provider": {
            "name": settings.LLM_PROVIDER,
            "model": settings.GEMINI_MODEL if settings.LLM_PROVIDER == "gemini" else settings.DEEPSEEK_MODEL,
            "api_key_configured": settings.api_key_configured,
        },
        "time_budget": {
            "upstream_timeout": settings.UPSTREAM_TIMEOUT,
            "platform_max_duration": settings.PLATFORM_MAX_DURATION,
            "fallback_on_any_failure": settings.FALLBACK_ON_ANY_FAILURE,
        },
        "process": {
            "cpu_percent": process.cpu_percent(interval=None),
            "memory_rss": memory.rss,
            "uptime": time.time() - process.create_time(),
        },
    }
