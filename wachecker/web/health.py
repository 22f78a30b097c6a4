"""Health check endpoints for wachecker.

Provides health status, Prometheus metrics and a configuration summary for
monitoring. The WhatsApp session and verification cache are attached at
startup with `bind_runtime`.
"""

from __future__ import annotations

import logging
import platform
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest

from ..metrics.registry import REGISTRY
from ..runtime.config import AppConfig
from ..verify.cache import VerificationCache
from ..whatsapp.session import SessionManager

logger = logging.getLogger("wachecker.health")

VERSION = "1.0.0"

app = FastAPI(title="wachecker Health API", version=VERSION)

_runtime: Dict[str, Any] = {"config": None, "session": None, "cache": None}


def bind_runtime(
    config: AppConfig,
    session: Optional[SessionManager],
    cache: Optional[VerificationCache],
) -> None:
    """Attach live components so endpoints can report on them."""
    _runtime["config"] = config
    _runtime["session"] = session
    _runtime["cache"] = cache


def get_config() -> AppConfig:
    return _runtime["config"] or AppConfig.from_env()


@app.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Basic health check; degraded while WhatsApp is not logged in."""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "environment": {
            "python_version": platform.python_version(),
            "platform": platform.system(),
        },
    }

    session: Optional[SessionManager] = _runtime["session"]
    if session is None:
        health_status["whatsapp"] = {"status": "unknown"}
        health_status["status"] = "degraded"
    else:
        health_status["whatsapp"] = {
            "status": session.state.value,
            "qr_available": session.pairing_material() is not None,
            "last_error": session.last_error,
        }
        if not session.is_paired:
            health_status["status"] = "degraded"

    cache: Optional[VerificationCache] = _runtime["cache"]
    health_status["cache"] = {"entries": len(cache) if cache is not None else 0}
    return health_status


@app.get("/metrics")
async def metrics() -> PlainTextResponse:
    """Prometheus metrics endpoint."""
    try:
        metrics_data = generate_latest(REGISTRY)
        return PlainTextResponse(content=metrics_data.decode("utf-8"))
    except Exception as e:
        logger.exception("Metrics generation failed")
        raise HTTPException(status_code=500, detail=f"Metrics generation failed: {str(e)}")


@app.get("/status")
async def detailed_status() -> Dict[str, Any]:
    """Detailed system status including configuration and health."""
    config = get_config()
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "system": {
            "config": {
                "telegram_mode": config.telegram_mode,
                "country_code": config.country_code,
                "min_digits": config.min_digits,
                "max_numbers": config.max_numbers,
                "check_batch_size": config.check_batch_size,
                "batch_pace_ms": config.batch_pace_ms,
            },
            "whatsapp": {
                "profile_dir": config.wa_profile_dir,
                "headless": config.wa_headless,
                "chromium_path_configured": bool(config.chromium_path),
                "check_timeout_seconds": config.wa_check_timeout_seconds,
            },
        },
        "health": await health_check(),
    }


@app.get("/")
async def root() -> Dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "service": "wachecker Health API",
        "version": VERSION,
        "endpoints": {
            "health": "/healthz",
            "metrics": "/metrics",
            "status": "/status",
        },
    }
