# services/business-rules-service/app/api/routers/health_routes.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request
from pymongo.errors import PyMongoError

from app.config import settings
from app.db.mongodb import get_client

logger = logging.getLogger("app.api.health")

router = APIRouter(tags=["meta"])


@router.get("/", summary="Root metadata")
def root() -> Dict[str, Any]:
    """
    Root landing with links and metadata.
    """
    return {
        "service": settings.service_name,
        "status": "ok",
        "message": "business rules lifecycle service",
        "docs": "/docs",
        "health": "/health",
        "ready": "/ready",
        "version": "/version",
    }


@router.get("/health", summary="Liveness check")
def health() -> Dict[str, Any]:
    """
    Liveness check: process is up and app is constructed.
    """
    return {
        "status": "ok",
        "service": settings.service_name,
        "at": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready", summary="Readiness check")
async def ready(request: Request) -> Dict[str, Any]:
    """
    Readiness check: Mongo answers a ping and the template catalog is loaded.
    """
    try:
        await get_client().admin.command("ping")
    except PyMongoError as e:
        logger.warning("Readiness check failed: Mongo unreachable (%s)", e)
        raise HTTPException(status_code=503, detail="Mongo unreachable")
    svc = getattr(request.app.state, "rules_service", None)
    return {
        "status": "ready",
        "service": settings.service_name,
        "template_groups": len(svc.catalog) if svc is not None else 0,
        "engine": settings.siddhi_engine_base_url,
        "at": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/version", summary="Service version")
def version() -> Dict[str, Any]:
    return {
        "service": settings.service_name,
        "version": settings.service_version,
    }
