# services/business-rules-service/app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from app.config import settings
from app.infra.logging import setup_logging
from app.catalog.loader import TemplateCatalogLoader
from app.clients.http_utils import close_http_clients
from app.clients.siddhi_engine import SiddhiEngineClient
from app.core.composer import CompositeSkeletonProvider, ScratchArtifactComposer
from app.core.script_runner import MiniRacerScriptRunner
from app.db.mongodb import get_client, close_client as close_mongo_client
from app.db.business_rule_repository import BusinessRuleRepository
from app.services.business_rules_service import BusinessRulesService
from app.api.routers import health_routes
from app.api.routers import business_rules_routes
from app.api.routers import template_routes

logger = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    App lifespan:
      - configure logging
      - load the template catalog and check the composite skeleton
      - init Mongo indexes
      - wire the lifecycle service
      - graceful shutdown: HTTP clients, Mongo client
    """
    setup_logging(settings.service_name)
    logger.info("%s starting up", settings.service_name)

    # 1) Template catalog
    catalog = TemplateCatalogLoader(settings.templates_dir or None).load()

    # 2) Composite skeleton (fail fast on a broken override)
    skeletons = CompositeSkeletonProvider(settings.composite_skeleton_path or None)
    skeletons.load()

    # 3) Mongo indexes
    repo = BusinessRuleRepository(get_client(), settings.mongo_db, settings.business_rules_collection)
    await repo.ensure_indexes()
    logger.info("Mongo indexes ensured (db=%s)", settings.mongo_db)

    app.state.rules_service = BusinessRulesService(
        catalog=catalog,
        store=repo,
        engine=SiddhiEngineClient(),
        composer=ScratchArtifactComposer(skeletons),
        scripts=MiniRacerScriptRunner(timeout_ms=settings.script_timeout_ms),
        strict_placeholders=settings.strict_placeholders,
    )
    logger.info(
        "Lifecycle service ready (groups=%d, engine=%s, strict_placeholders=%s)",
        len(catalog), settings.siddhi_engine_base_url, settings.strict_placeholders,
    )

    try:
        yield
    finally:
        # a) Engine HTTP clients
        try:
            await close_http_clients()
            logger.info("HTTP clients closed")
        except Exception:
            logger.warning("Error closing HTTP clients", exc_info=True)

        # b) Mongo client
        try:
            await close_mongo_client()
            logger.info("Mongo client closed")
        except Exception:
            logger.warning("Error closing Mongo client", exc_info=True)

        logger.info("%s shutdown complete", settings.service_name)


app = FastAPI(
    title="Business Rules Service",
    description="Derives, deploys and tracks business rules as Siddhi apps",
    version=settings.service_version,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.include_router(health_routes.router)
app.include_router(business_rules_routes.router)
app.include_router(template_routes.router)
