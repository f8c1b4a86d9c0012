# services/business-rules-service/app/api/deps.py
from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from app.errors import (
    BusinessRuleExistsError,
    BusinessRuleNotFoundError,
    BusinessRulesError,
    PersistenceError,
    RuleTypeChangeError,
    TemplateNotFoundError,
    UndeployError,
)
from app.services.business_rules_service import BusinessRulesService

logger = logging.getLogger("app.api.deps")


def get_service(request: Request) -> BusinessRulesService:
    """Lifecycle service built once in the app lifespan."""
    return request.app.state.rules_service


def http_error(e: BusinessRulesError) -> HTTPException:
    if isinstance(e, (BusinessRuleNotFoundError, TemplateNotFoundError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (BusinessRuleExistsError, RuleTypeChangeError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, UndeployError):
        return HTTPException(status_code=502, detail={"message": str(e), "failed": e.failed})
    if isinstance(e, PersistenceError):
        logger.error("Business rule store unavailable: %s", e)
        return HTTPException(status_code=503, detail=str(e))
    logger.exception("Unhandled business rules error")
    return HTTPException(status_code=500, detail=str(e))
