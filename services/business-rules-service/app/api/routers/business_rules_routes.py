# services/business-rules-service/app/api/routers/business_rules_routes.py
from __future__ import annotations

import logging
from typing import List, Union

from fastapi import APIRouter, Depends

from app.api.deps import get_service, http_error
from app.errors import BusinessRulesError
from app.models import (
    BusinessRuleFromScratch,
    BusinessRuleFromTemplate,
    DeleteResult,
    LifecycleResult,
    StoredBusinessRule,
)
from app.services.business_rules_service import BusinessRulesService

router = APIRouter(prefix="/business-rules", tags=["business-rules"])
logger = logging.getLogger("app.api.business_rules")


@router.post("/template", response_model=LifecycleResult, status_code=201)
async def create_from_template(
    payload: BusinessRuleFromTemplate,
    svc: BusinessRulesService = Depends(get_service),
):
    """
    Derive the rule template's apps, deploy them, persist the definition.
    The rule is persisted even when deployment fails (deployed=False).
    """
    try:
        return await svc.create_from_template(payload)
    except BusinessRulesError as e:
        raise http_error(e) from e


@router.post("/scratch", response_model=LifecycleResult, status_code=201)
async def create_from_scratch(
    payload: BusinessRuleFromScratch,
    svc: BusinessRulesService = Depends(get_service),
):
    try:
        return await svc.create_from_scratch(payload)
    except BusinessRulesError as e:
        raise http_error(e) from e


@router.get("", response_model=List[Union[BusinessRuleFromTemplate, BusinessRuleFromScratch]])
async def list_business_rules(svc: BusinessRulesService = Depends(get_service)):
    try:
        return await svc.list_definitions()
    except BusinessRulesError as e:
        raise http_error(e) from e


@router.get("/{rule_id}", response_model=StoredBusinessRule)
async def get_business_rule(rule_id: str, svc: BusinessRulesService = Depends(get_service)):
    try:
        return await svc.find_definition(rule_id)
    except BusinessRulesError as e:
        raise http_error(e) from e


@router.put("/{rule_id}", response_model=LifecycleResult)
async def edit_business_rule(
    rule_id: str,
    payload: Union[BusinessRuleFromTemplate, BusinessRuleFromScratch],
    svc: BusinessRulesService = Depends(get_service),
):
    """
    Re-derive and update the rule's apps in place. The path id wins over
    any id in the body; the rule type cannot change.
    """
    try:
        return await svc.edit(rule_id, payload)
    except BusinessRulesError as e:
        raise http_error(e) from e


@router.delete("/{rule_id}", response_model=DeleteResult)
async def delete_business_rule(rule_id: str, svc: BusinessRulesService = Depends(get_service)):
    """
    Undeploy every app of the rule, then remove it. When any undeploy fails
    the rule is kept and 502 lists the apps still on the engine.
    """
    try:
        return await svc.delete(rule_id)
    except BusinessRulesError as e:
        raise http_error(e) from e
