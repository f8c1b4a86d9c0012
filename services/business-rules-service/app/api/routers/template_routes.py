# services/business-rules-service/app/api/routers/template_routes.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from app.api.deps import get_service, http_error
from app.errors import TemplateNotFoundError
from app.models import RuleTemplate, TemplateGroup
from app.services.business_rules_service import BusinessRulesService

router = APIRouter(prefix="/template-groups", tags=["templates"])


@router.get("", response_model=List[TemplateGroup])
def list_template_groups(svc: BusinessRulesService = Depends(get_service)):
    return svc.list_template_groups()


@router.get("/{group_id}", response_model=TemplateGroup)
def get_template_group(group_id: str, svc: BusinessRulesService = Depends(get_service)):
    try:
        return svc.get_template_group(group_id)
    except TemplateNotFoundError as e:
        raise http_error(e) from e


@router.get("/{group_id}/rule-templates/{rule_template_id}", response_model=RuleTemplate)
def get_rule_template(group_id: str, rule_template_id: str, svc: BusinessRulesService = Depends(get_service)):
    try:
        return svc.get_rule_template(group_id, rule_template_id)
    except TemplateNotFoundError as e:
        raise http_error(e) from e
