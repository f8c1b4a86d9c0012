# services/business-rules-service/app/models/rule_models.py
from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class _RuleModel(BaseModel):
    # Stored/served as camelCase ({"templateGroupId": ...}); snake_case accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────
# Definitions (tagged union on `type`)
# ─────────────────────────────────────────────────────────────

class BusinessRuleFromTemplate(_RuleModel):
    type: Literal["template"] = "template"
    id: str = Field(..., min_length=1)
    name: str
    template_group_id: str
    rule_template_id: str
    properties: Dict[str, str] = Field(default_factory=dict, description="placeholder -> user value")


class ScratchProperties(_RuleModel):
    input_data: Dict[str, str] = Field(default_factory=dict)
    output_data: Dict[str, str] = Field(default_factory=dict)
    # e.g. {"filterRules": ["price > 100", "qty < 5"], "ruleLogic": ["${1} and ${2}"]}
    rule_components: Dict[str, List[str]] = Field(default_factory=dict)
    # output field -> source expression, insertion ordered
    output_mappings: Dict[str, str] = Field(default_factory=dict)


class BusinessRuleFromScratch(_RuleModel):
    type: Literal["scratch"] = "scratch"
    id: str = Field(..., min_length=1)
    name: str
    template_group_id: str
    input_rule_template_id: str
    output_rule_template_id: str
    properties: ScratchProperties = Field(default_factory=ScratchProperties)


BusinessRuleDefinition = Annotated[
    Union[BusinessRuleFromTemplate, BusinessRuleFromScratch],
    Field(discriminator="type"),
]

_DEFINITION_ADAPTER: TypeAdapter[BusinessRuleDefinition] = TypeAdapter(BusinessRuleDefinition)


def definition_to_bytes(definition: BusinessRuleDefinition) -> bytes:
    return definition.model_dump_json(by_alias=True).encode("utf-8")


def definition_from_bytes(raw: bytes) -> BusinessRuleDefinition:
    return _DEFINITION_ADAPTER.validate_json(raw)


def parse_definition(data: Dict) -> BusinessRuleDefinition:
    return _DEFINITION_ADAPTER.validate_python(data)


# ─────────────────────────────────────────────────────────────
# Stored view
# ─────────────────────────────────────────────────────────────

class StoredBusinessRule(BaseModel):
    definition: BusinessRuleDefinition
    deployed: bool = False
