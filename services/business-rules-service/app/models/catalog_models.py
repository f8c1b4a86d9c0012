# services/business-rules-service/app/models/catalog_models.py
from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ─────────────────────────────────────────────────────────────
# Vocabulary
# ─────────────────────────────────────────────────────────────

class TemplateType(str, Enum):
    """
    Role of a content template inside a rule template.
    All three are Siddhi apps; input/output ones also expose a stream.
    """
    TEMPLATED_APP = "templated-app"
    INPUT = "input"
    OUTPUT = "output"


class RuleTemplateType(str, Enum):
    TEMPLATE = "template"
    INPUT = "input"
    OUTPUT = "output"


class _CatalogModel(BaseModel):
    # Catalog entities are immutable once loaded
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────
# Catalog entities
# ─────────────────────────────────────────────────────────────

class Template(_CatalogModel):
    type: TemplateType
    content: str
    exposed_stream_definition: Optional[str] = Field(
        default=None, description="Only present on input/output templates, e.g. 'define stream S(a string);'"
    )


class RuleTemplateProperty(_CatalogModel):
    """Form metadata for one placeholder of a rule template."""
    field_name: str
    description: Optional[str] = None
    default_value: Optional[str] = None
    options: Tuple[str, ...] = ()


class RuleTemplate(_CatalogModel):
    id: str
    name: str
    type: RuleTemplateType = RuleTemplateType.TEMPLATE
    description: Optional[str] = None
    instance_count: str = "many"
    script: Optional[str] = None
    templates: Tuple[Template, ...] = Field(..., min_length=1)
    properties: Dict[str, RuleTemplateProperty] = Field(default_factory=dict)

    def templates_of(self, template_type: TemplateType) -> List[Template]:
        return [t for t in self.templates if t.type == template_type]


class TemplateGroup(_CatalogModel):
    id: str
    name: str
    description: Optional[str] = None
    rule_templates: Tuple[RuleTemplate, ...] = ()

    def find_rule_template(self, rule_template_id: str) -> Optional[RuleTemplate]:
        for rt in self.rule_templates:
            if rt.id == rule_template_id:
                return rt
        return None


# ─────────────────────────────────────────────────────────────
# Derived output
# ─────────────────────────────────────────────────────────────

class Artifact(BaseModel):
    """A fully substituted, deployable Siddhi app. Built fresh for every derivation."""
    type: TemplateType
    content: str
    exposed_stream_definition: Optional[str] = None
