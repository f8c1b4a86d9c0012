# services/business-rules-service/app/models/__init__.py
from .catalog_models import (
    TemplateType,
    RuleTemplateType,
    Template,
    RuleTemplateProperty,
    RuleTemplate,
    TemplateGroup,
    Artifact,
)

from .rule_models import (
    BusinessRuleFromTemplate,
    ScratchProperties,
    BusinessRuleFromScratch,
    BusinessRuleDefinition,
    StoredBusinessRule,
    definition_to_bytes,
    definition_from_bytes,
    parse_definition,
)

from .lifecycle_models import (
    LifecycleStatus,
    LifecycleResult,
    DeleteResult,
)

__all__ = [
    # catalog_models
    "TemplateType",
    "RuleTemplateType",
    "Template",
    "RuleTemplateProperty",
    "RuleTemplate",
    "TemplateGroup",
    "Artifact",
    # rule_models
    "BusinessRuleFromTemplate",
    "ScratchProperties",
    "BusinessRuleFromScratch",
    "BusinessRuleDefinition",
    "StoredBusinessRule",
    "definition_to_bytes",
    "definition_from_bytes",
    "parse_definition",
    # lifecycle_models
    "LifecycleStatus",
    "LifecycleResult",
    "DeleteResult",
]
