# services/business-rules-service/app/errors.py
from __future__ import annotations

from typing import List, Optional, Sequence


class BusinessRulesError(RuntimeError):
    """Base class for every error raised by the business rules core."""


# ─────────────────────────────────────────────────────────────
# Catalog / derivation
# ─────────────────────────────────────────────────────────────

class TemplateNotFoundError(BusinessRulesError):
    def __init__(self, *, template_group_id: str, rule_template_id: Optional[str] = None) -> None:
        if rule_template_id is None:
            msg = f"No template group found with id '{template_group_id}'"
        else:
            msg = f"No rule template '{rule_template_id}' found in template group '{template_group_id}'"
        super().__init__(msg)
        self.template_group_id = template_group_id
        self.rule_template_id = rule_template_id


class RoleCardinalityError(BusinessRulesError):
    def __init__(self, *, rule_template_id: str, role: str, count: int) -> None:
        super().__init__(
            f"Rule template '{rule_template_id}' must expose exactly one '{role}' template, found {count}"
        )
        self.rule_template_id = rule_template_id
        self.role = role
        self.count = count


class ScriptExecutionError(BusinessRulesError):
    pass


class SubstitutionError(BusinessRulesError):
    def __init__(self, message: str, *, markers: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.markers: List[str] = list(markers)


class SkeletonLoadError(BusinessRulesError):
    pass


class CompositionError(BusinessRulesError):
    pass


# ─────────────────────────────────────────────────────────────
# Remote execution engine
# ─────────────────────────────────────────────────────────────

class EngineCallError(BusinessRulesError):
    def __init__(self, message: str, *, app_name: str, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.app_name = app_name
        self.status = status
        self.body = body


class DeployError(EngineCallError):
    pass


class UpdateError(EngineCallError):
    pass


class UndeployRequestError(EngineCallError):
    """The engine could not be reached to undeploy one app."""


class UndeployError(BusinessRulesError):
    """Raised when one or more artifacts of a business rule could not be undeployed."""

    def __init__(self, *, rule_id: str, failed: Sequence[str]) -> None:
        super().__init__(
            f"Failed to undeploy {len(failed)} artifact(s) of business rule '{rule_id}': {', '.join(failed)}"
        )
        self.rule_id = rule_id
        self.failed: List[str] = list(failed)


# ─────────────────────────────────────────────────────────────
# Persistence / lifecycle
# ─────────────────────────────────────────────────────────────

class PersistenceError(BusinessRulesError):
    pass


class BusinessRuleNotFoundError(BusinessRulesError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"No business rule found with id '{rule_id}'")
        self.rule_id = rule_id


class BusinessRuleExistsError(BusinessRulesError):
    def __init__(self, rule_id: str) -> None:
        super().__init__(f"A business rule with id '{rule_id}' already exists")
        self.rule_id = rule_id


class RuleTypeChangeError(BusinessRulesError):
    def __init__(self, *, rule_id: str, stored_type: str, new_type: str) -> None:
        super().__init__(
            f"Business rule '{rule_id}' is of type '{stored_type}' and cannot be edited into type '{new_type}'"
        )
        self.rule_id = rule_id
        self.stored_type = stored_type
        self.new_type = new_type
