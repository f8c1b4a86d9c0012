# services/business-rules-service/app/catalog/catalog.py
from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, List, Mapping

from app.errors import TemplateNotFoundError
from app.models import RuleTemplate, TemplateGroup


class TemplateCatalog:
    """
    Read-only directory of template groups, keyed by group id.
    Built once by the loader and shared across requests without locking.
    """

    def __init__(self, groups: Iterable[TemplateGroup] = ()) -> None:
        self._groups: Mapping[str, TemplateGroup] = MappingProxyType({g.id: g for g in groups})

    def __len__(self) -> int:
        return len(self._groups)

    @property
    def groups(self) -> Mapping[str, TemplateGroup]:
        return self._groups

    def list_groups(self) -> List[TemplateGroup]:
        return sorted(self._groups.values(), key=lambda g: g.id)

    def get_group(self, group_id: str) -> TemplateGroup:
        group = self._groups.get(group_id)
        if group is None:
            raise TemplateNotFoundError(template_group_id=group_id)
        return group

    def get_rule_template(self, group_id: str, rule_template_id: str) -> RuleTemplate:
        rule_template = self.get_group(group_id).find_rule_template(rule_template_id)
        if rule_template is None:
            raise TemplateNotFoundError(template_group_id=group_id, rule_template_id=rule_template_id)
        return rule_template
