# services/business-rules-service/app/core/deriver.py
from __future__ import annotations

import logging
from typing import Dict, Mapping

from app.catalog.catalog import TemplateCatalog
from app.core.placeholders import substitute, unresolved_markers
from app.core.script_runner import ScriptRunner, generate_variables
from app.core.siddhi_text import rename_app, strip_app_name
from app.errors import RoleCardinalityError, SubstitutionError
from app.models import (
    Artifact,
    BusinessRuleFromScratch,
    BusinessRuleFromTemplate,
    RuleTemplate,
    Template,
    TemplateType,
)

logger = logging.getLogger("app.core.deriver")

INPUT_ARTIFACT = "inputArtifact"
OUTPUT_ARTIFACT = "outputArtifact"


def artifact_name(rule_id: str, index: int) -> str:
    """Engine-side name of the index-th app of a from-template rule."""
    return f"{rule_id}_{index}"


class ArtifactDeriver:
    """
    Turns business rule definitions into Siddhi app artifacts by resolving
    their rule templates, running the templates' scripts and substituting
    user + script values into the template text.
    """

    def __init__(self, catalog: TemplateCatalog, scripts: ScriptRunner, *, strict_placeholders: bool = False) -> None:
        self.catalog = catalog
        self.scripts = scripts
        self.strict_placeholders = strict_placeholders

    # ─────────────────────────────────────────────────────────────
    # Shared steps
    # ─────────────────────────────────────────────────────────────
    def _values_for(self, rule_template: RuleTemplate, user_values: Mapping[str, str]) -> Dict[str, str]:
        """
        User values merged with whatever the rule template's script assigns;
        script values win on collisions.
        """
        runnable_script = substitute(rule_template.script, user_values)
        generated = generate_variables(runnable_script, user_values, self.scripts)
        return {**user_values, **generated}

    def _fill(self, text: str, values: Mapping[str, str], *, where: str) -> str:
        filled = substitute(text, values, strict=self.strict_placeholders)
        leftovers = unresolved_markers(filled)
        if leftovers:
            logger.warning("Unresolved placeholder(s) left in %s: %s", where, ", ".join(leftovers))
        return filled

    # ─────────────────────────────────────────────────────────────
    # From template
    # ─────────────────────────────────────────────────────────────
    def derive_from_template(self, definition: BusinessRuleFromTemplate) -> Dict[str, Artifact]:
        """
        One artifact per templated-app template, keyed '<rule id>_<index>'.

        A template that fails to derive is logged and skipped; indices count
        successful templates only.
        """
        rule_template = self.catalog.get_rule_template(definition.template_group_id, definition.rule_template_id)
        values = self._values_for(rule_template, definition.properties)

        derived: Dict[str, Artifact] = {}
        for position, template in enumerate(rule_template.templates):
            if template.type != TemplateType.TEMPLATED_APP:
                continue
            name = artifact_name(definition.id, len(derived))
            try:
                content = self._fill(template.content, values, where=f"template #{position} of {rule_template.id}")
                content = rename_app(content, name)
            except SubstitutionError:
                logger.exception(
                    "Skipping template #%d of rule template '%s' for business rule '%s'",
                    position, rule_template.id, definition.id,
                )
                continue
            derived[name] = Artifact(type=TemplateType.TEMPLATED_APP, content=content)

        logger.info(
            "Derived %d artifact(s) for business rule '%s' from rule template '%s'",
            len(derived), definition.id, rule_template.id,
        )
        return derived

    # ─────────────────────────────────────────────────────────────
    # From scratch
    # ─────────────────────────────────────────────────────────────
    @staticmethod
    def role_template(rule_template: RuleTemplate, role: TemplateType) -> Template:
        candidates = rule_template.templates_of(role)
        if len(candidates) != 1:
            raise RoleCardinalityError(rule_template_id=rule_template.id, role=role.value, count=len(candidates))
        return candidates[0]

    def _derive_role(
        self,
        rule_template: RuleTemplate,
        role: TemplateType,
        user_values: Mapping[str, str],
    ) -> Artifact:
        template = self.role_template(rule_template, role)
        values = self._values_for(rule_template, user_values)
        content = self._fill(strip_app_name(template.content), values, where=f"{role.value} template of {rule_template.id}")
        return Artifact(
            type=role,
            content=content,
            exposed_stream_definition=template.exposed_stream_definition,
        )

    def derive_from_scratch(self, definition: BusinessRuleFromScratch) -> Dict[str, Artifact]:
        """
        The input and output halves of a from-scratch rule. Both are required:
        any failure aborts the whole derivation.
        """
        group_id = definition.template_group_id
        input_rt = self.catalog.get_rule_template(group_id, definition.input_rule_template_id)
        output_rt = self.catalog.get_rule_template(group_id, definition.output_rule_template_id)

        # cardinality of both roles is checked before any script runs
        self.role_template(input_rt, TemplateType.INPUT)
        self.role_template(output_rt, TemplateType.OUTPUT)

        props = definition.properties
        derived = {
            INPUT_ARTIFACT: self._derive_role(input_rt, TemplateType.INPUT, props.input_data),
            OUTPUT_ARTIFACT: self._derive_role(output_rt, TemplateType.OUTPUT, props.output_data),
        }
        logger.info(
            "Derived input/output artifacts for business rule '%s' (input=%s, output=%s)",
            definition.id, input_rt.id, output_rt.id,
        )
        return derived
