# services/business-rules-service/app/services/business_rules_service.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Dict, List

from pydantic import ValidationError
from typing_extensions import assert_never

from app.catalog.catalog import TemplateCatalog
from app.clients.siddhi_engine import RemoteExecutionClient
from app.core.composer import ScratchArtifactComposer
from app.core.deriver import INPUT_ARTIFACT, OUTPUT_ARTIFACT, ArtifactDeriver, artifact_name
from app.core.script_runner import ScriptRunner
from app.db.business_rule_repository import BusinessRuleStore
from app.errors import (
    BusinessRuleExistsError,
    BusinessRuleNotFoundError,
    PersistenceError,
    RuleTypeChangeError,
    TemplateNotFoundError,
    UndeployError,
)
from app.models import (
    Artifact,
    BusinessRuleDefinition,
    BusinessRuleFromScratch,
    BusinessRuleFromTemplate,
    DeleteResult,
    LifecycleResult,
    LifecycleStatus,
    RuleTemplate,
    StoredBusinessRule,
    TemplateGroup,
    TemplateType,
    definition_from_bytes,
    definition_to_bytes,
)

logger = logging.getLogger("app.services.business_rules")


class BusinessRulesService:
    """
    Business rule lifecycle: derive -> deploy -> persist, edit -> re-derive ->
    update -> overwrite, and delete -> undeploy -> remove.

    create/edit are fail-open: derivation or deploy problems leave the rule
    persisted with deployed=False. delete is fail-closed: the record is only
    removed once every artifact is gone from the engine.

    Engine-side names: '<id>_<index>' for from-template rules, '<id>' for
    from-scratch rules. They are recorded with the rule and are the only
    handle for later update/undeploy.
    """

    def __init__(
        self,
        *,
        catalog: TemplateCatalog,
        store: BusinessRuleStore,
        engine: RemoteExecutionClient,
        composer: ScratchArtifactComposer,
        scripts: ScriptRunner,
        strict_placeholders: bool = False,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.engine = engine
        self.composer = composer
        self.deriver = ArtifactDeriver(catalog, scripts, strict_placeholders=strict_placeholders)

    # ─────────────────────────────────────────────────────────────
    # Catalog
    # ─────────────────────────────────────────────────────────────
    def list_template_groups(self) -> List[TemplateGroup]:
        return self.catalog.list_groups()

    def get_template_group(self, group_id: str) -> TemplateGroup:
        return self.catalog.get_group(group_id)

    def get_rule_template(self, group_id: str, rule_template_id: str) -> RuleTemplate:
        return self.catalog.get_rule_template(group_id, rule_template_id)

    # ─────────────────────────────────────────────────────────────
    # Derivation
    # ─────────────────────────────────────────────────────────────
    def derive(self, definition: BusinessRuleDefinition) -> Dict[str, Artifact]:
        """Final deployable artifacts of a definition, keyed by engine-side name."""
        if definition.type == "template":
            return self.deriver.derive_from_template(definition)
        elif definition.type == "scratch":
            parts = self.deriver.derive_from_scratch(definition)
            composite = self.composer.build_composite(
                parts[INPUT_ARTIFACT],
                parts[OUTPUT_ARTIFACT],
                definition.properties.rule_components,
                definition.properties.output_mappings,
                definition.id,
            )
            return {definition.id: composite}
        else:
            assert_never(definition)

    def deployed_names(self, definition: BusinessRuleDefinition) -> List[str]:
        """Every engine-side name the definition may occupy."""
        if definition.type == "template":
            rule_template = self.catalog.get_rule_template(definition.template_group_id, definition.rule_template_id)
            count = len(rule_template.templates_of(TemplateType.TEMPLATED_APP))
            return [artifact_name(definition.id, i) for i in range(count)]
        elif definition.type == "scratch":
            return [definition.id]
        else:
            assert_never(definition)

    async def _derive_or_nothing(self, definition: BusinessRuleDefinition, result: LifecycleResult) -> Dict[str, Artifact]:
        # script evaluation is blocking V8 work; keep it off the event loop
        try:
            artifacts = await asyncio.to_thread(self.derive, definition)
        except Exception as e:
            logger.exception("Error in deriving artifacts for business rule '%s'", definition.id)
            result.errors.append(str(e))
            return {}
        result.artifacts = list(artifacts)
        if artifacts:
            result.status = LifecycleStatus.DERIVED
        return artifacts

    # ─────────────────────────────────────────────────────────────
    # Engine fan-out
    # ─────────────────────────────────────────────────────────────
    @staticmethod
    async def _settle(calls: Dict[str, Awaitable[Any]], *, action: str, result: LifecycleResult | None = None) -> List[str]:
        """
        Await independent engine calls concurrently. Returns the names whose
        call raised or answered False; the others are left alone.
        """
        names = list(calls)
        outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)
        failed: List[str] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
                raise outcome
            if isinstance(outcome, Exception):
                logger.error("Failed to %s Siddhi app %s: %s", action, name, outcome)
                failed.append(name)
                if result is not None:
                    result.errors.append(str(outcome))
            elif outcome is False:
                logger.error("Engine refused to %s Siddhi app %s", action, name)
                failed.append(name)
                if result is not None:
                    result.errors.append(f"Engine refused to {action} {name}")
        return failed

    # ─────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────
    async def create(self, definition: BusinessRuleDefinition) -> LifecycleResult:
        """
        Derive, deploy every artifact, then persist the definition with the
        resulting deployment flag whatever the deploy outcome was.
        """
        if await self.store.get(definition.id) is not None:
            raise BusinessRuleExistsError(definition.id)

        result = LifecycleResult(rule_id=definition.id, status=LifecycleStatus.FAILED)
        artifacts = await self._derive_or_nothing(definition, result)

        failed = await self._settle(
            {name: self.engine.deploy(name, a.content) for name, a in artifacts.items()},
            action="deploy",
            result=result,
        )
        result.failed_artifacts = failed
        result.deployed = bool(artifacts) and not failed
        if result.deployed:
            result.status = LifecycleStatus.DEPLOYED

        await self.store.insert(
            definition.id, definition_to_bytes(definition), result.deployed, artifacts=list(artifacts)
        )
        result.status = LifecycleStatus.PERSISTED

        logger.info(
            "Business rule '%s' created (type=%s, artifacts=%d, deployed=%s)",
            definition.id, definition.type, len(artifacts), result.deployed,
        )
        return result

    async def create_from_template(self, definition: BusinessRuleFromTemplate) -> LifecycleResult:
        return await self.create(definition)

    async def create_from_scratch(self, definition: BusinessRuleFromScratch) -> LifecycleResult:
        return await self.create(definition)

    # ─────────────────────────────────────────────────────────────
    # Edit
    # ─────────────────────────────────────────────────────────────
    async def edit(self, rule_id: str, definition: BusinessRuleDefinition) -> LifecycleResult:
        """
        Re-derive and update each artifact in place on the engine, then
        overwrite the stored definition with the new deployment flag.
        """
        stored = await self.find_definition(rule_id)
        definition = definition.model_copy(update={"id": rule_id})
        if stored.definition.type != definition.type:
            raise RuleTypeChangeError(rule_id=rule_id, stored_type=stored.definition.type, new_type=definition.type)

        previous_names = await self._known_names(rule_id, stored.definition)
        result = LifecycleResult(rule_id=rule_id, status=LifecycleStatus.FAILED)
        artifacts = await self._derive_or_nothing(definition, result)

        failed = await self._settle(
            {name: self.engine.update(name, a.content) for name, a in artifacts.items()},
            action="update",
            result=result,
        )
        result.failed_artifacts = failed
        result.deployed = bool(artifacts) and not failed
        stale = [name for name in previous_names if name not in artifacts]
        if result.deployed:
            result.status = LifecycleStatus.DEPLOYED
            stale = await self._retire_stale(rule_id, stale)

        # apps that may still run stay recorded so that delete can find them
        recorded = list(dict.fromkeys([*artifacts, *stale]))
        if not await self.store.update(rule_id, definition_to_bytes(definition), result.deployed, artifacts=recorded):
            raise BusinessRuleNotFoundError(rule_id)
        result.status = LifecycleStatus.PERSISTED

        logger.info(
            "Business rule '%s' edited (artifacts=%d, deployed=%s)", rule_id, len(artifacts), result.deployed
        )
        return result

    async def _retire_stale(self, rule_id: str, stale: List[str]) -> List[str]:
        """
        Undeploy names the previous definition occupied that the new one no
        longer produces (a rule template with fewer apps). Best effort:
        returns the names still left on the engine.
        """
        if not stale:
            return []
        failed = await self._settle({name: self.engine.delete(name) for name in stale}, action="undeploy")
        if failed:
            logger.warning("Stale Siddhi apps left deployed for business rule '%s': %s", rule_id, failed)
        return failed

    async def _known_names(self, rule_id: str, definition: BusinessRuleDefinition) -> List[str]:
        """
        Names the rule's rule template implies today plus the names recorded
        with the rule. Recorded names still resolve when the rule template
        has left the catalog.
        """
        names: List[str] = []
        try:
            names.extend(self.deployed_names(definition))
        except TemplateNotFoundError as e:
            logger.warning("Business rule '%s': %s; using recorded artifacts only", rule_id, e)
        names.extend(await self.store.artifacts(rule_id))
        return list(dict.fromkeys(names))

    # ─────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────
    async def delete(self, rule_id: str) -> DeleteResult:
        """
        Undeploy every artifact of the rule, then remove its definition.
        If any undeploy fails the definition is kept and UndeployError raised.
        """
        stored = await self.find_definition(rule_id)
        names = await self._known_names(rule_id, stored.definition)

        failed = await self._settle({name: self.engine.delete(name) for name in names}, action="undeploy")
        if failed:
            logger.error(
                "Failed to undeploy all the artifacts. Unable to delete the business rule definition of '%s'",
                rule_id,
            )
            raise UndeployError(rule_id=rule_id, failed=failed)

        if not await self.store.delete(rule_id):
            raise BusinessRuleNotFoundError(rule_id)
        logger.info("Business rule '%s' deleted (undeployed=%s)", rule_id, names)
        return DeleteResult(rule_id=rule_id, undeployed=names)

    # ─────────────────────────────────────────────────────────────
    # Reads (straight from the store, no cached copy)
    # ─────────────────────────────────────────────────────────────
    async def find_definition(self, rule_id: str) -> StoredBusinessRule:
        row = await self.store.get(rule_id)
        if row is None:
            raise BusinessRuleNotFoundError(rule_id)
        raw, deployed = row
        try:
            definition = definition_from_bytes(raw)
        except ValidationError as e:
            raise PersistenceError(f"Stored business rule '{rule_id}' is not a valid definition: {e}") from e
        return StoredBusinessRule(definition=definition, deployed=deployed)

    async def list_definitions(self) -> List[BusinessRuleDefinition]:
        definitions: List[BusinessRuleDefinition] = []
        for rule_id, raw in await self.store.retrieve_all():
            try:
                definitions.append(definition_from_bytes(raw))
            except ValidationError:
                logger.error("Skipping unreadable business rule record '%s'", rule_id, exc_info=True)
        return definitions
