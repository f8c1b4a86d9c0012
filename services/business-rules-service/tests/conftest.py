# services/business-rules-service/tests/conftest.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

import pytest

from app.catalog.catalog import TemplateCatalog
from app.core.composer import CompositeSkeletonProvider, ScratchArtifactComposer
from app.core.script_runner import MiniRacerScriptRunner
from app.errors import BusinessRuleExistsError, DeployError, PersistenceError
from app.models import TemplateGroup
from app.services.business_rules_service import BusinessRulesService


# ─────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────

class FakeScriptRunner:
    """Echoes the bindings back plus fixed `outputs`; records every call."""

    def __init__(self, outputs: Optional[Mapping[str, str]] = None, error: Optional[Exception] = None) -> None:
        self.outputs = dict(outputs or {})
        self.error = error
        self.calls: List[Tuple[str, Dict[str, str]]] = []

    def evaluate(self, script: str, bindings: Mapping[str, str]) -> Dict[str, str]:
        self.calls.append((script, dict(bindings)))
        if self.error is not None:
            raise self.error
        return {**bindings, **self.outputs}


class FakeStore:
    def __init__(self) -> None:
        self.rows: Dict[str, Tuple[bytes, bool]] = {}
        self.recorded: Dict[str, List[str]] = {}
        self.down = False

    def _check(self) -> None:
        if self.down:
            raise PersistenceError("store is down")

    async def retrieve_all(self) -> List[Tuple[str, bytes]]:
        self._check()
        return [(rule_id, row[0]) for rule_id, row in sorted(self.rows.items())]

    async def get(self, rule_id: str) -> Optional[Tuple[bytes, bool]]:
        self._check()
        return self.rows.get(rule_id)

    async def artifacts(self, rule_id: str) -> List[str]:
        self._check()
        return list(self.recorded.get(rule_id, []))

    async def insert(self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()) -> None:
        self._check()
        if rule_id in self.rows:
            raise BusinessRuleExistsError(rule_id)
        self.rows[rule_id] = (definition, deployed)
        self.recorded[rule_id] = list(artifacts)

    async def update(self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()) -> bool:
        self._check()
        if rule_id not in self.rows:
            return False
        self.rows[rule_id] = (definition, deployed)
        self.recorded[rule_id] = list(artifacts)
        return True

    async def delete(self, rule_id: str) -> bool:
        self._check()
        self.recorded.pop(rule_id, None)
        return self.rows.pop(rule_id, None) is not None


class FakeEngine:
    """
    In-memory Siddhi engine. Names in `reject` fail deploy, names in
    `refuse` make update/delete answer False, names in `broken` raise.
    """

    def __init__(self) -> None:
        self.apps: Dict[str, str] = {}
        self.reject: Set[str] = set()
        self.refuse: Set[str] = set()
        self.broken: Set[str] = set()
        self.calls: List[Tuple[str, str]] = []

    async def deploy(self, name: str, content: str) -> None:
        self.calls.append(("deploy", name))
        if name in self.reject:
            raise DeployError(f"rejected {name}", app_name=name, status=400)
        self.apps[name] = content

    async def update(self, name: str, content: str) -> bool:
        self.calls.append(("update", name))
        if name in self.broken:
            raise ConnectionError(f"engine unreachable for {name}")
        if name in self.refuse:
            return False
        self.apps[name] = content
        return True

    async def delete(self, name: str) -> bool:
        self.calls.append(("delete", name))
        if name in self.broken:
            raise ConnectionError(f"engine unreachable for {name}")
        if name in self.refuse:
            return False
        self.apps.pop(name, None)
        return True


# ─────────────────────────────────────────────────────────────
# Catalog
# ─────────────────────────────────────────────────────────────

RETAIL_GROUP = {
    "id": "retail",
    "name": "Retail",
    "ruleTemplates": [
        {
            "id": "two-apps",
            "name": "Two apps",
            "type": "template",
            "script": "var target = '${x}' + 'Alerts';",
            "templates": [
                {"type": "templated-app", "content": "@App:name('A')\nfrom S[v > ${x}] select v insert into ${target};"},
                {"type": "templated-app", "content": "@App:name('B')\ndefine stream ${target} (v int);"},
            ],
            "properties": {"x": {"fieldName": "Threshold", "defaultValue": "10"}},
        },
        {
            "id": "plain",
            "name": "Plain",
            "type": "template",
            "templates": [{"type": "templated-app", "content": "select ${input1} as a insert into ${x}"}],
        },
        {
            "id": "suffixed",
            "name": "Suffixed output",
            "type": "template",
            "script": "var x = input1 + \"_ok\";",
            "templates": [{"type": "templated-app", "content": "select ${input1} as a insert into ${x}"}],
        },
        {
            "id": "sensor-input",
            "name": "Sensor input",
            "type": "input",
            "templates": [
                {
                    "type": "input",
                    "content": "@App:name('In')\n@source(type='http', receiver.url='${url}')\ndefine stream InStream (v int);",
                    "exposedStreamDefinition": "define stream InStream (v int);",
                }
            ],
        },
        {
            "id": "log-output",
            "name": "Log output",
            "type": "output",
            "templates": [
                {
                    "type": "output",
                    "content": "@App:name('Out')\n@sink(type='log', prefix='${prefix}')\ndefine stream OutStream (v int);",
                    "exposedStreamDefinition": "define stream OutStream (v int);",
                }
            ],
        },
        {
            "id": "double-input",
            "name": "Ambiguous input",
            "type": "input",
            "templates": [
                {"type": "input", "content": "define stream A (v int);", "exposedStreamDefinition": "define stream A (v int);"},
                {"type": "input", "content": "define stream B (v int);", "exposedStreamDefinition": "define stream B (v int);"},
            ],
        },
    ],
}


@pytest.fixture
def catalog() -> TemplateCatalog:
    return TemplateCatalog([TemplateGroup.model_validate(RETAIL_GROUP)])


@pytest.fixture
def scripts() -> FakeScriptRunner:
    return FakeScriptRunner(outputs={"target": "Alerts"})


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def composer() -> ScratchArtifactComposer:
    return ScratchArtifactComposer(CompositeSkeletonProvider())


@pytest.fixture
def service(catalog, store, engine, composer, scripts) -> BusinessRulesService:
    return BusinessRulesService(
        catalog=catalog,
        store=store,
        engine=engine,
        composer=composer,
        scripts=scripts,
    )


@pytest.fixture
def v8_service(catalog, store, engine, composer) -> BusinessRulesService:
    """Same wiring with the embedded V8 runtime instead of the echoing fake."""
    return BusinessRulesService(
        catalog=catalog,
        store=store,
        engine=engine,
        composer=composer,
        scripts=MiniRacerScriptRunner(timeout_ms=2000),
    )


def template_rule(rule_id: str = "r1", rule_template_id: str = "two-apps", **properties: str) -> Dict:
    return {
        "type": "template",
        "id": rule_id,
        "name": f"rule {rule_id}",
        "templateGroupId": "retail",
        "ruleTemplateId": rule_template_id,
        "properties": properties or {"x": "10"},
    }


def scratch_rule(rule_id: str = "s1", input_rule_template_id: str = "sensor-input") -> Dict:
    return {
        "type": "scratch",
        "id": rule_id,
        "name": f"rule {rule_id}",
        "templateGroupId": "retail",
        "inputRuleTemplateId": input_rule_template_id,
        "outputRuleTemplateId": "log-output",
        "properties": {
            "inputData": {"url": "http://0.0.0.0:8280/in"},
            "outputData": {"prefix": "SENSOR"},
            "ruleComponents": {"filterRules": ["v > 10", "v < 50"], "ruleLogic": ["${1} and ${2}"]},
            "outputMappings": {"value": "v"},
        },
    }
