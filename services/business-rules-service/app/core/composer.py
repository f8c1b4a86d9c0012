# services/business-rules-service/app/core/composer.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from app.core.placeholders import substitute, substitute_positional, unresolved_markers
from app.core.siddhi_text import stream_name
from app.errors import CompositionError, SkeletonLoadError
from app.models import Artifact, TemplateType

logger = logging.getLogger("app.core.composer")

DEFAULT_SKELETON_PATH = Path(__file__).resolve().parent.parent / "resources" / "composite_app.siddhi"

SKELETON_MARKERS = (
    "inputTemplate",
    "outputTemplate",
    "inputStreamName",
    "logic",
    "mapping",
    "outputStreamName",
)
# Literal token the skeleton carries in its @App:name annotation
APP_NAME_TOKEN = "appName"

FILTER_RULES = "filterRules"
RULE_LOGIC = "ruleLogic"


class CompositeSkeletonProvider:
    """Loads the fixed skeleton every from-scratch Siddhi app is built from."""

    def __init__(self, path: Optional[str | Path] = None) -> None:
        self.path = Path(path) if path else DEFAULT_SKELETON_PATH

    def load(self) -> str:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SkeletonLoadError(f"Cannot read composite app skeleton {self.path}: {e}") from e

        missing = [m for m in SKELETON_MARKERS if m not in unresolved_markers(text)]
        if missing:
            raise SkeletonLoadError(f"Composite app skeleton {self.path} lacks marker(s): {', '.join(missing)}")
        if APP_NAME_TOKEN not in text:
            raise SkeletonLoadError(f"Composite app skeleton {self.path} lacks the '{APP_NAME_TOKEN}' token")
        return text


def build_rule_logic(rule_components: Mapping[str, Sequence[str]]) -> str:
    """First ruleLogic fragment with the filter rules placed into ${1}..${n}."""
    logic_fragments = list(rule_components.get(RULE_LOGIC) or [])
    if not logic_fragments:
        raise CompositionError(f"Rule components carry no '{RULE_LOGIC}' fragment")
    filter_rules = list(rule_components.get(FILTER_RULES) or [])
    return substitute_positional(logic_fragments[0], filter_rules)


def build_output_mapping(output_mappings: Mapping[str, str]) -> str:
    """'<source> as <field>' pairs in insertion order."""
    return ", ".join(f"{source} as {field}" for field, source in output_mappings.items())


class ScratchArtifactComposer:
    def __init__(self, skeletons: CompositeSkeletonProvider) -> None:
        self.skeletons = skeletons

    def build_composite(
        self,
        input_artifact: Artifact,
        output_artifact: Artifact,
        rule_components: Mapping[str, List[str]],
        output_mappings: Mapping[str, str],
        rule_id: str,
    ) -> Artifact:
        """
        Merge derived input/output apps and the user's filter/mapping fragments
        into one deployable app named `rule_id`.
        """
        skeleton = self.skeletons.load()

        replacements: Dict[str, str] = {
            "inputTemplate": input_artifact.content,
            "outputTemplate": output_artifact.content,
            "inputStreamName": stream_name(input_artifact.exposed_stream_definition),
            "logic": build_rule_logic(rule_components),
            "mapping": build_output_mapping(output_mappings),
            "outputStreamName": stream_name(output_artifact.exposed_stream_definition),
        }
        content = substitute(skeleton, replacements)
        # The skeleton's token precedes every marker, so the first hit is the skeleton's own
        content = content.replace(APP_NAME_TOKEN, rule_id, 1)

        logger.debug(
            "Composite app %s built (input=%s, output=%s)",
            rule_id, replacements["inputStreamName"], replacements["outputStreamName"],
        )
        return Artifact(type=TemplateType.TEMPLATED_APP, content=content)
