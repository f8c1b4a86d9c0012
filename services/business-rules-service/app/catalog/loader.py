# services/business-rules-service/app/catalog/loader.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator
from pydantic import ValidationError

from app.catalog.catalog import TemplateCatalog
from app.models import TemplateGroup

logger = logging.getLogger("app.catalog.loader")

RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"
DEFAULT_TEMPLATES_DIR = RESOURCES_DIR / "template_groups"
SCHEMA_PATH = RESOURCES_DIR / "schemas" / "template_group.schema.json"


def _load_schema(path: Path = SCHEMA_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class TemplateCatalogLoader:
    """
    Builds the TemplateCatalog from a directory of template-group JSON documents.

    Every document is validated against the required-field schema before it is
    parsed. A broken document is logged and skipped so that one bad file does
    not hide the rest of the catalog.
    """

    def __init__(self, directory: Optional[str | Path] = None, *, schema: Optional[Dict[str, Any]] = None) -> None:
        self.directory = Path(directory) if directory else DEFAULT_TEMPLATES_DIR
        self._validator = Draft202012Validator(schema or _load_schema())

    def validation_errors(self, document: Any) -> List[str]:
        return [
            f"{err.message} at path: {'/'.join(map(str, err.path)) or '<root>'}"
            for err in sorted(self._validator.iter_errors(document), key=str)
        ]

    def load_file(self, path: Path) -> Optional[TemplateGroup]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Cannot read template group file %s: %s", path.name, e)
            return None

        errors = self.validation_errors(document)
        if errors:
            logger.error("Invalid template group file %s: %s", path.name, "; ".join(errors))
            return None

        try:
            return TemplateGroup.model_validate(document)
        except ValidationError as e:
            logger.error("Invalid template group file %s: %s", path.name, e)
            return None

    def load(self) -> TemplateCatalog:
        if not self.directory.is_dir():
            logger.warning("Templates directory %s not found; catalog is empty", self.directory)
            return TemplateCatalog()

        groups: Dict[str, TemplateGroup] = {}
        for path in sorted(self.directory.glob("*.json")):
            group = self.load_file(path)
            if group is None:
                continue
            if group.id in groups:
                logger.error("Duplicate template group id '%s' in %s; keeping the first one", group.id, path.name)
                continue
            groups[group.id] = group

        logger.info("Template catalog loaded: %d group(s) from %s", len(groups), self.directory)
        return TemplateCatalog(groups.values())
