# services/business-rules-service/app/models/lifecycle_models.py
from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LifecycleStatus(str, Enum):
    DERIVED = "derived"
    DEPLOYED = "deployed"
    PERSISTED = "persisted"
    FAILED = "failed"


class _ResultModel(BaseModel):
    # Served as camelCase like every other payload
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LifecycleResult(_ResultModel):
    """
    Outcome of create/edit. `status` is the last state reached; a persisted
    rule whose artifacts did not all deploy carries deployed=False.
    """
    rule_id: str
    status: LifecycleStatus
    deployed: bool = False
    artifacts: List[str] = Field(default_factory=list, description="Artifact names derived for the rule")
    failed_artifacts: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class DeleteResult(_ResultModel):
    rule_id: str
    deleted: bool = True
    undeployed: List[str] = Field(default_factory=list)
