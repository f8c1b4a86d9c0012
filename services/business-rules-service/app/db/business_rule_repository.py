# services/business-rules-service/app/db/business_rule_repository.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.errors import BusinessRuleExistsError, PersistenceError

logger = logging.getLogger("app.db.business_rules")

COLLECTION_NAME = "business_rules"


class BusinessRuleStore(Protocol):
    """
    Persistence of serialized business rule definitions plus their
    deployment flag and the engine-side names of their artifacts.
    Implementations raise PersistenceError on driver failure.
    """

    async def retrieve_all(self) -> List[Tuple[str, bytes]]: ...

    async def get(self, rule_id: str) -> Optional[Tuple[bytes, bool]]: ...

    async def artifacts(self, rule_id: str) -> List[str]: ...

    async def insert(
        self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()
    ) -> None: ...

    async def update(
        self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()
    ) -> bool: ...

    async def delete(self, rule_id: str) -> bool: ...


class BusinessRuleRepository:
    """
    DAL for the 'business_rules' collection.
    - One document per business rule: serialized definition bytes + deployed flag
      + artifact names last sent to the engine.
    - The definition is opaque here; (de)serialization lives in app.models.
    """

    def __init__(self, client: AsyncIOMotorClient, db_name: str, collection: str = COLLECTION_NAME) -> None:
        self._db = client[db_name]
        self._col: AsyncIOMotorCollection = self._db[collection]

    # ---------- bootstrap ---------- #

    async def ensure_indexes(self) -> None:
        try:
            await self._col.create_index([("rule_id", ASCENDING)], name="uk_rule_id", unique=True)
            await self._col.create_index([("deployed", ASCENDING)], name="ix_deployed")
        except PyMongoError as e:
            raise PersistenceError(f"Cannot ensure business rule indexes: {e}") from e

    # ---------- reads ---------- #

    async def retrieve_all(self) -> List[Tuple[str, bytes]]:
        try:
            cursor = self._col.find({}, {"rule_id": 1, "definition": 1, "_id": 0}).sort("rule_id", ASCENDING)
            return [(d["rule_id"], bytes(d["definition"])) async for d in cursor]
        except PyMongoError as e:
            raise PersistenceError(f"Cannot read business rules: {e}") from e

    async def get(self, rule_id: str) -> Optional[Tuple[bytes, bool]]:
        try:
            doc = await self._col.find_one({"rule_id": rule_id})
        except PyMongoError as e:
            raise PersistenceError(f"Cannot read business rule '{rule_id}': {e}") from e
        if not doc:
            return None
        return bytes(doc["definition"]), bool(doc.get("deployed", False))

    async def artifacts(self, rule_id: str) -> List[str]:
        try:
            doc = await self._col.find_one({"rule_id": rule_id}, {"artifacts": 1, "_id": 0})
        except PyMongoError as e:
            raise PersistenceError(f"Cannot read artifacts of business rule '{rule_id}': {e}") from e
        return list((doc or {}).get("artifacts") or [])

    # ---------- writes ---------- #

    async def insert(
        self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()
    ) -> None:
        now = datetime.now(timezone.utc)
        doc = {
            "rule_id": rule_id,
            "definition": definition,
            "deployed": deployed,
            "artifacts": list(artifacts),
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self._col.insert_one(doc)
        except DuplicateKeyError as e:
            raise BusinessRuleExistsError(rule_id) from e
        except PyMongoError as e:
            raise PersistenceError(f"Cannot save business rule '{rule_id}': {e}") from e
        logger.info("Business rule saved: %s (deployed=%s)", rule_id, deployed)

    async def update(
        self, rule_id: str, definition: bytes, deployed: bool, *, artifacts: Sequence[str] = ()
    ) -> bool:
        try:
            res = await self._col.update_one(
                {"rule_id": rule_id},
                {
                    "$set": {
                        "definition": definition,
                        "deployed": deployed,
                        "artifacts": list(artifacts),
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
            )
        except PyMongoError as e:
            raise PersistenceError(f"Cannot overwrite business rule '{rule_id}': {e}") from e
        logger.info("Business rule overwritten: %s (deployed=%s)", rule_id, deployed)
        return res.matched_count == 1

    async def delete(self, rule_id: str) -> bool:
        try:
            res = await self._col.delete_one({"rule_id": rule_id})
        except PyMongoError as e:
            raise PersistenceError(f"Cannot delete business rule '{rule_id}': {e}") from e
        logger.info("Business rule removed: %s", rule_id)
        return res.deleted_count == 1
