"""
MongoDB access for the inventory API.

``get_database`` opens the client once per process; ``MongoRepository``
wraps a single collection behind the handful of operations the services
need.  Documents leave the repository with ``_id`` replaced by a string
``id``, and ``createdAt``/``updatedAt`` are maintained here on every
insert and update.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import settings
from errors import DuplicateKeyConflict, StoreError
from filters import Filter

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None


def get_database() -> Database:
    global _client
    if _client is None:
        _client = MongoClient(
            settings.database_url,
            tz_aware=True,
            serverSelectionTimeoutMS=settings.db_timeout_ms,
        )
        logger.info("MongoDB client created for database '%s'", settings.database_name)
    return _client[settings.database_name]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_record(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def oid(id_str: str) -> Optional[ObjectId]:
    if not ObjectId.is_valid(id_str):
        return None
    return ObjectId(id_str)


class MongoRepository:
    """One MongoDB collection exposed through the repository interface."""

    def __init__(self, collection: Collection, indexes: Sequence[Tuple[Sequence[str], bool]] = ()):
        self.collection = collection
        self.indexes = indexes

    def ping(self) -> bool:
        try:
            self.collection.database.client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    def ensure_indexes(self) -> None:
        """Create the configured indexes.

        A unique index that cannot be built raises ``StoreError``: without it
        duplicate ``gstin``/``dlNo`` values would be stored silently.  Other
        index failures are logged and skipped.
        """
        for fields, unique in self.indexes:
            try:
                self.collection.create_index([(f, ASCENDING) for f in fields], unique=unique)
            except PyMongoError as e:
                logger.exception("Could not create index %s on '%s'", list(fields), self.collection.name)
                if unique:
                    raise StoreError(str(e)) from e

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        now = utcnow()
        doc = dict(document)
        doc["createdAt"] = now
        doc["updatedAt"] = now
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise self._conflict(e)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        doc["_id"] = result.inserted_id
        return to_record(doc)

    def find(
        self,
        criteria: Optional[Filter] = None,
        sort: Iterable[Tuple[str, int]] = (),
        skip: int = 0,
        limit: int = 0,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        query = criteria.to_mongo() if criteria is not None else {}
        projection = {f: 1 for f in fields} if fields else None
        try:
            cursor = self.collection.find(query, projection)
            sort = list(sort)
            if sort:
                cursor = cursor.sort(sort)
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return [to_record(d) for d in cursor]
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def find_one(self, criteria: Filter) -> Optional[Dict[str, Any]]:
        try:
            return to_record(self.collection.find_one(criteria.to_mongo()))
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def count(self, criteria: Optional[Filter] = None) -> int:
        query = criteria.to_mongo() if criteria is not None else {}
        try:
            return self.collection.count_documents(query)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        pid = oid(record_id)
        if pid is None:
            return None
        try:
            return to_record(self.collection.find_one({"_id": pid}))
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def update(self, record_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pid = oid(record_id)
        if pid is None:
            return None
        update = dict(fields)
        update["updatedAt"] = utcnow()
        try:
            doc = self.collection.find_one_and_update(
                {"_id": pid}, {"$set": update}, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise self._conflict(e)
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        return to_record(doc)

    def delete(self, record_id: str) -> Optional[Dict[str, Any]]:
        pid = oid(record_id)
        if pid is None:
            return None
        try:
            return to_record(self.collection.find_one_and_delete({"_id": pid}))
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    def totals(self, sums: Dict[str, Sequence[str]]) -> Dict[str, float]:
        """Sum fields (or products of fields) over the whole collection.

        ``sums`` maps an output name to the fields multiplied together,
        e.g. ``{"value": ("mrp", "quantity")}``.  All sums are computed
        in a single ``$group`` stage.
        """
        group: Dict[str, Any] = {"_id": None}
        for name, factors in sums.items():
            if len(factors) == 1:
                group[name] = {"$sum": f"${factors[0]}"}
            else:
                group[name] = {"$sum": {"$multiply": [f"${f}" for f in factors]}}
        try:
            result = list(self.collection.aggregate([{"$group": group}]))
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if not result:
            return {name: 0 for name in sums}
        return {name: result[0].get(name) or 0 for name in sums}

    @staticmethod
    def _conflict(exc: DuplicateKeyError) -> DuplicateKeyConflict:
        details = exc.details or {}
        key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
        field = next(iter(key_pattern), "key")
        return DuplicateKeyConflict(field, str(exc))
