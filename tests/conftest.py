from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from errors import DuplicateKeyConflict
from main import create_app

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _sort_key(value):
    # Missing values sort first, as in MongoDB.
    return (value is not None, value)


class InMemoryRepository:
    """Dict-backed stand-in for ``database.MongoRepository``."""

    def __init__(self, unique_fields=()):
        self.documents: dict[str, dict] = {}
        self.unique_fields = unique_fields
        self._ticks = 0

    def _stamp(self) -> datetime:
        self._ticks += 1
        return NOW - timedelta(days=1) + timedelta(seconds=self._ticks)

    def _check_unique(self, doc: dict, exclude_id: str | None = None) -> None:
        for field in self.unique_fields:
            value = doc.get(field)
            if value is None:
                continue
            for other_id, other in self.documents.items():
                if other_id != exclude_id and other.get(field) == value:
                    raise DuplicateKeyConflict(field)

    def ping(self) -> bool:
        return True

    def ensure_indexes(self) -> None:
        pass

    def insert(self, document: dict) -> dict:
        doc = dict(document)
        self._check_unique(doc)
        stamp = self._stamp()
        doc.setdefault("createdAt", stamp)
        doc.setdefault("updatedAt", stamp)
        doc["id"] = str(ObjectId())
        self.documents[doc["id"]] = doc
        return copy.deepcopy(doc)

    def find(self, criteria=None, sort=(), skip=0, limit=0, fields=None) -> list[dict]:
        docs = [d for d in self.documents.values() if criteria is None or criteria.matches(d)]
        for field, direction in reversed(list(sort)):
            docs.sort(key=lambda d: _sort_key(d.get(field)), reverse=direction < 0)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        if fields:
            docs = [{k: v for k, v in d.items() if k in fields or k == "id"} for d in docs]
        return copy.deepcopy(docs)

    def find_one(self, criteria) -> dict | None:
        found = self.find(criteria, limit=1)
        return found[0] if found else None

    def count(self, criteria=None) -> int:
        return len(self.find(criteria))

    def get(self, record_id: str) -> dict | None:
        doc = self.documents.get(record_id)
        return copy.deepcopy(doc) if doc else None

    def update(self, record_id: str, fields: dict) -> dict | None:
        doc = self.documents.get(record_id)
        if doc is None:
            return None
        merged = {**doc, **fields}
        self._check_unique(merged, exclude_id=record_id)
        merged["updatedAt"] = self._stamp()
        self.documents[record_id] = merged
        return copy.deepcopy(merged)

    def delete(self, record_id: str) -> dict | None:
        return self.documents.pop(record_id, None)

    def totals(self, sums: dict) -> dict:
        result = {}
        for name, factors in sums.items():
            total = 0
            for doc in self.documents.values():
                product = 1
                for f in factors:
                    product *= doc.get(f) or 0
                total += product
            result[name] = total
        return result


@pytest.fixture()
def medicine_repository():
    return InMemoryRepository()


@pytest.fixture()
def customer_repository():
    return InMemoryRepository(unique_fields=("gstin", "dlNo"))


@pytest.fixture()
def app(medicine_repository, customer_repository):
    return create_app(medicine_repository, customer_repository, clock=lambda: NOW)


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def add_medicine(medicine_repository):
    """Store a medicine directly, skipping validation (for past expiry dates)."""

    def _add(name="Paracetamol", expires_in=timedelta(days=90), **fields):
        doc = {
            "name": name,
            "expiryDate": NOW + expires_in,
            "packagingType": "Tablet",
            "mrp": 10.0,
            "quantity": 20,
        }
        doc.update(fields)
        return medicine_repository.insert(doc)

    return _add


@pytest.fixture()
def medicine_payload():
    return {
        "name": "  Amoxicillin 500  ",
        "expiryDate": (NOW + timedelta(days=30)).isoformat(),
        "packagingType": "Capsule",
        "mrp": 120.5,
        "quantity": 40,
        "batchNumber": " B-1042 ",
        "manufacturer": "Cipla",
    }


@pytest.fixture()
def customer_payload():
    return {
        "name": "City Care Pharmacy",
        "address": "12 MG Road, Pune",
        "contact": "9876543210",
        "gstin": "27abcde1234f1z5",
        "dlNo": "mh-pun-20b-1234",
    }
