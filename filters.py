"""
Small filter builder used by the services.

A ``Filter`` is a conjunction of criteria.  Each criterion knows how to
render itself as a MongoDB query fragment (``to_mongo``) and how to test
a plain document dict (``matches``), so the same filter drives both the
Mongo repository and in-memory stand-ins.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""

    field: str
    text: str

    def to_mongo(self) -> Dict[str, Any]:
        return {"$regex": re.escape(self.text), "$options": "i"}

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        return self.text.lower() in str(value).lower()


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any

    def to_mongo(self) -> Any:
        return self.value

    def matches(self, value: Any) -> bool:
        return value == self.value


@dataclass(frozen=True)
class Range:
    """Bounded comparison; any bound left as ``None`` is not applied."""

    field: str
    gte: Any = None
    lte: Any = None
    lt: Any = None

    def to_mongo(self) -> Dict[str, Any]:
        query = {}
        if self.gte is not None:
            query["$gte"] = self.gte
        if self.lte is not None:
            query["$lte"] = self.lte
        if self.lt is not None:
            query["$lt"] = self.lt
        return query

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        if self.gte is not None and not value >= self.gte:
            return False
        if self.lte is not None and not value <= self.lte:
            return False
        if self.lt is not None and not value < self.lt:
            return False
        return True


@dataclass
class Filter:
    criteria: List[Any] = field(default_factory=list)

    def contains(self, name: str, text: Optional[str]) -> "Filter":
        if text:
            self.criteria.append(Contains(name, text))
        return self

    def equals(self, name: str, value: Any) -> "Filter":
        if value is not None and value != "":
            self.criteria.append(Equals(name, value))
        return self

    def range(self, name: str, gte: Any = None, lte: Any = None, lt: Any = None) -> "Filter":
        self.criteria.append(Range(name, gte=gte, lte=lte, lt=lt))
        return self

    def to_mongo(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        extra = []
        for criterion in self.criteria:
            if criterion.field in query:
                extra.append({criterion.field: criterion.to_mongo()})
            else:
                query[criterion.field] = criterion.to_mongo()
        if extra:
            return {"$and": [query] + extra}
        return query

    def matches(self, document: Dict[str, Any]) -> bool:
        return all(c.matches(document.get(c.field)) for c in self.criteria)


def sort_direction(order: Optional[str]) -> int:
    return 1 if order == "asc" else -1


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit),
        "totalItems": total,
        "itemsPerPage": limit,
    }
