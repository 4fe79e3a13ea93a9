"""
Medicine record service.

Validates and persists medicine documents and computes the inventory
reports (expiring/expired stock, valuation, low stock).  Every figure is
computed from the store at call time; nothing is cached between
requests.
"""

import logging
import math
import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from database import utcnow
from errors import NotFoundError, StoreError, UnexpectedError, ValidationError, describe_validation_error
from filters import Filter, pagination, sort_direction
from schemas import Medicine, MedicineUpdate, as_utc

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10
DEFAULT_EXPIRY_WINDOW_DAYS = 30
REPORT_LIST_LIMIT = 10
SUMMARY_FIELDS = ("name", "expiryDate", "quantity", "mrp", "manufacturer")
LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def window_days(days: Any) -> int:
    """Parse a ``days`` query value from its leading digits (``"7days"`` is 7).

    Missing, zero or non-numeric values mean 30.
    """
    match = LEADING_INT.match(str(days)) if days is not None else None
    if match is None:
        return DEFAULT_EXPIRY_WINDOW_DAYS
    return int(match.group(1)) or DEFAULT_EXPIRY_WINDOW_DAYS


class MedicineService:
    def __init__(self, repository, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.clock = clock

    def serialize(self, record: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        """Attach ``isExpired`` and ``daysUntilExpiry`` to a stored record."""
        expiry = record.get("expiryDate")
        if expiry is not None:
            now = now or self.clock()
            expiry = as_utc(expiry)
            record["isExpired"] = expiry < now
            record["daysUntilExpiry"] = math.ceil((expiry - now).total_seconds() / 86400)
        return record

    def create(self, payload: Any) -> Dict[str, Any]:
        now = self.clock()
        try:
            medicine = Medicine.model_validate(payload, context={"now": now})
        except SchemaValidationError as e:
            detail = describe_validation_error(e)
            logger.warning("Medicine rejected: %s", detail)
            raise ValidationError("Failed to create medicine", detail)

        try:
            record = self.repository.insert(medicine.model_dump(by_alias=True, exclude_none=True))
        except StoreError as e:
            raise self._unexpected("Failed to create medicine", e)
        logger.info("Medicine %s created (%s)", record["id"], record["name"])
        return self.serialize(record, now)

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        order: str = "desc",
        name: Optional[str] = None,
        packaging_type: Optional[str] = None,
        expired: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        now = self.clock()
        criteria = Filter().contains("name", name).equals("packagingType", packaging_type)
        if expired == "true":
            criteria.range("expiryDate", lt=now)
        elif expired == "false":
            criteria.range("expiryDate", gte=now)

        try:
            records = self.repository.find(
                criteria,
                sort=[(sort_by, sort_direction(order))],
                skip=(page - 1) * limit,
                limit=limit,
            )
            total = self.repository.count(criteria)
        except StoreError as e:
            raise self._unexpected("Failed to fetch medicines", e)
        return [self.serialize(r, now) for r in records], pagination(page, limit, total)

    def get(self, record_id: str) -> Dict[str, Any]:
        try:
            record = self.repository.get(record_id)
        except StoreError as e:
            raise self._unexpected("Failed to fetch medicine", e)
        if record is None:
            raise NotFoundError("Medicine not found")
        return self.serialize(record)

    def update(self, record_id: str, payload: Any) -> Dict[str, Any]:
        now = self.clock()
        try:
            changes = MedicineUpdate.model_validate(payload, context={"now": now})
        except SchemaValidationError as e:
            detail = describe_validation_error(e)
            logger.warning("Medicine %s update rejected: %s", record_id, detail)
            raise ValidationError("Failed to update medicine", detail)

        try:
            record = self.repository.update(record_id, changes.model_dump(by_alias=True, exclude_unset=True))
        except StoreError as e:
            raise self._unexpected("Failed to update medicine", e)
        if record is None:
            raise NotFoundError("Medicine not found")
        logger.info("Medicine %s updated", record_id)
        return self.serialize(record, now)

    def delete(self, record_id: str) -> Dict[str, Any]:
        try:
            record = self.repository.delete(record_id)
        except StoreError as e:
            raise self._unexpected("Failed to delete medicine", e)
        if record is None:
            raise NotFoundError("Medicine not found")
        logger.info("Medicine %s deleted", record_id)
        return self.serialize(record)

    # Reports

    def expiring_soon(self, days: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> List[Dict[str, Any]]:
        now = self.clock()
        criteria = Filter().range("expiryDate", gte=now, lte=now + timedelta(days=days))
        try:
            records = self.repository.find(criteria, sort=[("expiryDate", 1)])
        except StoreError as e:
            raise self._unexpected("Failed to fetch expiring medicines", e)
        return [self.serialize(r, now) for r in records]

    def expired(self) -> List[Dict[str, Any]]:
        now = self.clock()
        criteria = Filter().range("expiryDate", lt=now)
        try:
            records = self.repository.find(criteria, sort=[("expiryDate", -1)])
        except StoreError as e:
            raise self._unexpected("Failed to fetch expired medicines", e)
        return [self.serialize(r, now) for r in records]

    def inventory_stats(self, days: int = DEFAULT_EXPIRY_WINDOW_DAYS) -> Dict[str, Any]:
        now = self.clock()
        expired = Filter().range("expiryDate", lt=now)
        active = Filter().range("expiryDate", gte=now)
        expiring = Filter().range("expiryDate", gte=now, lte=now + timedelta(days=days))
        low_stock = Filter().range("quantity", lt=LOW_STOCK_THRESHOLD)

        try:
            total_stock = self.repository.count()
            expired_stock = self.repository.count(expired)
            expiring_stock = self.repository.count(expiring)
            active_stock = self.repository.count(active)
            low_stock_count = self.repository.count(low_stock)
            totals = self.repository.totals({"quantity": ("quantity",), "value": ("mrp", "quantity")})
            expired_list = self.repository.find(
                expired, sort=[("expiryDate", -1)], limit=REPORT_LIST_LIMIT, fields=SUMMARY_FIELDS
            )
            expiring_list = self.repository.find(
                expiring, sort=[("expiryDate", 1)], limit=REPORT_LIST_LIMIT, fields=SUMMARY_FIELDS
            )
        except StoreError as e:
            raise self._unexpected("Failed to fetch inventory stats", e)

        return {
            "stats": {
                "totalStock": total_stock,
                "activeStock": active_stock,
                "expiredStock": expired_stock,
                "expiringStock": expiring_stock,
                "expiringWithinDays": days,
                "lowStockCount": low_stock_count,
                "totalQuantity": totals["quantity"],
                "totalInventoryValue": f"{totals['value']:.2f}",
            },
            "expiredMedicines": {
                "count": expired_stock,
                "list": expired_list,
            },
            "expiringMedicines": {
                "count": expiring_stock,
                "withinDays": days,
                "list": expiring_list,
            },
        }

    @staticmethod
    def _unexpected(message: str, exc: Exception) -> UnexpectedError:
        logger.error("%s: %s", message, exc)
        return UnexpectedError(message, str(exc))
