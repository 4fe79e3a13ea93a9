"""
Customer record service.

GSTIN and DL numbers are unique across customers.  The unique indexes
live in the store; a rejected write comes back from the repository as a
``DuplicateKeyConflict`` naming the field, which is reported to the
caller as ``Customer with this <FIELD> already exists``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as SchemaValidationError

from errors import (
    DuplicateKeyConflict,
    DuplicateKeyError,
    NotFoundError,
    StoreError,
    UnexpectedError,
    ValidationError,
    describe_validation_error,
)
from filters import Filter, pagination, sort_direction
from schemas import Customer, CustomerUpdate

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, repository):
        self.repository = repository

    def create(self, payload: Any) -> Dict[str, Any]:
        try:
            customer = Customer.model_validate(payload)
        except SchemaValidationError as e:
            detail = describe_validation_error(e)
            logger.warning("Customer rejected: %s", detail)
            raise ValidationError("Failed to create customer", detail)

        try:
            record = self.repository.insert(customer.model_dump(by_alias=True))
        except DuplicateKeyConflict as e:
            raise self._duplicate(e)
        except StoreError as e:
            raise self._unexpected("Failed to create customer", e)
        logger.info("Customer %s created (%s)", record["id"], record["name"])
        return record

    def list(
        self,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "createdAt",
        order: str = "desc",
        name: Optional[str] = None,
        contact: Optional[str] = None,
        dl_no: Optional[str] = None,
        gstin: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
        criteria = (
            Filter()
            .contains("name", name)
            .contains("contact", contact)
            .contains("dlNo", dl_no)
            .contains("gstin", gstin)
        )
        try:
            records = self.repository.find(
                criteria,
                sort=[(sort_by, sort_direction(order))],
                skip=(page - 1) * limit,
                limit=limit,
            )
            total = self.repository.count(criteria)
        except StoreError as e:
            raise self._unexpected("Failed to fetch customers", e)
        return records, pagination(page, limit, total)

    def get(self, record_id: str) -> Dict[str, Any]:
        try:
            record = self.repository.get(record_id)
        except StoreError as e:
            raise self._unexpected("Failed to fetch customer", e)
        if record is None:
            raise NotFoundError("Customer not found")
        return record

    def get_by_dl_no(self, dl_no: str) -> Dict[str, Any]:
        try:
            record = self.repository.find_one(Filter().equals("dlNo", dl_no.strip().upper()))
        except StoreError as e:
            raise self._unexpected("Failed to fetch customer", e)
        if record is None:
            raise NotFoundError("Customer not found with this DL NO")
        return record

    def update(self, record_id: str, payload: Any) -> Dict[str, Any]:
        try:
            changes = CustomerUpdate.model_validate(payload)
        except SchemaValidationError as e:
            detail = describe_validation_error(e)
            logger.warning("Customer %s update rejected: %s", record_id, detail)
            raise ValidationError("Failed to update customer", detail)

        try:
            record = self.repository.update(record_id, changes.model_dump(by_alias=True, exclude_unset=True))
        except DuplicateKeyConflict as e:
            raise self._duplicate(e)
        except StoreError as e:
            raise self._unexpected("Failed to update customer", e)
        if record is None:
            raise NotFoundError("Customer not found")
        logger.info("Customer %s updated", record_id)
        return record

    def delete(self, record_id: str) -> Dict[str, Any]:
        try:
            record = self.repository.delete(record_id)
        except StoreError as e:
            raise self._unexpected("Failed to delete customer", e)
        if record is None:
            raise NotFoundError("Customer not found")
        logger.info("Customer %s deleted", record_id)
        return record

    def stats(self) -> Dict[str, int]:
        try:
            total = self.repository.count()
        except StoreError as e:
            raise self._unexpected("Failed to fetch customer stats", e)
        return {"totalCustomers": total}

    @staticmethod
    def _duplicate(exc: DuplicateKeyConflict) -> DuplicateKeyError:
        logger.warning("Duplicate customer %s: %s", exc.field, exc)
        return DuplicateKeyError(
            exc.field, f"Customer with this {exc.field.upper()} already exists", str(exc)
        )

    @staticmethod
    def _unexpected(message: str, exc: Exception) -> UnexpectedError:
        logger.error("%s: %s", message, exc)
        return UnexpectedError(message, str(exc))
