"""
Database Schemas for the Medicine Inventory API

Each Pydantic model below validates a document before it is written to a
MongoDB collection. Collection name is the lowercase of the record name
(e.g., Medicine -> "medicine").

Two record types are managed:
- Medicines (stock with expiry date, packaging type, MRP and quantity)
- Customers (pharmacies identified by GSTIN and drug-license number)

``Medicine`` and ``Customer`` enforce every rule; the *Update models run the same
field rules but only for the fields present in the request, so a partial
update never re-checks values it does not touch.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


class PackagingType(str, Enum):
    TABLET = "Tablet"
    CAPSULE = "Capsule"
    SYRUP = "Syrup"
    INJECTION = "Injection"
    CREAM = "Cream"
    OINTMENT = "Ointment"
    DROPS = "Drops"
    POWDER = "Powder"
    OTHER = "Other"


PACKAGING_TYPES = [p.value for p in PackagingType]


def required(message: str) -> PydanticCustomError:
    return PydanticCustomError("required", message)


def check_present(value: Any, message: str) -> Any:
    if value is None or (isinstance(value, str) and not value):
        raise required(message)
    return value


def check_non_negative(value: Any, message: str) -> Any:
    if value is not None and value < 0:
        raise PydanticCustomError("negative", message)
    return value


def check_packaging_type(value: str) -> str:
    if value not in PACKAGING_TYPES:
        raise PydanticCustomError(
            "packaging_type", "{value} is not a valid packaging type", {"value": value}
        )
    return value


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_future(value: datetime, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    if not value > now:
        raise PydanticCustomError("expiry_date", "Expiry date must be in the future")
    return value


class RecordModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        allow_inf_nan=False,
        extra="ignore",
    )

    # Field name -> message raised when a required field is absent.
    required_fields: ClassVar[Dict[str, str]] = {}

    @model_validator(mode="after")
    def check_required_fields(self):
        missing = [msg for name, msg in self.required_fields.items() if getattr(self, name) is None]
        if missing:
            raise required("; ".join(missing))
        return self


# Medicines

MEDICINE_MESSAGES = {
    "name": "Medicine name is required",
    "expiry_date": "Expiry date is required",
    "packaging_type": "Packaging type is required",
    "mrp": "MRP is required",
}


class MedicineFields(RecordModel):
    name: Optional[str] = Field(None, description="Medicine name")
    expiry_date: Optional[datetime] = Field(None, description="Expiry date, must be in the future")
    packaging_type: Optional[str] = Field(None, description="One of PackagingType")
    mrp: Optional[float] = Field(None, description="Maximum retail price")
    quantity: Optional[int] = Field(None, description="Units in stock")
    batch_number: Optional[str] = Field(None, description="Manufacturer batch number")
    manufacturer: Optional[str] = Field(None, description="Manufacturer name")
    description: Optional[str] = Field(None, description="Free-form notes")

    @field_validator("name")
    @classmethod
    def name_present(cls, v):
        return check_present(v, MEDICINE_MESSAGES["name"])

    @field_validator("expiry_date")
    @classmethod
    def expiry_in_future(cls, v, info: ValidationInfo):
        check_present(v, MEDICINE_MESSAGES["expiry_date"])
        now = (info.context or {}).get("now")
        return check_future(as_utc(v), now)

    @field_validator("packaging_type")
    @classmethod
    def packaging_type_allowed(cls, v):
        check_present(v, MEDICINE_MESSAGES["packaging_type"])
        return check_packaging_type(v)

    @field_validator("mrp")
    @classmethod
    def mrp_non_negative(cls, v):
        check_present(v, MEDICINE_MESSAGES["mrp"])
        return check_non_negative(v, "MRP cannot be negative")

    @field_validator("quantity")
    @classmethod
    def quantity_non_negative(cls, v):
        check_present(v, "Quantity must be a number")
        return check_non_negative(v, "Quantity cannot be negative")


class Medicine(MedicineFields):
    required_fields: ClassVar[Dict[str, str]] = MEDICINE_MESSAGES

    quantity: Optional[int] = Field(0, description="Units in stock")


class MedicineUpdate(MedicineFields):
    pass


# Customers

CUSTOMER_MESSAGES = {
    "name": "Customer name is required",
    "address": "Address is required",
    "contact": "Contact is required",
    "gstin": "GSTIN is required",
    "dl_no": "DL NO is required",
}


class CustomerFields(RecordModel):
    name: Optional[str] = Field(None, description="Customer name")
    address: Optional[str] = Field(None, description="Postal address")
    contact: Optional[str] = Field(None, description="Phone number or contact person")
    gstin: Optional[str] = Field(None, description="GST identification number, unique")
    dl_no: Optional[str] = Field(None, description="Drug-license number, unique")

    @field_validator("name", "address", "contact")
    @classmethod
    def text_present(cls, v, info: ValidationInfo):
        return check_present(v, CUSTOMER_MESSAGES[info.field_name])

    @field_validator("gstin", "dl_no")
    @classmethod
    def upper_identifier(cls, v, info: ValidationInfo):
        return check_present(v, CUSTOMER_MESSAGES[info.field_name]).upper()


class Customer(CustomerFields):
    required_fields: ClassVar[Dict[str, str]] = CUSTOMER_MESSAGES


class CustomerUpdate(CustomerFields):
    pass
