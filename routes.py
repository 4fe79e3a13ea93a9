"""
HTTP routes for medicines and customers.

Literal paths (``/stats``, ``/expiring-soon``, ``/expired``, ``/dl/...``)
are declared before ``/{record_id}`` so they are never captured as an id.
Service errors propagate to the exception handlers in ``main``.
"""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status

from customer_service import CustomerService
from medicine_service import MedicineService, window_days

medicines = APIRouter()
customers = APIRouter()


def get_medicine_service(request: Request) -> MedicineService:
    return request.app.state.medicine_service


def get_customer_service(request: Request) -> CustomerService:
    return request.app.state.customer_service


# Medicines
@medicines.post("", status_code=status.HTTP_201_CREATED)
def create_medicine(payload: Any = Body(None), service: MedicineService = Depends(get_medicine_service)):
    record = service.create(payload)
    return {"success": True, "message": "Medicine created successfully", "data": record}


@medicines.get("")
def list_medicines(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc"),
    name: Optional[str] = None,
    packaging_type: Optional[str] = Query(None, alias="packagingType"),
    expired: Optional[str] = None,
    service: MedicineService = Depends(get_medicine_service),
):
    records, pages = service.list(
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        name=name,
        packaging_type=packaging_type,
        expired=expired,
    )
    return {"success": True, "data": records, "pagination": pages}


@medicines.get("/stats")
def inventory_stats(days: Optional[str] = None, service: MedicineService = Depends(get_medicine_service)):
    report = service.inventory_stats(window_days(days))
    return {"success": True, "message": "Inventory statistics", **report}


@medicines.get("/expiring-soon")
def medicines_expiring_soon(days: Optional[str] = None, service: MedicineService = Depends(get_medicine_service)):
    within = window_days(days)
    records = service.expiring_soon(within)
    return {
        "success": True,
        "message": f"Medicines expiring within {within} days",
        "count": len(records),
        "data": records,
    }


@medicines.get("/expired")
def expired_medicines(service: MedicineService = Depends(get_medicine_service)):
    records = service.expired()
    return {"success": True, "count": len(records), "data": records}


@medicines.get("/{record_id}")
def get_medicine(record_id: str, service: MedicineService = Depends(get_medicine_service)):
    return {"success": True, "data": service.get(record_id)}


@medicines.put("/{record_id}")
def update_medicine(
    record_id: str, payload: Any = Body(None), service: MedicineService = Depends(get_medicine_service)
):
    record = service.update(record_id, payload)
    return {"success": True, "message": "Medicine updated successfully", "data": record}


@medicines.delete("/{record_id}")
def delete_medicine(record_id: str, service: MedicineService = Depends(get_medicine_service)):
    record = service.delete(record_id)
    return {"success": True, "message": "Medicine deleted successfully", "data": record}


# Customers
@customers.post("", status_code=status.HTTP_201_CREATED)
def create_customer(payload: Any = Body(None), service: CustomerService = Depends(get_customer_service)):
    record = service.create(payload)
    return {"success": True, "message": "Customer created successfully", "data": record}


@customers.get("")
def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort_by: str = Query("createdAt", alias="sortBy"),
    order: str = Query("desc"),
    name: Optional[str] = None,
    contact: Optional[str] = None,
    dl_no: Optional[str] = Query(None, alias="dlNo"),
    gstin: Optional[str] = None,
    service: CustomerService = Depends(get_customer_service),
):
    records, pages = service.list(
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        name=name,
        contact=contact,
        dl_no=dl_no,
        gstin=gstin,
    )
    return {"success": True, "data": records, "pagination": pages}


@customers.get("/stats")
def customer_stats(service: CustomerService = Depends(get_customer_service)):
    return {"success": True, "message": "Customer statistics", "stats": service.stats()}


@customers.get("/dl/{dl_no}")
def get_customer_by_dl_no(dl_no: str, service: CustomerService = Depends(get_customer_service)):
    return {"success": True, "data": service.get_by_dl_no(dl_no)}


@customers.get("/{record_id}")
def get_customer(record_id: str, service: CustomerService = Depends(get_customer_service)):
    return {"success": True, "data": service.get(record_id)}


@customers.put("/{record_id}")
def update_customer(
    record_id: str, payload: Any = Body(None), service: CustomerService = Depends(get_customer_service)
):
    record = service.update(record_id, payload)
    return {"success": True, "message": "Customer updated successfully", "data": record}


@customers.delete("/{record_id}")
def delete_customer(record_id: str, service: CustomerService = Depends(get_customer_service)):
    record = service.delete(record_id)
    return {"success": True, "message": "Customer deleted successfully", "data": record}
