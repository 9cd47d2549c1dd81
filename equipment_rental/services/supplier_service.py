from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from equipment_rental.db.transaction import transaction
from equipment_rental.models.rental_models import Supplier, SupplierPhoneNumber
from equipment_rental.repositories.paging import PagedResult, apply_sort, paginate
from equipment_rental.schemas.parties import SupplierCreate, SupplierUpdate
from equipment_rental.schemas.query import SupplierParameters
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.customer_service import PARTY_LOGGER, normalize_phone_numbers, run_party_bulk
from equipment_rental.services.errors import ConcurrencyConflictError, NotFoundError

SUPPLIER_SORT_COLUMNS = {
    "name": Supplier.Name,
    "email": Supplier.Email,
    "contactperson": Supplier.ContactPerson,
    "country": Supplier.Country,
    "city": Supplier.City,
    "addeddate": Supplier.AddedDate,
}


def list_suppliers(db: Session, params: SupplierParameters) -> PagedResult:
    stmt = select(Supplier).options(selectinload(Supplier.PhoneNumbers)).where(Supplier.DeletedDate.is_(None))
    if params.searchQuery:
        pattern = f"%{params.searchQuery}%"
        stmt = stmt.where(func.lower(Supplier.Name).like(pattern) | func.lower(Supplier.ContactPerson).like(pattern))
    if params.country:
        stmt = stmt.where(func.lower(Supplier.Country) == params.country)
    if params.city:
        stmt = stmt.where(func.lower(Supplier.City) == params.city)
    stmt = apply_sort(stmt, params, SUPPLIER_SORT_COLUMNS, "name")
    return paginate(db, stmt, params)


def get_supplier(db: Session, supplier_id: UUID) -> Optional[Supplier]:
    return db.execute(
        select(Supplier)
        .options(selectinload(Supplier.PhoneNumbers))
        .where(Supplier.SupplierID == supplier_id, Supplier.DeletedDate.is_(None))
    ).scalars().first()


def require_supplier(db: Session, supplier_id: UUID) -> Supplier:
    supplier = get_supplier(db, supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier with id {supplier_id} not found.")
    return supplier


def get_suppliers_by_ids(db: Session, supplier_ids: Iterable[UUID]) -> list[Supplier]:
    ids = list(dict.fromkeys(supplier_ids))
    if not ids:
        return []
    return list(
        db.execute(
            select(Supplier)
            .options(selectinload(Supplier.PhoneNumbers))
            .where(Supplier.SupplierID.in_(ids), Supplier.DeletedDate.is_(None))
        ).scalars().all()
    )


def supplier_exists(db: Session, supplier_id: UUID) -> bool:
    return get_supplier(db, supplier_id) is not None


def create_supplier(db: Session, payload: SupplierCreate) -> Supplier:
    supplier = Supplier(
        Name=payload.name.strip(),
        Email=payload.email,
        ContactPerson=payload.contactPerson,
        Country=payload.country,
        City=payload.city,
        AddedDate=datetime.now(),
    )
    supplier.PhoneNumbers = [SupplierPhoneNumber(Number=number) for number in normalize_phone_numbers(payload.phoneNumbers)]
    with transaction(db):
        db.add(supplier)
        db.flush()
        log_audit(db, "Supplier", supplier.SupplierID, "Created", supplier.Name)
    PARTY_LOGGER.info("Supplier %s created", supplier.SupplierID)
    return supplier


def update_supplier(db: Session, supplier_id: UUID, payload: SupplierUpdate) -> Supplier:
    with transaction(db):
        supplier = require_supplier(db, supplier_id)
        if supplier.RowVersion != payload.rowVersion:
            raise ConcurrencyConflictError()
        supplier.Name = payload.name.strip()
        supplier.Email = payload.email
        supplier.ContactPerson = payload.contactPerson
        supplier.Country = payload.country
        supplier.City = payload.city
        numbers = normalize_phone_numbers(payload.phoneNumbers)
        kept = [phone for phone in supplier.PhoneNumbers if phone.Number in numbers]
        existing = {phone.Number for phone in kept}
        supplier.PhoneNumbers = kept + [SupplierPhoneNumber(Number=number) for number in numbers if number not in existing]
        supplier.UpdatedDate = datetime.now()
        log_audit(db, "Supplier", supplier.SupplierID, "Updated", supplier.Name)
    return supplier


def _soft_delete(db: Session, supplier_id: UUID) -> Supplier:
    supplier = require_supplier(db, supplier_id)
    supplier.DeletedDate = datetime.now()
    log_audit(db, "Supplier", supplier.SupplierID, "Deleted")
    return supplier


def _restore(db: Session, supplier_id: UUID) -> Supplier:
    supplier = db.execute(
        select(Supplier).where(Supplier.SupplierID == supplier_id, Supplier.DeletedDate.is_not(None))
    ).scalars().first()
    if supplier is None:
        raise NotFoundError(f"Deleted supplier with id {supplier_id} not found.")
    supplier.DeletedDate = None
    supplier.UpdatedDate = datetime.now()
    log_audit(db, "Supplier", supplier.SupplierID, "Restored")
    return supplier


def soft_delete_supplier(db: Session, supplier_id: UUID) -> Supplier:
    with transaction(db):
        supplier = _soft_delete(db, supplier_id)
    PARTY_LOGGER.info("Supplier %s soft deleted", supplier_id)
    return supplier


def restore_supplier(db: Session, supplier_id: UUID) -> Supplier:
    with transaction(db):
        supplier = _restore(db, supplier_id)
    return supplier


def delete_suppliers(db: Session, supplier_ids: Iterable[UUID]) -> BulkOperationResult:
    return run_party_bulk(db, supplier_ids, _soft_delete, "Supplier")


def restore_suppliers(db: Session, supplier_ids: Iterable[UUID]) -> BulkOperationResult:
    return run_party_bulk(db, supplier_ids, _restore, "Supplier")


def serialize_supplier(supplier: Supplier) -> dict:
    return {
        "supplierID": str(supplier.SupplierID),
        "name": supplier.Name,
        "email": supplier.Email,
        "contactPerson": supplier.ContactPerson,
        "country": supplier.Country,
        "city": supplier.City,
        "address": supplier.Address,
        "phoneNumbers": [phone.Number for phone in supplier.PhoneNumbers],
        "addedDate": supplier.AddedDate,
        "updatedDate": supplier.UpdatedDate,
        "deletedDate": supplier.DeletedDate,
        "rowVersion": supplier.RowVersion,
    }
