from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from equipment_rental.db.transaction import transaction
from equipment_rental.models.enums import EquipmentStatus
from equipment_rental.models.rental_models import Equipment
from equipment_rental.repositories import equipment_repository as repo
from equipment_rental.repositories import rental_contract_repository
from equipment_rental.repositories.paging import PagedResult
from equipment_rental.schemas.equipment import EquipmentCreate, EquipmentUpdate
from equipment_rental.schemas.query import EquipmentParameters
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.cache_service import EQUIPMENT_SCOPE, CacheVersionProvider, get_cache_version_provider
from equipment_rental.services.errors import ConflictError, EquipmentRentalError, NotFoundError, ValidationError
from equipment_rental.services.supplier_service import supplier_exists

EQUIPMENT_LOGGER = logging.getLogger("equipment_rental.equipment")

# Rented and Sold are owned by contracts; only these can be set by hand.
MANUAL_STATUSES = {EquipmentStatus.AVAILABLE.value, EquipmentStatus.UNDER_MAINTENANCE.value}


def _bump(versions: CacheVersionProvider | None) -> None:
    (versions or get_cache_version_provider()).increment(EQUIPMENT_SCOPE)


def list_equipment(db: Session, params: EquipmentParameters) -> PagedResult:
    return repo.list_equipment(db, params)


def list_equipment_by_status(db: Session, status: EquipmentStatus, params: EquipmentParameters) -> PagedResult:
    return repo.list_equipment(db, params.model_copy(update={"status": status}))


def list_equipment_by_supplier(db: Session, supplier_id: UUID, params: EquipmentParameters) -> PagedResult:
    return repo.list_equipment(db, params.model_copy(update={"supplierID": supplier_id}))


def list_deleted_equipment(db: Session, params: EquipmentParameters) -> PagedResult:
    return repo.list_equipment(db, params, deleted=True)


def get_equipment_by_ids(db: Session, equipment_ids: Iterable[UUID]) -> list[Equipment]:
    return repo.get_equipment_by_ids(db, equipment_ids)


def require_equipment(db: Session, equipment_id: UUID) -> Equipment:
    equipment = repo.get_equipment(db, equipment_id)
    if equipment is None:
        raise NotFoundError(f"Equipment with id {equipment_id} not found.")
    return equipment


def require_deleted_equipment(db: Session, equipment_id: UUID) -> Equipment:
    equipment = repo.get_deleted_equipment(db, equipment_id)
    if equipment is None:
        raise NotFoundError(f"Deleted equipment with id {equipment_id} not found.")
    return equipment


def equipment_exists(db: Session, equipment_id: UUID) -> bool:
    return repo.equipment_exists(db, equipment_id)


def _resolve_serial(db: Session, requested: str | None, exclude_id: UUID | None = None) -> str:
    if not requested:
        return repo.generate_internal_serial(db)
    serial = requested.strip().upper()
    if repo.internal_serial_taken(db, serial, exclude_id=exclude_id):
        raise ConflictError(f"Internal serial {serial} is already in use.")
    return serial


def _check_supplier(db: Session, supplier_id: UUID | None) -> None:
    if supplier_id is not None and not supplier_exists(db, supplier_id):
        raise ValidationError(f"Supplier with id {supplier_id} not found.")


def _build_equipment(db: Session, payload: EquipmentCreate) -> Equipment:
    _check_supplier(db, payload.supplierID)
    equipment = Equipment(
        Name=payload.name.strip(),
        InternalSerial=_resolve_serial(db, payload.internalSerial),
        Brand=payload.brand.value,
        EquipmentType=payload.equipmentType.value,
        Description=payload.description,
        SupplierID=payload.supplierID,
        Price=payload.price,
        Expenses=payload.expenses,
        ShippingPrice=payload.shippingPrice,
        ManufactureYear=payload.manufactureYear,
        PurchaseDate=payload.purchaseDate,
        Status=EquipmentStatus.AVAILABLE.value,
        AddedDate=datetime.now(),
    )
    repo.add_equipment(db, equipment)
    # Serial generation reads the table, so the row must be visible to the next lookup.
    db.flush()
    return equipment


def create_equipment(db: Session, payload: EquipmentCreate, versions: CacheVersionProvider | None = None) -> Equipment:
    with transaction(db):
        equipment = _build_equipment(db, payload)
        log_audit(db, "Equipment", equipment.EquipmentID, "Created", f"{equipment.InternalSerial} {equipment.Name}")
    _bump(versions)
    EQUIPMENT_LOGGER.info("Equipment %s registered as %s", equipment.EquipmentID, equipment.InternalSerial)
    return equipment


def create_equipment_collection(
    db: Session,
    payloads: list[EquipmentCreate],
    versions: CacheVersionProvider | None = None,
) -> BulkOperationResult:
    """Register every item or none of them."""
    if not payloads:
        raise ValidationError("Equipment collection cannot be empty.")

    result = BulkOperationResult()
    with transaction(db):
        for position, payload in enumerate(payloads, start=1):
            try:
                equipment = _build_equipment(db, payload)
            except EquipmentRentalError as exc:
                raise type(exc)(f"Equipment #{position}: {exc}") from exc
            log_audit(db, "Equipment", equipment.EquipmentID, "Created", "bulk")
            result.add_success(equipment.EquipmentID)
    _bump(versions)
    EQUIPMENT_LOGGER.info("Registered %s equipment items in bulk", result.success_count)
    return result


def _check_manual_status(equipment: Equipment, status: str) -> None:
    if equipment.Status == status:
        return
    if status not in MANUAL_STATUSES:
        raise ValidationError(f"Status {status} is set by contracts and cannot be assigned directly.")
    if equipment.Status not in MANUAL_STATUSES:
        raise ConflictError(f"Equipment with id {equipment.EquipmentID} is {equipment.Status} and cannot change status.")


def update_equipment(
    db: Session,
    equipment_id: UUID,
    payload: EquipmentUpdate,
    versions: CacheVersionProvider | None = None,
) -> Equipment:
    with transaction(db):
        equipment = require_equipment(db, equipment_id)
        repo.update_equipment(db, equipment, payload.rowVersion)
        _check_supplier(db, payload.supplierID)
        if payload.internalSerial and payload.internalSerial.strip().upper() != equipment.InternalSerial:
            equipment.InternalSerial = _resolve_serial(db, payload.internalSerial, exclude_id=equipment_id)
        if payload.status is not None:
            _check_manual_status(equipment, payload.status.value)
            equipment.Status = payload.status.value
        equipment.Name = payload.name.strip()
        equipment.Brand = payload.brand.value
        equipment.EquipmentType = payload.equipmentType.value
        equipment.Description = payload.description
        equipment.SupplierID = payload.supplierID
        equipment.Price = payload.price
        equipment.Expenses = payload.expenses
        equipment.ShippingPrice = payload.shippingPrice
        equipment.ManufactureYear = payload.manufactureYear
        equipment.PurchaseDate = payload.purchaseDate
        log_audit(db, "Equipment", equipment.EquipmentID, "Updated")
    _bump(versions)
    return equipment


def change_equipment_status(
    db: Session,
    equipment_id: UUID,
    status: EquipmentStatus,
    versions: CacheVersionProvider | None = None,
) -> Equipment:
    with transaction(db):
        equipment = require_equipment(db, equipment_id)
        previous = equipment.Status
        _check_manual_status(equipment, status.value)
        repo.set_equipment_status(db, equipment_id, status)
        log_audit(db, "Equipment", equipment_id, "StatusChanged", f"{previous} -> {status.value}")
    _bump(versions)
    return equipment


def change_equipment_bulk_status(
    db: Session,
    equipment_ids: Iterable[UUID],
    status: EquipmentStatus,
    versions: CacheVersionProvider | None = None,
) -> BulkOperationResult:
    ids = list(dict.fromkeys(equipment_ids))
    if not ids:
        raise ValidationError("Equipment ids cannot be empty.")

    allowed: list[UUID] = []
    rejected: list[tuple[UUID, str]] = []
    with transaction(db):
        for equipment_id in ids:
            equipment = repo.get_equipment(db, equipment_id)
            if equipment is None:
                rejected.append((equipment_id, f"Equipment with id {equipment_id} not found."))
                continue
            try:
                _check_manual_status(equipment, status.value)
            except (ValidationError, ConflictError) as exc:
                rejected.append((equipment_id, str(exc)))
                continue
            allowed.append(equipment_id)
        result = repo.set_equipment_bulk_status(db, allowed, status) if allowed else BulkOperationResult()
        for equipment_id in result.success_ids:
            log_audit(db, "Equipment", equipment_id, "StatusChanged", status.value)
    for equipment_id, message in rejected:
        result.add_error(equipment_id, message)
    if result.success_count:
        _bump(versions)
    return result


def _soft_delete(db: Session, equipment_id: UUID) -> Equipment:
    equipment = require_equipment(db, equipment_id)
    if equipment.Status in {EquipmentStatus.RENTED.value, EquipmentStatus.SOLD.value}:
        raise ConflictError(f"Equipment with id {equipment_id} is {equipment.Status} and cannot be deleted.")
    if rental_contract_repository.has_open_rental_contracts(db, equipment_id=equipment_id):
        raise ConflictError(f"Equipment with id {equipment_id} still has open rental contracts.")
    repo.soft_delete_equipment(db, equipment)
    log_audit(db, "Equipment", equipment_id, "Deleted")
    return equipment


def _restore(db: Session, equipment_id: UUID) -> Equipment:
    equipment = require_deleted_equipment(db, equipment_id)
    repo.restore_equipment(db, equipment)
    log_audit(db, "Equipment", equipment_id, "Restored")
    return equipment


def soft_delete_equipment(db: Session, equipment_id: UUID, versions: CacheVersionProvider | None = None) -> Equipment:
    with transaction(db):
        equipment = _soft_delete(db, equipment_id)
    _bump(versions)
    EQUIPMENT_LOGGER.info("Equipment %s soft deleted", equipment_id)
    return equipment


def restore_equipment(db: Session, equipment_id: UUID, versions: CacheVersionProvider | None = None) -> Equipment:
    with transaction(db):
        equipment = _restore(db, equipment_id)
    _bump(versions)
    return equipment


def _run_bulk(db: Session, equipment_ids: Iterable[UUID], operation, versions: CacheVersionProvider | None) -> BulkOperationResult:
    ids = list(dict.fromkeys(equipment_ids))
    if not ids:
        raise ValidationError("Equipment ids cannot be empty.")

    result = BulkOperationResult()
    with transaction(db):
        for equipment_id in ids:
            try:
                operation(db, equipment_id)
            except EquipmentRentalError as exc:
                result.add_error(equipment_id, str(exc))
                continue
            db.flush()
            result.add_success(equipment_id)
    if result.success_count:
        _bump(versions)
    return result


def delete_equipment_collection(db: Session, equipment_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, equipment_ids, _soft_delete, versions)


def restore_equipment_collection(db: Session, equipment_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, equipment_ids, _restore, versions)


def serialize_equipment(equipment: Equipment) -> dict:
    return {
        "equipmentID": str(equipment.EquipmentID),
        "name": equipment.Name,
        "internalSerial": equipment.InternalSerial,
        "brand": equipment.Brand,
        "equipmentType": equipment.EquipmentType,
        "description": equipment.Description,
        "supplierID": str(equipment.SupplierID) if equipment.SupplierID else None,
        "price": float(equipment.Price or 0),
        "expenses": float(equipment.Expenses or 0),
        "shippingPrice": float(equipment.ShippingPrice or 0),
        "totalPrice": float(equipment.TotalPrice),
        "manufactureYear": equipment.ManufactureYear,
        "purchaseDate": equipment.PurchaseDate,
        "status": equipment.Status,
        "addedDate": equipment.AddedDate,
        "updatedDate": equipment.UpdatedDate,
        "deletedDate": equipment.DeletedDate,
        "rowVersion": equipment.RowVersion,
    }
