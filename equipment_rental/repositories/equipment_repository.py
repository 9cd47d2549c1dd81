from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from equipment_rental.models.enums import EquipmentStatus
from equipment_rental.models.rental_models import Equipment
from equipment_rental.repositories.paging import PagedResult, apply_sort, paginate
from equipment_rental.schemas.query import EquipmentParameters
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.errors import ConcurrencyConflictError, NotFoundError, ValidationError

SERIAL_PREFIX = "EQ"

EQUIPMENT_SORT_COLUMNS = {
    "name": Equipment.Name,
    "internalserial": Equipment.InternalSerial,
    "brand": Equipment.Brand,
    "type": Equipment.EquipmentType,
    "equipmenttype": Equipment.EquipmentType,
    "price": Equipment.Price,
    "manufactureyear": Equipment.ManufactureYear,
    "purchasedate": Equipment.PurchaseDate,
    "status": Equipment.Status,
    "addeddate": Equipment.AddedDate,
}


def _parse_serial_seq(serial: str) -> Optional[int]:
    if not serial.startswith(SERIAL_PREFIX):
        return None
    try:
        return int(serial[len(SERIAL_PREFIX):])
    except ValueError:
        return None


def generate_internal_serial(db: Session) -> str:
    existing = db.execute(
        select(Equipment.InternalSerial).where(Equipment.InternalSerial.startswith(SERIAL_PREFIX))
    ).scalars().all()

    max_seq = 0
    for serial in existing:
        if not serial:
            continue
        seq = _parse_serial_seq(serial)
        if seq and seq > max_seq:
            max_seq = seq
    return f"{SERIAL_PREFIX}{max_seq + 1:04d}"


def internal_serial_taken(db: Session, serial: str, exclude_id: UUID | None = None) -> bool:
    stmt = select(Equipment.EquipmentID).where(Equipment.InternalSerial == serial)
    if exclude_id is not None:
        stmt = stmt.where(Equipment.EquipmentID != exclude_id)
    return db.execute(stmt.limit(1)).first() is not None


def list_equipment(db: Session, params: EquipmentParameters, deleted: bool = False) -> PagedResult:
    deleted_filter = Equipment.DeletedDate.is_not(None) if deleted else Equipment.DeletedDate.is_(None)
    stmt = select(Equipment).where(deleted_filter)

    if params.searchQuery:
        stmt = stmt.where(Equipment.Name.ilike(f"%{params.searchQuery}%"))
    if params.brand is not None:
        stmt = stmt.where(Equipment.Brand == params.brand.value)
    if params.equipmentType is not None:
        stmt = stmt.where(Equipment.EquipmentType == params.equipmentType.value)
    if params.supplierID is not None:
        stmt = stmt.where(Equipment.SupplierID == params.supplierID)
    if params.status is not None:
        stmt = stmt.where(Equipment.Status == params.status.value)
    if params.isAvailable is not None:
        if params.isAvailable:
            stmt = stmt.where(Equipment.Status == EquipmentStatus.AVAILABLE.value)
        else:
            stmt = stmt.where(Equipment.Status != EquipmentStatus.AVAILABLE.value)
    if params.purchaseDateFrom is not None:
        stmt = stmt.where(Equipment.PurchaseDate >= params.purchaseDateFrom)
    if params.purchaseDateTo is not None:
        stmt = stmt.where(Equipment.PurchaseDate <= params.purchaseDateTo)
    if params.manufactureYear is not None:
        stmt = stmt.where(Equipment.ManufactureYear == params.manufactureYear)

    stmt = apply_sort(stmt, params, EQUIPMENT_SORT_COLUMNS, "name")
    return paginate(db, stmt, params)


def get_equipment(db: Session, equipment_id: UUID) -> Optional[Equipment]:
    return db.execute(
        select(Equipment).where(Equipment.EquipmentID == equipment_id, Equipment.DeletedDate.is_(None))
    ).scalars().first()


def get_equipment_by_ids(db: Session, equipment_ids: Iterable[UUID]) -> list[Equipment]:
    ids = list(dict.fromkeys(equipment_ids))
    if not ids:
        return []
    return list(
        db.execute(
            select(Equipment).where(Equipment.EquipmentID.in_(ids), Equipment.DeletedDate.is_(None))
        ).scalars().all()
    )


def get_deleted_equipment(db: Session, equipment_id: UUID) -> Optional[Equipment]:
    return db.execute(
        select(Equipment).where(Equipment.EquipmentID == equipment_id, Equipment.DeletedDate.is_not(None))
    ).scalars().first()


def equipment_exists(db: Session, equipment_id: UUID) -> bool:
    return get_equipment(db, equipment_id) is not None


def _require_equipment(db: Session, equipment_id: UUID) -> Equipment:
    equipment = get_equipment(db, equipment_id)
    if equipment is None:
        raise NotFoundError(f"Equipment with id {equipment_id} not found.")
    return equipment


def get_equipment_status(db: Session, equipment_id: UUID) -> str:
    return _require_equipment(db, equipment_id).Status


def set_equipment_status(db: Session, equipment_id: UUID, status: EquipmentStatus | str) -> Equipment:
    """Flip the availability flag of one equipment row; the caller owns the transaction."""
    value = status.value if isinstance(status, EquipmentStatus) else str(status)
    equipment = _require_equipment(db, equipment_id)
    if equipment.Status == value:
        return equipment
    equipment.Status = value
    equipment.UpdatedDate = datetime.now()
    return equipment


def set_equipment_bulk_status(db: Session, equipment_ids: Iterable[UUID], status: EquipmentStatus | str) -> BulkOperationResult:
    ids = list(dict.fromkeys(equipment_ids))
    if not ids:
        raise ValidationError("Equipment ids cannot be empty.")

    result = BulkOperationResult()
    for equipment_id in ids:
        try:
            set_equipment_status(db, equipment_id, status)
        except NotFoundError as exc:
            result.add_error(equipment_id, str(exc))
            continue
        result.add_success(equipment_id)
    return result


def add_equipment(db: Session, equipment: Equipment) -> Equipment:
    db.add(equipment)
    return equipment


def update_equipment(db: Session, equipment: Equipment, expected_row_version: int) -> Equipment:
    if equipment.RowVersion != expected_row_version:
        raise ConcurrencyConflictError()
    equipment.UpdatedDate = datetime.now()
    return equipment


def soft_delete_equipment(db: Session, equipment: Equipment) -> None:
    equipment.DeletedDate = datetime.now()


def restore_equipment(db: Session, equipment: Equipment) -> None:
    if equipment.DeletedDate is None:
        raise ValidationError(f"Equipment with id {equipment.EquipmentID} is not deleted.")
    equipment.DeletedDate = None
    equipment.UpdatedDate = datetime.now()
