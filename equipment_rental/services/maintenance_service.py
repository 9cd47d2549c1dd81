from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from equipment_rental.db.transaction import transaction
from equipment_rental.models.rental_models import MaintenanceRecord
from equipment_rental.schemas.equipment import MaintenanceRecordCreate, MaintenanceRecordUpdate
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.cache_service import EQUIPMENT_SCOPE, CacheVersionProvider, get_cache_version_provider
from equipment_rental.services.equipment_service import EQUIPMENT_LOGGER, require_equipment
from equipment_rental.services.errors import ConcurrencyConflictError, NotFoundError


def _bump(versions: CacheVersionProvider | None) -> None:
    (versions or get_cache_version_provider()).increment(EQUIPMENT_SCOPE)


def list_maintenance_records(db: Session, equipment_id: UUID) -> list[MaintenanceRecord]:
    require_equipment(db, equipment_id)
    return list(
        db.execute(
            select(MaintenanceRecord)
            .where(MaintenanceRecord.EquipmentID == equipment_id, MaintenanceRecord.DeletedDate.is_(None))
            .order_by(MaintenanceRecord.MaintenanceDate.desc())
        ).scalars().all()
    )


def require_maintenance_record(db: Session, record_id: UUID) -> MaintenanceRecord:
    record = db.execute(
        select(MaintenanceRecord).where(
            MaintenanceRecord.MaintenanceRecordID == record_id,
            MaintenanceRecord.DeletedDate.is_(None),
        )
    ).scalars().first()
    if record is None:
        raise NotFoundError(f"Maintenance record with id {record_id} not found.")
    return record


def create_maintenance_record(
    db: Session,
    equipment_id: UUID,
    payload: MaintenanceRecordCreate,
    versions: CacheVersionProvider | None = None,
) -> MaintenanceRecord:
    with transaction(db):
        require_equipment(db, equipment_id)
        record = MaintenanceRecord(
            EquipmentID=equipment_id,
            MaintenanceDate=payload.maintenanceDate or date.today(),
            Description=payload.description,
            Cost=payload.cost,
            Technician=payload.technician,
            AddedDate=datetime.now(),
        )
        db.add(record)
        db.flush()
        log_audit(db, "Equipment", equipment_id, "MaintenanceRecorded", f"{record.MaintenanceDate} {record.Technician}".strip())
    _bump(versions)
    EQUIPMENT_LOGGER.info("Maintenance record %s added for equipment %s", record.MaintenanceRecordID, equipment_id)
    return record


def update_maintenance_record(
    db: Session,
    record_id: UUID,
    payload: MaintenanceRecordUpdate,
    versions: CacheVersionProvider | None = None,
) -> MaintenanceRecord:
    with transaction(db):
        record = require_maintenance_record(db, record_id)
        if record.RowVersion != payload.rowVersion:
            raise ConcurrencyConflictError()
        if payload.maintenanceDate is not None:
            record.MaintenanceDate = payload.maintenanceDate
        record.Description = payload.description
        record.Cost = payload.cost
        record.Technician = payload.technician
        record.UpdatedDate = datetime.now()
        log_audit(db, "Equipment", record.EquipmentID, "MaintenanceUpdated", str(record_id))
    _bump(versions)
    return record


def soft_delete_maintenance_record(db: Session, record_id: UUID, versions: CacheVersionProvider | None = None) -> MaintenanceRecord:
    with transaction(db):
        record = require_maintenance_record(db, record_id)
        record.DeletedDate = datetime.now()
        log_audit(db, "Equipment", record.EquipmentID, "MaintenanceDeleted", str(record_id))
    _bump(versions)
    return record


def serialize_maintenance_record(record: MaintenanceRecord) -> dict:
    return {
        "maintenanceRecordID": str(record.MaintenanceRecordID),
        "equipmentID": str(record.EquipmentID),
        "maintenanceDate": record.MaintenanceDate,
        "description": record.Description,
        "cost": float(record.Cost or 0),
        "technician": record.Technician,
        "addedDate": record.AddedDate,
        "updatedDate": record.UpdatedDate,
        "rowVersion": record.RowVersion,
    }
