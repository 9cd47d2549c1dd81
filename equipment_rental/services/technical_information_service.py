from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from equipment_rental.db.transaction import transaction
from equipment_rental.models.rental_models import TechnicalInformation
from equipment_rental.schemas.equipment import TechnicalInformationUpdate
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.equipment_service import require_equipment
from equipment_rental.services.errors import NotFoundError


def _find(db: Session, equipment_id: UUID) -> TechnicalInformation | None:
    return db.execute(
        select(TechnicalInformation).where(TechnicalInformation.EquipmentID == equipment_id)
    ).scalars().first()


def get_technical_information(db: Session, equipment_id: UUID) -> TechnicalInformation:
    require_equipment(db, equipment_id)
    info = _find(db, equipment_id)
    if info is None:
        raise NotFoundError(f"Technical information for equipment with id {equipment_id} not found.")
    return info


def upsert_technical_information(db: Session, equipment_id: UUID, payload: TechnicalInformationUpdate) -> TechnicalInformation:
    """Equipment carries at most one technical sheet; a second write replaces the first."""
    with transaction(db):
        require_equipment(db, equipment_id)
        info = _find(db, equipment_id)
        if info is None:
            info = TechnicalInformation(EquipmentID=equipment_id, AddedDate=datetime.now())
            db.add(info)
            action = "TechnicalInformationCreated"
        else:
            info.UpdatedDate = datetime.now()
            action = "TechnicalInformationUpdated"
        info.EngineType = payload.engineType.value
        info.EnginePower = payload.enginePower
        info.EnginePowerUnit = payload.enginePowerUnit.value
        info.FuelCapacity = payload.fuelCapacity
        info.FuelCapacityUnit = payload.fuelCapacityUnit.value
        info.Weight = payload.weight
        info.WeightUnit = payload.weightUnit.value
        info.Dimensions = payload.dimensions
        info.DimensionUnit = payload.dimensionUnit.value
        info.MaxSpeed = payload.maxSpeed
        info.SpeedUnit = payload.speedUnit.value
        log_audit(db, "Equipment", equipment_id, action)
    return info


def serialize_technical_information(info: TechnicalInformation) -> dict:
    return {
        "equipmentID": str(info.EquipmentID),
        "engineType": info.EngineType,
        "enginePower": info.EnginePower,
        "enginePowerUnit": info.EnginePowerUnit,
        "fuelCapacity": info.FuelCapacity,
        "fuelCapacityUnit": info.FuelCapacityUnit,
        "weight": info.Weight,
        "weightUnit": info.WeightUnit,
        "dimensions": info.Dimensions,
        "dimensionUnit": info.DimensionUnit,
        "maxSpeed": info.MaxSpeed,
        "speedUnit": info.SpeedUnit,
        "addedDate": info.AddedDate,
        "updatedDate": info.UpdatedDate,
    }
