import re
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from equipment_rental.models.enums import (
    DimensionUnit,
    EngineType,
    EquipmentBrand,
    EquipmentStatus,
    EquipmentType,
    FuelCapacityUnit,
    PowerUnit,
    SpeedUnit,
    WeightUnit,
)

_DIMENSIONS_RE = re.compile(r"^\d+\s*X\s*\d+\s*X\s*\d+$")


class EquipmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, max_length=100)
    internalSerial: Optional[str] = Field(default=None, min_length=6, max_length=6)
    brand: EquipmentBrand = EquipmentBrand.UNKNOWN
    equipmentType: EquipmentType = EquipmentType.UNKNOWN
    description: Optional[str] = Field(default=None, max_length=1000)
    supplierID: Optional[UUID] = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    expenses: Decimal = Field(default=Decimal("0"), ge=0)
    shippingPrice: Decimal = Field(default=Decimal("0"), ge=0)
    manufactureYear: Optional[int] = Field(default=None, ge=1900, le=9999)
    purchaseDate: Optional[date] = None


class EquipmentUpdate(EquipmentCreate):
    rowVersion: int
    status: Optional[EquipmentStatus] = None


class EquipmentStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: EquipmentStatus


class EquipmentBulkStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentIDs: List[UUID] = []
    status: EquipmentStatus


class MaintenanceRecordCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    maintenanceDate: Optional[date] = None
    description: str = Field(default="", max_length=1000)
    cost: Decimal = Field(default=Decimal("0"), ge=0, max_digits=18, decimal_places=2)
    technician: str = Field(default="", max_length=100)


class MaintenanceRecordUpdate(MaintenanceRecordCreate):
    rowVersion: int


class TechnicalInformationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    engineType: EngineType = EngineType.DIESEL
    enginePower: Optional[int] = Field(default=None, ge=0, le=1500)
    enginePowerUnit: PowerUnit = PowerUnit.HORSE_POWER
    fuelCapacity: Optional[int] = Field(default=None, ge=0, le=500)
    fuelCapacityUnit: FuelCapacityUnit = FuelCapacityUnit.LITERS
    weight: Optional[int] = Field(default=None, ge=0, le=35000)
    weightUnit: WeightUnit = WeightUnit.KILOGRAMS
    dimensions: Optional[str] = Field(default=None, max_length=50)
    dimensionUnit: DimensionUnit = DimensionUnit.METERS
    maxSpeed: Optional[int] = Field(default=None, ge=0, le=500)
    speedUnit: SpeedUnit = SpeedUnit.KMH

    @field_validator("dimensions")
    @classmethod
    def _check_dimensions(cls, value):
        if value is None:
            return value
        if not _DIMENSIONS_RE.match(value.strip()):
            raise ValueError("Dimensions must be in the format '1 X 12 X 13', with or without spaces.")
        return value.strip()
