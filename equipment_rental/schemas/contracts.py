from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RentalContractCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentID: UUID
    customerID: UUID
    startDate: date
    endDate: date
    shifts: int = Field(ge=0, le=1000)
    shiftPrice: Decimal = Field(max_digits=7, decimal_places=2)


class RentalContractUpdate(RentalContractCreate):
    rowVersion: int


class RentalContractPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    rowVersion: int
    equipmentID: Optional[UUID] = None
    customerID: Optional[UUID] = None
    startDate: Optional[date] = None
    endDate: Optional[date] = None
    shifts: Optional[int] = Field(default=None, ge=0, le=1000)
    shiftPrice: Optional[Decimal] = Field(default=None, max_digits=7, decimal_places=2)


class SellingContractCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentID: UUID
    customerID: UUID
    salePrice: Decimal = Field(max_digits=18, decimal_places=2)
    saleDate: Optional[date] = None


class SellingContractUpdate(SellingContractCreate):
    rowVersion: int


class SellingContractPatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    rowVersion: int
    equipmentID: Optional[UUID] = None
    customerID: Optional[UUID] = None
    salePrice: Optional[Decimal] = Field(default=None, max_digits=18, decimal_places=2)
    saleDate: Optional[date] = None


class OverlapCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    equipmentID: UUID
    startDate: date
    endDate: date
    excludeContractID: Optional[UUID] = None
