from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from equipment_rental.models.enums import EquipmentBrand, EquipmentStatus, EquipmentType, RentalContractStatus

MAX_PAGE_SIZE = 16
DEFAULT_PAGE_SIZE = 10


class ResourceParameters(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    pageNumber: int = 1
    pageSize: int = DEFAULT_PAGE_SIZE
    searchQuery: str = ""
    sortBy: str = ""
    sortDescending: bool = False

    @field_validator("pageNumber", mode="before")
    @classmethod
    def _clamp_page_number(cls, value):
        if value is None:
            return 1
        return max(int(value), 1)

    @field_validator("pageSize", mode="before")
    @classmethod
    def _clamp_page_size(cls, value):
        if value is None:
            return DEFAULT_PAGE_SIZE
        return min(max(int(value), 1), MAX_PAGE_SIZE)

    @field_validator("searchQuery", "sortBy", mode="before")
    @classmethod
    def _normalize_text(cls, value):
        return (value or "").strip().lower()


class RentalContractParameters(ResourceParameters):
    customerID: Optional[UUID] = None
    equipmentID: Optional[UUID] = None
    fromDate: Optional[date] = None
    toDate: Optional[date] = None
    year: Optional[int] = None
    month: Optional[int] = None
    minShifts: Optional[int] = None
    maxShifts: Optional[int] = None
    minShiftPrice: Optional[Decimal] = None
    maxShiftPrice: Optional[Decimal] = None
    minContractPrice: Optional[Decimal] = None
    maxContractPrice: Optional[Decimal] = None
    status: Optional[RentalContractStatus] = None


class SellingContractParameters(ResourceParameters):
    customerID: Optional[UUID] = None
    equipmentID: Optional[UUID] = None
    fromDate: Optional[date] = None
    toDate: Optional[date] = None
    year: Optional[int] = None
    month: Optional[int] = None
    minPrice: Optional[Decimal] = None
    maxPrice: Optional[Decimal] = None


class EquipmentParameters(ResourceParameters):
    sortBy: str = "name"
    brand: Optional[EquipmentBrand] = None
    equipmentType: Optional[EquipmentType] = None
    status: Optional[EquipmentStatus] = None
    isAvailable: Optional[bool] = None
    purchaseDateFrom: Optional[date] = None
    purchaseDateTo: Optional[date] = None
    manufactureYear: Optional[int] = None
    supplierID: Optional[UUID] = None


class CustomerParameters(ResourceParameters):
    country: str = ""
    city: str = ""

    @field_validator("country", "city", mode="before")
    @classmethod
    def _normalize_location(cls, value):
        return (value or "").strip().lower()


class SupplierParameters(CustomerParameters):
    pass
