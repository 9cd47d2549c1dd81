from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CustomerCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    country: Optional[str] = Field(default=None, max_length=100)
    city: Optional[str] = Field(default=None, max_length=100)
    phoneNumbers: List[str] = []


class CustomerUpdate(CustomerCreate):
    rowVersion: int


class SupplierCreate(CustomerCreate):
    contactPerson: Optional[str] = Field(default=None, max_length=100)


class SupplierUpdate(SupplierCreate):
    rowVersion: int
