from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import extract, select
from sqlalchemy.orm import Session

from equipment_rental.models.rental_models import SellingContract
from equipment_rental.repositories.paging import PagedResult, apply_sort, paginate
from equipment_rental.schemas.query import SellingContractParameters
from equipment_rental.services.errors import ConcurrencyConflictError, NotFoundError, ValidationError

SELLING_CONTRACT_SORT_COLUMNS = {
    "saledate": SellingContract.SaleDate,
    "saleprice": SellingContract.SalePrice,
    "addeddate": SellingContract.AddedDate,
}


def _live():
    return select(SellingContract).where(SellingContract.DeletedDate.is_(None))


def list_selling_contracts(db: Session, params: SellingContractParameters) -> PagedResult:
    stmt = _live()

    if params.customerID is not None:
        stmt = stmt.where(SellingContract.CustomerID == params.customerID)
    if params.equipmentID is not None:
        stmt = stmt.where(SellingContract.EquipmentID == params.equipmentID)
    if params.fromDate is not None:
        stmt = stmt.where(SellingContract.SaleDate >= params.fromDate)
    if params.toDate is not None:
        stmt = stmt.where(SellingContract.SaleDate <= params.toDate)
    if params.year is not None:
        stmt = stmt.where(extract("year", SellingContract.SaleDate) == params.year)
    if params.month is not None:
        stmt = stmt.where(extract("month", SellingContract.SaleDate) == params.month)
    if params.minPrice is not None:
        stmt = stmt.where(SellingContract.SalePrice >= params.minPrice)
    if params.maxPrice is not None:
        stmt = stmt.where(SellingContract.SalePrice <= params.maxPrice)

    stmt = apply_sort(stmt, params, SELLING_CONTRACT_SORT_COLUMNS, "saledate")
    return paginate(db, stmt, params)


def get_selling_contract(db: Session, contract_id: UUID) -> Optional[SellingContract]:
    return db.execute(_live().where(SellingContract.SellingContractID == contract_id)).scalars().first()


def get_selling_contracts_by_ids(db: Session, contract_ids: Iterable[UUID]) -> list[SellingContract]:
    ids = list(contract_ids)
    if not ids:
        return []
    return list(db.execute(_live().where(SellingContract.SellingContractID.in_(ids))).scalars().all())


def get_selling_contracts_by_customer(db: Session, customer_id: UUID) -> list[SellingContract]:
    return list(
        db.execute(
            _live().where(SellingContract.CustomerID == customer_id).order_by(SellingContract.SaleDate)
        ).scalars().all()
    )


def get_selling_contracts_by_equipment(db: Session, equipment_id: UUID) -> list[SellingContract]:
    return list(
        db.execute(
            _live().where(SellingContract.EquipmentID == equipment_id).order_by(SellingContract.SaleDate)
        ).scalars().all()
    )


def get_selling_contracts_by_year(db: Session, year: int) -> list[SellingContract]:
    return list(
        db.execute(
            _live().where(extract("year", SellingContract.SaleDate) == year).order_by(SellingContract.SaleDate)
        ).scalars().all()
    )


def get_deleted_selling_contract(db: Session, contract_id: UUID) -> Optional[SellingContract]:
    return db.execute(
        select(SellingContract).where(
            SellingContract.SellingContractID == contract_id,
            SellingContract.DeletedDate.is_not(None),
        )
    ).scalars().first()


def get_deleted_selling_contracts(db: Session) -> list[SellingContract]:
    return list(
        db.execute(
            select(SellingContract)
            .where(SellingContract.DeletedDate.is_not(None))
            .order_by(SellingContract.DeletedDate.desc())
        ).scalars().all()
    )


def selling_contract_exists(db: Session, contract_id: UUID) -> bool:
    return get_selling_contract(db, contract_id) is not None


def customer_has_selling_contracts(db: Session, customer_id: UUID) -> bool:
    return db.execute(_live().where(SellingContract.CustomerID == customer_id).limit(1)).first() is not None


def equipment_has_selling_contracts(db: Session, equipment_id: UUID) -> bool:
    return db.execute(_live().where(SellingContract.EquipmentID == equipment_id).limit(1)).first() is not None


def add_selling_contract(db: Session, contract: SellingContract) -> SellingContract:
    db.add(contract)
    return contract


def update_selling_contract(db: Session, contract: SellingContract, expected_row_version: int) -> SellingContract:
    if contract.RowVersion != expected_row_version:
        raise ConcurrencyConflictError()
    contract.UpdatedDate = datetime.now()
    return contract


def soft_delete_selling_contract(db: Session, contract_id: UUID) -> SellingContract:
    contract = get_selling_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Selling contract with id {contract_id} not found.")
    contract.DeletedDate = datetime.now()
    return contract


def restore_selling_contract(db: Session, contract_id: UUID) -> SellingContract:
    contract = db.execute(
        select(SellingContract).where(SellingContract.SellingContractID == contract_id)
    ).scalars().first()
    if contract is None:
        raise NotFoundError(f"Selling contract with id {contract_id} not found.")
    if contract.DeletedDate is None:
        raise ValidationError(f"Selling contract with id {contract_id} is not deleted.")
    contract.DeletedDate = None
    contract.UpdatedDate = datetime.now()
    return contract
