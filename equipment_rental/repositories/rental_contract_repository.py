from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import extract, select
from sqlalchemy.orm import Session

from equipment_rental.models.enums import TERMINAL_RENTAL_STATES, RentalContractStatus
from equipment_rental.models.rental_models import RentalContract
from equipment_rental.repositories.paging import PagedResult, apply_sort, paginate
from equipment_rental.schemas.query import RentalContractParameters
from equipment_rental.services.errors import ConcurrencyConflictError, NotFoundError, ValidationError

RENTAL_CONTRACT_SORT_COLUMNS = {
    "startdate": RentalContract.StartDate,
    "enddate": RentalContract.EndDate,
    "shifts": RentalContract.Shifts,
    "shiftprice": RentalContract.ShiftPrice,
    "rentalprice": RentalContract.RentalPrice,
    "status": RentalContract.Status,
    "addeddate": RentalContract.AddedDate,
}


def _live():
    return select(RentalContract).where(RentalContract.DeletedDate.is_(None))


def list_rental_contracts(db: Session, params: RentalContractParameters) -> PagedResult:
    stmt = _live()

    if params.customerID is not None:
        stmt = stmt.where(RentalContract.CustomerID == params.customerID)
    if params.equipmentID is not None:
        stmt = stmt.where(RentalContract.EquipmentID == params.equipmentID)
    if params.fromDate is not None:
        stmt = stmt.where(RentalContract.StartDate >= params.fromDate)
    if params.toDate is not None:
        stmt = stmt.where(RentalContract.EndDate <= params.toDate)
    if params.year is not None:
        stmt = stmt.where(extract("year", RentalContract.StartDate) == params.year)
    if params.month is not None:
        stmt = stmt.where(extract("month", RentalContract.StartDate) == params.month)
    if params.minShifts is not None:
        stmt = stmt.where(RentalContract.Shifts >= params.minShifts)
    if params.maxShifts is not None:
        stmt = stmt.where(RentalContract.Shifts <= params.maxShifts)
    if params.minShiftPrice is not None:
        stmt = stmt.where(RentalContract.ShiftPrice >= params.minShiftPrice)
    if params.maxShiftPrice is not None:
        stmt = stmt.where(RentalContract.ShiftPrice <= params.maxShiftPrice)
    if params.minContractPrice is not None:
        stmt = stmt.where(RentalContract.RentalPrice >= params.minContractPrice)
    if params.maxContractPrice is not None:
        stmt = stmt.where(RentalContract.RentalPrice <= params.maxContractPrice)
    if params.status is not None:
        stmt = stmt.where(RentalContract.Status == params.status.value)

    stmt = apply_sort(stmt, params, RENTAL_CONTRACT_SORT_COLUMNS, "startdate")
    return paginate(db, stmt, params)


def get_rental_contract(db: Session, contract_id: UUID) -> Optional[RentalContract]:
    return db.execute(_live().where(RentalContract.RentalContractID == contract_id)).scalars().first()


def get_rental_contracts_by_ids(db: Session, contract_ids: Iterable[UUID]) -> list[RentalContract]:
    ids = list(contract_ids)
    if not ids:
        return []
    return list(db.execute(_live().where(RentalContract.RentalContractID.in_(ids))).scalars().all())


def get_rental_contracts_by_customer(db: Session, customer_id: UUID) -> list[RentalContract]:
    return list(
        db.execute(
            _live().where(RentalContract.CustomerID == customer_id).order_by(RentalContract.StartDate)
        ).scalars().all()
    )


def get_rental_contracts_by_equipment(db: Session, equipment_id: UUID) -> list[RentalContract]:
    return list(
        db.execute(
            _live().where(RentalContract.EquipmentID == equipment_id).order_by(RentalContract.StartDate)
        ).scalars().all()
    )


def get_active_contracts(db: Session, today: date | None = None) -> list[RentalContract]:
    current = today or date.today()
    return list(
        db.execute(
            _live()
            .where(RentalContract.Status == RentalContractStatus.ACTIVE.value, RentalContract.EndDate >= current)
            .order_by(RentalContract.EndDate)
        ).scalars().all()
    )


def get_expiring_contracts(db: Session, days: int = 30, today: date | None = None) -> list[RentalContract]:
    current = today or date.today()
    horizon = current + timedelta(days=max(days, 0))
    return list(
        db.execute(
            _live()
            .where(
                RentalContract.EndDate >= current,
                RentalContract.EndDate <= horizon,
                RentalContract.Status.not_in(TERMINAL_RENTAL_STATES),
            )
            .order_by(RentalContract.EndDate)
        ).scalars().all()
    )


def get_active_contracts_ending_before(db: Session, cutoff: date) -> list[RentalContract]:
    return list(
        db.execute(
            _live().where(RentalContract.Status == RentalContractStatus.ACTIVE.value, RentalContract.EndDate <= cutoff)
        ).scalars().all()
    )


def get_deleted_rental_contract(db: Session, contract_id: UUID) -> Optional[RentalContract]:
    return db.execute(
        select(RentalContract).where(
            RentalContract.RentalContractID == contract_id,
            RentalContract.DeletedDate.is_not(None),
        )
    ).scalars().first()


def get_deleted_rental_contracts(db: Session) -> list[RentalContract]:
    return list(
        db.execute(
            select(RentalContract)
            .where(RentalContract.DeletedDate.is_not(None))
            .order_by(RentalContract.DeletedDate.desc())
        ).scalars().all()
    )


def rental_contract_exists(db: Session, contract_id: UUID) -> bool:
    return get_rental_contract(db, contract_id) is not None


def customer_has_rental_contracts(db: Session, customer_id: UUID) -> bool:
    return db.execute(
        _live().where(RentalContract.CustomerID == customer_id).limit(1)
    ).first() is not None


def equipment_has_rental_contracts(db: Session, equipment_id: UUID) -> bool:
    return db.execute(
        _live().where(RentalContract.EquipmentID == equipment_id).limit(1)
    ).first() is not None


def has_open_rental_contracts(db: Session, customer_id: UUID | None = None, equipment_id: UUID | None = None) -> bool:
    """True when a live contract that is neither Finished nor Cancelled references the customer or equipment."""
    stmt = _live().where(RentalContract.Status.not_in(TERMINAL_RENTAL_STATES))
    if customer_id is not None:
        stmt = stmt.where(RentalContract.CustomerID == customer_id)
    if equipment_id is not None:
        stmt = stmt.where(RentalContract.EquipmentID == equipment_id)
    return db.execute(stmt.limit(1)).first() is not None


def has_overlapping_contracts(
    db: Session,
    equipment_id: UUID,
    start_date: date,
    end_date: date,
    exclude_contract_id: UUID | None = None,
) -> bool:
    """True when a live, non-terminal contract books the equipment inside [start_date, end_date)."""
    stmt = _live().where(
        RentalContract.EquipmentID == equipment_id,
        RentalContract.Status.not_in(TERMINAL_RENTAL_STATES),
        RentalContract.StartDate < end_date,
        RentalContract.EndDate > start_date,
    )
    if exclude_contract_id is not None:
        stmt = stmt.where(RentalContract.RentalContractID != exclude_contract_id)
    return db.execute(stmt.limit(1)).first() is not None


def add_rental_contract(db: Session, contract: RentalContract) -> RentalContract:
    db.add(contract)
    return contract


def update_rental_contract(db: Session, contract: RentalContract, expected_row_version: int) -> RentalContract:
    if contract.RowVersion != expected_row_version:
        raise ConcurrencyConflictError()
    contract.UpdatedDate = datetime.now()
    return contract


def soft_delete_rental_contract(db: Session, contract_id: UUID) -> RentalContract:
    contract = get_rental_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Rental contract with id {contract_id} not found.")
    contract.DeletedDate = datetime.now()
    return contract


def restore_rental_contract(db: Session, contract_id: UUID) -> RentalContract:
    contract = db.execute(
        select(RentalContract).where(RentalContract.RentalContractID == contract_id)
    ).scalars().first()
    if contract is None:
        raise NotFoundError(f"Rental contract with id {contract_id} not found.")
    if contract.DeletedDate is None:
        raise ValidationError(f"Rental contract with id {contract_id} is not deleted.")
    contract.DeletedDate = None
    contract.UpdatedDate = datetime.now()
    return contract
