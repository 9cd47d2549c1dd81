"""Rental contract lifecycle.

Every write runs in one transaction. Equipment availability follows the
contract: Rented while the contract is Active or Suspended, Available once it
is finished, cancelled or deleted. Cache scopes are bumped only after the
commit succeeded.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from equipment_rental.db.transaction import transaction
from equipment_rental.models.enums import EDITABLE_RENTAL_STATES, TERMINAL_RENTAL_STATES, EquipmentStatus, RentalContractStatus
from equipment_rental.models.rental_models import RentalContract
from equipment_rental.repositories import equipment_repository
from equipment_rental.repositories import rental_contract_repository as repo
from equipment_rental.repositories.paging import PagedResult
from equipment_rental.schemas.contracts import RentalContractCreate, RentalContractPatch, RentalContractUpdate
from equipment_rental.schemas.query import RentalContractParameters
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.cache_service import (
    EQUIPMENT_SCOPE,
    RENTAL_CONTRACTS_SCOPE,
    CacheVersionProvider,
    get_cache_version_provider,
)
from equipment_rental.services.customer_service import customer_exists
from equipment_rental.services.errors import ContractStateError, EquipmentRentalError, NotFoundError, ValidationError

CONTRACT_LOGGER = logging.getLogger("equipment_rental.contracts")

ENTITY_TYPE = "RentalContract"


def _bump(versions: CacheVersionProvider | None, equipment_changed: bool) -> None:
    provider = versions or get_cache_version_provider()
    if equipment_changed:
        provider.increment_many(RENTAL_CONTRACTS_SCOPE, EQUIPMENT_SCOPE)
    else:
        provider.increment(RENTAL_CONTRACTS_SCOPE)


def require_rental_contract(db: Session, contract_id: UUID) -> RentalContract:
    contract = repo.get_rental_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Rental contract with id {contract_id} not found.")
    return contract


def _validate_period(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ValidationError("End date must be after start date.")


def _validate_not_past(start_date: date, today: date) -> None:
    if start_date < today:
        raise ValidationError("Start date cannot be in the past.")


def _validate_pricing(shifts: int, shift_price: Decimal) -> None:
    if shifts <= 0:
        raise ValidationError("Shifts must be greater than zero.")
    if shift_price <= 0:
        raise ValidationError("Shift price must be greater than zero.")
    if shifts * shift_price <= 0:
        raise ValidationError("Rental price must be greater than zero.")


def _validate_customer(db: Session, customer_id: UUID) -> None:
    if not customer_exists(db, customer_id):
        raise ValidationError(f"Customer with id {customer_id} not found.")


def _validate_equipment_available(db: Session, equipment_id: UUID) -> None:
    equipment = equipment_repository.get_equipment(db, equipment_id)
    if equipment is None:
        raise ValidationError(f"Equipment with id {equipment_id} not found.")
    if equipment.Status != EquipmentStatus.AVAILABLE.value:
        raise ValidationError(f"Equipment with id {equipment_id} is not available.")


def _validate_no_overlap(
    db: Session,
    equipment_id: UUID,
    start_date: date,
    end_date: date,
    exclude_contract_id: UUID | None = None,
) -> None:
    if repo.has_overlapping_contracts(db, equipment_id, start_date, end_date, exclude_contract_id):
        raise ValidationError(
            f"Equipment with id {equipment_id} is already booked between {start_date.isoformat()} and {end_date.isoformat()}."
        )


def _build_contract(db: Session, payload: RentalContractCreate, today: date) -> RentalContract:
    _validate_period(payload.startDate, payload.endDate)
    _validate_not_past(payload.startDate, today)
    _validate_customer(db, payload.customerID)
    _validate_equipment_available(db, payload.equipmentID)
    _validate_no_overlap(db, payload.equipmentID, payload.startDate, payload.endDate)
    _validate_pricing(payload.shifts, payload.shiftPrice)
    return RentalContract(
        RentalContractID=uuid.uuid4(),
        EquipmentID=payload.equipmentID,
        CustomerID=payload.customerID,
        StartDate=payload.startDate,
        EndDate=payload.endDate,
        Shifts=payload.shifts,
        ShiftPrice=payload.shiftPrice,
        Status=RentalContractStatus.DRAFT.value,
        AddedDate=datetime.now(),
    )


def create_rental_contract(
    db: Session,
    payload: RentalContractCreate,
    versions: CacheVersionProvider | None = None,
    today: date | None = None,
) -> RentalContract:
    current = today or date.today()
    with transaction(db):
        contract = _build_contract(db, payload, current)
        repo.add_rental_contract(db, contract)
        log_audit(
            db,
            ENTITY_TYPE,
            contract.RentalContractID,
            "Created",
            f"{contract.StartDate.isoformat()}..{contract.EndDate.isoformat()} shifts={contract.Shifts}",
        )
    _bump(versions, equipment_changed=False)
    CONTRACT_LOGGER.info("Rental contract %s created for equipment %s", contract.RentalContractID, contract.EquipmentID)
    return contract


def create_rental_contracts(
    db: Session,
    payloads: list[RentalContractCreate],
    versions: CacheVersionProvider | None = None,
    today: date | None = None,
) -> BulkOperationResult:
    """Create every contract or none of them."""
    if not payloads:
        raise ValidationError("Rental contracts collection cannot be empty.")

    current = today or date.today()
    result = BulkOperationResult()
    with transaction(db):
        accepted: list[RentalContract] = []
        for position, payload in enumerate(payloads, start=1):
            try:
                contract = _build_contract(db, payload, current)
                for other in accepted:
                    if (
                        other.EquipmentID == contract.EquipmentID
                        and contract.StartDate < other.EndDate
                        and contract.EndDate > other.StartDate
                    ):
                        raise ValidationError(
                            f"Equipment with id {contract.EquipmentID} is booked twice in the same request."
                        )
            except ValidationError as exc:
                raise ValidationError(f"Rental contract #{position}: {exc}") from exc
            repo.add_rental_contract(db, contract)
            log_audit(db, ENTITY_TYPE, contract.RentalContractID, "Created", "bulk")
            accepted.append(contract)
            result.add_success(contract.RentalContractID)
    _bump(versions, equipment_changed=False)
    CONTRACT_LOGGER.info("Created %s rental contracts in bulk", result.success_count)
    return result


def _apply_changes(
    db: Session,
    contract_id: UUID,
    row_version: int,
    changes: dict,
    versions: CacheVersionProvider | None,
    today: date | None,
) -> RentalContract:
    current = today or date.today()
    equipment_changed = False
    with transaction(db):
        contract = require_rental_contract(db, contract_id)
        if contract.Status not in EDITABLE_RENTAL_STATES:
            raise ContractStateError(f"{contract.Status} contracts cannot be edited.")
        repo.update_rental_contract(db, contract, row_version)

        equipment_id = changes.get("equipmentID", contract.EquipmentID)
        customer_id = changes.get("customerID", contract.CustomerID)
        start_date = changes.get("startDate", contract.StartDate)
        end_date = changes.get("endDate", contract.EndDate)
        shifts = changes.get("shifts", contract.Shifts)
        shift_price = changes.get("shiftPrice", contract.ShiftPrice)

        _validate_period(start_date, end_date)
        if start_date != contract.StartDate:
            _validate_not_past(start_date, current)
        if customer_id != contract.CustomerID:
            _validate_customer(db, customer_id)
        _validate_pricing(shifts, Decimal(shift_price))
        _validate_no_overlap(db, equipment_id, start_date, end_date, exclude_contract_id=contract.RentalContractID)

        if equipment_id != contract.EquipmentID:
            _validate_equipment_available(db, equipment_id)
            if contract.holds_equipment():
                equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
                equipment_repository.set_equipment_status(db, equipment_id, EquipmentStatus.RENTED)
                equipment_changed = True

        contract.EquipmentID = equipment_id
        contract.CustomerID = customer_id
        contract.StartDate = start_date
        contract.EndDate = end_date
        contract.Shifts = shifts
        contract.ShiftPrice = shift_price
        log_audit(db, ENTITY_TYPE, contract.RentalContractID, "Updated", ", ".join(sorted(changes)) or None)
    _bump(versions, equipment_changed)
    return contract


def update_rental_contract(
    db: Session,
    contract_id: UUID,
    payload: RentalContractUpdate,
    versions: CacheVersionProvider | None = None,
    today: date | None = None,
) -> RentalContract:
    changes = payload.model_dump(exclude={"rowVersion"})
    return _apply_changes(db, contract_id, payload.rowVersion, changes, versions, today)


def patch_rental_contract(
    db: Session,
    contract_id: UUID,
    payload: RentalContractPatch,
    versions: CacheVersionProvider | None = None,
    today: date | None = None,
) -> RentalContract:
    changes = payload.model_dump(exclude={"rowVersion"}, exclude_unset=True, exclude_none=True)
    return _apply_changes(db, contract_id, payload.rowVersion, changes, versions, today)


def _transition(db: Session, contract_id: UUID, action: str, versions: CacheVersionProvider | None) -> RentalContract:
    with transaction(db):
        contract = require_rental_contract(db, contract_id)
        previous = contract.Status
        held_before = contract.holds_equipment()

        if action == "activate":
            contract.activate()
            _validate_equipment_available(db, contract.EquipmentID)
        elif action == "suspend":
            contract.suspend()
        elif action == "resume":
            contract.resume()
        elif action == "finish":
            contract.finish()
        elif action == "cancel":
            contract.cancel()
        else:
            raise ValueError(f"Unknown rental contract action: {action}")

        held_after = contract.holds_equipment()
        if held_after and not held_before:
            equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.RENTED)
        elif held_before and not held_after:
            equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
        contract.UpdatedDate = datetime.now()
        log_audit(db, ENTITY_TYPE, contract.RentalContractID, action.capitalize(), f"{previous} -> {contract.Status}")
    _bump(versions, equipment_changed=held_before != held_after)
    CONTRACT_LOGGER.info("Rental contract %s: %s -> %s", contract_id, previous, contract.Status)
    return contract


def activate_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    return _transition(db, contract_id, "activate", versions)


def suspend_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    return _transition(db, contract_id, "suspend", versions)


def resume_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    return _transition(db, contract_id, "resume", versions)


def finish_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    return _transition(db, contract_id, "finish", versions)


def cancel_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    return _transition(db, contract_id, "cancel", versions)


def finish_expired_contracts(
    db: Session,
    today: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> int:
    """Finish Active contracts whose last day is before ``today`` and free their equipment."""
    current = today or date.today()
    with transaction(db):
        expired = repo.get_active_contracts_ending_before(db, current - timedelta(days=1))
        for contract in expired:
            contract.finish()
            contract.UpdatedDate = datetime.now()
            equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
            log_audit(db, ENTITY_TYPE, contract.RentalContractID, "Finish", "expired")
    if expired:
        _bump(versions, equipment_changed=True)
    CONTRACT_LOGGER.info("Finished %s expired rental contracts", len(expired))
    return len(expired)


def _soft_delete(db: Session, contract_id: UUID) -> bool:
    contract = repo.soft_delete_rental_contract(db, contract_id)
    released = contract.holds_equipment()
    if released:
        equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
    log_audit(db, ENTITY_TYPE, contract_id, "Deleted")
    return released


def _restore(db: Session, contract_id: UUID) -> bool:
    contract = repo.get_deleted_rental_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Deleted rental contract with id {contract_id} not found.")
    if contract.Status not in TERMINAL_RENTAL_STATES:
        _validate_no_overlap(db, contract.EquipmentID, contract.StartDate, contract.EndDate, contract.RentalContractID)
    occupies = contract.holds_equipment()
    if occupies:
        _validate_equipment_available(db, contract.EquipmentID)
    repo.restore_rental_contract(db, contract_id)
    if occupies:
        equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.RENTED)
    log_audit(db, ENTITY_TYPE, contract_id, "Restored")
    return occupies


def soft_delete_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> None:
    with transaction(db):
        released = _soft_delete(db, contract_id)
    _bump(versions, released)
    CONTRACT_LOGGER.info("Rental contract %s soft deleted", contract_id)


def restore_rental_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> RentalContract:
    with transaction(db):
        occupied = _restore(db, contract_id)
        db.flush()
        contract = require_rental_contract(db, contract_id)
    _bump(versions, occupied)
    CONTRACT_LOGGER.info("Rental contract %s restored", contract_id)
    return contract


def _run_bulk(db: Session, contract_ids: Iterable[UUID], operation, versions: CacheVersionProvider | None) -> BulkOperationResult:
    ids = list(dict.fromkeys(contract_ids))
    if not ids:
        raise ValidationError("Rental contract ids cannot be empty.")

    result = BulkOperationResult()
    equipment_changed = False
    with transaction(db):
        for contract_id in ids:
            try:
                equipment_changed = operation(db, contract_id) or equipment_changed
            except EquipmentRentalError as exc:
                result.add_error(contract_id, str(exc))
                continue
            db.flush()
            result.add_success(contract_id)
    if result.success_count:
        _bump(versions, equipment_changed)
    return result


def delete_rental_contracts(db: Session, contract_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, contract_ids, _soft_delete, versions)


def restore_rental_contracts(db: Session, contract_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, contract_ids, _restore, versions)


def list_rental_contracts(db: Session, params: RentalContractParameters) -> PagedResult:
    return repo.list_rental_contracts(db, params)


def get_rental_contracts_by_ids(db: Session, contract_ids: Iterable[UUID]) -> list[RentalContract]:
    return repo.get_rental_contracts_by_ids(db, contract_ids)


def get_rental_contracts_by_customer(db: Session, customer_id: UUID) -> list[RentalContract]:
    return repo.get_rental_contracts_by_customer(db, customer_id)


def get_rental_contracts_by_equipment(db: Session, equipment_id: UUID) -> list[RentalContract]:
    return repo.get_rental_contracts_by_equipment(db, equipment_id)


def get_active_contracts(db: Session, today: date | None = None) -> list[RentalContract]:
    return repo.get_active_contracts(db, today)


def get_expiring_contracts(db: Session, days: int = 30, today: date | None = None) -> list[RentalContract]:
    return repo.get_expiring_contracts(db, days, today)


def require_deleted_rental_contract(db: Session, contract_id: UUID) -> RentalContract:
    contract = repo.get_deleted_rental_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Deleted rental contract with id {contract_id} not found.")
    return contract


def get_deleted_rental_contracts(db: Session) -> list[RentalContract]:
    return repo.get_deleted_rental_contracts(db)


def rental_contract_exists(db: Session, contract_id: UUID) -> bool:
    return repo.rental_contract_exists(db, contract_id)


def customer_has_rental_contracts(db: Session, customer_id: UUID) -> bool:
    return repo.customer_has_rental_contracts(db, customer_id)


def equipment_has_rental_contracts(db: Session, equipment_id: UUID) -> bool:
    return repo.equipment_has_rental_contracts(db, equipment_id)


def has_overlapping_contracts(
    db: Session,
    equipment_id: UUID,
    start_date: date,
    end_date: date,
    exclude_contract_id: UUID | None = None,
) -> bool:
    _validate_period(start_date, end_date)
    return repo.has_overlapping_contracts(db, equipment_id, start_date, end_date, exclude_contract_id)


def serialize_rental_contract(contract: RentalContract) -> dict:
    return {
        "rentalContractID": str(contract.RentalContractID),
        "equipmentID": str(contract.EquipmentID),
        "customerID": str(contract.CustomerID),
        "startDate": contract.StartDate,
        "endDate": contract.EndDate,
        "shifts": contract.Shifts,
        "shiftPrice": float(contract.ShiftPrice),
        "rentalPrice": float(contract.RentalPrice),
        "status": contract.Status,
        "suspendedDate": contract.SuspendedDate,
        "finishedDate": contract.FinishedDate,
        "cancelledDate": contract.CancelledDate,
        "addedDate": contract.AddedDate,
        "updatedDate": contract.UpdatedDate,
        "deletedDate": contract.DeletedDate,
        "rowVersion": contract.RowVersion,
    }
