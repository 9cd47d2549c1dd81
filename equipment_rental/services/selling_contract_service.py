from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from equipment_rental.db.transaction import transaction
from equipment_rental.models.enums import EquipmentStatus
from equipment_rental.models.rental_models import SellingContract
from equipment_rental.repositories import equipment_repository
from equipment_rental.repositories import selling_contract_repository as repo
from equipment_rental.repositories.paging import PagedResult
from equipment_rental.schemas.contracts import SellingContractCreate, SellingContractPatch, SellingContractUpdate
from equipment_rental.schemas.query import SellingContractParameters
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.cache_service import (
    EQUIPMENT_SCOPE,
    SELLING_CONTRACTS_SCOPE,
    CacheVersionProvider,
    get_cache_version_provider,
)
from equipment_rental.services.customer_service import customer_exists
from equipment_rental.services.errors import EquipmentRentalError, NotFoundError, ValidationError

CONTRACT_LOGGER = logging.getLogger("equipment_rental.contracts")

ENTITY_TYPE = "SellingContract"


def _bump(versions: CacheVersionProvider | None, equipment_changed: bool = True) -> None:
    provider = versions or get_cache_version_provider()
    if equipment_changed:
        provider.increment_many(SELLING_CONTRACTS_SCOPE, EQUIPMENT_SCOPE)
    else:
        provider.increment(SELLING_CONTRACTS_SCOPE)


def require_selling_contract(db: Session, contract_id: UUID) -> SellingContract:
    contract = repo.get_selling_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Selling contract with id {contract_id} not found.")
    return contract


def _validate_price(sale_price: Decimal) -> None:
    if sale_price <= 0:
        raise ValidationError("Sale price must be greater than zero.")


def _validate_customer(db: Session, customer_id: UUID) -> None:
    if not customer_exists(db, customer_id):
        raise ValidationError(f"Customer with id {customer_id} not found.")


def _validate_equipment_available(db: Session, equipment_id: UUID) -> None:
    equipment = equipment_repository.get_equipment(db, equipment_id)
    if equipment is None:
        raise ValidationError(f"Equipment with id {equipment_id} not found.")
    if equipment.Status != EquipmentStatus.AVAILABLE.value:
        raise ValidationError(f"Equipment with id {equipment_id} is not available for sale.")


def _build_contract(db: Session, payload: SellingContractCreate) -> SellingContract:
    _validate_customer(db, payload.customerID)
    _validate_equipment_available(db, payload.equipmentID)
    _validate_price(payload.salePrice)
    return SellingContract(
        SellingContractID=uuid.uuid4(),
        EquipmentID=payload.equipmentID,
        CustomerID=payload.customerID,
        SalePrice=payload.salePrice,
        SaleDate=payload.saleDate or date.today(),
        AddedDate=datetime.now(),
    )


def create_selling_contract(
    db: Session,
    payload: SellingContractCreate,
    versions: CacheVersionProvider | None = None,
) -> SellingContract:
    with transaction(db):
        contract = _build_contract(db, payload)
        repo.add_selling_contract(db, contract)
        equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.SOLD)
        log_audit(db, ENTITY_TYPE, contract.SellingContractID, "Created", f"price={contract.SalePrice}")
    _bump(versions)
    CONTRACT_LOGGER.info("Equipment %s sold under contract %s", contract.EquipmentID, contract.SellingContractID)
    return contract


def create_selling_contracts(
    db: Session,
    payloads: list[SellingContractCreate],
    versions: CacheVersionProvider | None = None,
) -> BulkOperationResult:
    """Create every contract or none of them."""
    if not payloads:
        raise ValidationError("Selling contracts collection cannot be empty.")

    result = BulkOperationResult()
    seen_equipment: set[UUID] = set()
    with transaction(db):
        for position, payload in enumerate(payloads, start=1):
            try:
                if payload.equipmentID in seen_equipment:
                    raise ValidationError(f"Equipment with id {payload.equipmentID} is sold twice in the same request.")
                contract = _build_contract(db, payload)
            except ValidationError as exc:
                raise ValidationError(f"Selling contract #{position}: {exc}") from exc
            seen_equipment.add(payload.equipmentID)
            repo.add_selling_contract(db, contract)
            equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.SOLD)
            log_audit(db, ENTITY_TYPE, contract.SellingContractID, "Created", "bulk")
            result.add_success(contract.SellingContractID)
    _bump(versions)
    CONTRACT_LOGGER.info("Created %s selling contracts in bulk", result.success_count)
    return result


def _apply_changes(
    db: Session,
    contract_id: UUID,
    row_version: int,
    changes: dict,
    versions: CacheVersionProvider | None,
) -> SellingContract:
    equipment_changed = False
    with transaction(db):
        contract = require_selling_contract(db, contract_id)
        repo.update_selling_contract(db, contract, row_version)

        equipment_id = changes.get("equipmentID", contract.EquipmentID)
        customer_id = changes.get("customerID", contract.CustomerID)
        sale_price = changes.get("salePrice", contract.SalePrice)

        _validate_price(Decimal(sale_price))
        if customer_id != contract.CustomerID:
            _validate_customer(db, customer_id)
        if equipment_id != contract.EquipmentID:
            _validate_equipment_available(db, equipment_id)
            equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
            equipment_repository.set_equipment_status(db, equipment_id, EquipmentStatus.SOLD)
            equipment_changed = True

        contract.EquipmentID = equipment_id
        contract.CustomerID = customer_id
        contract.SalePrice = sale_price
        contract.SaleDate = changes.get("saleDate") or contract.SaleDate
        log_audit(db, ENTITY_TYPE, contract.SellingContractID, "Updated", ", ".join(sorted(changes)) or None)
    _bump(versions, equipment_changed)
    return contract


def update_selling_contract(
    db: Session,
    contract_id: UUID,
    payload: SellingContractUpdate,
    versions: CacheVersionProvider | None = None,
) -> SellingContract:
    changes = payload.model_dump(exclude={"rowVersion"})
    return _apply_changes(db, contract_id, payload.rowVersion, changes, versions)


def patch_selling_contract(
    db: Session,
    contract_id: UUID,
    payload: SellingContractPatch,
    versions: CacheVersionProvider | None = None,
) -> SellingContract:
    changes = payload.model_dump(exclude={"rowVersion"}, exclude_unset=True, exclude_none=True)
    return _apply_changes(db, contract_id, payload.rowVersion, changes, versions)


def _soft_delete(db: Session, contract_id: UUID) -> bool:
    contract = repo.soft_delete_selling_contract(db, contract_id)
    equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.AVAILABLE)
    log_audit(db, ENTITY_TYPE, contract_id, "Deleted")
    return True


def _restore(db: Session, contract_id: UUID) -> bool:
    contract = repo.get_deleted_selling_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Deleted selling contract with id {contract_id} not found.")
    _validate_equipment_available(db, contract.EquipmentID)
    repo.restore_selling_contract(db, contract_id)
    equipment_repository.set_equipment_status(db, contract.EquipmentID, EquipmentStatus.SOLD)
    log_audit(db, ENTITY_TYPE, contract_id, "Restored")
    return True


def soft_delete_selling_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> None:
    with transaction(db):
        _soft_delete(db, contract_id)
    _bump(versions)
    CONTRACT_LOGGER.info("Selling contract %s soft deleted", contract_id)


def restore_selling_contract(db: Session, contract_id: UUID, versions: CacheVersionProvider | None = None) -> SellingContract:
    with transaction(db):
        _restore(db, contract_id)
        db.flush()
        contract = require_selling_contract(db, contract_id)
    _bump(versions)
    CONTRACT_LOGGER.info("Selling contract %s restored", contract_id)
    return contract


def _run_bulk(db: Session, contract_ids: Iterable[UUID], operation, versions: CacheVersionProvider | None) -> BulkOperationResult:
    ids = list(dict.fromkeys(contract_ids))
    if not ids:
        raise ValidationError("Selling contract ids cannot be empty.")

    result = BulkOperationResult()
    with transaction(db):
        for contract_id in ids:
            try:
                operation(db, contract_id)
            except EquipmentRentalError as exc:
                result.add_error(contract_id, str(exc))
                continue
            db.flush()
            result.add_success(contract_id)
    if result.success_count:
        _bump(versions)
    return result


def delete_selling_contracts(db: Session, contract_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, contract_ids, _soft_delete, versions)


def restore_selling_contracts(db: Session, contract_ids: Iterable[UUID], versions: CacheVersionProvider | None = None) -> BulkOperationResult:
    return _run_bulk(db, contract_ids, _restore, versions)


def list_selling_contracts(db: Session, params: SellingContractParameters) -> PagedResult:
    return repo.list_selling_contracts(db, params)


def get_selling_contracts_by_ids(db: Session, contract_ids: Iterable[UUID]) -> list[SellingContract]:
    return repo.get_selling_contracts_by_ids(db, contract_ids)


def get_selling_contracts_by_customer(db: Session, customer_id: UUID) -> list[SellingContract]:
    return repo.get_selling_contracts_by_customer(db, customer_id)


def get_selling_contracts_by_equipment(db: Session, equipment_id: UUID) -> list[SellingContract]:
    return repo.get_selling_contracts_by_equipment(db, equipment_id)


def get_selling_contracts_by_year(db: Session, year: int) -> list[SellingContract]:
    return repo.get_selling_contracts_by_year(db, year)


def require_deleted_selling_contract(db: Session, contract_id: UUID) -> SellingContract:
    contract = repo.get_deleted_selling_contract(db, contract_id)
    if contract is None:
        raise NotFoundError(f"Deleted selling contract with id {contract_id} not found.")
    return contract


def get_deleted_selling_contracts(db: Session) -> list[SellingContract]:
    return repo.get_deleted_selling_contracts(db)


def selling_contract_exists(db: Session, contract_id: UUID) -> bool:
    return repo.selling_contract_exists(db, contract_id)


def customer_has_selling_contracts(db: Session, customer_id: UUID) -> bool:
    return repo.customer_has_selling_contracts(db, customer_id)


def equipment_has_selling_contracts(db: Session, equipment_id: UUID) -> bool:
    return repo.equipment_has_selling_contracts(db, equipment_id)


def serialize_selling_contract(contract: SellingContract) -> dict:
    return {
        "sellingContractID": str(contract.SellingContractID),
        "equipmentID": str(contract.EquipmentID),
        "customerID": str(contract.CustomerID),
        "salePrice": float(contract.SalePrice),
        "saleDate": contract.SaleDate,
        "addedDate": contract.AddedDate,
        "updatedDate": contract.UpdatedDate,
        "deletedDate": contract.DeletedDate,
        "rowVersion": contract.RowVersion,
    }
