from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from equipment_rental.db.transaction import transaction
from equipment_rental.models.rental_models import Customer, CustomerPhoneNumber
from equipment_rental.repositories import rental_contract_repository
from equipment_rental.repositories.paging import PagedResult, apply_sort, paginate
from equipment_rental.schemas.parties import CustomerCreate, CustomerUpdate
from equipment_rental.schemas.query import CustomerParameters
from equipment_rental.services.audit_service import log_audit
from equipment_rental.services.bulk_result import BulkOperationResult
from equipment_rental.services.errors import (
    ConcurrencyConflictError,
    ConflictError,
    EquipmentRentalError,
    NotFoundError,
    ValidationError,
)

PARTY_LOGGER = logging.getLogger("equipment_rental.parties")

CUSTOMER_SORT_COLUMNS = {
    "name": Customer.Name,
    "email": Customer.Email,
    "country": Customer.Country,
    "city": Customer.City,
    "addeddate": Customer.AddedDate,
}


def normalize_phone_numbers(numbers: Iterable[str]) -> list[str]:
    cleaned: list[str] = []
    for raw in numbers:
        value = (raw or "").strip()
        if not value or value in cleaned:
            continue
        if len(value) > 30:
            raise ValidationError(f"Phone number '{value}' is too long.")
        cleaned.append(value)
    return cleaned


def list_customers(db: Session, params: CustomerParameters) -> PagedResult:
    stmt = select(Customer).options(selectinload(Customer.PhoneNumbers)).where(Customer.DeletedDate.is_(None))
    if params.searchQuery:
        pattern = f"%{params.searchQuery}%"
        stmt = stmt.where(func.lower(Customer.Name).like(pattern) | func.lower(Customer.Email).like(pattern))
    if params.country:
        stmt = stmt.where(func.lower(Customer.Country) == params.country)
    if params.city:
        stmt = stmt.where(func.lower(Customer.City) == params.city)
    stmt = apply_sort(stmt, params, CUSTOMER_SORT_COLUMNS, "name")
    return paginate(db, stmt, params)


def get_customer(db: Session, customer_id: UUID) -> Optional[Customer]:
    return db.execute(
        select(Customer)
        .options(selectinload(Customer.PhoneNumbers))
        .where(Customer.CustomerID == customer_id, Customer.DeletedDate.is_(None))
    ).scalars().first()


def require_customer(db: Session, customer_id: UUID) -> Customer:
    customer = get_customer(db, customer_id)
    if customer is None:
        raise NotFoundError(f"Customer with id {customer_id} not found.")
    return customer


def get_customers_by_ids(db: Session, customer_ids: Iterable[UUID]) -> list[Customer]:
    ids = list(dict.fromkeys(customer_ids))
    if not ids:
        return []
    return list(
        db.execute(
            select(Customer)
            .options(selectinload(Customer.PhoneNumbers))
            .where(Customer.CustomerID.in_(ids), Customer.DeletedDate.is_(None))
        ).scalars().all()
    )


def customer_exists(db: Session, customer_id: UUID) -> bool:
    return get_customer(db, customer_id) is not None


def create_customer(db: Session, payload: CustomerCreate) -> Customer:
    customer = Customer(
        Name=payload.name.strip(),
        Email=payload.email,
        Country=payload.country,
        City=payload.city,
        AddedDate=datetime.now(),
    )
    customer.PhoneNumbers = [CustomerPhoneNumber(Number=number) for number in normalize_phone_numbers(payload.phoneNumbers)]
    with transaction(db):
        db.add(customer)
        db.flush()
        log_audit(db, "Customer", customer.CustomerID, "Created", customer.Name)
    PARTY_LOGGER.info("Customer %s created", customer.CustomerID)
    return customer


def update_customer(db: Session, customer_id: UUID, payload: CustomerUpdate) -> Customer:
    with transaction(db):
        customer = require_customer(db, customer_id)
        if customer.RowVersion != payload.rowVersion:
            raise ConcurrencyConflictError()
        customer.Name = payload.name.strip()
        customer.Email = payload.email
        customer.Country = payload.country
        customer.City = payload.city
        numbers = normalize_phone_numbers(payload.phoneNumbers)
        kept = [phone for phone in customer.PhoneNumbers if phone.Number in numbers]
        existing = {phone.Number for phone in kept}
        customer.PhoneNumbers = kept + [CustomerPhoneNumber(Number=number) for number in numbers if number not in existing]
        customer.UpdatedDate = datetime.now()
        log_audit(db, "Customer", customer.CustomerID, "Updated", customer.Name)
    return customer


def _soft_delete(db: Session, customer_id: UUID) -> Customer:
    customer = require_customer(db, customer_id)
    if rental_contract_repository.has_open_rental_contracts(db, customer_id=customer_id):
        raise ConflictError(f"Customer with id {customer_id} still has open rental contracts.")
    customer.DeletedDate = datetime.now()
    log_audit(db, "Customer", customer.CustomerID, "Deleted")
    return customer


def _restore(db: Session, customer_id: UUID) -> Customer:
    customer = db.execute(
        select(Customer).where(Customer.CustomerID == customer_id, Customer.DeletedDate.is_not(None))
    ).scalars().first()
    if customer is None:
        raise NotFoundError(f"Deleted customer with id {customer_id} not found.")
    customer.DeletedDate = None
    customer.UpdatedDate = datetime.now()
    log_audit(db, "Customer", customer.CustomerID, "Restored")
    return customer


def soft_delete_customer(db: Session, customer_id: UUID) -> Customer:
    with transaction(db):
        customer = _soft_delete(db, customer_id)
    PARTY_LOGGER.info("Customer %s soft deleted", customer_id)
    return customer


def restore_customer(db: Session, customer_id: UUID) -> Customer:
    with transaction(db):
        customer = _restore(db, customer_id)
    return customer


def run_party_bulk(db: Session, entity_ids: Iterable[UUID], operation, label: str) -> BulkOperationResult:
    """Apply ``operation`` to each id, recording failures instead of aborting; successes commit together."""
    ids = list(dict.fromkeys(entity_ids))
    if not ids:
        raise ValidationError(f"{label} ids cannot be empty.")

    result = BulkOperationResult()
    with transaction(db):
        for entity_id in ids:
            try:
                operation(db, entity_id)
            except EquipmentRentalError as exc:
                result.add_error(entity_id, str(exc))
                continue
            db.flush()
            result.add_success(entity_id)
    PARTY_LOGGER.info("%s bulk run: %s succeeded, %s failed", label, result.success_count, result.failure_count)
    return result


def delete_customers(db: Session, customer_ids: Iterable[UUID]) -> BulkOperationResult:
    return run_party_bulk(db, customer_ids, _soft_delete, "Customer")


def restore_customers(db: Session, customer_ids: Iterable[UUID]) -> BulkOperationResult:
    return run_party_bulk(db, customer_ids, _restore, "Customer")


def serialize_customer(customer: Customer) -> dict:
    return {
        "customerID": str(customer.CustomerID),
        "name": customer.Name,
        "email": customer.Email,
        "country": customer.Country,
        "city": customer.City,
        "address": customer.Address,
        "phoneNumbers": [phone.Number for phone in customer.PhoneNumbers],
        "addedDate": customer.AddedDate,
        "updatedDate": customer.UpdatedDate,
        "deletedDate": customer.DeletedDate,
        "rowVersion": customer.RowVersion,
    }
