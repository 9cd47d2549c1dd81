import logging
import os
import uuid
from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

load_dotenv()

from equipment_rental.db.base import Base
from equipment_rental.db.deps import get_rental_db
from equipment_rental.db.session import SessionLocalRental, engine_rental
from equipment_rental.models.enums import EquipmentBrand, EquipmentStatus, EquipmentType
from equipment_rental.schemas.contracts import (
    OverlapCheckRequest,
    RentalContractCreate,
    RentalContractPatch,
    RentalContractUpdate,
    SellingContractCreate,
    SellingContractPatch,
    SellingContractUpdate,
)
from equipment_rental.schemas.equipment import (
    EquipmentBulkStatusUpdate,
    EquipmentCreate,
    EquipmentStatusUpdate,
    EquipmentUpdate,
    MaintenanceRecordCreate,
    MaintenanceRecordUpdate,
    TechnicalInformationUpdate,
)
from equipment_rental.schemas.parties import CustomerCreate, CustomerUpdate, SupplierCreate, SupplierUpdate
from equipment_rental.schemas.query import (
    CustomerParameters,
    EquipmentParameters,
    RentalContractParameters,
    SellingContractParameters,
    SupplierParameters,
)
from equipment_rental.services import (
    customer_service,
    equipment_service,
    maintenance_service,
    supplier_service,
    technical_information_service,
)
from equipment_rental.services import equipment_analytics_service as equipment_analytics
from equipment_rental.services import rental_analytics_service as rental_analytics
from equipment_rental.services import rental_contract_service as rentals
from equipment_rental.services import selling_analytics_service as selling_analytics
from equipment_rental.services import selling_contract_service as sales
from equipment_rental.services.audit_service import get_audit_trail, serialize_audit_entry
from equipment_rental.services.errors import EquipmentRentalError
from equipment_rental.services.expiration_worker import CONTRACT_EXPIRATION_WORKER_ENABLED, ContractExpirationWorker

APP_LOGGER = logging.getLogger("equipment_rental.app")

_AUTO_CREATE_SCHEMA = str(os.environ.get("EQUIPMENT_RENTAL_AUTO_CREATE_SCHEMA", "false")).strip().lower() in {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
    if _AUTO_CREATE_SCHEMA:
        Base.metadata.create_all(engine_rental)
        APP_LOGGER.info("Database schema ensured")
    worker = None
    if CONTRACT_EXPIRATION_WORKER_ENABLED:
        worker = ContractExpirationWorker(SessionLocalRental)
        worker.start()
    try:
        yield
    finally:
        if worker is not None:
            worker.stop()


app = FastAPI(lifespan=lifespan)

def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.environ.get(name, default)
    return [item.strip() for item in str(raw).split(",") if item.strip()]


_CORS_ALLOW_ORIGINS = _parse_csv_env(
    "CORS_ALLOW_ORIGINS",
    "http://127.0.0.1,http://localhost,http://127.0.0.1:5001,http://localhost:5001",
)
_CORS_ALLOW_CREDENTIALS = str(os.environ.get("CORS_ALLOW_CREDENTIALS", "true")).strip().lower() in {"1", "true", "yes", "on"}
if "*" in _CORS_ALLOW_ORIGINS:
    # Browsers reject wildcard origins with credentials; force safe behavior.
    _CORS_ALLOW_CREDENTIALS = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=_CORS_ALLOW_ORIGINS,
    allow_credentials=_CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.exception_handler(EquipmentRentalError)
async def handle_domain_error(request: Request, exc: EquipmentRentalError):
    if exc.status_code >= 409:
        APP_LOGGER.warning("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def _parse_ids(raw: str) -> list[uuid.UUID]:
    ids = []
    for item in str(raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        try:
            ids.append(uuid.UUID(item))
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Invalid id: {item}") from exc
    if not ids:
        raise HTTPException(status_code=400, detail="No ids supplied.")
    return ids


@app.get("/healthz")
def healthcheck():
    return {"status": "ok"}


@app.get("/api/healthz")
def healthcheck_api(db: Session = Depends(get_rental_db)):
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as exc:
        raise HTTPException(status_code=503, detail=f"db_unavailable: {exc}") from exc


# Rental contracts

@app.get("/api/rental-contracts")
def get_rental_contracts(params: RentalContractParameters = Depends(), db: Session = Depends(get_rental_db)):
    return rentals.list_rental_contracts(db, params).to_payload(rentals.serialize_rental_contract)


@app.get("/api/rental-contracts/active")
def get_active_rental_contracts(today: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return [rentals.serialize_rental_contract(contract) for contract in rentals.get_active_contracts(db, today)]


@app.get("/api/rental-contracts/expiring")
def get_expiring_rental_contracts(
    days: int = Query(30, ge=0),
    today: Optional[date] = None,
    db: Session = Depends(get_rental_db),
):
    return [rentals.serialize_rental_contract(contract) for contract in rentals.get_expiring_contracts(db, days, today)]


@app.get("/api/rental-contracts/deleted")
def get_deleted_rental_contracts(db: Session = Depends(get_rental_db)):
    return [rentals.serialize_rental_contract(contract) for contract in rentals.get_deleted_rental_contracts(db)]


@app.get("/api/rental-contracts/deleted/{contract_id}")
def get_deleted_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.require_deleted_rental_contract(db, contract_id))


@app.get("/api/rental-contracts/by-customer/{customer_id}")
def get_rental_contracts_by_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [rentals.serialize_rental_contract(contract) for contract in rentals.get_rental_contracts_by_customer(db, customer_id)]


@app.get("/api/rental-contracts/by-equipment/{equipment_id}")
def get_rental_contracts_by_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [rentals.serialize_rental_contract(contract) for contract in rentals.get_rental_contracts_by_equipment(db, equipment_id)]


@app.get("/api/rental-contracts/has-contracts/customer/{customer_id}")
def customer_has_rental_contracts(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"hasContracts": rentals.customer_has_rental_contracts(db, customer_id)}


@app.get("/api/rental-contracts/has-contracts/equipment/{equipment_id}")
def equipment_has_rental_contracts(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"hasContracts": rentals.equipment_has_rental_contracts(db, equipment_id)}


@app.post("/api/rental-contracts/overlap")
def check_rental_overlap(payload: OverlapCheckRequest, db: Session = Depends(get_rental_db)):
    overlapping = rentals.has_overlapping_contracts(
        db, payload.equipmentID, payload.startDate, payload.endDate, payload.excludeContractID
    )
    return {"hasOverlap": overlapping}


@app.post("/api/rental-contracts/finish-expired")
def finish_expired_rental_contracts(db: Session = Depends(get_rental_db)):
    return {"finished": rentals.finish_expired_contracts(db)}


@app.get("/api/rental-contracts/collection/{ids}")
def get_rental_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    contract_ids = _parse_ids(ids)
    contracts = rentals.get_rental_contracts_by_ids(db, contract_ids)
    if len(contracts) != len(set(contract_ids)):
        raise HTTPException(status_code=404, detail="One or more rental contracts not found.")
    return [rentals.serialize_rental_contract(contract) for contract in contracts]


@app.post("/api/rental-contracts/collection", status_code=201)
def create_rental_contract_collection(payload: List[RentalContractCreate], db: Session = Depends(get_rental_db)):
    result = rentals.create_rental_contracts(db, payload)
    created = rentals.get_rental_contracts_by_ids(db, result.success_ids)
    return [rentals.serialize_rental_contract(contract) for contract in created]


@app.delete("/api/rental-contracts/collection/{ids}")
def delete_rental_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    return rentals.delete_rental_contracts(db, _parse_ids(ids)).to_payload()


@app.post("/api/rental-contracts/collection/{ids}/restore")
def restore_rental_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    return rentals.restore_rental_contracts(db, _parse_ids(ids)).to_payload()


@app.get("/api/rental-contracts/{contract_id}")
def get_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.require_rental_contract(db, contract_id))


@app.get("/api/rental-contracts/{contract_id}/exists")
def rental_contract_exists(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"exists": rentals.rental_contract_exists(db, contract_id)}


@app.get("/api/rental-contracts/{contract_id}/history")
def get_rental_contract_history(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [serialize_audit_entry(entry) for entry in get_audit_trail(db, rentals.ENTITY_TYPE, contract_id)]


@app.post("/api/rental-contracts", status_code=201)
def create_rental_contract(payload: RentalContractCreate, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.create_rental_contract(db, payload))


@app.put("/api/rental-contracts/{contract_id}")
def update_rental_contract(contract_id: uuid.UUID, payload: RentalContractUpdate, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.update_rental_contract(db, contract_id, payload))


@app.patch("/api/rental-contracts/{contract_id}")
def patch_rental_contract(contract_id: uuid.UUID, payload: RentalContractPatch, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.patch_rental_contract(db, contract_id, payload))


@app.post("/api/rental-contracts/{contract_id}/activate")
def activate_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.activate_rental_contract(db, contract_id))


@app.post("/api/rental-contracts/{contract_id}/suspend")
def suspend_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.suspend_rental_contract(db, contract_id))


@app.post("/api/rental-contracts/{contract_id}/resume")
def resume_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.resume_rental_contract(db, contract_id))


@app.post("/api/rental-contracts/{contract_id}/finish")
def finish_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.finish_rental_contract(db, contract_id))


@app.post("/api/rental-contracts/{contract_id}/cancel")
def cancel_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.cancel_rental_contract(db, contract_id))


@app.delete("/api/rental-contracts/{contract_id}")
def delete_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    rentals.soft_delete_rental_contract(db, contract_id)
    return {"message": "Deleted"}


@app.post("/api/rental-contracts/{contract_id}/restore")
def restore_rental_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return rentals.serialize_rental_contract(rentals.restore_rental_contract(db, contract_id))


# Selling contracts

@app.get("/api/selling-contracts")
def get_selling_contracts(params: SellingContractParameters = Depends(), db: Session = Depends(get_rental_db)):
    return sales.list_selling_contracts(db, params).to_payload(sales.serialize_selling_contract)


@app.get("/api/selling-contracts/deleted")
def get_deleted_selling_contracts(db: Session = Depends(get_rental_db)):
    return [sales.serialize_selling_contract(contract) for contract in sales.get_deleted_selling_contracts(db)]


@app.get("/api/selling-contracts/deleted/{contract_id}")
def get_deleted_selling_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.require_deleted_selling_contract(db, contract_id))


@app.get("/api/selling-contracts/by-customer/{customer_id}")
def get_selling_contracts_by_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [sales.serialize_selling_contract(contract) for contract in sales.get_selling_contracts_by_customer(db, customer_id)]


@app.get("/api/selling-contracts/by-equipment/{equipment_id}")
def get_selling_contracts_by_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [sales.serialize_selling_contract(contract) for contract in sales.get_selling_contracts_by_equipment(db, equipment_id)]


@app.get("/api/selling-contracts/by-year/{year}")
def get_selling_contracts_by_year(year: int, db: Session = Depends(get_rental_db)):
    return [sales.serialize_selling_contract(contract) for contract in sales.get_selling_contracts_by_year(db, year)]


@app.get("/api/selling-contracts/has-contracts/customer/{customer_id}")
def customer_has_selling_contracts(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"hasContracts": sales.customer_has_selling_contracts(db, customer_id)}


@app.get("/api/selling-contracts/has-contracts/equipment/{equipment_id}")
def equipment_has_selling_contracts(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"hasContracts": sales.equipment_has_selling_contracts(db, equipment_id)}


@app.get("/api/selling-contracts/collection/{ids}")
def get_selling_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    contract_ids = _parse_ids(ids)
    contracts = sales.get_selling_contracts_by_ids(db, contract_ids)
    if len(contracts) != len(set(contract_ids)):
        raise HTTPException(status_code=404, detail="One or more selling contracts not found.")
    return [sales.serialize_selling_contract(contract) for contract in contracts]


@app.post("/api/selling-contracts/collection", status_code=201)
def create_selling_contract_collection(payload: List[SellingContractCreate], db: Session = Depends(get_rental_db)):
    result = sales.create_selling_contracts(db, payload)
    created = sales.get_selling_contracts_by_ids(db, result.success_ids)
    return [sales.serialize_selling_contract(contract) for contract in created]


@app.delete("/api/selling-contracts/collection/{ids}")
def delete_selling_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    return sales.delete_selling_contracts(db, _parse_ids(ids)).to_payload()


@app.post("/api/selling-contracts/collection/{ids}/restore")
def restore_selling_contract_collection(ids: str, db: Session = Depends(get_rental_db)):
    return sales.restore_selling_contracts(db, _parse_ids(ids)).to_payload()


@app.get("/api/selling-contracts/{contract_id}")
def get_selling_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.require_selling_contract(db, contract_id))


@app.get("/api/selling-contracts/{contract_id}/exists")
def selling_contract_exists(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"exists": sales.selling_contract_exists(db, contract_id)}


@app.get("/api/selling-contracts/{contract_id}/history")
def get_selling_contract_history(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [serialize_audit_entry(entry) for entry in get_audit_trail(db, sales.ENTITY_TYPE, contract_id)]


@app.post("/api/selling-contracts", status_code=201)
def create_selling_contract(payload: SellingContractCreate, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.create_selling_contract(db, payload))


@app.put("/api/selling-contracts/{contract_id}")
def update_selling_contract(contract_id: uuid.UUID, payload: SellingContractUpdate, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.update_selling_contract(db, contract_id, payload))


@app.patch("/api/selling-contracts/{contract_id}")
def patch_selling_contract(contract_id: uuid.UUID, payload: SellingContractPatch, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.patch_selling_contract(db, contract_id, payload))


@app.delete("/api/selling-contracts/{contract_id}")
def delete_selling_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    sales.soft_delete_selling_contract(db, contract_id)
    return {"message": "Deleted"}


@app.post("/api/selling-contracts/{contract_id}/restore")
def restore_selling_contract(contract_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return sales.serialize_selling_contract(sales.restore_selling_contract(db, contract_id))


# Equipment

@app.get("/api/equipment")
def get_equipment(params: EquipmentParameters = Depends(), db: Session = Depends(get_rental_db)):
    return equipment_service.list_equipment(db, params).to_payload(equipment_service.serialize_equipment)


@app.get("/api/equipment/deleted")
def get_deleted_equipment(params: EquipmentParameters = Depends(), db: Session = Depends(get_rental_db)):
    return equipment_service.list_deleted_equipment(db, params).to_payload(equipment_service.serialize_equipment)


@app.get("/api/equipment/deleted/{equipment_id}")
def get_deleted_equipment_item(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.require_deleted_equipment(db, equipment_id))


@app.get("/api/equipment/by-status/{equipment_status}")
def get_equipment_by_status(equipment_status: EquipmentStatus, params: EquipmentParameters = Depends(), db: Session = Depends(get_rental_db)):
    return equipment_service.list_equipment_by_status(db, equipment_status, params).to_payload(equipment_service.serialize_equipment)


@app.get("/api/equipment/by-supplier/{supplier_id}")
def get_equipment_by_supplier(supplier_id: uuid.UUID, params: EquipmentParameters = Depends(), db: Session = Depends(get_rental_db)):
    return equipment_service.list_equipment_by_supplier(db, supplier_id, params).to_payload(equipment_service.serialize_equipment)


@app.patch("/api/equipment/collection/status")
def change_equipment_collection_status(payload: EquipmentBulkStatusUpdate, db: Session = Depends(get_rental_db)):
    return equipment_service.change_equipment_bulk_status(db, payload.equipmentIDs, payload.status).to_payload()


@app.get("/api/equipment/collection/{ids}")
def get_equipment_collection(ids: str, db: Session = Depends(get_rental_db)):
    equipment_ids = _parse_ids(ids)
    items = equipment_service.get_equipment_by_ids(db, equipment_ids)
    if len(items) != len(set(equipment_ids)):
        raise HTTPException(status_code=404, detail="One or more equipment items not found.")
    return [equipment_service.serialize_equipment(item) for item in items]


@app.post("/api/equipment/collection", status_code=201)
def create_equipment_collection(payload: List[EquipmentCreate], db: Session = Depends(get_rental_db)):
    result = equipment_service.create_equipment_collection(db, payload)
    created = equipment_service.get_equipment_by_ids(db, result.success_ids)
    return [equipment_service.serialize_equipment(item) for item in created]


@app.delete("/api/equipment/collection/{ids}")
def delete_equipment_collection(ids: str, db: Session = Depends(get_rental_db)):
    return equipment_service.delete_equipment_collection(db, _parse_ids(ids)).to_payload()


@app.post("/api/equipment/collection/{ids}/restore")
def restore_equipment_collection(ids: str, db: Session = Depends(get_rental_db)):
    return equipment_service.restore_equipment_collection(db, _parse_ids(ids)).to_payload()


@app.get("/api/equipment/{equipment_id}")
def get_equipment_item(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.require_equipment(db, equipment_id))


@app.get("/api/equipment/{equipment_id}/exists")
def equipment_exists(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"exists": equipment_service.equipment_exists(db, equipment_id)}


@app.get("/api/equipment/{equipment_id}/history")
def get_equipment_history(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [serialize_audit_entry(entry) for entry in get_audit_trail(db, "Equipment", equipment_id)]


@app.post("/api/equipment", status_code=201)
def create_equipment(payload: EquipmentCreate, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.create_equipment(db, payload))


@app.put("/api/equipment/{equipment_id}")
def update_equipment(equipment_id: uuid.UUID, payload: EquipmentUpdate, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.update_equipment(db, equipment_id, payload))


@app.patch("/api/equipment/{equipment_id}/status")
def change_equipment_status(equipment_id: uuid.UUID, payload: EquipmentStatusUpdate, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.change_equipment_status(db, equipment_id, payload.status))


@app.delete("/api/equipment/{equipment_id}")
def delete_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    equipment_service.soft_delete_equipment(db, equipment_id)
    return {"message": "Deleted"}


@app.post("/api/equipment/{equipment_id}/restore")
def restore_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return equipment_service.serialize_equipment(equipment_service.restore_equipment(db, equipment_id))


@app.get("/api/equipment/{equipment_id}/maintenance-records")
def get_maintenance_records(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return [maintenance_service.serialize_maintenance_record(record) for record in maintenance_service.list_maintenance_records(db, equipment_id)]


@app.post("/api/equipment/{equipment_id}/maintenance-records", status_code=201)
def create_maintenance_record(equipment_id: uuid.UUID, payload: MaintenanceRecordCreate, db: Session = Depends(get_rental_db)):
    record = maintenance_service.create_maintenance_record(db, equipment_id, payload)
    return maintenance_service.serialize_maintenance_record(record)


@app.get("/api/maintenance-records/{record_id}")
def get_maintenance_record(record_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return maintenance_service.serialize_maintenance_record(maintenance_service.require_maintenance_record(db, record_id))


@app.put("/api/maintenance-records/{record_id}")
def update_maintenance_record(record_id: uuid.UUID, payload: MaintenanceRecordUpdate, db: Session = Depends(get_rental_db)):
    return maintenance_service.serialize_maintenance_record(maintenance_service.update_maintenance_record(db, record_id, payload))


@app.delete("/api/maintenance-records/{record_id}")
def delete_maintenance_record(record_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    maintenance_service.soft_delete_maintenance_record(db, record_id)
    return {"message": "Deleted"}


@app.get("/api/equipment/{equipment_id}/technical-information")
def get_technical_information(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    info = technical_information_service.get_technical_information(db, equipment_id)
    return technical_information_service.serialize_technical_information(info)


@app.put("/api/equipment/{equipment_id}/technical-information")
def put_technical_information(equipment_id: uuid.UUID, payload: TechnicalInformationUpdate, db: Session = Depends(get_rental_db)):
    info = technical_information_service.upsert_technical_information(db, equipment_id, payload)
    return technical_information_service.serialize_technical_information(info)


# Customers and suppliers

@app.get("/api/customers")
def get_customers(params: CustomerParameters = Depends(), db: Session = Depends(get_rental_db)):
    return customer_service.list_customers(db, params).to_payload(customer_service.serialize_customer)


@app.get("/api/customers/collection/{ids}")
def get_customer_collection(ids: str, db: Session = Depends(get_rental_db)):
    customer_ids = _parse_ids(ids)
    customers = customer_service.get_customers_by_ids(db, customer_ids)
    if len(customers) != len(set(customer_ids)):
        raise HTTPException(status_code=404, detail="One or more customers not found.")
    return [customer_service.serialize_customer(customer) for customer in customers]


@app.delete("/api/customers/collection/{ids}")
def delete_customer_collection(ids: str, db: Session = Depends(get_rental_db)):
    return customer_service.delete_customers(db, _parse_ids(ids)).to_payload()


@app.post("/api/customers/collection/{ids}/restore")
def restore_customer_collection(ids: str, db: Session = Depends(get_rental_db)):
    return customer_service.restore_customers(db, _parse_ids(ids)).to_payload()


@app.get("/api/customers/{customer_id}")
def get_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return customer_service.serialize_customer(customer_service.require_customer(db, customer_id))


@app.get("/api/customers/{customer_id}/exists")
def customer_exists(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"exists": customer_service.customer_exists(db, customer_id)}


@app.post("/api/customers", status_code=201)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_rental_db)):
    return customer_service.serialize_customer(customer_service.create_customer(db, payload))


@app.put("/api/customers/{customer_id}")
def update_customer(customer_id: uuid.UUID, payload: CustomerUpdate, db: Session = Depends(get_rental_db)):
    return customer_service.serialize_customer(customer_service.update_customer(db, customer_id, payload))


@app.delete("/api/customers/{customer_id}")
def delete_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    customer_service.soft_delete_customer(db, customer_id)
    return {"message": "Deleted"}


@app.post("/api/customers/{customer_id}/restore")
def restore_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return customer_service.serialize_customer(customer_service.restore_customer(db, customer_id))


@app.get("/api/suppliers")
def get_suppliers(params: SupplierParameters = Depends(), db: Session = Depends(get_rental_db)):
    return supplier_service.list_suppliers(db, params).to_payload(supplier_service.serialize_supplier)


@app.get("/api/suppliers/collection/{ids}")
def get_supplier_collection(ids: str, db: Session = Depends(get_rental_db)):
    supplier_ids = _parse_ids(ids)
    suppliers = supplier_service.get_suppliers_by_ids(db, supplier_ids)
    if len(suppliers) != len(set(supplier_ids)):
        raise HTTPException(status_code=404, detail="One or more suppliers not found.")
    return [supplier_service.serialize_supplier(supplier) for supplier in suppliers]


@app.delete("/api/suppliers/collection/{ids}")
def delete_supplier_collection(ids: str, db: Session = Depends(get_rental_db)):
    return supplier_service.delete_suppliers(db, _parse_ids(ids)).to_payload()


@app.post("/api/suppliers/collection/{ids}/restore")
def restore_supplier_collection(ids: str, db: Session = Depends(get_rental_db)):
    return supplier_service.restore_suppliers(db, _parse_ids(ids)).to_payload()


@app.get("/api/suppliers/{supplier_id}")
def get_supplier(supplier_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return supplier_service.serialize_supplier(supplier_service.require_supplier(db, supplier_id))


@app.get("/api/suppliers/{supplier_id}/exists")
def supplier_exists(supplier_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"exists": supplier_service.supplier_exists(db, supplier_id)}


@app.post("/api/suppliers", status_code=201)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_rental_db)):
    return supplier_service.serialize_supplier(supplier_service.create_supplier(db, payload))


@app.put("/api/suppliers/{supplier_id}")
def update_supplier(supplier_id: uuid.UUID, payload: SupplierUpdate, db: Session = Depends(get_rental_db)):
    return supplier_service.serialize_supplier(supplier_service.update_supplier(db, supplier_id, payload))


@app.delete("/api/suppliers/{supplier_id}")
def delete_supplier(supplier_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    supplier_service.soft_delete_supplier(db, supplier_id)
    return {"message": "Deleted"}


@app.post("/api/suppliers/{supplier_id}/restore")
def restore_supplier(supplier_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return supplier_service.serialize_supplier(supplier_service.restore_supplier(db, supplier_id))


# Rental analytics

@app.get("/api/analytics/rental-contracts/count")
def rental_contract_count(db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_rental_contract_count(db)}


@app.get("/api/analytics/rental-contracts/active-count")
def rental_active_count(today: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_total_active_count(db, today)}


@app.get("/api/analytics/rental-contracts/customers/{customer_id}/count")
def rental_count_for_customer(customer_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_total_contracts_for_customer(db, customer_id)}


@app.get("/api/analytics/rental-contracts/equipment/{equipment_id}/count")
def rental_count_for_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_total_contracts_for_equipment(db, equipment_id)}


@app.get("/api/analytics/rental-contracts/equipment-summary")
def rental_equipment_summary(db: Session = Depends(get_rental_db)):
    return rental_analytics.get_equipment_contract_summary(db)


@app.get("/api/analytics/rental-contracts/revenue")
def rental_total_revenue(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"revenue": rental_analytics.get_total_revenue(db, fromDate, toDate)}


@app.get("/api/analytics/rental-contracts/revenue-by-customer")
def rental_revenue_by_customer(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return rental_analytics.get_revenue_by_customer(db, fromDate, toDate)


@app.get("/api/analytics/rental-contracts/revenue-by-month/{year}")
def rental_revenue_by_month(year: int, db: Session = Depends(get_rental_db)):
    return rental_analytics.get_revenue_by_month(db, year)


@app.get("/api/analytics/rental-contracts/price-statistics")
def rental_price_statistics(db: Session = Depends(get_rental_db)):
    return rental_analytics.get_contract_price_statistics(db)


@app.get("/api/analytics/rental-contracts/finished-count")
def rental_finished_count(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_finished_contracts_count(db, fromDate, toDate)}


@app.get("/api/analytics/rental-contracts/cancelled-count")
def rental_cancelled_count(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"count": rental_analytics.get_cancelled_contracts_count(db, fromDate, toDate)}


@app.get("/api/analytics/rental-contracts/average-duration")
def rental_average_duration(db: Session = Depends(get_rental_db)):
    return {"days": rental_analytics.get_average_contract_duration_in_days(db)}


@app.get("/api/analytics/rental-contracts/average-revenue-per-customer")
def rental_average_revenue_per_customer(db: Session = Depends(get_rental_db)):
    return {"revenue": rental_analytics.get_average_revenue_per_customer(db)}


@app.get("/api/analytics/rental-contracts/average-price")
def rental_average_price(db: Session = Depends(get_rental_db)):
    return {"price": rental_analytics.get_average_rental_price(db)}


# Selling analytics

@app.get("/api/analytics/selling-contracts/revenue")
def selling_total_revenue(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"revenue": selling_analytics.get_total_revenue(db, fromDate, toDate)}


@app.get("/api/analytics/selling-contracts/average-price")
def selling_average_price(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"price": selling_analytics.get_average_sale_price(db, fromDate, toDate)}


@app.get("/api/analytics/selling-contracts/min-price")
def selling_min_price(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"price": selling_analytics.get_min_sale_price(db, fromDate, toDate)}


@app.get("/api/analytics/selling-contracts/max-price")
def selling_max_price(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"price": selling_analytics.get_max_sale_price(db, fromDate, toDate)}


@app.get("/api/analytics/selling-contracts/average-price-by-equipment")
def selling_average_price_by_equipment(
    fromDate: Optional[date] = None,
    toDate: Optional[date] = None,
    brand: Optional[EquipmentBrand] = None,
    equipmentType: Optional[EquipmentType] = None,
    db: Session = Depends(get_rental_db),
):
    return selling_analytics.get_average_sale_price_by_equipment(db, fromDate, toDate, brand, equipmentType)


@app.get("/api/analytics/selling-contracts/revenue-by-day")
def selling_revenue_by_day(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_revenue_by_day(db, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/revenue-by-month/{year}")
def selling_revenue_by_month(year: int, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_revenue_by_month(db, year)


@app.get("/api/analytics/selling-contracts/revenue-by-year")
def selling_revenue_by_year(db: Session = Depends(get_rental_db)):
    return selling_analytics.get_revenue_by_year(db)


@app.get("/api/analytics/selling-contracts/count")
def selling_count(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return {"count": selling_analytics.get_sales_count(db, fromDate, toDate)}


@app.get("/api/analytics/selling-contracts/revenue-by-customer")
def selling_revenue_by_customer(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_revenue_by_customer(db, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/top-customers")
def selling_top_customers(
    top: int = Query(5, ge=1, le=100),
    fromDate: Optional[date] = None,
    toDate: Optional[date] = None,
    db: Session = Depends(get_rental_db),
):
    return selling_analytics.get_top_customers(db, top, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/count-by-customer")
def selling_count_by_customer(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_sales_count_by_customer(db, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/revenue-by-equipment")
def selling_revenue_by_equipment(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_revenue_by_equipment(db, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/top-equipment")
def selling_top_equipment(
    top: int = Query(5, ge=1, le=100),
    fromDate: Optional[date] = None,
    toDate: Optional[date] = None,
    db: Session = Depends(get_rental_db),
):
    return selling_analytics.get_top_selling_equipment(db, top, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/count-by-equipment")
def selling_count_by_equipment(fromDate: Optional[date] = None, toDate: Optional[date] = None, db: Session = Depends(get_rental_db)):
    return selling_analytics.get_sales_count_by_equipment(db, fromDate, toDate)


@app.get("/api/analytics/selling-contracts/deleted-count")
def selling_deleted_count(db: Session = Depends(get_rental_db)):
    return {"count": selling_analytics.get_deleted_contracts_count(db)}


@app.get("/api/analytics/selling-contracts/equipment/{equipment_id}/average-price")
def selling_average_price_for_equipment(equipment_id: uuid.UUID, db: Session = Depends(get_rental_db)):
    return {"price": selling_analytics.get_average_sale_price_per_equipment(db, equipment_id)}


# Equipment analytics

@app.get("/api/analytics/equipment/count")
def equipment_total_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_total_equipment_count(db)}


@app.get("/api/analytics/equipment/available-count")
def equipment_available_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_available_equipment_count(db)}


@app.get("/api/analytics/equipment/sold-count")
def equipment_sold_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_sold_equipment_count(db)}


@app.get("/api/analytics/equipment/under-maintenance-count")
def equipment_under_maintenance_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_under_maintenance_equipment_count(db)}


@app.get("/api/analytics/equipment/rented-count")
def equipment_rented_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_rented_equipment_count(db)}


@app.get("/api/analytics/equipment/purchase-cost")
def equipment_purchase_cost(db: Session = Depends(get_rental_db)):
    return {"total": equipment_analytics.get_total_purchase_cost(db)}


@app.get("/api/analytics/equipment/expenses")
def equipment_expenses(db: Session = Depends(get_rental_db)):
    return {"total": equipment_analytics.get_total_expenses(db)}


@app.get("/api/analytics/equipment/shipping-cost")
def equipment_shipping_cost(db: Session = Depends(get_rental_db)):
    return {"total": equipment_analytics.get_total_shipping_cost(db)}


@app.get("/api/analytics/equipment/total-value")
def equipment_total_value(db: Session = Depends(get_rental_db)):
    return {"total": equipment_analytics.get_total_equipment_value(db)}


@app.get("/api/analytics/equipment/average-price")
def equipment_average_price(db: Session = Depends(get_rental_db)):
    return {"price": equipment_analytics.get_average_equipment_price(db)}


@app.get("/api/analytics/equipment/count-by-brand")
def equipment_count_by_brand(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_count_by_brand(db)


@app.get("/api/analytics/equipment/count-by-type")
def equipment_count_by_type(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_count_by_type(db)


@app.get("/api/analytics/equipment/value-by-brand")
def equipment_value_by_brand(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_total_value_by_brand(db)


@app.get("/api/analytics/equipment/value-by-type")
def equipment_value_by_type(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_total_value_by_type(db)


@app.get("/api/analytics/equipment/with-maintenance-count")
def equipment_with_maintenance_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_equipment_with_maintenance_count(db)}


@app.get("/api/analytics/equipment/without-maintenance-count")
def equipment_without_maintenance_count(db: Session = Depends(get_rental_db)):
    return {"count": equipment_analytics.get_equipment_without_maintenance_count(db)}


@app.get("/api/analytics/equipment/maintenance-count-by-equipment")
def equipment_maintenance_count_by_equipment(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_maintenance_count_by_equipment(db)


@app.get("/api/analytics/equipment/count-by-manufacture-year")
def equipment_count_by_manufacture_year(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_count_by_manufacture_year(db)


@app.get("/api/analytics/equipment/purchase-cost-by-month/{year}")
def equipment_purchase_cost_by_month(year: int, db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_purchase_cost_by_month(db, year)


@app.get("/api/analytics/equipment/purchased-per-year")
def equipment_purchased_per_year(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_purchased_per_year(db)


@app.get("/api/analytics/equipment/under-maintenance-ids")
def equipment_under_maintenance_ids(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_ids_under_maintenance(db)


@app.get("/api/analytics/equipment/idle-ids")
def equipment_idle_ids(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_idle_equipment_ids(db)


@app.get("/api/analytics/equipment/most-expensive-ids")
def equipment_most_expensive_ids(top: int = Query(5, ge=1, le=100), db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_most_expensive_equipment_ids(db, top)


@app.get("/api/analytics/equipment/count-by-supplier")
def equipment_count_by_supplier(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_count_by_supplier(db)


@app.get("/api/analytics/equipment/value-by-supplier")
def equipment_value_by_supplier(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_total_value_by_supplier(db)


@app.get("/api/analytics/equipment/status-distribution")
def equipment_status_distribution(db: Session = Depends(get_rental_db)):
    return equipment_analytics.get_equipment_status_distribution(db)
