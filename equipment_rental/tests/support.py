import os
from datetime import date, timedelta
from decimal import Decimal

os.environ.setdefault("EQUIPMENT_RENTAL_DB_URL", "sqlite+pysqlite:///:memory:")

from equipment_rental.db.base import Base
from equipment_rental.db.engine import build_engine, build_session_factory
from equipment_rental.models.enums import EquipmentBrand, EquipmentType
from equipment_rental.schemas.contracts import RentalContractCreate, SellingContractCreate
from equipment_rental.schemas.equipment import EquipmentCreate
from equipment_rental.schemas.parties import CustomerCreate, SupplierCreate
from equipment_rental.services.customer_service import create_customer
from equipment_rental.services.equipment_service import create_equipment
from equipment_rental.services.supplier_service import create_supplier

TEST_DB_URL = "sqlite+pysqlite:///:memory:"


def build_test_database():
    """Fresh in-memory schema per test case."""
    engine = build_engine(TEST_DB_URL)
    Base.metadata.create_all(engine)
    return engine, build_session_factory(engine)


def seed_customer(db, name="Acme Build", country="Serbia", city="Novi Sad"):
    return create_customer(
        db,
        CustomerCreate(name=name, email=f"{name.split()[0].lower()}@example.com", country=country, city=city, phoneNumbers=["+381 21 555 100"]),
    )


def seed_supplier(db, name="Heavy Parts"):
    return create_supplier(db, SupplierCreate(name=name, country="Serbia", contactPerson="Marko"))


def seed_equipment(
    db,
    name="Excavator 320",
    brand=EquipmentBrand.CATERPILLAR,
    equipment_type=EquipmentType.EXCAVATOR,
    price="25000",
    expenses="0",
    shipping="0",
    manufacture_year=2019,
    purchase_date=None,
    supplier=None,
):
    return create_equipment(
        db,
        EquipmentCreate(
            name=name,
            brand=brand,
            equipmentType=equipment_type,
            price=Decimal(price),
            expenses=Decimal(expenses),
            shippingPrice=Decimal(shipping),
            manufactureYear=manufacture_year,
            purchaseDate=purchase_date,
            supplierID=supplier.SupplierID if supplier is not None else None,
        ),
    )


def rental_payload(equipment, customer, start=None, days=5, shifts=5, shift_price="120.00"):
    start = start or date.today() + timedelta(days=1)
    return RentalContractCreate(
        equipmentID=equipment.EquipmentID,
        customerID=customer.CustomerID,
        startDate=start,
        endDate=start + timedelta(days=days),
        shifts=shifts,
        shiftPrice=Decimal(shift_price),
    )


def selling_payload(equipment, customer, price="30000", sale_date=None):
    return SellingContractCreate(
        equipmentID=equipment.EquipmentID,
        customerID=customer.CustomerID,
        salePrice=Decimal(price),
        saleDate=sale_date,
    )
