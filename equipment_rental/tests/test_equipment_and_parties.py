import unittest
import uuid
from datetime import date
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from equipment_rental.tests.support import build_test_database, rental_payload, seed_customer, seed_equipment

from equipment_rental.models.enums import EngineType, EquipmentBrand, EquipmentStatus, EquipmentType
from equipment_rental.schemas.equipment import (
    EquipmentCreate,
    EquipmentUpdate,
    MaintenanceRecordCreate,
    MaintenanceRecordUpdate,
    TechnicalInformationUpdate,
)
from equipment_rental.schemas.parties import CustomerUpdate, SupplierCreate
from equipment_rental.schemas.query import CustomerParameters, EquipmentParameters, SupplierParameters
from equipment_rental.services import (
    customer_service,
    equipment_service,
    maintenance_service,
    supplier_service,
    technical_information_service,
)
from equipment_rental.services import rental_contract_service as rentals
from equipment_rental.services.cache_service import EQUIPMENT_SCOPE, MemoryCache, set_cache_backend
from equipment_rental.services.errors import ConcurrencyConflictError, ConflictError, NotFoundError, ValidationError


class EquipmentServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        self.versions = set_cache_backend(MemoryCache())
        self.customer = seed_customer(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_internal_serials_are_sequential(self):
        first = seed_equipment(self.db)
        second = seed_equipment(self.db, name="Dozer D6")

        self.assertEqual(first.InternalSerial, "EQ0001")
        self.assertEqual(second.InternalSerial, "EQ0002")
        self.assertEqual(float(first.TotalPrice), 25000.0)

    def test_explicit_serial_must_be_unique(self):
        seed_equipment(self.db)

        with self.assertRaises(ConflictError):
            equipment_service.create_equipment(self.db, EquipmentCreate(name="Copy", internalSerial="EQ0001"))

    def test_unknown_supplier_is_rejected(self):
        with self.assertRaises(ValidationError):
            equipment_service.create_equipment(self.db, EquipmentCreate(name="Orphan", supplierID=uuid.uuid4()))

    def test_update_checks_row_version(self):
        equipment = seed_equipment(self.db)
        payload = EquipmentUpdate(name="Excavator 320 GC", rowVersion=equipment.RowVersion + 1)

        with self.assertRaises(ConcurrencyConflictError):
            equipment_service.update_equipment(self.db, equipment.EquipmentID, payload)

        payload.rowVersion = equipment.RowVersion
        updated = equipment_service.update_equipment(self.db, equipment.EquipmentID, payload)
        self.assertEqual(updated.Name, "Excavator 320 GC")
        self.assertEqual(updated.Brand, EquipmentBrand.UNKNOWN.value)

    def test_manual_status_changes(self):
        equipment = seed_equipment(self.db)
        before = self.versions.get_version(EQUIPMENT_SCOPE)

        changed = equipment_service.change_equipment_status(self.db, equipment.EquipmentID, EquipmentStatus.UNDER_MAINTENANCE)

        self.assertEqual(changed.Status, EquipmentStatus.UNDER_MAINTENANCE.value)
        self.assertNotEqual(before, self.versions.get_version(EQUIPMENT_SCOPE))
        with self.assertRaises(ValidationError):
            equipment_service.change_equipment_status(self.db, equipment.EquipmentID, EquipmentStatus.RENTED)

    def test_contract_owned_status_cannot_be_overridden(self):
        equipment = seed_equipment(self.db)
        contract = rentals.create_rental_contract(self.db, rental_payload(equipment, self.customer))
        rentals.activate_rental_contract(self.db, contract.RentalContractID)

        with self.assertRaises(ConflictError):
            equipment_service.change_equipment_status(self.db, equipment.EquipmentID, EquipmentStatus.AVAILABLE)

    def test_bulk_status_reports_each_rejection(self):
        free = seed_equipment(self.db)
        rented = seed_equipment(self.db, name="Loader 950")
        contract = rentals.create_rental_contract(self.db, rental_payload(rented, self.customer))
        rentals.activate_rental_contract(self.db, contract.RentalContractID)
        missing = uuid.uuid4()

        result = equipment_service.change_equipment_bulk_status(
            self.db, [free.EquipmentID, rented.EquipmentID, missing], EquipmentStatus.UNDER_MAINTENANCE
        )

        self.assertEqual(result.success_ids, [free.EquipmentID])
        self.assertEqual({error.entity_id for error in result.errors}, {rented.EquipmentID, missing})
        self.assertEqual(free.Status, EquipmentStatus.UNDER_MAINTENANCE.value)

    def test_delete_is_blocked_by_open_rentals(self):
        equipment = seed_equipment(self.db)
        contract = rentals.create_rental_contract(self.db, rental_payload(equipment, self.customer))

        with self.assertRaises(ConflictError):
            equipment_service.soft_delete_equipment(self.db, equipment.EquipmentID)

        rentals.cancel_rental_contract(self.db, contract.RentalContractID)
        equipment_service.soft_delete_equipment(self.db, equipment.EquipmentID)
        self.assertFalse(equipment_service.equipment_exists(self.db, equipment.EquipmentID))

        restored = equipment_service.restore_equipment(self.db, equipment.EquipmentID)
        self.assertIsNone(restored.DeletedDate)
        with self.assertRaises(NotFoundError):
            equipment_service.restore_equipment(self.db, equipment.EquipmentID)

    def test_listing_filters_and_clamps_page_size(self):
        seed_equipment(self.db, name="Excavator 320")
        seed_equipment(self.db, name="Wheel Loader", brand=EquipmentBrand.VOLVO, equipment_type=EquipmentType.LOADER)
        maintenance = seed_equipment(self.db, name="Excavator 336")
        equipment_service.change_equipment_status(self.db, maintenance.EquipmentID, EquipmentStatus.UNDER_MAINTENANCE)

        page = equipment_service.list_equipment(self.db, EquipmentParameters(pageSize=100))
        self.assertEqual(page.page_size, 16)
        self.assertEqual(page.total_count, 3)

        volvo = equipment_service.list_equipment(self.db, EquipmentParameters(brand=EquipmentBrand.VOLVO))
        self.assertEqual([item.Name for item in volvo.items], ["Wheel Loader"])

        available = equipment_service.list_equipment(self.db, EquipmentParameters(searchQuery="Excavator", isAvailable=True))
        self.assertEqual([item.Name for item in available.items], ["Excavator 320"])

        paged = equipment_service.list_equipment(self.db, EquipmentParameters(pageSize=2, pageNumber=2, sortBy="Name"))
        self.assertEqual(paged.total_pages, 2)
        self.assertTrue(paged.has_previous)
        self.assertFalse(paged.has_next)
        self.assertEqual([item.Name for item in paged.items], ["Wheel Loader"])


    def test_bulk_create_is_all_or_nothing(self):
        with self.assertRaises(ValidationError) as ctx:
            equipment_service.create_equipment_collection(
                self.db,
                [EquipmentCreate(name="Dozer D6"), EquipmentCreate(name="Ghost", supplierID=uuid.uuid4())],
            )
        self.assertTrue(str(ctx.exception).startswith("Equipment #2: Supplier with id"))
        self.assertEqual(equipment_service.list_equipment(self.db, EquipmentParameters()).total_count, 0)

        result = equipment_service.create_equipment_collection(
            self.db, [EquipmentCreate(name="Dozer D6"), EquipmentCreate(name="Grader 140")]
        )
        serials = sorted(item.InternalSerial for item in equipment_service.get_equipment_by_ids(self.db, result.success_ids))
        self.assertEqual(serials, ["EQ0001", "EQ0002"])

    def test_bulk_delete_and_restore_report_each_item(self):
        rented = seed_equipment(self.db)
        idle = seed_equipment(self.db, name="Dozer D6")
        contract = rentals.create_rental_contract(self.db, rental_payload(rented, self.customer))
        rentals.activate_rental_contract(self.db, contract.RentalContractID)
        missing = uuid.uuid4()

        result = equipment_service.delete_equipment_collection(self.db, [rented.EquipmentID, idle.EquipmentID, missing])

        self.assertEqual(result.success_ids, [idle.EquipmentID])
        self.assertEqual([error.entity_id for error in result.errors], [rented.EquipmentID, missing])
        deleted = equipment_service.list_deleted_equipment(self.db, EquipmentParameters())
        self.assertEqual([item.Name for item in deleted.items], ["Dozer D6"])

        restored = equipment_service.restore_equipment_collection(self.db, [idle.EquipmentID, rented.EquipmentID])
        self.assertEqual(restored.success_ids, [idle.EquipmentID])
        self.assertEqual(restored.failure_count, 1)
        with self.assertRaises(ValidationError):
            equipment_service.delete_equipment_collection(self.db, [])

    def test_listing_by_supplier_and_status(self):
        supplier = supplier_service.create_supplier(self.db, SupplierCreate(name="Heavy Parts"))
        supplied = equipment_service.create_equipment(self.db, EquipmentCreate(name="Roller", supplierID=supplier.SupplierID))
        other = seed_equipment(self.db)
        equipment_service.change_equipment_status(self.db, other.EquipmentID, EquipmentStatus.UNDER_MAINTENANCE)

        by_supplier = equipment_service.list_equipment_by_supplier(self.db, supplier.SupplierID, EquipmentParameters())
        self.assertEqual([item.EquipmentID for item in by_supplier.items], [supplied.EquipmentID])

        by_status = equipment_service.list_equipment_by_status(self.db, EquipmentStatus.UNDER_MAINTENANCE, EquipmentParameters())
        self.assertEqual([item.EquipmentID for item in by_status.items], [other.EquipmentID])

        with self.assertRaises(NotFoundError):
            equipment_service.require_deleted_equipment(self.db, other.EquipmentID)


class MaintenanceAndTechnicalInformationTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        self.versions = set_cache_backend(MemoryCache())
        self.equipment = seed_equipment(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_maintenance_record_lifecycle(self):
        before = self.versions.get_version(EQUIPMENT_SCOPE)
        record = maintenance_service.create_maintenance_record(
            self.db, self.equipment.EquipmentID, MaintenanceRecordCreate(cost=Decimal("420.50"), technician="Ivan")
        )
        self.assertNotEqual(before, self.versions.get_version(EQUIPMENT_SCOPE))
        self.assertEqual(record.MaintenanceDate, date.today())

        updated = maintenance_service.update_maintenance_record(
            self.db,
            record.MaintenanceRecordID,
            MaintenanceRecordUpdate(rowVersion=1, cost=Decimal("500"), technician="Ivan", maintenanceDate=date(2024, 2, 1)),
        )
        self.assertEqual(maintenance_service.serialize_maintenance_record(updated)["cost"], 500.0)
        self.assertEqual(updated.MaintenanceDate, date(2024, 2, 1))
        with self.assertRaises(ConcurrencyConflictError):
            maintenance_service.update_maintenance_record(self.db, record.MaintenanceRecordID, MaintenanceRecordUpdate(rowVersion=1))

        maintenance_service.soft_delete_maintenance_record(self.db, record.MaintenanceRecordID)
        self.assertEqual(maintenance_service.list_maintenance_records(self.db, self.equipment.EquipmentID), [])
        with self.assertRaises(NotFoundError):
            maintenance_service.list_maintenance_records(self.db, uuid.uuid4())

    def test_technical_information_is_upserted(self):
        with self.assertRaises(NotFoundError):
            technical_information_service.get_technical_information(self.db, self.equipment.EquipmentID)

        technical_information_service.upsert_technical_information(
            self.db, self.equipment.EquipmentID, TechnicalInformationUpdate(enginePower=150, weight=21000)
        )
        info = technical_information_service.upsert_technical_information(
            self.db,
            self.equipment.EquipmentID,
            TechnicalInformationUpdate(engineType=EngineType.HYBRID, enginePower=180, dimensions="9X3 X 3"),
        )

        payload = technical_information_service.serialize_technical_information(info)
        self.assertEqual(payload["engineType"], "Hybrid")
        self.assertEqual(payload["enginePower"], 180)
        self.assertIsNone(payload["weight"])
        self.assertEqual(payload["weightUnit"], "Kilograms")
        self.assertIsNotNone(payload["updatedDate"])

    def test_technical_information_ranges_and_dimensions(self):
        with self.assertRaises(PydanticValidationError):
            TechnicalInformationUpdate(enginePower=1501)
        with self.assertRaises(PydanticValidationError):
            TechnicalInformationUpdate(dimensions="9 x 3")


class PartyServiceTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        set_cache_backend(MemoryCache())

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_phone_numbers_are_trimmed_and_deduplicated(self):
        self.assertEqual(
            customer_service.normalize_phone_numbers([" +381 11 222 ", "+381 11 222", "", "+1 555 0100"]),
            ["+381 11 222", "+1 555 0100"],
        )
        with self.assertRaises(ValidationError):
            customer_service.normalize_phone_numbers(["9" * 31])

    def test_customer_update_replaces_phone_numbers(self):
        customer = seed_customer(self.db)

        updated = customer_service.update_customer(
            self.db,
            customer.CustomerID,
            CustomerUpdate(name="Acme Build d.o.o.", country="Serbia", city="Belgrade", phoneNumbers=["+381 11 000 111"], rowVersion=customer.RowVersion),
        )

        payload = customer_service.serialize_customer(updated)
        self.assertEqual(payload["phoneNumbers"], ["+381 11 000 111"])
        self.assertEqual(payload["address"], "Belgrade, Serbia")
        self.assertEqual(payload["rowVersion"], 2)

        with self.assertRaises(ConcurrencyConflictError):
            customer_service.update_customer(self.db, customer.CustomerID, CustomerUpdate(name="Late", rowVersion=1))

    def test_customer_with_open_rental_cannot_be_deleted(self):
        customer = seed_customer(self.db)
        equipment = seed_equipment(self.db)
        contract = rentals.create_rental_contract(self.db, rental_payload(equipment, customer))

        with self.assertRaises(ConflictError):
            customer_service.soft_delete_customer(self.db, customer.CustomerID)

        rentals.cancel_rental_contract(self.db, contract.RentalContractID)
        customer_service.soft_delete_customer(self.db, customer.CustomerID)
        self.assertFalse(customer_service.customer_exists(self.db, customer.CustomerID))

        customer_service.restore_customer(self.db, customer.CustomerID)
        self.assertTrue(customer_service.customer_exists(self.db, customer.CustomerID))

    def test_customer_listing_filters_location_case_insensitively(self):
        seed_customer(self.db, name="Acme Build", country="Serbia", city="Novi Sad")
        seed_customer(self.db, name="Baumeister", country="Austria", city="Graz")

        page = customer_service.list_customers(self.db, CustomerParameters(country="SERBIA"))

        self.assertEqual([customer.Name for customer in page.items], ["Acme Build"])

    def test_customer_bulk_delete_keeps_customers_with_open_rentals(self):
        busy = seed_customer(self.db)
        idle = seed_customer(self.db, name="Zenit Roads")
        rentals.create_rental_contract(self.db, rental_payload(seed_equipment(self.db), busy))

        result = customer_service.delete_customers(self.db, [busy.CustomerID, idle.CustomerID])

        self.assertEqual(result.success_ids, [idle.CustomerID])
        self.assertIn("open rental contracts", result.errors[0].error_message)
        self.assertEqual([c.CustomerID for c in customer_service.get_customers_by_ids(self.db, [busy.CustomerID, idle.CustomerID])], [busy.CustomerID])

        restored = customer_service.restore_customers(self.db, [idle.CustomerID, busy.CustomerID])
        self.assertEqual(restored.success_ids, [idle.CustomerID])
        self.assertEqual(restored.failure_count, 1)

    def test_supplier_bulk_delete_and_restore(self):
        first = supplier_service.create_supplier(self.db, SupplierCreate(name="Heavy Parts"))
        second = supplier_service.create_supplier(self.db, SupplierCreate(name="Iron Trade"))
        ids = [first.SupplierID, second.SupplierID]

        self.assertEqual(supplier_service.delete_suppliers(self.db, ids).success_count, 2)
        self.assertEqual(supplier_service.get_suppliers_by_ids(self.db, ids), [])
        self.assertEqual(supplier_service.restore_suppliers(self.db, ids).success_count, 2)
        self.assertEqual(len(supplier_service.get_suppliers_by_ids(self.db, ids)), 2)

    def test_supplier_round_trip(self):
        supplier = supplier_service.create_supplier(
            self.db, SupplierCreate(name="Heavy Parts", contactPerson="Mira Jovic", country="Serbia", phoneNumbers=["+381 21 1"])
        )
        equipment = equipment_service.create_equipment(self.db, EquipmentCreate(name="Roller", supplierID=supplier.SupplierID, price=Decimal("900")))
        self.assertEqual(equipment.SupplierID, supplier.SupplierID)

        found = supplier_service.list_suppliers(self.db, SupplierParameters(searchQuery="mira"))
        self.assertEqual(found.total_count, 1)

        supplier_service.soft_delete_supplier(self.db, supplier.SupplierID)
        self.assertFalse(supplier_service.supplier_exists(self.db, supplier.SupplierID))
        with self.assertRaises(NotFoundError):
            supplier_service.require_supplier(self.db, supplier.SupplierID)
        supplier_service.restore_supplier(self.db, supplier.SupplierID)
        self.assertEqual(supplier_service.serialize_supplier(supplier_service.require_supplier(self.db, supplier.SupplierID))["contactPerson"], "Mira Jovic")


if __name__ == "__main__":
    unittest.main()
