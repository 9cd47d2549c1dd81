import contextlib
import io
import threading
import unittest
from datetime import date, timedelta

from equipment_rental.tests.support import build_test_database, rental_payload, seed_customer, seed_equipment, selling_payload

from equipment_rental.models.enums import EquipmentStatus, RentalContractStatus
from equipment_rental.models.rental_models import Equipment, RentalContract
from equipment_rental.scripts import db_overview, finish_expired_contracts
from equipment_rental.services import rental_contract_service as rentals
from equipment_rental.services import selling_contract_service as sales
from equipment_rental.services.cache_service import MemoryCache, set_cache_backend
from equipment_rental.services.expiration_worker import ContractExpirationWorker


class ExpirationWorkerTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        set_cache_backend(MemoryCache())
        self.customer = seed_customer(self.db)
        self.equipment = seed_equipment(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_run_once_finishes_overdue_contracts(self):
        past = date.today() - timedelta(days=30)
        contract = rentals.create_rental_contract(
            self.db, rental_payload(self.equipment, self.customer, start=past, days=3), today=past
        )
        rentals.activate_rental_contract(self.db, contract.RentalContractID)
        contract_id = contract.RentalContractID
        equipment_id = self.equipment.EquipmentID
        self.db.close()

        finished = ContractExpirationWorker(self.Session, interval_seconds=60).run_once()

        self.assertEqual(finished, 1)
        check = self.Session()
        try:
            self.assertEqual(check.get(RentalContract, contract_id).Status, RentalContractStatus.FINISHED.value)
            self.assertEqual(check.get(Equipment, equipment_id).Status, EquipmentStatus.AVAILABLE.value)
        finally:
            check.close()

    def test_loop_survives_failures_and_stops(self):
        attempted = threading.Event()

        def broken_factory():
            attempted.set()
            raise RuntimeError("database offline")

        worker = ContractExpirationWorker(broken_factory, interval_seconds=3600)
        with self.assertLogs("equipment_rental.worker", level="ERROR"):
            worker.start()
            self.assertTrue(attempted.wait(5))
            worker.stop()

        self.assertFalse(worker.running)


class ScriptTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        set_cache_backend(MemoryCache())
        self.customer = seed_customer(self.db)
        self.equipment = seed_equipment(self.db)

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def test_schema_checks_pass_on_fresh_database(self):
        self.assertTrue(all(row.ok for row in db_overview.run_existence_checks(self.engine)))
        self.assertTrue(all(row.ok for row in db_overview.run_column_checks(self.engine)))

    def test_consistency_checks_pass_for_service_writes(self):
        contract = rentals.create_rental_contract(self.db, rental_payload(self.equipment, self.customer))
        rentals.activate_rental_contract(self.db, contract.RentalContractID)
        sales.create_selling_contract(self.db, selling_payload(seed_equipment(self.db, name="Paver"), self.customer))

        results = db_overview.run_consistency_checks(self.db)

        self.assertEqual([row.name for row in results if not row.ok], [])

    def test_consistency_checks_flag_orphaned_rented_status(self):
        self.equipment.Status = EquipmentStatus.RENTED.value
        self.db.commit()

        failing = {row.name: row.detail for row in db_overview.run_consistency_checks(self.db) if not row.ok}

        self.assertEqual(failing, {"equipment:rented_without_contract": "count=1"})

    def test_overview_requires_db_url(self):
        with contextlib.redirect_stdout(io.StringIO()):
            self.assertEqual(db_overview.main(["--db-url", ""]), 2)
            self.assertEqual(finish_expired_contracts.main(["--db-url", ""]), 2)


if __name__ == "__main__":
    unittest.main()
