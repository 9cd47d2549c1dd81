import os
import unittest
import uuid
from datetime import date, timedelta

from fastapi.testclient import TestClient


os.environ.setdefault("EQUIPMENT_RENTAL_DB_URL", "sqlite+pysqlite:///:memory:")

from equipment_rental import EquipmentMan as app_module
from equipment_rental.services.cache_service import MemoryCache, set_cache_backend
from equipment_rental.tests.support import build_test_database


class ApiFlowTests(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_database()
        self.db = self.Session()
        set_cache_backend(MemoryCache())
        app_module.app.dependency_overrides[app_module.get_rental_db] = lambda: self.db
        self.client = TestClient(app_module.app)

    def tearDown(self):
        app_module.app.dependency_overrides.clear()
        self.db.close()
        self.engine.dispose()

    def _create_customer(self, name="Acme Build"):
        response = self.client.post(
            "/api/customers",
            json={"name": name, "country": "Serbia", "city": "Novi Sad", "phoneNumbers": ["+381 21 555 100"]},
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def _create_equipment(self, name="Excavator 320"):
        response = self.client.post(
            "/api/equipment",
            json={"name": name, "brand": "Caterpillar", "equipmentType": "Excavator", "price": 25000},
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def _create_rental(self, equipment, customer, start=None, days=5):
        start = start or date.today() + timedelta(days=1)
        return self.client.post(
            "/api/rental-contracts",
            json={
                "equipmentID": equipment["equipmentID"],
                "customerID": customer["customerID"],
                "startDate": start.isoformat(),
                "endDate": (start + timedelta(days=days)).isoformat(),
                "shifts": 5,
                "shiftPrice": 120,
            },
        )

    def test_healthchecks(self):
        self.assertEqual(self.client.get("/healthz").json(), {"status": "ok"})
        self.assertEqual(self.client.get("/api/healthz").json(), {"status": "ok"})

    def test_rental_lifecycle_over_http(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        self.assertEqual(equipment["internalSerial"], "EQ0001")

        created = self._create_rental(equipment, customer)
        self.assertEqual(created.status_code, 201)
        contract = created.json()
        self.assertEqual(contract["status"], "Draft")
        self.assertEqual(contract["rentalPrice"], 600.0)

        activated = self.client.post(f"/api/rental-contracts/{contract['rentalContractID']}/activate")
        self.assertEqual(activated.status_code, 200)
        self.assertEqual(activated.json()["status"], "Active")
        self.assertEqual(self.client.get(f"/api/equipment/{equipment['equipmentID']}").json()["status"], "Rented")

        again = self.client.post(f"/api/rental-contracts/{contract['rentalContractID']}/activate")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["detail"], "Only draft contracts can be activated.")

        finished = self.client.post(f"/api/rental-contracts/{contract['rentalContractID']}/finish")
        self.assertEqual(finished.json()["status"], "Finished")
        self.assertEqual(self.client.get(f"/api/equipment/{equipment['equipmentID']}").json()["status"], "Available")

        history = self.client.get(f"/api/rental-contracts/{contract['rentalContractID']}/history").json()
        self.assertEqual([entry["action"] for entry in history], ["Created", "Activate", "Finish"])

    def test_domain_errors_map_to_status_codes(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        contract = self._create_rental(equipment, customer).json()

        missing = self.client.get(f"/api/rental-contracts/{uuid.uuid4()}")
        self.assertEqual(missing.status_code, 404)

        stale = self.client.patch(
            f"/api/rental-contracts/{contract['rentalContractID']}",
            json={"rowVersion": contract["rowVersion"] + 3, "shifts": 9},
        )
        self.assertEqual(stale.status_code, 409)

        overlapping = self._create_rental(equipment, customer, start=date.today() + timedelta(days=3))
        self.assertEqual(overlapping.status_code, 400)

        past = self._create_rental(equipment, customer, start=date.today() - timedelta(days=3))
        self.assertEqual(past.status_code, 400)
        self.assertEqual(past.json()["detail"], "Start date cannot be in the past.")

    def test_overlap_and_existence_checks(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        contract = self._create_rental(equipment, customer).json()
        start = date.today() + timedelta(days=2)

        overlap = self.client.post(
            "/api/rental-contracts/overlap",
            json={"equipmentID": equipment["equipmentID"], "startDate": start.isoformat(), "endDate": (start + timedelta(days=1)).isoformat()},
        )
        self.assertEqual(overlap.json(), {"hasOverlap": True})

        excluded = self.client.post(
            "/api/rental-contracts/overlap",
            json={
                "equipmentID": equipment["equipmentID"],
                "startDate": start.isoformat(),
                "endDate": (start + timedelta(days=1)).isoformat(),
                "excludeContractID": contract["rentalContractID"],
            },
        )
        self.assertEqual(excluded.json(), {"hasOverlap": False})

        self.assertEqual(self.client.get(f"/api/rental-contracts/{contract['rentalContractID']}/exists").json(), {"exists": True})
        self.assertEqual(
            self.client.get(f"/api/rental-contracts/has-contracts/customer/{customer['customerID']}").json(),
            {"hasContracts": True},
        )

    def test_collection_routes(self):
        customer = self._create_customer()
        first = self._create_equipment()
        second = self._create_equipment(name="Loader 950")
        start = (date.today() + timedelta(days=1)).isoformat()
        end = (date.today() + timedelta(days=4)).isoformat()

        created = self.client.post(
            "/api/rental-contracts/collection",
            json=[
                {"equipmentID": item["equipmentID"], "customerID": customer["customerID"], "startDate": start, "endDate": end, "shifts": 3, "shiftPrice": 80}
                for item in (first, second)
            ],
        )
        self.assertEqual(created.status_code, 201)
        ids = [item["rentalContractID"] for item in created.json()]
        self.assertEqual(len(ids), 2)

        fetched = self.client.get(f"/api/rental-contracts/collection/{','.join(ids)}")
        self.assertEqual(len(fetched.json()), 2)

        deleted = self.client.delete(f"/api/rental-contracts/collection/{ids[0]},{uuid.uuid4()}")
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(deleted.json()["successCount"], 1)
        self.assertEqual(deleted.json()["failureCount"], 1)

        restored = self.client.post(f"/api/rental-contracts/collection/{ids[0]}/restore")
        self.assertEqual(restored.json()["successIds"], [ids[0]])

        self.assertEqual(self.client.get("/api/rental-contracts/collection/not-a-guid").status_code, 400)

    def test_paging_is_clamped(self):
        customer = self._create_customer()
        for index in range(3):
            self._create_rental(self._create_equipment(name=f"Unit {index}"), customer)

        page = self.client.get("/api/rental-contracts", params={"pageSize": 50, "pageNumber": 1}).json()
        self.assertEqual(page["pageSize"], 16)
        self.assertEqual(page["totalCount"], 3)

        second = self.client.get("/api/rental-contracts", params={"pageSize": 2, "pageNumber": 2}).json()
        self.assertEqual(len(second["items"]), 1)
        self.assertTrue(second["hasPrevious"])
        self.assertFalse(second["hasNext"])

        active = self.client.get("/api/rental-contracts", params={"status": "Active"}).json()
        self.assertEqual(active["totalCount"], 0)

    def test_selling_flow_and_analytics(self):
        customer = self._create_customer()
        equipment = self._create_equipment()

        sale = self.client.post(
            "/api/selling-contracts",
            json={"equipmentID": equipment["equipmentID"], "customerID": customer["customerID"], "salePrice": 31000, "saleDate": "2024-04-02"},
        )
        self.assertEqual(sale.status_code, 201)
        self.assertEqual(self.client.get(f"/api/equipment/{equipment['equipmentID']}").json()["status"], "Sold")

        second_sale = self.client.post(
            "/api/selling-contracts",
            json={"equipmentID": equipment["equipmentID"], "customerID": customer["customerID"], "salePrice": 1000},
        )
        self.assertEqual(second_sale.status_code, 400)

        self.assertEqual(self.client.get("/api/analytics/selling-contracts/revenue").json(), {"revenue": 31000.0})
        self.assertEqual(
            self.client.get("/api/analytics/selling-contracts/revenue-by-year").json(),
            [{"year": 2024, "revenue": 31000.0}],
        )
        top = self.client.get("/api/analytics/selling-contracts/top-customers", params={"top": 3}).json()
        self.assertEqual(top[0]["customerID"], customer["customerID"])

        deleted = self.client.delete(f"/api/selling-contracts/{sale.json()['sellingContractID']}")
        self.assertEqual(deleted.json(), {"message": "Deleted"})
        self.assertEqual(self.client.get("/api/analytics/selling-contracts/revenue").json(), {"revenue": 0.0})
        self.assertEqual(self.client.get("/api/analytics/selling-contracts/deleted-count").json(), {"count": 1})

    def test_rental_analytics_routes(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        self._create_rental(equipment, customer)

        self.assertEqual(self.client.get("/api/analytics/rental-contracts/revenue").json(), {"revenue": 600.0})
        self.assertEqual(self.client.get("/api/analytics/rental-contracts/count").json(), {"count": 1})
        stats = self.client.get("/api/analytics/rental-contracts/price-statistics").json()
        self.assertEqual(stats["medianPrice"], 600.0)

    def test_equipment_status_routes(self):
        equipment = self._create_equipment()

        changed = self.client.patch(f"/api/equipment/{equipment['equipmentID']}/status", json={"status": "UnderMaintenance"})
        self.assertEqual(changed.status_code, 200)
        self.assertEqual(changed.json()["status"], "UnderMaintenance")

        refused = self.client.patch(f"/api/equipment/{equipment['equipmentID']}/status", json={"status": "Sold"})
        self.assertEqual(refused.status_code, 400)

        bulk = self.client.patch(
            "/api/equipment/collection/status",
            json={"equipmentIDs": [equipment["equipmentID"]], "status": "Available"},
        )
        self.assertEqual(bulk.json()["successCount"], 1)

    def test_finish_expired_route_ignores_a_client_supplied_date(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        contract = self._create_rental(equipment, customer).json()
        self.client.post(f"/api/rental-contracts/{contract['rentalContractID']}/activate")
        far_future = (date.today() + timedelta(days=365)).isoformat()

        response = self.client.post("/api/rental-contracts/finish-expired", params={"today": far_future})

        self.assertEqual(response.json(), {"finished": 0})
        self.assertEqual(self.client.get(f"/api/rental-contracts/{contract['rentalContractID']}").json()["status"], "Active")

    def test_customer_and_supplier_collection_routes(self):
        first = self._create_customer()
        second = self._create_customer(name="Zenit Roads")
        ids = f"{first['customerID']},{second['customerID']}"

        fetched = self.client.get(f"/api/customers/collection/{ids}")
        self.assertEqual(sorted(item["name"] for item in fetched.json()), ["Acme Build", "Zenit Roads"])
        self.assertEqual(self.client.get(f"/api/customers/collection/{first['customerID']},{uuid.uuid4()}").status_code, 404)

        self._create_rental(self._create_equipment(), second)
        deleted = self.client.delete(f"/api/customers/collection/{ids}").json()
        self.assertEqual(deleted["successIds"], [first["customerID"]])
        self.assertEqual(deleted["errors"][0]["entityId"], second["customerID"])

        restored = self.client.post(f"/api/customers/collection/{first['customerID']}/restore").json()
        self.assertEqual(restored["successCount"], 1)

        supplier = self.client.post("/api/suppliers", json={"name": "Heavy Parts", "contactPerson": "Marko"}).json()
        self.assertEqual(len(self.client.get(f"/api/suppliers/collection/{supplier['supplierID']}").json()), 1)
        self.assertEqual(self.client.delete(f"/api/suppliers/collection/{supplier['supplierID']}").json()["successCount"], 1)
        self.assertEqual(self.client.get(f"/api/suppliers/{supplier['supplierID']}").status_code, 404)
        self.assertEqual(self.client.post(f"/api/suppliers/collection/{supplier['supplierID']}/restore").json()["successCount"], 1)

    def test_equipment_collection_and_deleted_reads(self):
        supplier = self.client.post("/api/suppliers", json={"name": "Heavy Parts"}).json()
        created = self.client.post(
            "/api/equipment/collection",
            json=[
                {"name": "Excavator 320", "brand": "Caterpillar", "equipmentType": "Excavator", "supplierID": supplier["supplierID"]},
                {"name": "Loader 950", "brand": "Caterpillar", "equipmentType": "Loader"},
            ],
        )
        self.assertEqual(created.status_code, 201)
        self.assertEqual(sorted(item["internalSerial"] for item in created.json()), ["EQ0001", "EQ0002"])
        ids = [item["equipmentID"] for item in created.json()]

        by_supplier = self.client.get(f"/api/equipment/by-supplier/{supplier['supplierID']}").json()
        self.assertEqual([item["name"] for item in by_supplier["items"]], ["Excavator 320"])

        deleted = self.client.delete(f"/api/equipment/collection/{','.join(ids)}").json()
        self.assertEqual(deleted["successCount"], 2)
        self.assertEqual(self.client.get("/api/equipment").json()["totalCount"], 0)
        self.assertEqual(self.client.get("/api/equipment/deleted").json()["totalCount"], 2)
        self.assertEqual(self.client.get(f"/api/equipment/deleted/{ids[0]}").json()["equipmentID"], ids[0])

        restored = self.client.post(f"/api/equipment/collection/{ids[0]}/restore").json()
        self.assertEqual(restored["successIds"], [ids[0]])
        self.assertEqual(len(self.client.get(f"/api/equipment/collection/{ids[0]}").json()), 1)

        invalid = self.client.post("/api/equipment/collection", json=[{"name": "Grader", "supplierID": str(uuid.uuid4())}])
        self.assertEqual(invalid.status_code, 400)
        self.assertTrue(invalid.json()["detail"].startswith("Equipment #1: "))

    def test_equipment_by_status_route(self):
        equipment = self._create_equipment()
        self._create_equipment(name="Loader 950")
        self.client.patch(f"/api/equipment/{equipment['equipmentID']}/status", json={"status": "UnderMaintenance"})

        page = self.client.get("/api/equipment/by-status/UnderMaintenance").json()

        self.assertEqual([item["equipmentID"] for item in page["items"]], [equipment["equipmentID"]])

    def test_maintenance_and_technical_information_routes(self):
        equipment = self._create_equipment()
        base = f"/api/equipment/{equipment['equipmentID']}"

        record = self.client.post(f"{base}/maintenance-records", json={"cost": 250, "technician": "Ivan", "maintenanceDate": "2024-05-04"})
        self.assertEqual(record.status_code, 201)
        record_id = record.json()["maintenanceRecordID"]

        updated = self.client.put(
            f"/api/maintenance-records/{record_id}",
            json={"rowVersion": 1, "cost": 300, "technician": "Ivan", "description": "Hydraulics"},
        )
        self.assertEqual(updated.json()["cost"], 300.0)
        self.assertEqual(updated.json()["rowVersion"], 2)
        stale = self.client.put(f"/api/maintenance-records/{record_id}", json={"rowVersion": 1, "cost": 10})
        self.assertEqual(stale.status_code, 409)

        self.assertEqual(len(self.client.get(f"{base}/maintenance-records").json()), 1)
        self.assertEqual(self.client.get("/api/analytics/equipment/with-maintenance-count").json(), {"count": 1})
        self.assertEqual(self.client.delete(f"/api/maintenance-records/{record_id}").json(), {"message": "Deleted"})
        self.assertEqual(self.client.get(f"{base}/maintenance-records").json(), [])
        self.assertEqual(self.client.get(f"/api/maintenance-records/{record_id}").status_code, 404)

        self.assertEqual(self.client.get(f"{base}/technical-information").status_code, 404)
        saved = self.client.put(f"{base}/technical-information", json={"engineType": "Electric", "enginePower": 120, "dimensions": "3 X 2X4"})
        self.assertEqual(saved.json()["engineType"], "Electric")
        self.assertEqual(self.client.get(f"{base}/technical-information").json()["dimensions"], "3 X 2X4")
        bad = self.client.put(f"{base}/technical-information", json={"dimensions": "3 by 2"})
        self.assertEqual(bad.status_code, 422)

    def test_equipment_analytics_routes(self):
        self._create_equipment()
        self.client.post("/api/equipment", json={"name": "Crane LTM", "brand": "Liebherr", "equipmentType": "Crane", "price": 40000, "shippingPrice": 1000})

        self.assertEqual(self.client.get("/api/analytics/equipment/count").json(), {"count": 2})
        self.assertEqual(self.client.get("/api/analytics/equipment/total-value").json(), {"total": 66000.0})
        self.assertEqual(self.client.get("/api/analytics/equipment/shipping-cost").json(), {"total": 1000.0})
        distribution = self.client.get("/api/analytics/equipment/status-distribution").json()
        self.assertEqual(distribution["Available"], 2)
        self.assertEqual(distribution["Sold"], 0)
        top = self.client.get("/api/analytics/equipment/most-expensive-ids", params={"top": 1}).json()
        self.assertEqual(len(top), 1)

    def test_customer_with_open_rental_cannot_be_deleted(self):
        customer = self._create_customer()
        equipment = self._create_equipment()
        self._create_rental(equipment, customer)

        response = self.client.delete(f"/api/customers/{customer['customerID']}")

        self.assertEqual(response.status_code, 409)


if __name__ == "__main__":
    unittest.main()
