from __future__ import annotations

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from equipment_rental.models.enums import EquipmentStatus
from equipment_rental.models.rental_models import Equipment, MaintenanceRecord
from equipment_rental.services.cache_service import EQUIPMENT_SCOPE, CacheVersionProvider, cached, get_cache_version_provider


def _money(value) -> float:
    return round(float(value or 0), 2)


def _cached(versions: CacheVersionProvider | None, name: str, compute, **params):
    return cached(versions or get_cache_version_provider(), EQUIPMENT_SCOPE, name, compute, **params)


def _live(stmt):
    return stmt.where(Equipment.DeletedDate.is_(None))


def _total_value():
    return (
        func.coalesce(Equipment.Price, 0)
        + func.coalesce(Equipment.Expenses, 0)
        + func.coalesce(Equipment.ShippingPrice, 0)
    )


def _count(db: Session, *criteria) -> int:
    stmt = _live(select(func.count(Equipment.EquipmentID)))
    if criteria:
        stmt = stmt.where(*criteria)
    return int(db.execute(stmt).scalar_one())


def _sum(db: Session, expression) -> float:
    return _money(db.execute(_live(select(func.sum(expression)))).scalar_one())


def _ids(db: Session, *criteria, order_by=None, limit: int | None = None) -> list[str]:
    stmt = _live(select(Equipment.EquipmentID))
    if criteria:
        stmt = stmt.where(*criteria)
    stmt = stmt.order_by(order_by if order_by is not None else Equipment.Name)
    if limit is not None:
        stmt = stmt.limit(limit)
    return [str(equipment_id) for equipment_id in db.execute(stmt).scalars().all()]


# General statistics

def get_total_equipment_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return _cached(versions, "equipment-count", lambda: _count(db))


def get_equipment_count_by_status(db: Session, status: EquipmentStatus, versions: CacheVersionProvider | None = None) -> int:
    return _cached(versions, "equipment-count-by-status", lambda: _count(db, Equipment.Status == status.value), status=status.value)


def get_available_equipment_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return get_equipment_count_by_status(db, EquipmentStatus.AVAILABLE, versions)


def get_sold_equipment_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return get_equipment_count_by_status(db, EquipmentStatus.SOLD, versions)


def get_under_maintenance_equipment_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return get_equipment_count_by_status(db, EquipmentStatus.UNDER_MAINTENANCE, versions)


def get_rented_equipment_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return get_equipment_count_by_status(db, EquipmentStatus.RENTED, versions)


# Financial analytics

def get_total_purchase_cost(db: Session, versions: CacheVersionProvider | None = None) -> float:
    return _cached(versions, "equipment-purchase-cost", lambda: _sum(db, Equipment.Price))


def get_total_expenses(db: Session, versions: CacheVersionProvider | None = None) -> float:
    return _cached(versions, "equipment-expenses", lambda: _sum(db, Equipment.Expenses))


def get_total_shipping_cost(db: Session, versions: CacheVersionProvider | None = None) -> float:
    return _cached(versions, "equipment-shipping-cost", lambda: _sum(db, Equipment.ShippingPrice))


def get_total_equipment_value(db: Session, versions: CacheVersionProvider | None = None) -> float:
    return _cached(versions, "equipment-total-value", lambda: _sum(db, _total_value()))


def get_average_equipment_price(db: Session, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "equipment-average-price",
        lambda: _money(db.execute(_live(select(func.avg(Equipment.Price)))).scalar_one()),
    )


# Grouped analytics

def _grouped_counts(db: Session, column, key: str) -> list[dict]:
    rows = db.execute(
        _live(select(column.label("group_key"), func.count(Equipment.EquipmentID).label("total")))
        .group_by(column)
        .order_by(column)
    ).all()
    return [{key: row.group_key, "count": int(row.total)} for row in rows]


def _grouped_values(db: Session, column, key: str) -> list[dict]:
    rows = db.execute(
        _live(select(column.label("group_key"), func.sum(_total_value()).label("total")))
        .group_by(column)
        .order_by(column)
    ).all()
    return [{key: row.group_key, "totalValue": _money(row.total)} for row in rows]


def get_equipment_count_by_brand(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(versions, "equipment-count-by-brand", lambda: _grouped_counts(db, Equipment.Brand, "brand"))


def get_equipment_count_by_type(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(versions, "equipment-count-by-type", lambda: _grouped_counts(db, Equipment.EquipmentType, "equipmentType"))


def get_total_value_by_brand(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(versions, "equipment-value-by-brand", lambda: _grouped_values(db, Equipment.Brand, "brand"))


def get_total_value_by_type(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(versions, "equipment-value-by-type", lambda: _grouped_values(db, Equipment.EquipmentType, "equipmentType"))


# Maintenance analytics

def _has_maintenance():
    return (
        select(MaintenanceRecord.MaintenanceRecordID)
        .where(MaintenanceRecord.EquipmentID == Equipment.EquipmentID, MaintenanceRecord.DeletedDate.is_(None))
        .exists()
    )


def get_equipment_with_maintenance_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return _cached(versions, "equipment-with-maintenance", lambda: _count(db, _has_maintenance()))


def get_equipment_without_maintenance_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return _cached(versions, "equipment-without-maintenance", lambda: _count(db, ~_has_maintenance()))


def get_maintenance_count_by_equipment(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _live(
                select(MaintenanceRecord.EquipmentID, func.count(MaintenanceRecord.MaintenanceRecordID).label("records"))
                .join(Equipment, Equipment.EquipmentID == MaintenanceRecord.EquipmentID)
                .where(MaintenanceRecord.DeletedDate.is_(None))
            )
            .group_by(MaintenanceRecord.EquipmentID)
            .order_by(func.count(MaintenanceRecord.MaintenanceRecordID).desc())
        ).all()
        return [{"equipmentID": str(row.EquipmentID), "maintenanceCount": int(row.records)} for row in rows]

    return _cached(versions, "maintenance-count-by-equipment", compute)


# Time-based analytics

def get_equipment_count_by_manufacture_year(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _live(select(Equipment.ManufactureYear, func.count(Equipment.EquipmentID).label("total")))
            .where(Equipment.ManufactureYear.is_not(None))
            .group_by(Equipment.ManufactureYear)
            .order_by(Equipment.ManufactureYear)
        ).all()
        return [{"year": int(row.ManufactureYear), "count": int(row.total)} for row in rows]

    return _cached(versions, "equipment-count-by-manufacture-year", compute)


def get_purchase_cost_by_month(db: Session, year: int, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        month = extract("month", Equipment.PurchaseDate)
        rows = db.execute(
            _live(select(month.label("month"), func.sum(Equipment.Price).label("cost")))
            .where(extract("year", Equipment.PurchaseDate) == year)
            .group_by(month)
            .order_by(month)
        ).all()
        return [{"month": int(row.month), "purchaseCost": _money(row.cost)} for row in rows]

    return _cached(versions, "equipment-purchase-cost-by-month", compute, year=year)


def get_equipment_purchased_per_year(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        year = extract("year", Equipment.PurchaseDate)
        rows = db.execute(
            _live(select(year.label("year"), func.count(Equipment.EquipmentID).label("total")))
            .where(Equipment.PurchaseDate.is_not(None))
            .group_by(year)
            .order_by(year)
        ).all()
        return [{"year": int(row.year), "count": int(row.total)} for row in rows]

    return _cached(versions, "equipment-purchased-per-year", compute)


# Operational insights

def get_equipment_ids_under_maintenance(db: Session, versions: CacheVersionProvider | None = None) -> list[str]:
    return _cached(
        versions,
        "equipment-ids-under-maintenance",
        lambda: _ids(db, Equipment.Status == EquipmentStatus.UNDER_MAINTENANCE.value),
    )


def get_idle_equipment_ids(db: Session, versions: CacheVersionProvider | None = None) -> list[str]:
    return _cached(versions, "equipment-ids-idle", lambda: _ids(db, Equipment.Status == EquipmentStatus.AVAILABLE.value))


def get_most_expensive_equipment_ids(db: Session, top: int = 5, versions: CacheVersionProvider | None = None) -> list[str]:
    top = max(top, 1)
    return _cached(
        versions,
        "equipment-ids-most-expensive",
        lambda: _ids(db, order_by=Equipment.Price.desc(), limit=top),
        top=top,
    )


# Supplier analytics

def get_equipment_count_by_supplier(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _live(select(Equipment.SupplierID, func.count(Equipment.EquipmentID).label("total")))
            .where(Equipment.SupplierID.is_not(None))
            .group_by(Equipment.SupplierID)
            .order_by(func.count(Equipment.EquipmentID).desc())
        ).all()
        return [{"supplierID": str(row.SupplierID), "count": int(row.total)} for row in rows]

    return _cached(versions, "equipment-count-by-supplier", compute)


def get_total_value_by_supplier(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _live(select(Equipment.SupplierID, func.sum(_total_value()).label("total")))
            .where(Equipment.SupplierID.is_not(None))
            .group_by(Equipment.SupplierID)
            .order_by(func.sum(_total_value()).desc())
        ).all()
        return [{"supplierID": str(row.SupplierID), "totalValue": _money(row.total)} for row in rows]

    return _cached(versions, "equipment-value-by-supplier", compute)


# Status distribution

def get_equipment_status_distribution(db: Session, versions: CacheVersionProvider | None = None) -> dict:
    """Every status is present, with zero for statuses no live equipment holds."""

    def compute() -> dict:
        rows = db.execute(
            _live(select(Equipment.Status, func.count(Equipment.EquipmentID).label("total"))).group_by(Equipment.Status)
        ).all()
        distribution = {status.value: 0 for status in EquipmentStatus}
        for row in rows:
            distribution[row.Status] = int(row.total)
        return distribution

    return _cached(versions, "equipment-status-distribution", compute)
