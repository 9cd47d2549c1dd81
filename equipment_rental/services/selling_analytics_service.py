from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from equipment_rental.models.enums import EquipmentBrand, EquipmentType
from equipment_rental.models.rental_models import Equipment, SellingContract
from equipment_rental.services.cache_service import SELLING_CONTRACTS_SCOPE, CacheVersionProvider, cached, get_cache_version_provider


def _money(value) -> float:
    return round(float(value or 0), 2)


def _cached(versions: CacheVersionProvider | None, name: str, compute, **params):
    return cached(versions or get_cache_version_provider(), SELLING_CONTRACTS_SCOPE, name, compute, **params)


def _sales(stmt, from_date: date | None = None, to_date: date | None = None):
    stmt = stmt.where(SellingContract.DeletedDate.is_(None))
    if from_date is not None:
        stmt = stmt.where(SellingContract.SaleDate >= from_date)
    if to_date is not None:
        stmt = stmt.where(SellingContract.SaleDate <= to_date)
    return stmt


def _period(from_date: date | None, to_date: date | None) -> dict:
    return {"from": from_date, "to": to_date}


def _aggregate(db: Session, aggregate, from_date: date | None, to_date: date | None) -> float:
    return _money(db.execute(_sales(select(aggregate), from_date, to_date)).scalar())


def get_total_revenue(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "selling-total-revenue",
        lambda: _aggregate(db, func.sum(SellingContract.SalePrice), from_date, to_date),
        **_period(from_date, to_date),
    )


def get_average_sale_price(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "selling-average-sale-price",
        lambda: _aggregate(db, func.avg(SellingContract.SalePrice), from_date, to_date),
        **_period(from_date, to_date),
    )


def get_min_sale_price(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "selling-min-sale-price",
        lambda: _aggregate(db, func.min(SellingContract.SalePrice), from_date, to_date),
        **_period(from_date, to_date),
    )


def get_max_sale_price(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "selling-max-sale-price",
        lambda: _aggregate(db, func.max(SellingContract.SalePrice), from_date, to_date),
        **_period(from_date, to_date),
    )


def get_average_sale_price_by_equipment(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    brand: EquipmentBrand | None = None,
    equipment_type: EquipmentType | None = None,
    versions: CacheVersionProvider | None = None,
) -> list[dict]:
    def compute() -> list[dict]:
        stmt = _sales(
            select(SellingContract.EquipmentID, func.avg(SellingContract.SalePrice).label("average"))
            .select_from(SellingContract)
            .join(Equipment, Equipment.EquipmentID == SellingContract.EquipmentID),
            from_date,
            to_date,
        )
        if brand is not None:
            stmt = stmt.where(Equipment.Brand == brand.value)
        if equipment_type is not None:
            stmt = stmt.where(Equipment.EquipmentType == equipment_type.value)
        rows = db.execute(stmt.group_by(SellingContract.EquipmentID)).all()
        return [{"equipmentID": str(row.EquipmentID), "averagePrice": _money(row.average)} for row in rows]

    return _cached(
        versions,
        "selling-average-sale-price-by-equipment",
        compute,
        **_period(from_date, to_date),
        brand=brand.value if brand else None,
        type=equipment_type.value if equipment_type else None,
    )


def get_revenue_by_day(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _sales(select(SellingContract.SaleDate, func.sum(SellingContract.SalePrice).label("revenue")), from_date, to_date)
            .group_by(SellingContract.SaleDate)
            .order_by(SellingContract.SaleDate)
        ).all()
        return [{"day": row.SaleDate.isoformat(), "revenue": _money(row.revenue)} for row in rows]

    return _cached(versions, "selling-revenue-by-day", compute, **_period(from_date, to_date))


def get_revenue_by_month(db: Session, year: int, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        month = extract("month", SellingContract.SaleDate)
        rows = db.execute(
            _sales(select(month.label("month"), func.sum(SellingContract.SalePrice).label("revenue")))
            .where(extract("year", SellingContract.SaleDate) == year)
            .group_by(month)
            .order_by(month)
        ).all()
        return [{"month": int(row.month), "revenue": _money(row.revenue)} for row in rows]

    return _cached(versions, "selling-revenue-by-month", compute, year=year)


def get_revenue_by_year(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        year = extract("year", SellingContract.SaleDate)
        rows = db.execute(
            _sales(select(year.label("year"), func.sum(SellingContract.SalePrice).label("revenue")))
            .group_by(year)
            .order_by(year)
        ).all()
        return [{"year": int(row.year), "revenue": _money(row.revenue)} for row in rows]

    return _cached(versions, "selling-revenue-by-year", compute)


def get_sales_count(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> int:
    return _cached(
        versions,
        "selling-sales-count",
        lambda: int(db.execute(_sales(select(func.count(SellingContract.SellingContractID)), from_date, to_date)).scalar_one()),
        **_period(from_date, to_date),
    )


def _grouped(db: Session, column, from_date: date | None, to_date: date | None, limit: int | None = None) -> list:
    revenue = func.sum(SellingContract.SalePrice)
    stmt = (
        _sales(
            select(column.label("key"), revenue.label("revenue"), func.count(SellingContract.SellingContractID).label("sales")),
            from_date,
            to_date,
        )
        .group_by(column)
        .order_by(revenue.desc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return db.execute(stmt).all()


def get_revenue_by_customer(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(
        versions,
        "selling-revenue-by-customer",
        lambda: [
            {"customerID": str(row.key), "revenue": _money(row.revenue)}
            for row in _grouped(db, SellingContract.CustomerID, from_date, to_date)
        ],
        **_period(from_date, to_date),
    )


def get_top_customers(
    db: Session,
    top: int = 5,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> list[dict]:
    return _cached(
        versions,
        "selling-top-customers",
        lambda: [
            {"customerID": str(row.key), "totalRevenue": _money(row.revenue), "salesCount": int(row.sales)}
            for row in _grouped(db, SellingContract.CustomerID, from_date, to_date, limit=max(top, 1))
        ],
        top=top,
        **_period(from_date, to_date),
    )


def get_sales_count_by_customer(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(
        versions,
        "selling-sales-count-by-customer",
        lambda: [
            {"customerID": str(row.key), "salesCount": int(row.sales)}
            for row in _grouped(db, SellingContract.CustomerID, from_date, to_date)
        ],
        **_period(from_date, to_date),
    )


def get_revenue_by_equipment(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(
        versions,
        "selling-revenue-by-equipment",
        lambda: [
            {"equipmentID": str(row.key), "revenue": _money(row.revenue)}
            for row in _grouped(db, SellingContract.EquipmentID, from_date, to_date)
        ],
        **_period(from_date, to_date),
    )


def get_top_selling_equipment(
    db: Session,
    top: int = 5,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> list[dict]:
    return _cached(
        versions,
        "selling-top-equipment",
        lambda: [
            {"equipmentID": str(row.key), "totalRevenue": _money(row.revenue), "salesCount": int(row.sales)}
            for row in _grouped(db, SellingContract.EquipmentID, from_date, to_date, limit=max(top, 1))
        ],
        top=top,
        **_period(from_date, to_date),
    )


def get_sales_count_by_equipment(db: Session, from_date: date | None = None, to_date: date | None = None, versions: CacheVersionProvider | None = None) -> list[dict]:
    return _cached(
        versions,
        "selling-sales-count-by-equipment",
        lambda: [
            {"equipmentID": str(row.key), "salesCount": int(row.sales)}
            for row in _grouped(db, SellingContract.EquipmentID, from_date, to_date)
        ],
        **_period(from_date, to_date),
    )


def get_deleted_contracts_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return _cached(
        versions,
        "selling-deleted-contracts-count",
        lambda: int(
            db.execute(
                select(func.count(SellingContract.SellingContractID)).where(SellingContract.DeletedDate.is_not(None))
            ).scalar_one()
        ),
    )


def get_average_sale_price_per_equipment(db: Session, equipment_id: UUID, versions: CacheVersionProvider | None = None) -> float:
    return _cached(
        versions,
        "selling-average-sale-price-per-equipment",
        lambda: _money(
            db.execute(
                _sales(select(func.avg(SellingContract.SalePrice))).where(SellingContract.EquipmentID == equipment_id)
            ).scalar()
        ),
        equipmentId=equipment_id,
    )
