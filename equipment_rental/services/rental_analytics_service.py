from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from equipment_rental.models.enums import RentalContractStatus
from equipment_rental.models.rental_models import Customer, RentalContract
from equipment_rental.services.cache_service import RENTAL_CONTRACTS_SCOPE, CacheVersionProvider, cached, get_cache_version_provider


def _money(value) -> float:
    return round(float(value or 0), 2)


def _cached(versions: CacheVersionProvider | None, name: str, compute, **params):
    return cached(versions or get_cache_version_provider(), RENTAL_CONTRACTS_SCOPE, name, compute, **params)


def _live_filter(stmt, from_date: date | None = None, to_date: date | None = None):
    stmt = stmt.where(RentalContract.DeletedDate.is_(None))
    if from_date is not None:
        stmt = stmt.where(RentalContract.StartDate >= from_date)
    if to_date is not None:
        stmt = stmt.where(RentalContract.EndDate <= to_date)
    return stmt


def _count(db: Session, *criteria, from_date: date | None = None, to_date: date | None = None) -> int:
    stmt = _live_filter(select(func.count(RentalContract.RentalContractID)), from_date, to_date)
    if criteria:
        stmt = stmt.where(*criteria)
    return int(db.execute(stmt).scalar_one())


def get_rental_contract_count(db: Session, versions: CacheVersionProvider | None = None) -> int:
    return _cached(versions, "rental-contract-count", lambda: _count(db))


def get_total_active_count(db: Session, today: date | None = None, versions: CacheVersionProvider | None = None) -> int:
    current = today or date.today()
    return _cached(
        versions,
        "total-active-count",
        lambda: _count(db, RentalContract.Status == RentalContractStatus.ACTIVE.value, RentalContract.EndDate >= current),
        today=current,
    )


def get_total_contracts_for_customer(db: Session, customer_id: UUID, versions: CacheVersionProvider | None = None) -> int:
    return _cached(
        versions,
        "total-contracts-for-customer",
        lambda: _count(db, RentalContract.CustomerID == customer_id),
        customerId=customer_id,
    )


def get_total_contracts_for_equipment(db: Session, equipment_id: UUID, versions: CacheVersionProvider | None = None) -> int:
    return _cached(
        versions,
        "total-contracts-for-equipment",
        lambda: _count(db, RentalContract.EquipmentID == equipment_id),
        equipmentId=equipment_id,
    )


def get_equipment_contract_summary(db: Session, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        rows = db.execute(
            _live_filter(
                select(RentalContract.EquipmentID, func.count(RentalContract.RentalContractID).label("contracts"))
            )
            .group_by(RentalContract.EquipmentID)
            .order_by(func.count(RentalContract.RentalContractID).desc())
        ).all()
        return [{"equipmentID": str(row.EquipmentID), "contractCount": int(row.contracts)} for row in rows]

    return _cached(versions, "equipment-contract-summary", compute)


def get_total_revenue(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> float:
    def compute() -> float:
        stmt = _live_filter(select(func.sum(RentalContract.RentalPrice)), from_date, to_date)
        return _money(db.execute(stmt).scalar())

    return _cached(versions, "total-revenue", compute, **{"from": from_date, "to": to_date})


def get_revenue_by_customer(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> list[dict]:
    def compute() -> list[dict]:
        revenue = func.sum(RentalContract.RentalPrice)
        rows = db.execute(
            _live_filter(
                select(Customer.CustomerID, Customer.Name, revenue.label("revenue"))
                .select_from(RentalContract)
                .join(Customer, Customer.CustomerID == RentalContract.CustomerID),
                from_date,
                to_date,
            )
            .group_by(Customer.CustomerID, Customer.Name)
            .order_by(revenue.desc())
        ).all()
        return [
            {"customerID": str(row.CustomerID), "customerName": row.Name, "revenue": _money(row.revenue)}
            for row in rows
        ]

    return _cached(versions, "revenue-by-customer", compute, **{"from": from_date, "to": to_date})


def get_revenue_by_month(db: Session, year: int, versions: CacheVersionProvider | None = None) -> list[dict]:
    def compute() -> list[dict]:
        month = extract("month", RentalContract.StartDate)
        rows = db.execute(
            _live_filter(select(month.label("month"), func.sum(RentalContract.RentalPrice).label("revenue")))
            .where(extract("year", RentalContract.StartDate) == year)
            .group_by(month)
            .order_by(month)
        ).all()
        return [{"month": int(row.month), "revenue": _money(row.revenue)} for row in rows]

    return _cached(versions, "revenue-by-month", compute, year=year)


def _rental_prices(db: Session) -> list[float]:
    rows = db.execute(_live_filter(select(RentalContract.Shifts, RentalContract.ShiftPrice))).all()
    return sorted(float(row.Shifts * row.ShiftPrice) for row in rows)


def get_contract_price_statistics(db: Session, versions: CacheVersionProvider | None = None) -> dict:
    def compute() -> dict:
        prices = _rental_prices(db)
        if not prices:
            return {"averagePrice": 0.0, "medianPrice": 0.0, "totalRevenue": 0.0}
        middle = len(prices) // 2
        median = prices[middle] if len(prices) % 2 else (prices[middle - 1] + prices[middle]) / 2
        return {
            "averagePrice": _money(sum(prices) / len(prices)),
            "medianPrice": _money(median),
            "totalRevenue": _money(sum(prices)),
        }

    return _cached(versions, "contract-price-statistics", compute)


def get_finished_contracts_count(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> int:
    return _cached(
        versions,
        "finished-contracts-count",
        lambda: _count(db, RentalContract.Status == RentalContractStatus.FINISHED.value, from_date=from_date, to_date=to_date),
        **{"from": from_date, "to": to_date},
    )


def get_cancelled_contracts_count(
    db: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    versions: CacheVersionProvider | None = None,
) -> int:
    return _cached(
        versions,
        "cancelled-contracts-count",
        lambda: _count(db, RentalContract.Status == RentalContractStatus.CANCELLED.value, from_date=from_date, to_date=to_date),
        **{"from": from_date, "to": to_date},
    )


def get_average_contract_duration_in_days(db: Session, versions: CacheVersionProvider | None = None) -> float:
    def compute() -> float:
        rows = db.execute(_live_filter(select(RentalContract.StartDate, RentalContract.EndDate))).all()
        if not rows:
            return 0.0
        return round(sum((row.EndDate - row.StartDate).days for row in rows) / len(rows), 2)

    return _cached(versions, "average-contract-duration", compute)


def get_average_revenue_per_customer(db: Session, versions: CacheVersionProvider | None = None) -> float:
    def compute() -> float:
        rows = db.execute(
            _live_filter(select(func.sum(RentalContract.RentalPrice).label("revenue"))).group_by(RentalContract.CustomerID)
        ).all()
        if not rows:
            return 0.0
        return _money(sum(float(row.revenue or 0) for row in rows) / len(rows))

    return _cached(versions, "average-revenue-per-customer", compute)


def get_average_rental_price(db: Session, versions: CacheVersionProvider | None = None) -> float:
    def compute() -> float:
        prices = _rental_prices(db)
        return _money(sum(prices) / len(prices)) if prices else 0.0

    return _cached(versions, "average-rental-price", compute)
