#!/usr/bin/env python3
"""Database overview and contract/equipment consistency checks."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import and_, exists, func, inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, aliased

from equipment_rental.db.base import Base
from equipment_rental.db.engine import build_engine, build_session_factory
from equipment_rental.models.enums import HOLDING_RENTAL_STATES, TERMINAL_RENTAL_STATES, EquipmentStatus
from equipment_rental.models.rental_models import AuditLog, Equipment, RentalContract, SellingContract


@dataclass
class CheckResult:
    name: str
    ok: bool
    detail: str


def _print_section(title: str) -> None:
    print(f"\n=== {title} ===")


def run_existence_checks(engine: Engine) -> list[CheckResult]:
    present = set(inspect(engine).get_table_names())
    return [
        CheckResult(f"table:{table}", table in present, "present" if table in present else "missing")
        for table in Base.metadata.tables
    ]


def run_column_checks(engine: Engine) -> list[CheckResult]:
    inspector = inspect(engine)
    present = set(inspector.get_table_names())
    results: list[CheckResult] = []
    for table_name, table in Base.metadata.tables.items():
        if table_name not in present:
            results.append(CheckResult(f"columns:{table_name}", False, "table missing"))
            continue
        actual = {column["name"] for column in inspector.get_columns(table_name)}
        missing = [column.name for column in table.columns if column.name not in actual]
        results.append(
            CheckResult(
                f"columns:{table_name}",
                not missing,
                "ok" if not missing else f"missing={','.join(missing)}",
            )
        )
    return results


def _count_check(db: Session, name: str, stmt) -> CheckResult:
    count = int(db.execute(stmt).scalar() or 0)
    return CheckResult(name, count == 0, f"count={count}")


def run_consistency_checks(db: Session) -> list[CheckResult]:
    live_holding = and_(
        RentalContract.DeletedDate.is_(None),
        RentalContract.Status.in_(HOLDING_RENTAL_STATES),
    )
    live_sale = SellingContract.DeletedDate.is_(None)
    other = aliased(RentalContract)

    return [
        _count_check(
            db,
            "equipment:rented_without_contract",
            select(func.count(Equipment.EquipmentID)).where(
                Equipment.Status == EquipmentStatus.RENTED.value,
                ~exists().where(live_holding, RentalContract.EquipmentID == Equipment.EquipmentID),
            ),
        ),
        _count_check(
            db,
            "rentalcontracts:holding_equipment_not_rented",
            select(func.count(RentalContract.RentalContractID))
            .join(Equipment, Equipment.EquipmentID == RentalContract.EquipmentID)
            .where(live_holding, Equipment.Status != EquipmentStatus.RENTED.value),
        ),
        _count_check(
            db,
            "equipment:sold_without_contract",
            select(func.count(Equipment.EquipmentID)).where(
                Equipment.Status == EquipmentStatus.SOLD.value,
                ~exists().where(live_sale, SellingContract.EquipmentID == Equipment.EquipmentID),
            ),
        ),
        _count_check(
            db,
            "sellingcontracts:equipment_not_sold",
            select(func.count(SellingContract.SellingContractID))
            .join(Equipment, Equipment.EquipmentID == SellingContract.EquipmentID)
            .where(live_sale, Equipment.Status != EquipmentStatus.SOLD.value),
        ),
        _count_check(
            db,
            "rentalcontracts:overlapping_bookings",
            select(func.count(RentalContract.RentalContractID))
            .join(
                other,
                and_(
                    other.EquipmentID == RentalContract.EquipmentID,
                    other.RentalContractID > RentalContract.RentalContractID,
                    other.StartDate < RentalContract.EndDate,
                    other.EndDate > RentalContract.StartDate,
                ),
            )
            .where(
                RentalContract.DeletedDate.is_(None),
                RentalContract.Status.not_in(TERMINAL_RENTAL_STATES),
                other.DeletedDate.is_(None),
                other.Status.not_in(TERMINAL_RENTAL_STATES),
            ),
        ),
        _count_check(
            db,
            "rentalcontracts:end_not_after_start",
            select(func.count(RentalContract.RentalContractID)).where(RentalContract.EndDate <= RentalContract.StartDate),
        ),
    ]


def _print_results(title: str, rows: Iterable[CheckResult]) -> None:
    _print_section(title)
    for row in rows:
        status = "OK" if row.ok else "FAIL"
        print(f"[{status}] {row.name} :: {row.detail}")


def _print_row_counts(db: Session, engine: Engine) -> None:
    _print_section("Row Counts")
    present = set(inspect(engine).get_table_names())
    for table_name, table in Base.metadata.tables.items():
        if table_name not in present:
            print(f"{table_name}: missing")
            continue
        count = db.execute(select(func.count()).select_from(table)).scalar()
        print(f"{table_name}: {int(count or 0)}")


def _print_samples(db: Session, sample_size: int) -> None:
    _print_section("Recent Audit Entries")
    rows = db.execute(select(AuditLog).order_by(AuditLog.AuditID.desc()).limit(max(1, sample_size))).scalars().all()
    for row in rows:
        print(f"  - {row.AuditID} {row.EntityType} {row.EntityID} {row.Action} {row.CreatedAt}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Equipment rental DB overview")
    parser.add_argument("--db-url", default=os.environ.get("EQUIPMENT_RENTAL_DB_URL", ""))
    parser.add_argument("--samples", type=int, default=5)
    args = parser.parse_args(argv)

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("EQUIPMENT_RENTAL_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = build_engine(db_url)
        with engine.connect():
            pass
    except Exception as exc:
        print(f"Could not connect to DB: {exc}")
        return 3

    existence = run_existence_checks(engine)
    _print_results("Table Existence", existence)
    _print_results("Column Checks", run_column_checks(engine))
    if not all(row.ok for row in existence):
        return 1

    db = build_session_factory(engine)()
    try:
        consistency = run_consistency_checks(db)
        _print_results("Consistency Checks", consistency)
        _print_row_counts(db, engine)
        _print_samples(db, args.samples)
    finally:
        db.close()
    return 0 if all(row.ok for row in consistency) else 1


if __name__ == "__main__":
    sys.exit(main())
