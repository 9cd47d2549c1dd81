from __future__ import annotations

import math
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from equipment_rental.schemas.query import ResourceParameters


@dataclass
class PagedResult:
    items: list
    total_count: int
    page_number: int
    page_size: int
    total_pages: int = field(init=False)

    def __post_init__(self) -> None:
        self.total_pages = math.ceil(self.total_count / self.page_size) if self.page_size else 0

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.total_pages

    def to_payload(self, serializer) -> dict:
        return {
            "items": [serializer(item) for item in self.items],
            "totalCount": self.total_count,
            "pageNumber": self.page_number,
            "pageSize": self.page_size,
            "totalPages": self.total_pages,
            "hasPrevious": self.has_previous,
            "hasNext": self.has_next,
        }


def apply_sort(stmt: Select, params: ResourceParameters, sort_columns: dict, default_key: str) -> Select:
    """Order by a whitelisted column, falling back to ``default_key`` for unknown names."""
    column = sort_columns.get(params.sortBy) or sort_columns[default_key]
    return stmt.order_by(column.desc() if params.sortDescending else column.asc())


def paginate(db: Session, stmt: Select, params: ResourceParameters) -> PagedResult:
    total = db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()
    rows = db.execute(
        stmt.offset(params.pageSize * (params.pageNumber - 1)).limit(params.pageSize)
    ).scalars().all()
    return PagedResult(items=list(rows), total_count=int(total), page_number=params.pageNumber, page_size=params.pageSize)
