from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from equipment_rental.models.rental_models import AuditLog


def log_audit(db: Session, entity_type: str, entity_id: UUID | str, action: str, details: str | None = None) -> None:
    db.add(
        AuditLog(
            EntityType=entity_type,
            EntityID=str(entity_id),
            Action=action,
            Details=details,
            CreatedAt=datetime.now(),
        )
    )


def get_audit_trail(db: Session, entity_type: str, entity_id: UUID | str) -> list[AuditLog]:
    return list(
        db.execute(
            select(AuditLog)
            .where(AuditLog.EntityType == entity_type, AuditLog.EntityID == str(entity_id))
            .order_by(AuditLog.AuditID)
        ).scalars().all()
    )


def serialize_audit_entry(entry: AuditLog) -> dict:
    return {
        "auditID": entry.AuditID,
        "entityType": entry.EntityType,
        "entityID": entry.EntityID,
        "action": entry.Action,
        "details": entry.Details,
        "createdAt": entry.CreatedAt,
    }
