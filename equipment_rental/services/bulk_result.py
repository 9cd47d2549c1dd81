from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass
class BulkOperationError:
    entity_id: UUID
    error_message: str


@dataclass
class BulkOperationResult:
    success_ids: list[UUID] = field(default_factory=list)
    errors: list[BulkOperationError] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.success_ids)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    def add_success(self, entity_id: UUID) -> None:
        self.success_ids.append(entity_id)

    def add_error(self, entity_id: UUID, message: str) -> None:
        self.errors.append(BulkOperationError(entity_id=entity_id, error_message=message))

    def to_payload(self) -> dict:
        return {
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "successIds": [str(entity_id) for entity_id in self.success_ids],
            "errors": [
                {"entityId": str(error.entity_id), "errorMessage": error.error_message}
                for error in self.errors
            ],
        }
