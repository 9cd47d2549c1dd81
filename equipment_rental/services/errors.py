from __future__ import annotations


class EquipmentRentalError(Exception):
    status_code = 400


class ValidationError(EquipmentRentalError):
    status_code = 400


class NotFoundError(EquipmentRentalError):
    status_code = 404


class ContractStateError(EquipmentRentalError):
    """Raised when a lifecycle transition is not allowed from the current status."""

    status_code = 400


class ConflictError(EquipmentRentalError):
    status_code = 409


class ConcurrencyConflictError(ConflictError):
    def __init__(self, message: str = "The entity has been modified by another user."):
        super().__init__(message)
