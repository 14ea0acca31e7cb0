"""Error taxonomy for the blood bank service."""

from typing import Optional


class BloodBankError(Exception):
    """Base class for all blood bank errors."""
    pass


class DependencyError(BloodBankError):
    """Backing store unreachable or returned a server error. Never retried."""
    pass


class ValidationError(BloodBankError):
    """Caller input violates a precondition. Raised before any repository call."""
    pass


class NotFoundError(BloodBankError):
    """Referenced request, notification or bank does not exist."""
    pass


class InsufficientInventoryError(BloodBankError):
    """Fresh availability check found less stock than requested."""

    def __init__(self, available_quantity: int, requested_quantity: Optional[int] = None):
        self.available_quantity = available_quantity
        self.requested_quantity = requested_quantity
        super().__init__(f"Insufficient inventory. Only {available_quantity} units available.")


class NotificationDeliveryError(BloodBankError):
    """Notification could not be stored or published. Logged only."""
    pass
