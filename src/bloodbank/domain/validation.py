"""Input checks run before any repository call."""

from datetime import date
from typing import Dict

from bloodbank.domain.exceptions import ValidationError
from bloodbank.domain.model import BLOOD_GROUPS, URGENCY_LEVELS
from bloodbank.domain.session import Role, UserSession

REQUIRED_REQUEST_FIELDS = {
    "patient_name": "Patient name is required",
    "contact_number": "Contact number is required",
    "hospital_name": "Hospital/Organization name is required",
    "reason": "Reason for request is required",
}


def validate_request(command) -> None:
    """
    Check a SubmitBloodRequest before it touches the store.

    Collects every field problem so the caller can show them together.
    """
    if not command.session.can_request_blood:
        raise ValidationError("Only recipients and admins can create blood requests")

    errors = {}  # type: Dict[str, str]

    if not command.blood_group:
        errors["blood_group"] = "Blood type is required"
    elif command.blood_group not in BLOOD_GROUPS:
        errors["blood_group"] = f"Unknown blood group '{command.blood_group}'"

    if command.quantity is None or command.quantity < 1:
        errors["quantity"] = "Quantity must be at least 1"

    if command.urgency not in URGENCY_LEVELS:
        errors["urgency"] = "Urgency level is required"

    for name, message in REQUIRED_REQUEST_FIELDS.items():
        value = getattr(command, name)
        if not value or not value.strip():
            errors[name] = message

    if not command.required_by:
        errors["required_by"] = "Required by date is required"

    if errors:
        raise ValidationError("; ".join(f"{k}: {v}" for k, v in errors.items()))


def validate_donation(session: UserSession, donation_date: date, today: date) -> None:
    if session.role != Role.DONOR:
        raise ValidationError("Only donors can schedule donations")
    if donation_date is None:
        raise ValidationError("Please select a donation date")
    if donation_date < today:
        raise ValidationError("Please select a future date")
