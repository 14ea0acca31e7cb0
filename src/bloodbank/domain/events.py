"""Domain events for the blood bank service."""

from dataclasses import dataclass
from datetime import date, datetime

from shared.domain.commands import Event


@dataclass
class BloodRequestSubmitted(Event):
    """Event raised when a blood request has been stored in pending state."""
    request_id: str
    requester_id: str
    bank_id: str
    blood_group: str
    quantity: int
    urgency: str
    hospital_name: str
    created_at: datetime


@dataclass
class BloodRequestStatusChanged(Event):
    """Event raised when a bank or admin moves a request to a new status."""
    request_id: str
    requester_id: str
    bank_id: str
    blood_group: str
    quantity: int
    old_status: str
    new_status: str
    changed_at: datetime


@dataclass
class DonationScheduled(Event):
    """Event raised when a donor books a donation appointment."""
    appointment_id: str
    donor_id: str
    donor_name: str
    bank_id: str
    donation_date: date
