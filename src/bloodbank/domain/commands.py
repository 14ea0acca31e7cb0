"""Commands for the blood bank service."""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.commands import Command
from bloodbank.domain.session import UserSession


@dataclass
class SubmitBloodRequest(Command):
    """Command to request blood from a specific bank's available inventory."""
    session: UserSession
    bank_id: str
    blood_group: str
    quantity: int
    urgency: str
    patient_name: str
    contact_number: str
    hospital_name: str
    reason: str
    required_by: Optional[date]


@dataclass
class ReviewBloodRequest(Command):
    """Command to approve, deny or fulfil a request."""
    session: UserSession
    request_id: str
    status: str  # 'approved' | 'denied' | 'fulfilled'


@dataclass
class ScheduleDonation(Command):
    """Command for a donor to book a donation appointment at a bank."""
    session: UserSession
    bank_id: str
    donation_date: date
    notes: str = ""


@dataclass
class MarkNotificationRead(Command):
    session: UserSession
    notification_id: str
