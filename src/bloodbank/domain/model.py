"""Domain model for blood inventory, requests, donations and notifications."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional
from uuid import uuid4

from bloodbank.domain.events import (
    BloodRequestSubmitted,
    BloodRequestStatusChanged,
    DonationScheduled,
)
from bloodbank.domain.exceptions import ValidationError

BLOOD_GROUPS = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
URGENCY_LEVELS = ("low", "medium", "high", "critical")

# InventoryUnit.status
AVAILABLE = "available"
RESERVED = "reserved"
EXPIRED = "expired"

# BloodRequest.status
PENDING = "pending"
APPROVED = "approved"
DENIED = "denied"
FULFILLED = "fulfilled"

REQUEST_TRANSITIONS = {
    PENDING: (APPROVED, DENIED),
    APPROVED: (FULFILLED,),
    DENIED: (),
    FULFILLED: (),
}

# DonationAppointment.status
DONATION_PENDING = "pending"
DONATION_COMPLETED = "completed"
DONATION_CANCELLED = "cancelled"


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(unsafe_hash=True)
class UserProfile:
    id: str
    email: str
    name: str
    role: str                 # donor | recipient | blood_bank | admin
    blood_type: Optional[str] = None
    phone: str = ""
    location: str = ""
    is_active: bool = True


@dataclass(unsafe_hash=True)
class InventoryUnit:
    id: str
    blood_bank_id: str
    blood_group: str
    quantity: int
    expiry_date: date
    status: str = AVAILABLE

    def is_available(self, on: date) -> bool:
        """Only available, in-date, non-empty units can be searched or requested."""
        return (
            self.status == AVAILABLE
            and self.quantity > 0
            and self.expiry_date >= on
        )


@dataclass(unsafe_hash=True)
class BloodRequest:
    id: str
    requester_id: str
    assigned_bank: str
    blood_group: str
    quantity: int
    urgency: str
    patient_name: str
    contact_number: str
    hospital_name: str
    reason: str
    required_by: Optional[date] = None
    status: str = PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    events: List = field(default_factory=list, compare=False, hash=False)

    def submit(self) -> None:
        """Record the pending request and raise BloodRequestSubmitted."""
        self.events.append(
            BloodRequestSubmitted(
                request_id=self.id,
                requester_id=self.requester_id,
                bank_id=self.assigned_bank,
                blood_group=self.blood_group,
                quantity=self.quantity,
                urgency=self.urgency,
                hospital_name=self.hospital_name,
                created_at=self.created_at,
            )
        )

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in REQUEST_TRANSITIONS.get(self.status, ())

    def change_status(self, new_status: str) -> None:
        if not self.can_transition_to(new_status):
            raise ValidationError(
                f"Cannot move request {self.id} from '{self.status}' to '{new_status}'"
            )

        old_status = self.status
        self.status = new_status
        self.updated_at = utcnow()
        self.events.append(
            BloodRequestStatusChanged(
                request_id=self.id,
                requester_id=self.requester_id,
                bank_id=self.assigned_bank,
                blood_group=self.blood_group,
                quantity=self.quantity,
                old_status=old_status,
                new_status=new_status,
                changed_at=self.updated_at,
            )
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "assigned_bank": self.assigned_bank,
            "blood_group": self.blood_group,
            "quantity": self.quantity,
            "urgency": self.urgency,
            "status": self.status,
            "patient_name": self.patient_name,
            "contact_number": self.contact_number,
            "hospital_name": self.hospital_name,
            "reason": self.reason,
            "required_by": self.required_by.isoformat() if self.required_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(unsafe_hash=True)
class DonationAppointment:
    id: str
    donor_id: str
    blood_bank_id: str
    donation_date: date
    blood_group: Optional[str] = None
    status: str = DONATION_PENDING
    notes: str = ""
    created_at: datetime = field(default_factory=utcnow)
    events: List = field(default_factory=list, compare=False, hash=False)

    def schedule(self, donor_name: str) -> None:
        self.events.append(
            DonationScheduled(
                appointment_id=self.id,
                donor_id=self.donor_id,
                donor_name=donor_name,
                bank_id=self.blood_bank_id,
                donation_date=self.donation_date,
            )
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "donor_id": self.donor_id,
            "blood_bank_id": self.blood_bank_id,
            "donation_date": self.donation_date.isoformat(),
            "blood_group": self.blood_group,
            "status": self.status,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(unsafe_hash=True)
class Notification:
    id: str
    user_id: str
    message: str
    type: str
    is_read: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def mark_read(self) -> None:
        self.is_read = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "message": self.message,
            "type": self.type,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
