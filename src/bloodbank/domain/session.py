"""Caller identity passed explicitly to every operation that needs it."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    DONOR = "donor"
    RECIPIENT = "recipient"
    BLOOD_BANK = "blood_bank"
    ADMIN = "admin"


REQUESTER_ROLES = frozenset({Role.RECIPIENT, Role.ADMIN})
REVIEWER_ROLES = frozenset({Role.BLOOD_BANK, Role.ADMIN})


@dataclass(frozen=True)
class UserSession:
    """
    Authenticated caller.

    Created once per API call from the user profile and never mutated.
    Handlers and views receive it as an argument instead of looking up
    ambient state.
    """
    user_id: str
    role: Role
    name: str = ""
    blood_type: Optional[str] = None

    @classmethod
    def from_profile(cls, profile) -> "UserSession":
        return cls(
            user_id=profile.id,
            role=Role(profile.role),
            name=profile.name,
            blood_type=profile.blood_type,
        )

    @property
    def can_request_blood(self) -> bool:
        return self.role in REQUESTER_ROLES

    @property
    def can_review_requests(self) -> bool:
        return self.role in REVIEWER_ROLES
