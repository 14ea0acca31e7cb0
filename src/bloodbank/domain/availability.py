"""
Availability aggregation: turns eligible inventory units into per-bank results.

Pure functions with no repository access so the ordering and total rules can
be tested without a database.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from bloodbank.domain.model import InventoryUnit, UserProfile


@dataclass
class SearchFilters:
    name_query: Optional[str] = None
    blood_group: Optional[str] = None
    location: Optional[str] = None


@dataclass
class BloodTypeStock:
    blood_group: str
    quantity: int
    expiry: date
    inventory_unit_id: str


@dataclass
class AggregatedBankResult:
    bank_id: str
    name: str
    phone: str
    email: str
    location: str
    blood_types: List[BloodTypeStock] = field(default_factory=list)
    total_units: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.bank_id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "location": self.location,
            "blood_types": [
                {
                    "blood_group": stock.blood_group,
                    "quantity": stock.quantity,
                    "expiry": stock.expiry.isoformat(),
                    "inventory_unit_id": stock.inventory_unit_id,
                }
                for stock in self.blood_types
            ],
            "total_units": self.total_units,
        }


def bank_matches(bank: UserProfile, filters: SearchFilters) -> bool:
    """Case-insensitive substring match on bank name and (advisory) location."""
    if filters.name_query and filters.name_query.lower() not in (bank.name or "").lower():
        return False
    if filters.location and filters.location.lower() not in (bank.location or "").lower():
        return False
    return True


def total_available(units: Iterable[InventoryUnit], on: date) -> int:
    return sum(unit.quantity for unit in units if unit.is_available(on))


def aggregate_by_bank(
    banks: Iterable[UserProfile],
    units: Iterable[InventoryUnit],
    on: date,
) -> List[AggregatedBankResult]:
    """
    Group eligible units by bank and rank banks by total units.

    Banks appear in the order their first unit was returned by the repository;
    ties in total_units keep that order (sorted() is stable). Units that are
    not available on `on` are dropped even if the repository returned them.
    """
    banks_by_id = {bank.id: bank for bank in banks}
    grouped = {}  # type: Dict[str, AggregatedBankResult]

    for unit in units:
        if not unit.is_available(on):
            continue
        bank = banks_by_id.get(unit.blood_bank_id)
        if bank is None:
            continue

        result = grouped.get(bank.id)
        if result is None:
            result = AggregatedBankResult(
                bank_id=bank.id,
                name=bank.name,
                phone=bank.phone,
                email=bank.email,
                location=bank.location,
            )
            grouped[bank.id] = result

        result.blood_types.append(
            BloodTypeStock(
                blood_group=unit.blood_group,
                quantity=unit.quantity,
                expiry=unit.expiry_date,
                inventory_unit_id=unit.id,
            )
        )
        result.total_units += unit.quantity

    return sorted(grouped.values(), key=lambda r: r.total_units, reverse=True)
