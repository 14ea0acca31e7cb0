"""
Views for read operations - separate from command/write path.
Following Cosmic Python CQRS pattern: views read through the repositories and
serialize inside the session, never mutating anything.

Role-specific views dispatch through a table keyed by Role, resolved once per
call from the caller's UserSession.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bloodbank.domain import model
from bloodbank.domain.availability import SearchFilters, aggregate_by_bank, bank_matches
from bloodbank.domain.session import Role, UserSession
from bloodbank.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def search_blood_banks(
    filters: SearchFilters,
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """
    Search available blood grouped by bank, ranked by total units.

    Steps:
    1. Resolve active banks matching the name (and advisory location) filter
    2. Load available, in-date, non-empty units at those banks
    3. Group by bank and sum quantities
    4. Sort by total units descending, keeping repository order on ties

    An empty list means nothing matched; it is not an error.

    Raises:
        DependencyError: If the store is unreachable (no partial results)
    """
    today = today or date.today()

    with uow:
        banks = [
            bank for bank in uow.inventory.list_active_banks(filters.name_query or None)
            if bank_matches(bank, filters)
        ]
        if not banks:
            logger.info(f"No blood banks match {filters}")
            return []

        units = uow.inventory.list_available_units(
            {bank.id for bank in banks},
            blood_group=filters.blood_group or None,
            on=today,
        )
        results = aggregate_by_bank(banks, units, today)
        serialized = [result.to_dict() for result in results]

    logger.info(f"Search {filters} found {len(serialized)} blood banks")
    return serialized


def available_quantity(
    bank_id: str,
    blood_group: str,
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> int:
    """Units of one blood group currently requestable at one bank."""
    today = today or date.today()
    with uow:
        units = uow.inventory.list_available_units({bank_id}, blood_group=blood_group, on=today)
        return sum(unit.quantity for unit in units if unit.is_available(today))


# ---------- Request history ----------

REQUEST_HISTORY = {
    Role.DONOR: lambda session, uow: [],
    Role.RECIPIENT: lambda session, uow: uow.requests.list_for_requester(session.user_id),
    Role.BLOOD_BANK: lambda session, uow: uow.requests.list_for_bank(session.user_id),
    Role.ADMIN: lambda session, uow: uow.requests.list(),
}  # type: Dict[Role, Callable]


def request_history(session: UserSession, uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    """Requests visible to the caller, newest first."""
    load = REQUEST_HISTORY[session.role]
    with uow:
        return [request.to_dict() for request in load(session, uow)]


# ---------- Donation history ----------

DONATION_HISTORY = {
    Role.DONOR: lambda session, uow: uow.donations.list_for_donor(session.user_id),
    Role.RECIPIENT: lambda session, uow: [],
    Role.BLOOD_BANK: lambda session, uow: uow.donations.list_for_bank(session.user_id),
    Role.ADMIN: lambda session, uow: [],
}  # type: Dict[Role, Callable]


def donation_history(session: UserSession, uow: AbstractUnitOfWork) -> List[Dict[str, Any]]:
    """Donation appointments visible to the caller, latest first."""
    load = DONATION_HISTORY[session.role]
    with uow:
        return [appointment.to_dict() for appointment in load(session, uow)]


# ---------- Dashboard ----------

def _donor_dashboard(session: UserSession, uow: AbstractUnitOfWork, today: date) -> Dict[str, Any]:
    donations = uow.donations.list_for_donor(session.user_id)
    return {
        "total_donations": len(donations),
        "scheduled_donations": sum(1 for d in donations if d.status == model.DONATION_PENDING),
        "completed_donations": sum(1 for d in donations if d.status == model.DONATION_COMPLETED),
    }


def _recipient_dashboard(session: UserSession, uow: AbstractUnitOfWork, today: date) -> Dict[str, Any]:
    requests = uow.requests.list_for_requester(session.user_id)
    return {
        "blood_requests": len(requests),
        "pending_requests": sum(1 for r in requests if r.status == model.PENDING),
    }


def _blood_bank_dashboard(session: UserSession, uow: AbstractUnitOfWork, today: date) -> Dict[str, Any]:
    units = uow.inventory.list_available_units({session.user_id}, on=today)
    requests = uow.requests.list_for_bank(session.user_id)

    by_group = {group: 0 for group in model.BLOOD_GROUPS}
    for unit in units:
        by_group[unit.blood_group] = by_group.get(unit.blood_group, 0) + unit.quantity

    return {
        "available_units": sum(by_group.values()),
        "units_by_blood_group": by_group,
        "blood_requests": len(requests),
        "pending_requests": sum(1 for r in requests if r.status == model.PENDING),
    }


def _admin_dashboard(session: UserSession, uow: AbstractUnitOfWork, today: date) -> Dict[str, Any]:
    requests = uow.requests.list()
    return {
        "blood_requests": len(requests),
        "pending_requests": sum(1 for r in requests if r.status == model.PENDING),
        "active_blood_banks": len(uow.inventory.list_active_banks()),
    }


DASHBOARDS = {
    Role.DONOR: _donor_dashboard,
    Role.RECIPIENT: _recipient_dashboard,
    Role.BLOOD_BANK: _blood_bank_dashboard,
    Role.ADMIN: _admin_dashboard,
}  # type: Dict[Role, Callable]


def dashboard(
    session: UserSession,
    uow: AbstractUnitOfWork,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """Role-specific counters for the caller's dashboard."""
    today = today or date.today()
    build = DASHBOARDS[session.role]
    with uow:
        stats = build(session, uow, today)

    return {
        "role": session.role.value,
        "stats": stats,
        "queried_at": datetime.now(timezone.utc).isoformat(),
    }


def notifications(user_id: str, uow: AbstractUnitOfWork, limit: int = 5) -> List[Dict[str, Any]]:
    """Most recent notifications for a user."""
    with uow:
        return [n.to_dict() for n in uow.notifications.list_for_user(user_id, limit=limit)]
