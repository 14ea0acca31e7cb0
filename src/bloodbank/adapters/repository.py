import abc
import functools
import logging
from datetime import date
from typing import Iterable, List, Optional, Set

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from bloodbank.domain import model
from bloodbank.domain.exceptions import DependencyError
from bloodbank.domain.session import Role

logger = logging.getLogger(__name__)


def translate_db_errors(method):
    """Surface driver and server failures as DependencyError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Database error in {method.__qualname__}: {e}")
            raise DependencyError(f"Blood bank store unavailable: {e}") from e

    return wrapper


class AbstractUserRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.UserProfile]

    def add(self, user: model.UserProfile) -> str:
        self._add(user)
        self.seen.add(user)
        return user.id

    def get(self, user_id) -> Optional[model.UserProfile]:
        user = self._get(user_id)
        if user:
            self.seen.add(user)
        return user

    @abc.abstractmethod
    def _add(self, user: model.UserProfile):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, user_id) -> Optional[model.UserProfile]:
        raise NotImplementedError


class AbstractInventoryRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.InventoryUnit]

    def add(self, unit: model.InventoryUnit) -> str:
        self._add(unit)
        self.seen.add(unit)
        return unit.id

    def list_available_units(
        self,
        bank_ids: Iterable[str],
        blood_group: Optional[str] = None,
        on: Optional[date] = None,
        for_update: bool = False,
    ) -> List[model.InventoryUnit]:
        """
        Units with status 'available', quantity > 0 and expiry on or after `on`
        (today by default) for the given banks, optionally of one blood group.
        """
        bank_ids = set(bank_ids)
        if not bank_ids:
            return []
        return self._list_available_units(bank_ids, blood_group, on or date.today(), for_update)

    def list_active_banks(self, name_substring: Optional[str] = None) -> List[model.UserProfile]:
        """Active users with role 'blood_bank', optionally filtered by name."""
        return self._list_active_banks(name_substring)

    def get_bank(self, bank_id: str) -> Optional[model.UserProfile]:
        """Active blood bank by id, or None."""
        return self._get_bank(bank_id)

    @abc.abstractmethod
    def _add(self, unit: model.InventoryUnit):
        raise NotImplementedError

    @abc.abstractmethod
    def _list_available_units(
        self, bank_ids: Set[str], blood_group: Optional[str], on: date, for_update: bool
    ) -> List[model.InventoryUnit]:
        raise NotImplementedError

    @abc.abstractmethod
    def _list_active_banks(self, name_substring: Optional[str]) -> List[model.UserProfile]:
        raise NotImplementedError

    @abc.abstractmethod
    def _get_bank(self, bank_id: str) -> Optional[model.UserProfile]:
        raise NotImplementedError


class AbstractRequestRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.BloodRequest]

    def add(self, request: model.BloodRequest) -> str:
        self._add(request)
        self.seen.add(request)
        return request.id

    def get(self, request_id) -> Optional[model.BloodRequest]:
        request = self._get(request_id)
        if request:
            self.seen.add(request)
        return request

    def list_for_requester(self, requester_id: str) -> List[model.BloodRequest]:
        return self._list(requester_id=requester_id)

    def list_for_bank(self, bank_id: str) -> List[model.BloodRequest]:
        return self._list(assigned_bank=bank_id)

    def list(self) -> List[model.BloodRequest]:
        return self._list()

    @abc.abstractmethod
    def _add(self, request: model.BloodRequest):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, request_id) -> Optional[model.BloodRequest]:
        raise NotImplementedError

    @abc.abstractmethod
    def _list(self, **filters) -> List[model.BloodRequest]:
        """Requests matching the equality filters, newest first."""
        raise NotImplementedError


class AbstractDonationRepository(abc.ABC):
    def __init__(self):
        self.seen = set()  # type: Set[model.DonationAppointment]

    def add(self, appointment: model.DonationAppointment) -> str:
        self._add(appointment)
        self.seen.add(appointment)
        return appointment.id

    def list_for_donor(self, donor_id: str) -> List[model.DonationAppointment]:
        return self._list(donor_id=donor_id)

    def list_for_bank(self, bank_id: str) -> List[model.DonationAppointment]:
        return self._list(blood_bank_id=bank_id)

    @abc.abstractmethod
    def _add(self, appointment: model.DonationAppointment):
        raise NotImplementedError

    @abc.abstractmethod
    def _list(self, **filters) -> List[model.DonationAppointment]:
        """Appointments matching the equality filters, latest donation date first."""
        raise NotImplementedError


class AbstractNotificationRepository(abc.ABC):
    def add(self, notification: model.Notification) -> str:
        self._add(notification)
        return notification.id

    def get(self, notification_id) -> Optional[model.Notification]:
        return self._get(notification_id)

    def list_for_user(self, user_id: str, limit: int = 5) -> List[model.Notification]:
        return self._list_for_user(user_id, limit)

    @abc.abstractmethod
    def _add(self, notification: model.Notification):
        raise NotImplementedError

    @abc.abstractmethod
    def _get(self, notification_id) -> Optional[model.Notification]:
        raise NotImplementedError

    @abc.abstractmethod
    def _list_for_user(self, user_id: str, limit: int) -> List[model.Notification]:
        raise NotImplementedError


class SqlAlchemyUserRepository(AbstractUserRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, user):
        self.session.add(user)

    @translate_db_errors
    def _get(self, user_id):
        return self.session.query(model.UserProfile).filter_by(id=user_id).first()


class SqlAlchemyInventoryRepository(AbstractInventoryRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, unit):
        self.session.add(unit)

    def _available_units_query(self, bank_ids, blood_group, on, for_update):
        query = self.session.query(model.InventoryUnit)\
            .filter(model.InventoryUnit.blood_bank_id.in_(bank_ids))\
            .filter(model.InventoryUnit.status == model.AVAILABLE)\
            .filter(model.InventoryUnit.quantity > 0)\
            .filter(model.InventoryUnit.expiry_date >= on)

        if blood_group is not None:
            query = query.filter(model.InventoryUnit.blood_group == blood_group)

        if for_update:
            query = query.with_for_update()

        return query.order_by(model.InventoryUnit.expiry_date, model.InventoryUnit.id)

    @translate_db_errors
    def _list_available_units(self, bank_ids, blood_group, on, for_update):
        return self._available_units_query(bank_ids, blood_group, on, for_update).all()

    def _active_banks(self):
        return self.session.query(model.UserProfile)\
            .filter(model.UserProfile.role == Role.BLOOD_BANK.value)\
            .filter(model.UserProfile.is_active.is_(True))

    @translate_db_errors
    def _list_active_banks(self, name_substring):
        query = self._active_banks()
        if name_substring:
            query = query.filter(
                func.lower(model.UserProfile.name).contains(name_substring.lower(), autoescape=True)
            )
        return query.order_by(model.UserProfile.name).all()

    @translate_db_errors
    def _get_bank(self, bank_id):
        return self._active_banks().filter(model.UserProfile.id == bank_id).first()


class SqlAlchemyRequestRepository(AbstractRequestRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, request):
        self.session.add(request)

    @translate_db_errors
    def _get(self, request_id):
        return self.session.query(model.BloodRequest).filter_by(id=request_id).first()

    @translate_db_errors
    def _list(self, **filters):
        return self.session.query(model.BloodRequest)\
            .filter_by(**filters)\
            .order_by(model.BloodRequest.created_at.desc())\
            .all()


class SqlAlchemyDonationRepository(AbstractDonationRepository):
    def __init__(self, session):
        super().__init__()
        self.session = session

    def _add(self, appointment):
        self.session.add(appointment)

    @translate_db_errors
    def _list(self, **filters):
        return self.session.query(model.DonationAppointment)\
            .filter_by(**filters)\
            .order_by(model.DonationAppointment.donation_date.desc())\
            .all()


class SqlAlchemyNotificationRepository(AbstractNotificationRepository):
    def __init__(self, session):
        self.session = session

    def _add(self, notification):
        self.session.add(notification)

    @translate_db_errors
    def _get(self, notification_id):
        return self.session.query(model.Notification).filter_by(id=notification_id).first()

    @translate_db_errors
    def _list_for_user(self, user_id, limit):
        return self.session.query(model.Notification)\
            .filter_by(user_id=user_id)\
            .order_by(model.Notification.created_at.desc())\
            .limit(limit)\
            .all()
