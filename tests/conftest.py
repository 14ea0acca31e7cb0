# pylint: disable=redefined-outer-name
from datetime import date, timedelta

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, clear_mappers
from sqlalchemy.pool import StaticPool

from bloodbank.adapters import orm, redis_adapter
from bloodbank.adapters.repository import (
    AbstractDonationRepository,
    AbstractInventoryRepository,
    AbstractNotificationRepository,
    AbstractRequestRepository,
    AbstractUserRepository,
)
from bloodbank.domain import model
from bloodbank.domain.exceptions import DependencyError
from bloodbank.domain.session import Role, UserSession
from bloodbank.service_layer.unit_of_work import AbstractUnitOfWork

TODAY = date.today()


class FakeUserRepository(AbstractUserRepository):
    def __init__(self, users=()):
        super().__init__()
        self._users = {u.id: u for u in users}

    def _add(self, user):
        self._users[user.id] = user

    def _get(self, user_id):
        return self._users.get(user_id)

    def all(self):
        return list(self._users.values())


class FakeInventoryRepository(AbstractInventoryRepository):
    def __init__(self, users: FakeUserRepository, fail: bool = False):
        super().__init__()
        self._users = users
        self._units = []
        self.fail = fail
        self.queries = 0

    def _add(self, unit):
        self._units.append(unit)

    def _check(self):
        self.queries += 1
        if self.fail:
            raise DependencyError("inventory store unreachable")

    def _list_available_units(self, bank_ids, blood_group, on, for_update):
        self._check()
        return [
            u for u in self._units
            if u.blood_bank_id in bank_ids
            and u.is_available(on)
            and (blood_group is None or u.blood_group == blood_group)
        ]

    def _list_active_banks(self, name_substring):
        self._check()
        return [
            u for u in self._users.all()
            if u.role == Role.BLOOD_BANK.value and u.is_active
            and (not name_substring or name_substring.lower() in u.name.lower())
        ]

    def _get_bank(self, bank_id):
        self._check()
        return next((b for b in self._list_active_banks(None) if b.id == bank_id), None)


class FakeRequestRepository(AbstractRequestRepository):
    def __init__(self):
        super().__init__()
        self._requests = []

    def _add(self, request):
        self._requests.append(request)

    def _get(self, request_id):
        return next((r for r in self._requests if r.id == request_id), None)

    def _list(self, **filters):
        matching = [
            r for r in self._requests
            if all(getattr(r, k) == v for k, v in filters.items())
        ]
        return sorted(matching, key=lambda r: r.created_at, reverse=True)


class FakeDonationRepository(AbstractDonationRepository):
    def __init__(self):
        super().__init__()
        self._appointments = []

    def _add(self, appointment):
        self._appointments.append(appointment)

    def _list(self, **filters):
        matching = [
            a for a in self._appointments
            if all(getattr(a, k) == v for k, v in filters.items())
        ]
        return sorted(matching, key=lambda a: a.donation_date, reverse=True)


class FakeNotificationRepository(AbstractNotificationRepository):
    def __init__(self, fail: bool = False):
        self._notifications = []
        self.fail = fail

    def _add(self, notification):
        if self.fail:
            raise DependencyError("notification store unreachable")
        self._notifications.append(notification)

    def _get(self, notification_id):
        return next((n for n in self._notifications if n.id == notification_id), None)

    def _list_for_user(self, user_id, limit):
        matching = [n for n in self._notifications if n.user_id == user_id]
        return sorted(matching, key=lambda n: n.created_at, reverse=True)[:limit]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self):
        self.users = FakeUserRepository()
        self.inventory = FakeInventoryRepository(self.users)
        self.requests = FakeRequestRepository()
        self.donations = FakeDonationRepository()
        self.notifications = FakeNotificationRepository()
        self.commits = 0

    def _commit(self):
        self.commits += 1

    def rollback(self):
        pass


def add_bank(uow, name, stock, location="", bank_id=None, expiry=None, is_active=True):
    """
    Register a blood bank with one available unit per (blood group, quantity).

    `stock` is a list of (blood_group, quantity) pairs so a group may appear
    more than once.
    """
    bank = model.UserProfile(
        id=bank_id or model.new_id(),
        email=f"{name.lower().replace(' ', '.')}@bloodbank.example",
        name=name,
        role=Role.BLOOD_BANK.value,
        phone="+1 (555) 000-0000",
        location=location,
        is_active=is_active,
    )
    uow.users.add(bank)
    for blood_group, quantity in stock:
        uow.inventory.add(
            model.InventoryUnit(
                id=model.new_id(),
                blood_bank_id=bank.id,
                blood_group=blood_group,
                quantity=quantity,
                expiry_date=expiry or TODAY + timedelta(days=14),
            )
        )
    return bank


def make_session(role: Role, user_id=None, name="Test User", blood_type="O+") -> UserSession:
    return UserSession(user_id=user_id or model.new_id(), role=role, name=name, blood_type=blood_type)


@pytest.fixture
def fake_uow():
    return FakeUnitOfWork()


@pytest.fixture
def recipient():
    return make_session(Role.RECIPIENT, name="Riley Recipient")


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Keep event publishing off the network."""
    client = fakeredis.FakeRedis()
    monkeypatch.setattr(redis_adapter, "r", client)
    return client


@pytest.fixture
def sqlite_session_factory():
    """Create SQLite in-memory database for fast testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.metadata.create_all(engine)
    orm.start_mappers()

    yield sessionmaker(bind=engine)

    clear_mappers()
    engine.dispose()
