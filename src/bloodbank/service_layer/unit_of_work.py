# pylint: disable=attribute-defined-outside-init
from __future__ import annotations
import abc
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session


import config
from bloodbank.adapters import repository
from bloodbank.domain.exceptions import DependencyError


class AbstractUnitOfWork(abc.ABC):
    users: repository.AbstractUserRepository
    inventory: repository.AbstractInventoryRepository
    requests: repository.AbstractRequestRepository
    donations: repository.AbstractDonationRepository
    notifications: repository.AbstractNotificationRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args):
        self.rollback()

    def commit(self):
        self._commit()

    def collect_new_events(self):
        for request in self.requests.seen:
            while request.events:
                yield request.events.pop(0)
        for appointment in self.donations.seen:
            while appointment.events:
                yield appointment.events.pop(0)

    @abc.abstractmethod
    def _commit(self):
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self):
        raise NotImplementedError


DEFAULT_SESSION_FACTORY = sessionmaker(
    bind=create_engine(
        config.get_postgres_uri(),
        isolation_level="REPEATABLE READ",
    )
)

class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    def __init__(self, session_factory=DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def __enter__(self):
        self.session = self.session_factory()  # type: Session
        self.users = repository.SqlAlchemyUserRepository(self.session)
        self.inventory = repository.SqlAlchemyInventoryRepository(self.session)
        self.requests = repository.SqlAlchemyRequestRepository(self.session)
        self.donations = repository.SqlAlchemyDonationRepository(self.session)
        self.notifications = repository.SqlAlchemyNotificationRepository(self.session)
        return super().__enter__()

    def __exit__(self, *args):
        super().__exit__(*args)
        self.session.close()

    def _commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            raise DependencyError(f"Failed to commit to blood bank store: {e}") from e

    def rollback(self):
        self.session.rollback()
