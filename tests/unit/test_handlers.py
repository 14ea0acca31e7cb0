"""Unit tests for command handlers through the message bus with a fake unit of work."""
import logging
from datetime import date, timedelta

import pytest

from bloodbank.domain import commands, model
from bloodbank.domain.exceptions import (
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from bloodbank.domain.session import Role
from bloodbank.service_layer import messagebus
from conftest import FakeNotificationRepository, TODAY, add_bank, make_session


def submit(session, bank_id, blood_group="O+", quantity=5, **overrides):
    values = dict(
        session=session,
        bank_id=bank_id,
        blood_group=blood_group,
        quantity=quantity,
        urgency="high",
        patient_name="Jane Doe",
        contact_number="555-0100",
        hospital_name="St. Mary Hospital",
        reason="Surgery",
        required_by=TODAY + timedelta(days=3),
    )
    values.update(overrides)
    return commands.SubmitBloodRequest(**values)


class TestSubmitBloodRequest:

    def test_request_within_stock_is_created_pending(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 12), ("A+", 8)])

        [record] = messagebus.handle(submit(recipient, bank.id, "O+", 5), fake_uow)

        assert record["blood_group"] == "O+"
        assert record["quantity"] == 5
        assert record["status"] == "pending"
        assert record["assigned_bank"] == bank.id
        assert record["requester_id"] == recipient.user_id
        assert fake_uow.requests.get(record["id"]) is not None

    def test_quantity_is_summed_across_units(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 3), ("O+", 4)])

        [record] = messagebus.handle(submit(recipient, bank.id, "O+", 7), fake_uow)

        assert record["quantity"] == 7

    def test_request_above_stock_is_rejected_with_available_quantity(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])

        with pytest.raises(InsufficientInventoryError) as excinfo:
            messagebus.handle(submit(recipient, bank.id, "O+", 999), fake_uow)

        assert excinfo.value.available_quantity == 12
        assert excinfo.value.requested_quantity == 999
        assert fake_uow.requests.list() == []
        assert fake_uow.notifications.list_for_user(bank.id) == []
        assert fake_uow.commits == 0

    def test_expired_and_reserved_units_do_not_count(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 2)])
        fake_uow.inventory.add(model.InventoryUnit(
            id="expired", blood_bank_id=bank.id, blood_group="O+", quantity=10,
            expiry_date=TODAY - timedelta(days=1),
        ))
        fake_uow.inventory.add(model.InventoryUnit(
            id="reserved", blood_bank_id=bank.id, blood_group="O+", quantity=10,
            expiry_date=TODAY + timedelta(days=5), status=model.RESERVED,
        ))

        with pytest.raises(InsufficientInventoryError) as excinfo:
            messagebus.handle(submit(recipient, bank.id, "O+", 3), fake_uow)

        assert excinfo.value.available_quantity == 2

    def test_other_blood_groups_do_not_count(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("A+", 20)])

        with pytest.raises(InsufficientInventoryError) as excinfo:
            messagebus.handle(submit(recipient, bank.id, "O+", 1), fake_uow)

        assert excinfo.value.available_quantity == 0

    def test_bank_is_notified(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])

        messagebus.handle(submit(recipient, bank.id, "O+", 5), fake_uow)

        [notification] = fake_uow.notifications.list_for_user(bank.id)
        assert notification.type == "blood_request"
        assert notification.message == (
            "New high priority blood request: 5 units of O+ from St. Mary Hospital"
        )

    def test_notification_failure_does_not_affect_result(self, fake_uow, recipient, caplog):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])
        fake_uow.notifications = FakeNotificationRepository(fail=True)

        with caplog.at_level(logging.WARNING):
            [record] = messagebus.handle(submit(recipient, bank.id, "O+", 5), fake_uow)

        assert record["status"] == "pending"
        assert fake_uow.requests.get(record["id"]).status == "pending"
        assert "Failed to create notification" in caplog.text

    def test_event_is_published_to_redis(self, fake_uow, recipient, fake_redis):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])
        pubsub = fake_redis.pubsub()
        pubsub.subscribe("bloodbank:requests")

        [record] = messagebus.handle(submit(recipient, bank.id, "O+", 5), fake_uow)

        messages = [pubsub.get_message(timeout=0.1) for _ in range(3)]
        [message] = [m for m in messages if m and m["type"] == "message"]
        assert record["id"].encode() in message["data"]

    def test_invalid_input_never_reaches_the_store(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])

        with pytest.raises(ValidationError):
            messagebus.handle(submit(recipient, bank.id, "O+", 0), fake_uow)

        assert fake_uow.inventory.queries == 0
        assert fake_uow.requests.list() == []

    def test_donor_cannot_request_blood(self, fake_uow):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])

        with pytest.raises(ValidationError):
            messagebus.handle(submit(make_session(Role.DONOR), bank.id), fake_uow)

        assert fake_uow.inventory.queries == 0


class TestReviewBloodRequest:

    def _pending_request(self, fake_uow, recipient):
        bank = add_bank(fake_uow, "City General", [("O+", 12)])
        [record] = messagebus.handle(submit(recipient, bank.id, "O+", 5), fake_uow)
        return bank, record

    def test_assigned_bank_can_approve_and_fulfil(self, fake_uow, recipient):
        bank, record = self._pending_request(fake_uow, recipient)
        bank_session = make_session(Role.BLOOD_BANK, user_id=bank.id)

        [approved] = messagebus.handle(
            commands.ReviewBloodRequest(session=bank_session, request_id=record["id"], status="approved"),
            fake_uow,
        )
        [fulfilled] = messagebus.handle(
            commands.ReviewBloodRequest(session=bank_session, request_id=record["id"], status="fulfilled"),
            fake_uow,
        )

        assert approved["status"] == "approved"
        assert fulfilled["status"] == "fulfilled"

    def test_requester_is_notified_of_status_change(self, fake_uow, recipient):
        bank, record = self._pending_request(fake_uow, recipient)
        admin = make_session(Role.ADMIN)

        messagebus.handle(
            commands.ReviewBloodRequest(session=admin, request_id=record["id"], status="denied"),
            fake_uow,
        )

        [notification] = fake_uow.notifications.list_for_user(recipient.user_id)
        assert notification.type == "request_update"
        assert "denied" in notification.message

    def test_approval_does_not_consume_inventory(self, fake_uow, recipient):
        bank, record = self._pending_request(fake_uow, recipient)

        messagebus.handle(
            commands.ReviewBloodRequest(session=make_session(Role.ADMIN), request_id=record["id"], status="approved"),
            fake_uow,
        )

        units = fake_uow.inventory.list_available_units({bank.id}, "O+", on=TODAY)
        assert sum(u.quantity for u in units) == 12

    def test_other_bank_cannot_review(self, fake_uow, recipient):
        _, record = self._pending_request(fake_uow, recipient)
        other_bank = make_session(Role.BLOOD_BANK)

        with pytest.raises(ValidationError, match="another bank"):
            messagebus.handle(
                commands.ReviewBloodRequest(session=other_bank, request_id=record["id"], status="approved"),
                fake_uow,
            )

    def test_recipient_cannot_review(self, fake_uow, recipient):
        _, record = self._pending_request(fake_uow, recipient)

        with pytest.raises(ValidationError):
            messagebus.handle(
                commands.ReviewBloodRequest(session=recipient, request_id=record["id"], status="approved"),
                fake_uow,
            )

    def test_cannot_fulfil_pending_request(self, fake_uow, recipient):
        _, record = self._pending_request(fake_uow, recipient)

        with pytest.raises(ValidationError):
            messagebus.handle(
                commands.ReviewBloodRequest(session=make_session(Role.ADMIN), request_id=record["id"], status="fulfilled"),
                fake_uow,
            )

        assert fake_uow.requests.get(record["id"]).status == "pending"

    def test_unknown_request(self, fake_uow):
        with pytest.raises(NotFoundError):
            messagebus.handle(
                commands.ReviewBloodRequest(session=make_session(Role.ADMIN), request_id="missing", status="approved"),
                fake_uow,
            )


class TestScheduleDonation:

    def test_donor_schedules_pending_appointment(self, fake_uow):
        bank = add_bank(fake_uow, "City General", [])
        donor = make_session(Role.DONOR, name="Dana Donor", blood_type="A+")
        when = TODAY + timedelta(days=7)

        [record] = messagebus.handle(
            commands.ScheduleDonation(session=donor, bank_id=bank.id, donation_date=when),
            fake_uow,
        )

        assert record["status"] == "pending"
        assert record["blood_group"] == "A+"
        assert record["donation_date"] == when.isoformat()
        [notification] = fake_uow.notifications.list_for_user(bank.id)
        assert notification.type == "donation_scheduled"
        assert notification.message == (
            f"New donation appointment scheduled by Dana Donor for {when.isoformat()}"
        )

    def test_inactive_bank_is_rejected(self, fake_uow):
        bank = add_bank(fake_uow, "Closed Bank", [], is_active=False)

        with pytest.raises(ValidationError):
            messagebus.handle(
                commands.ScheduleDonation(session=make_session(Role.DONOR), bank_id=bank.id, donation_date=TODAY),
                fake_uow,
            )

    def test_past_date_is_rejected(self, fake_uow):
        bank = add_bank(fake_uow, "City General", [])

        with pytest.raises(ValidationError):
            messagebus.handle(
                commands.ScheduleDonation(
                    session=make_session(Role.DONOR), bank_id=bank.id,
                    donation_date=date.today() - timedelta(days=1),
                ),
                fake_uow,
            )


class TestMarkNotificationRead:

    def test_owner_marks_notification_read(self, fake_uow, recipient):
        fake_uow.notifications.add(model.Notification(id="n-1", user_id=recipient.user_id, message="hi", type="info"))

        [record] = messagebus.handle(
            commands.MarkNotificationRead(session=recipient, notification_id="n-1"), fake_uow
        )

        assert record["is_read"] is True

    def test_other_users_notification_is_not_found(self, fake_uow, recipient):
        fake_uow.notifications.add(model.Notification(id="n-1", user_id="someone-else", message="hi", type="info"))

        with pytest.raises(NotFoundError):
            messagebus.handle(
                commands.MarkNotificationRead(session=recipient, notification_id="n-1"), fake_uow
            )
