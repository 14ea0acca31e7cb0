import logging
from datetime import date

import config
from bloodbank.domain import model
from bloodbank.domain.availability import total_available
from bloodbank.domain.commands import (
    SubmitBloodRequest,
    ReviewBloodRequest,
    ScheduleDonation,
    MarkNotificationRead,
)
from bloodbank.domain.events import (
    BloodRequestSubmitted,
    BloodRequestStatusChanged,
    DonationScheduled,
)
from bloodbank.domain.exceptions import (
    InsufficientInventoryError,
    NotFoundError,
    NotificationDeliveryError,
    ValidationError,
)
from bloodbank.domain.session import Role
from bloodbank.domain.validation import validate_donation, validate_request
from bloodbank.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)


def submit_blood_request(
    command: SubmitBloodRequest,
    uow: AbstractUnitOfWork
) -> dict:
    """
    Create a pending blood request against one bank's inventory.

    Flow:
    1. Validate caller role and request fields (no store access)
    2. Re-query available, in-date units for (bank, blood group) and sum them
    3. Reject with InsufficientInventoryError if the sum is below the request
    4. Store the pending request and commit

    The bank notification is raised as a BloodRequestSubmitted event and
    handled after commit, so its failure cannot undo the request.

    Args:
        command: SubmitBloodRequest command
        uow: Unit of work for transaction management

    Returns:
        The created request record as a dict

    Raises:
        ValidationError: If the caller or input fails a precondition
        InsufficientInventoryError: If the bank holds fewer units than requested
        DependencyError: If the store is unreachable
    """
    validate_request(command)
    logger.info(
        f"Processing SubmitBloodRequest: {command.quantity} units of {command.blood_group} "
        f"from bank {command.bank_id} for requester {command.session.user_id}"
    )

    with uow:
        # Fresh check, independent of what the caller saw when searching.
        # Rows are locked so the check and the insert see the same stock.
        units = uow.inventory.list_available_units(
            {command.bank_id},
            blood_group=command.blood_group,
            for_update=True,
        )
        available = total_available(units, date.today())

        if available < command.quantity:
            logger.warning(
                f"Insufficient inventory at bank {command.bank_id}: "
                f"requested {command.quantity} {command.blood_group}, available {available}"
            )
            raise InsufficientInventoryError(available, command.quantity)

        blood_request = model.BloodRequest(
            id=model.new_id(),
            requester_id=command.session.user_id,
            assigned_bank=command.bank_id,
            blood_group=command.blood_group,
            quantity=command.quantity,
            urgency=command.urgency,
            patient_name=command.patient_name.strip(),
            contact_number=command.contact_number.strip(),
            hospital_name=command.hospital_name.strip(),
            reason=command.reason.strip(),
            required_by=command.required_by,
        )
        blood_request.submit()

        uow.requests.add(blood_request)
        # Serialize before commit expires the instance
        record = blood_request.to_dict()
        uow.commit()

    logger.info(f"Created blood request {record['id']} ({available} units were available)")
    return record


def review_blood_request(
    command: ReviewBloodRequest,
    uow: AbstractUnitOfWork
) -> dict:
    """Move a request along pending -> approved|denied, approved -> fulfilled."""
    session = command.session
    if not session.can_review_requests:
        raise ValidationError("Only blood banks and admins can review blood requests")
    if command.status not in (model.APPROVED, model.DENIED, model.FULFILLED):
        raise ValidationError(f"Unknown request status '{command.status}'")

    with uow:
        blood_request = uow.requests.get(command.request_id)
        if blood_request is None:
            raise NotFoundError(f"Blood request {command.request_id} not found")

        if session.role == Role.BLOOD_BANK and blood_request.assigned_bank != session.user_id:
            raise ValidationError("Blood request is assigned to another bank")

        blood_request.change_status(command.status)
        record = blood_request.to_dict()
        uow.commit()

    logger.info(f"Blood request {command.request_id} moved to {command.status} by {session.user_id}")
    return record


def schedule_donation(
    command: ScheduleDonation,
    uow: AbstractUnitOfWork
) -> dict:
    """Book a pending donation appointment for the calling donor."""
    session = command.session
    validate_donation(session, command.donation_date, date.today())

    with uow:
        bank = uow.inventory.get_bank(command.bank_id)
        if bank is None:
            raise ValidationError("Please select a blood bank")

        appointment = model.DonationAppointment(
            id=model.new_id(),
            donor_id=session.user_id,
            blood_bank_id=bank.id,
            donation_date=command.donation_date,
            blood_group=session.blood_type,
            notes=command.notes or "",
        )
        appointment.schedule(session.name)

        uow.donations.add(appointment)
        record = appointment.to_dict()
        uow.commit()

    logger.info(f"Scheduled donation {record['id']} for donor {session.user_id} at bank {command.bank_id}")
    return record


def mark_notification_read(
    command: MarkNotificationRead,
    uow: AbstractUnitOfWork
) -> dict:
    with uow:
        notification = uow.notifications.get(command.notification_id)
        if notification is None or notification.user_id != command.session.user_id:
            raise NotFoundError(f"Notification {command.notification_id} not found")

        notification.mark_read()
        record = notification.to_dict()
        uow.commit()

    return record


def _store_notification(user_id: str, message: str, notification_type: str, uow: AbstractUnitOfWork):
    """Insert one notification row in its own transaction."""
    try:
        with uow:
            uow.notifications.add(
                model.Notification(
                    id=model.new_id(),
                    user_id=user_id,
                    message=message,
                    type=notification_type,
                )
            )
            uow.commit()
    except Exception as e:
        logger.warning(f"Failed to create notification for {user_id}: {e}")
        raise NotificationDeliveryError(f"Notification for {user_id} not stored: {e}") from e

    logger.info(f"Notification '{notification_type}' stored for {user_id}")


def notify_bank_of_request(event: BloodRequestSubmitted, uow: AbstractUnitOfWork):
    """Tell the assigned bank about a new request. Best effort."""
    message = (
        f"New {event.urgency} priority blood request: {event.quantity} units of "
        f"{event.blood_group} from {event.hospital_name}"
    )
    _store_notification(event.bank_id, message, "blood_request", uow)


def notify_requester_of_status(event: BloodRequestStatusChanged, uow: AbstractUnitOfWork):
    """Tell the requester their request changed status. Best effort."""
    message = (
        f"Your blood request for {event.quantity} units of {event.blood_group} "
        f"is now {event.new_status}"
    )
    _store_notification(event.requester_id, message, "request_update", uow)


def notify_bank_of_donation(event: DonationScheduled, uow: AbstractUnitOfWork):
    message = (
        f"New donation appointment scheduled by {event.donor_name} "
        f"for {event.donation_date.isoformat()}"
    )
    _store_notification(event.bank_id, message, "donation_scheduled", uow)


def publish_event(event, uow: AbstractUnitOfWork):
    """
    Publish domain event to Redis for realtime dashboards.

    Following Cosmic Python pattern: publish domain events to Redis
    for consumption by external services.

    Args:
        event: Any blood bank domain event
        uow: Unit of work
    """
    try:
        # Import here so Redis is only touched when an event is published
        from bloodbank.adapters import redis_adapter

        redis_adapter.publish(config.get_notification_channel(), event)
        logger.info(f"Published {type(event).__name__} event")

    except Exception as e:
        logger.error(f"Failed to publish {type(event).__name__} event: {e}")
        # Don't re-raise - external failures shouldn't break the flow
