import logging
from sqlalchemy import (
    Table,
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    event,
)
from sqlalchemy.orm import registry
from bloodbank.domain import model

logger = logging.getLogger(__name__)

# SQLAlchemy 2.0 pattern: use registry
mapper_registry = registry()
metadata = mapper_registry.metadata

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("name", String(255), nullable=False),
    Column("role", String(32), nullable=False),
    Column("blood_type", String(3)),
    Column("phone", String(64)),
    Column("location", String(255)),
    Column("is_active", Boolean, nullable=False, default=True),
)

blood_inventory = Table(
    "blood_inventory",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("blood_bank_id", String(36), nullable=False, index=True),
    Column("blood_group", String(3), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("expiry_date", Date, nullable=False),
    Column("status", String(16), nullable=False, server_default="available"),
)

blood_requests = Table(
    "blood_requests",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("requester_id", String(36), nullable=False, index=True),
    Column("assigned_bank", String(36), nullable=False, index=True),
    Column("blood_group", String(3), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("urgency", String(16), nullable=False),
    Column("status", String(16), nullable=False),
    Column("patient_name", String(255)),
    Column("contact_number", String(64)),
    Column("hospital_name", String(255)),
    Column("reason", Text),
    Column("required_by", Date),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

donation_history = Table(
    "donation_history",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("donor_id", String(36), nullable=False, index=True),
    Column("blood_bank_id", String(36), nullable=False, index=True),
    Column("donation_date", Date, nullable=False),
    Column("blood_group", String(3)),
    Column("status", String(16), nullable=False),
    Column("notes", Text),
    Column("created_at", DateTime(timezone=True)),
)

notifications = Table(
    "notifications",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(36), nullable=False, index=True),
    Column("message", Text, nullable=False),
    Column("type", String(32), nullable=False),
    Column("is_read", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True)),
)


def start_mappers():
    logger.info("Starting mappers")
    mapper_registry.map_imperatively(model.UserProfile, users)
    mapper_registry.map_imperatively(model.InventoryUnit, blood_inventory)
    mapper_registry.map_imperatively(model.BloodRequest, blood_requests)
    mapper_registry.map_imperatively(model.DonationAppointment, donation_history)
    mapper_registry.map_imperatively(model.Notification, notifications)


@event.listens_for(model.BloodRequest, "load")
def receive_request_load(request, _):
    request.events = []


@event.listens_for(model.DonationAppointment, "load")
def receive_donation_load(appointment, _):
    appointment.events = []
