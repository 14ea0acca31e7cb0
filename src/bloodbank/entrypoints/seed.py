#!/usr/bin/env python3
"""
Seed the blood bank database with demo banks, users and inventory.

Creates three blood banks with stock expiring `--days` from today, plus one
recipient, one donor and one admin account to try the API with.

Usage:
    bloodbank-seed
    bloodbank-seed --days 30
"""

import argparse
import logging
from datetime import date, timedelta
from typing import Dict, List

from sqlalchemy import create_engine

import config
from bloodbank.adapters import orm
from bloodbank.domain import model
from bloodbank.service_layer.unit_of_work import AbstractUnitOfWork, SqlAlchemyUnitOfWork

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_BANKS = [
    {
        "name": "City General Blood Bank",
        "email": "city.general@bloodbank.example",
        "phone": "+1 (555) 123-4567",
        "location": "Downtown Medical Center, 123 Main St",
        "stock": {"O+": 12, "A+": 8, "B+": 6, "AB+": 4},
    },
    {
        "name": "Regional Medical Blood Services",
        "email": "regional@bloodbank.example",
        "phone": "+1 (555) 987-6543",
        "location": "North Campus, 456 Health Ave",
        "stock": {"O-": 5, "A-": 7, "B-": 3, "O+": 10},
    },
    {
        "name": "Community Blood Center",
        "email": "community@bloodbank.example",
        "phone": "+1 (555) 456-7890",
        "location": "Westside Medical Plaza, 789 Care Blvd",
        "stock": {"A+": 9, "AB-": 2, "B+": 8, "O+": 6},
    },
]  # type: List[Dict]

DEMO_USERS = [
    {"name": "Riley Recipient", "email": "recipient@bloodbank.example", "role": "recipient", "blood_type": "O+"},
    {"name": "Dana Donor", "email": "donor@bloodbank.example", "role": "donor", "blood_type": "A+"},
    {"name": "Alex Admin", "email": "admin@bloodbank.example", "role": "admin", "blood_type": None},
]


def seed(uow: AbstractUnitOfWork, days_valid: int = 21) -> Dict[str, str]:
    """
    Insert demo data.

    Args:
        uow: Unit of work to write through
        days_valid: Days until the seeded units expire

    Returns:
        Mapping of user/bank name to generated id
    """
    expiry = date.today() + timedelta(days=days_valid)
    ids = {}

    with uow:
        for bank in DEMO_BANKS:
            bank_id = uow.users.add(
                model.UserProfile(
                    id=model.new_id(),
                    email=bank["email"],
                    name=bank["name"],
                    role="blood_bank",
                    phone=bank["phone"],
                    location=bank["location"],
                )
            )
            ids[bank["name"]] = bank_id

            for blood_group, quantity in bank["stock"].items():
                uow.inventory.add(
                    model.InventoryUnit(
                        id=model.new_id(),
                        blood_bank_id=bank_id,
                        blood_group=blood_group,
                        quantity=quantity,
                        expiry_date=expiry,
                    )
                )
            logger.info(f"✓ Seeded {bank['name']} with {sum(bank['stock'].values())} units")

        for user in DEMO_USERS:
            ids[user["name"]] = uow.users.add(
                model.UserProfile(id=model.new_id(), **user)
            )
            logger.info(f"✓ Seeded {user['role']} {user['name']}")

        uow.commit()

    return ids


def main():
    parser = argparse.ArgumentParser(description="Seed demo blood bank data")
    parser.add_argument("--days", type=int, default=21, help="Days until seeded units expire")
    args = parser.parse_args()

    engine = create_engine(config.get_postgres_uri())
    orm.metadata.create_all(engine)
    orm.start_mappers()

    ids = seed(SqlAlchemyUnitOfWork(), days_valid=args.days)
    for name, user_id in ids.items():
        print(f"{name}: {user_id}")


if __name__ == "__main__":
    main()
