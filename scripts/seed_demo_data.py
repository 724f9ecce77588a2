#!/usr/bin/env python3
"""
Seed the database with demo bases, users, assets and movements.

Movements go through the services, so every balance is produced by the same
ledger code the API uses.

Usage:
    python3 scripts/seed_demo_data.py --dry-run   # run everything, roll back at end
    python3 scripts/seed_demo_data.py --confirm   # write to the database

Requirements: migrations applied (alembic upgrade head), database reachable.
All demo users get the password given by --password (default: demo-pass-123).
"""

import asyncio
import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.models import User, UserRole
from mams.core.auth.service import AuthService
from mams.core.config import settings
from mams.core.database.session import engine
from mams.modules.assets.ledger import find_asset
from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import AssetCreate
from mams.modules.assets.service import AssetService
from mams.modules.assignments.schemas import AssignedPerson, AssignmentCreate
from mams.modules.assignments.service import AssignmentService
from mams.modules.expenditures.models import ExpenditureReason
from mams.modules.expenditures.schemas import ExpenditureCreate
from mams.modules.expenditures.service import ExpenditureService
from mams.modules.purchases.models import PurchaseStatus
from mams.modules.purchases.schemas import PurchaseCreate
from mams.modules.purchases.service import PurchaseService
from mams.modules.transfers.schemas import TransferCreate
from mams.modules.transfers.service import TransferService

BASES = ["Fort Alpha", "Camp Bravo", "Station Charlie"]

# (name, type, opening balance at each base)
ASSETS = [
    ("M4 Carbine", AssetType.WEAPON, 120),
    ("5.56mm Ball", AssetType.AMMUNITION, 20000),
    ("Humvee M1151", AssetType.VEHICLE, 12),
    ("Night Vision Goggles", AssetType.EQUIPMENT, 60),
    ("Field Radio AN/PRC-152", AssetType.EQUIPMENT, 40),
]

PERSONNEL = [
    AssignedPerson(name="Daniel Okafor", rank="Sergeant", service_id="SVC-10421"),
    AssignedPerson(name="Maria Lopez", rank="Corporal", service_id="SVC-10877"),
    AssignedPerson(name="Aisha Rahman", rank="Lieutenant", service_id="SVC-09113"),
]


def _slug(base: str) -> str:
    return base.split()[-1].lower()


async def seed_users(session: AsyncSession, password: str) -> dict[str, User]:
    auth = AuthService(session)
    users: dict[str, User] = {}

    specs = [("admin", "Demo Admin", UserRole.ADMIN, None)]
    for base in BASES:
        slug = _slug(base)
        specs.append((f"cmd.{slug}", f"Commander {base}", UserRole.BASE_COMMANDER, base))
        specs.append((f"log.{slug}", f"Logistics {base}", UserRole.LOGISTICS_OFFICER, base))

    for username, full_name, role, base in specs:
        existing = await auth.get_user_by_username(username)
        if existing:
            users[username] = existing
            continue
        users[username] = await auth.create_user(
            username=username,
            email=f"{username}@demo.mil",
            password=password,
            full_name=full_name,
            role=role,
            assigned_base=base,
        )
    await session.commit()
    print(f"  users: {len(users)}")
    return users


async def seed_assets(session: AsyncSession, users: dict[str, User]) -> None:
    service = AssetService(session)
    created = 0
    for base in BASES:
        officer = users[f"log.{_slug(base)}"].principal
        for name, asset_type, opening in ASSETS:
            if await find_asset(session, name, asset_type.value, base):
                continue
            await service.create_asset(
                AssetCreate(name=name, type=asset_type, base=base, opening_balance=opening),
                officer,
            )
            created += 1
    print(f"  assets created: {created}")


async def seed_movements(session: AsyncSession, users: dict[str, User]) -> None:
    today = date.today()
    alpha, bravo, charlie = BASES
    log_alpha = users[f"log.{_slug(alpha)}"].principal
    log_bravo = users[f"log.{_slug(bravo)}"].principal
    cmd_alpha = users[f"cmd.{_slug(alpha)}"].principal
    cmd_bravo = users[f"cmd.{_slug(bravo)}"].principal
    cmd_charlie = users[f"cmd.{_slug(charlie)}"].principal

    purchases = PurchaseService(session)
    await purchases.create_purchase(
        PurchaseCreate(
            asset_name="M4 Carbine",
            asset_type=AssetType.WEAPON,
            base=alpha,
            quantity=30,
            unit_cost=Decimal("1250.00"),
            supplier="Colt Defense",
            invoice_number="INV-2024-0042",
            purchase_date=today - timedelta(days=20),
            status=PurchaseStatus.DELIVERED,
        ),
        log_alpha,
    )
    await purchases.create_purchase(
        PurchaseCreate(
            asset_name="Body Armor IOTV",
            asset_type=AssetType.EQUIPMENT,
            base=bravo,
            quantity=50,
            unit_cost=Decimal("640.50"),
            supplier="Point Blank Enterprises",
            purchase_date=today - timedelta(days=5),
        ),
        log_bravo,
    )

    carbines_alpha = await find_asset(session, "M4 Carbine", AssetType.WEAPON.value, alpha)
    ammo_bravo = await find_asset(session, "5.56mm Ball", AssetType.AMMUNITION.value, bravo)
    radios_charlie = await find_asset(
        session, "Field Radio AN/PRC-152", AssetType.EQUIPMENT.value, charlie
    )

    transfers = TransferService(session)
    transfer, _, _ = await transfers.create_transfer(
        TransferCreate(asset_id=carbines_alpha.id, from_base=alpha, to_base=bravo, quantity=15),
        log_alpha,
    )
    await transfers.approve_transfer(transfer.id, cmd_bravo, notes="Received in good order")
    await transfers.create_transfer(
        TransferCreate(asset_id=ammo_bravo.id, from_base=bravo, to_base=charlie, quantity=2500),
        log_bravo,
    )

    assignments = AssignmentService(session)
    for person, quantity in zip(PERSONNEL, (1, 1, 2)):
        await assignments.create_assignment(
            AssignmentCreate(
                asset_id=carbines_alpha.id,
                base=alpha,
                quantity=quantity,
                assigned_to=person,
                purpose="Range qualification",
            ),
            cmd_alpha,
        )
    radio_assignment, _ = await assignments.create_assignment(
        AssignmentCreate(
            asset_id=radios_charlie.id,
            base=charlie,
            quantity=4,
            assigned_to=PERSONNEL[2],
            purpose="Patrol communications",
        ),
        cmd_charlie,
    )
    await assignments.return_assignment(radio_assignment.id, 3, cmd_charlie)
    await assignments.set_status(radio_assignment.id, "Lost", cmd_charlie, notes="Lost in river crossing")

    expenditures = ExpenditureService(session)
    await expenditures.create_expenditure(
        ExpenditureCreate(
            asset_id=ammo_bravo.id,
            base=bravo,
            quantity=1200,
            reason=ExpenditureReason.TRAINING,
            expended_by=PERSONNEL[1],
            operation_name="Quarterly marksmanship",
            location="Range 3",
        ),
        cmd_bravo,
    )
    print("  movements: purchases, transfers, assignments, expenditures")


async def run_seed(session: AsyncSession, password: str) -> None:
    users = await seed_users(session, password)
    await seed_assets(session, users)
    await seed_movements(session, users)


async def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Seed database with demo asset data")
    parser.add_argument("--dry-run", action="store_true", help="Do not commit")
    parser.add_argument("--confirm", action="store_true", help="Commit changes")
    parser.add_argument("--password", default="demo-pass-123", help="Password for demo users")
    args = parser.parse_args()
    if not args.dry_run and not args.confirm:
        print("Use --dry-run or --confirm")
        sys.exit(1)

    print("Database:", settings.database_url.split("@")[-1] if "@" in settings.database_url else "?")
    print("Mode:", "DRY-RUN" if args.dry_run else "CONFIRM")

    # Service commits become savepoint releases inside one outer transaction
    async with engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(
            bind=connection,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )
        try:
            await run_seed(session, args.password)
        except Exception:
            await transaction.rollback()
            raise
        finally:
            await session.close()
        if args.dry_run:
            await transaction.rollback()
        else:
            await transaction.commit()
    await engine.dispose()
    print("Done.")


if __name__ == "__main__":
    asyncio.run(main())
