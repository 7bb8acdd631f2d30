#!/usr/bin/env python3
"""Seed a development database with a church, a few volunteers, opportunities and signups.

Usage:
    python scripts/seed_dev_data.py

Requires CS_DATABASE_URL (or defaults to localhost). Creates the tables first
when CS_AUTO_CREATE_TABLES is set. Running it twice is harmless: it stops if
the demo pastor account already exists.
"""

import asyncio
import datetime as dt
from decimal import Decimal

from app.core.config import get_settings
from app.core.database import engine, get_session_context, init_db
from app.services.opportunities import create_opportunity, update_opportunity
from app.services.organizations import add_organization_member, create_organization
from app.services.signups import sign_up, update_signup_status
from app.services.users import get_user_by_username, register_user
from churchserve_shared.schemas.common import MemberRole, RecurringPattern, SignupStatus
from churchserve_shared.schemas.opportunities import OpportunityCreate, OpportunityUpdate
from churchserve_shared.schemas.organizations import OrgCreateRequest
from churchserve_shared.schemas.users import RegisterRequest

settings = get_settings()

DEMO_PASSWORD = "churchserve-dev"

USERS = [
    ("pastor.james", "James", "Okafor"),
    ("deacon.ann", "Ann", "Lindqvist"),
    ("ruth.v", "Ruth", "Valdez"),
    ("sam.k", "Sam", "Kim"),
]

OPPORTUNITIES = [
    ("Saturday food pantry", "Food Service", dt.time(9), dt.time(12), 6, True),
    ("Youth group mentors", "Youth Ministry", dt.time(18), dt.time(20), 3, True),
    ("Nursing home visits", "Senior Care", dt.time(14), dt.time(16), 4, False),
]


async def seed():
    if settings.auto_create_tables:
        await init_db()

    async with get_session_context() as session:
        if await get_user_by_username(USERS[0][0], session):
            print("Demo data already present, nothing to do.")
            return

        users = []
        for username, first, last in USERS:
            users.append(await register_user(
                RegisterRequest(
                    username=username,
                    password=DEMO_PASSWORD,
                    email=f"{username}@example.org",
                    first_name=first,
                    last_name=last,
                ),
                session,
            ))
        pastor, deacon, *volunteers = users

        church = await create_organization(
            OrgCreateRequest(
                name="Grace Community Church",
                description="A neighbourhood church on Main Street.",
                address="12 Main St",
                city="Springfield",
                state="IL",
                zip_code="62701",
                denomination_affiliation="Non-denominational",
            ),
            pastor.id,
            session,
        )
        await add_organization_member(church.id, deacon.id, MemberRole.ADMIN, session)

        start = dt.date.today() + dt.timedelta(days=7)
        opportunities = []
        for i, (title, category, begins, ends, needed, recurring) in enumerate(OPPORTUNITIES):
            opportunities.append(await create_opportunity(
                session,
                OpportunityCreate(
                    organization_id=church.id,
                    title=title,
                    description=f"{title} at {church.name}.",
                    category=category,
                    date=start + dt.timedelta(days=i),
                    start_time=begins,
                    end_time=ends,
                    volunteers_needed=needed,
                    is_recurring=recurring,
                    recurring_pattern=RecurringPattern.WEEKLY if recurring else None,
                ),
                pastor.id,
            ))

        for volunteer in volunteers:
            await sign_up(session, opportunities[0].id, volunteer.id)

        # One finished opportunity so the dashboards have history
        past = opportunities[-1]
        signup = await sign_up(session, past.id, volunteers[0].id, notes="Brought a guitar")
        await update_signup_status(session, signup.id, SignupStatus.COMPLETED, Decimal("2.00"))
        await update_opportunity(session, past.id, OpportunityUpdate(is_active=False))

    await engine.dispose()
    print(
        f"Seeded '{church.name}' with {len(users)} users, "
        f"{len(opportunities)} opportunities. Password: {DEMO_PASSWORD}"
    )


if __name__ == "__main__":
    asyncio.run(seed())
