"""Create local test users, categories and a shared group budget.

Usage: python -m scripts.seed_test_data
Run from the backend/ directory.
"""

import asyncio
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select

from app.core.database import async_session_factory
from app.models.category import Category
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.group_budget import GroupBudgetCreate
from app.services.category_service import SqlCategoryDirectory
from app.services.directory_service import SqlUserDirectory
from app.services.group_budget_service import create_group_budget
from app.services.invitation_service import respond_to_invitation

TEST_USERS = [
    {"email": "alice@test.com", "display_name": "Alice"},
    {"email": "bob@test.com", "display_name": "Bob"},
    {"email": "charlie@test.com", "display_name": "Charlie"},
]

CATEGORIES = ["Groceries", "Transport", "Dining"]

BUDGET_NAME = "Household June"


async def main():
    async with async_session_factory() as db:
        print("Syncing test users to local DB...")
        users: list[User] = []
        for u in TEST_USERS:
            result = await db.execute(select(User).where(User.email == u["email"]))
            user = result.scalar_one_or_none()
            if not user:
                user = User(id=uuid.uuid4(), email=u["email"], display_name=u["display_name"])
                db.add(user)
                print(f"  Added user: {u['display_name']}")
            else:
                print(f"  User already in DB: {u['display_name']}")
            users.append(user)

        categories: dict[str, Category] = {}
        for name in CATEGORIES:
            result = await db.execute(select(Category).where(Category.name == name))
            category = result.scalar_one_or_none()
            if not category:
                category = Category(name=name, type="expense")
                db.add(category)
            categories[name] = category
        await db.commit()

        owner, *others = users
        directory = SqlUserDirectory(db)
        budget = await create_group_budget(
            db,
            owner,
            GroupBudgetCreate(
                name=BUDGET_NAME,
                amount=Decimal("1000000"),
                period="monthly",
                start_date=date(2024, 6, 1),
                end_date=date(2024, 6, 30),
                category_id=categories["Groceries"].id,
                invited_emails=[u.email for u in others],
            ),
            directory=directory,
            categories=SqlCategoryDirectory(db),
        )
        print(f"\n  Created group budget: {BUDGET_NAME} ({budget['id']})")

        for invitation in budget["invitations"]:
            await respond_to_invitation(
                db, invitation["id"], invitation["invited_email"], True, directory=directory
            )
            print(f"  {invitation['invited_email']} accepted")

        for user, amount in zip(users, ("150000", "200000", "50000")):
            db.add(Transaction(
                user_id=user.id,
                amount=Decimal(amount),
                category_id=categories["Groceries"].id,
                description="Weekly groceries",
                occurred_at=datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc),
                group_budget_id=budget["id"],
            ))
        await db.commit()

    print("\nDone! Test accounts:")
    for u in TEST_USERS:
        print(f"  {u['email']}")


if __name__ == "__main__":
    asyncio.run(main())
