import asyncio
import os
import sys

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from vcheck.database import AsyncSessionLocal
from vcheck.models import Office, OfficeMember, User, UserRole
from vcheck.security import create_access_token


async def seed():
    async with AsyncSessionLocal() as session:
        # Check if DB is already seeded
        result = await session.execute(select(Office).limit(1))
        if result.scalars().first():
            print("Database already contains data. Skipping seed.")
            return

        print("Seeding database with a demo office and users...")

        office = Office(
            name="District 1 Station",
            address="1 Nguyen Hue, District 1, Ho Chi Minh City",
            lat=10.7769,
            lng=106.7009,
            radius=50,
        )
        session.add(office)
        await session.flush()

        users = [
            User(
                username="admin",
                email="admin@vcheck.local",
                full_name="System Admin",
                role=UserRole.ADMIN.value,
            ),
            User(
                username="supervisor1",
                email="supervisor1@vcheck.local",
                full_name="Tran Thi B",
                role=UserRole.SUPERVISOR.value,
                office_id=office.id,
            ),
            User(
                username="officer1",
                email="officer1@vcheck.local",
                full_name="Nguyen Van A",
                role=UserRole.OFFICER.value,
                badge_number="PD-0001",
                office_id=office.id,
            ),
        ]
        session.add_all(users)
        await session.flush()

        for user in users[1:]:
            session.add(OfficeMember(office_id=office.id, user_id=user.id))
        await session.commit()

        print(f"Added office: {office.name} (id={office.id}, radius={office.radius}m)")
        for user in users:
            token = create_access_token(user.id, user.role)
            print(f"  {user.role:<10} {user.username:<12} token: {token}")


if __name__ == "__main__":
    asyncio.run(seed())
