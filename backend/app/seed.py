"""Seed the course platform database with demo accounts and courses.

Idempotent: checks for existing data before inserting.
Run via: python -m app.seed
"""

import asyncio
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password
from app.database import async_session_factory
from app.models.course import Course
from app.models.enums import CourseLevel, UserRole
from app.models.user import User

# ---------------------------------------------------------------------------
# 1. Users
# ---------------------------------------------------------------------------

SEED_USERS = [
    ("admin@courses.example.com", "Admin@123", "Platform Admin", UserRole.ADMIN),
    ("instructor@courses.example.com", "Teach@123", "Lead Instructor", UserRole.ADMIN),
    ("student@courses.example.com", "Learn@123", "Demo Student", UserRole.STUDENT),
]


async def seed_users(session: AsyncSession) -> dict[str, uuid.UUID]:
    """Create demo users. Returns {email: user_id} mapping."""
    result = await session.execute(
        select(User).where(User.email == SEED_USERS[0][0])
    )
    if result.scalar_one_or_none() is not None:
        print("[users] Already seeded, loading ids...")
        rows = await session.execute(select(User.email, User.id))
        return {r[0]: r[1] for r in rows.all()}

    users: dict[str, uuid.UUID] = {}
    for email, pw, name, role in SEED_USERS:
        uid = uuid.uuid4()
        session.add(
            User(
                id=uid,
                email=email,
                password_hash=hash_password(pw),
                name=name,
                role=role,
            )
        )
        users[email] = uid
        print(f"  [users] Created {email} ({role.value})")
    await session.flush()
    return users


# ---------------------------------------------------------------------------
# 2. Courses
# ---------------------------------------------------------------------------

SEED_COURSES = [
    ("Python Foundations", "python-foundations", CourseLevel.BEGINNER, "0", True),
    ("Practical SQL", "practical-sql", CourseLevel.BEGINNER, "19.00", True),
    ("Async Web APIs", "async-web-apis", CourseLevel.INTERMEDIATE, "49.00", True),
    ("Data Modelling", "data-modelling", CourseLevel.INTERMEDIATE, "39.00", True),
    ("Distributed Task Queues", "distributed-task-queues", CourseLevel.ADVANCED, "79.00", True),
    ("Query Planning Deep Dive", "query-planning-deep-dive", CourseLevel.ADVANCED, "99.00", False),
]


async def seed_courses(session: AsyncSession, instructor_id: uuid.UUID) -> None:
    result = await session.execute(select(Course.id).limit(1))
    if result.first() is not None:
        print("[courses] Already seeded, skipping.")
        return

    for title, slug, level, price, published in SEED_COURSES:
        amount = Decimal(price)
        session.add(
            Course(
                id=uuid.uuid4(),
                title=title,
                slug=slug,
                description=f"{title}: a {level.value} course.",
                level=level,
                price=amount,
                is_free=amount == 0,
                is_published=published,
                instructor_id=instructor_id,
            )
        )
    await session.flush()
    print(f"  [courses] Seeded {len(SEED_COURSES)} courses.")


async def run_seed() -> None:
    print("=" * 60)
    print("Course platform seed")
    print("=" * 60)

    async with async_session_factory() as session:
        print("\n[1/2] Seeding users...")
        users = await seed_users(session)

        print("\n[2/2] Seeding courses...")
        await seed_courses(session, users["instructor@courses.example.com"])

        await session.commit()

    print("\n" + "=" * 60)
    print("Seed complete!")
    print("=" * 60)
    print("\nDemo credentials:")
    for email, pw, name, role in SEED_USERS:
        print(f"  {email:30s}  {pw:12s}  ({role.value})")


if __name__ == "__main__":
    asyncio.run(run_seed())
