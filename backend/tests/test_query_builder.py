import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select

from tests.base import ApiTestCase

from app.core.pagination import SortingItem, parse_query_params
from app.models.course import Course
from app.models.enums import CourseLevel, UserRole
from app.models.user import User
from app.services.course import ADMIN_COURSES_TABLE, PUBLIC_COURSES_TABLE
from app.services.query_builder import (
    ColumnDescriptor,
    ColumnKind,
    ListingService,
    _escape_ilike,
    build_filters_condition,
    build_order_by,
)
from app.services.user import USERS_TABLE

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class PredicateShapeTests(unittest.TestCase):
    def test_unknown_columns_and_empty_values_produce_no_condition(self):
        self.assertIsNone(build_filters_condition({"password_hash": "x"}, USERS_TABLE.columns))
        self.assertIsNone(build_filters_condition({"name": ""}, USERS_TABLE.columns))
        self.assertIsNone(build_filters_condition({}, USERS_TABLE.columns))

    def test_like_metacharacters_are_escaped(self):
        self.assertEqual(_escape_ilike("50%_off\\"), "50\\%\\_off\\\\")

    def test_default_sort_used_when_requested_columns_are_unknown(self):
        clauses = build_order_by([SortingItem(id="password_hash")], USERS_TABLE)
        compiled = [str(c) for c in clauses]
        self.assertEqual(len(compiled), 2)
        self.assertTrue(compiled[0].endswith("created_at DESC"))
        self.assertTrue(compiled[1].endswith("id ASC"))

    def test_requested_order_is_kept_and_tie_breaker_appended(self):
        clauses = build_order_by(
            [SortingItem(id="name"), SortingItem(id="createdAt", desc=True)], USERS_TABLE,
        )
        compiled = [str(c).split(".")[-1] for c in clauses]
        self.assertEqual(compiled, ["name ASC", "created_at DESC", "id ASC"])

    def test_unknown_sort_id_is_dropped_not_replaced(self):
        clauses = build_order_by(
            [SortingItem(id="bogus", desc=True), SortingItem(id="name")], USERS_TABLE,
        )
        compiled = [str(c).split(".")[-1] for c in clauses]
        self.assertEqual(compiled, ["name ASC", "id ASC"])

    def test_kind_derived_from_mapped_type(self):
        self.assertIs(ColumnDescriptor.for_column(Course.is_free).kind, ColumnKind.BOOLEAN)
        self.assertIs(ColumnDescriptor.for_column(Course.title).kind, ColumnKind.TEXT)
        self.assertIs(ColumnDescriptor.for_column(Course.level).kind, ColumnKind.EXACT)
        self.assertIs(ColumnDescriptor.for_column(Course.created_at).kind, ColumnKind.EXACT)

    def test_public_course_listing_cannot_filter_on_publication(self):
        self.assertNotIn("isPublished", PUBLIC_COURSES_TABLE.columns)
        self.assertIn("isPublished", ADMIN_COURSES_TABLE.columns)


class ListingServiceTests(ApiTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        people = [
            ("Ann Lee", UserRole.ADMIN),
            ("Susanne Park", UserRole.STUDENT),
            ("Bob Stone", UserRole.STUDENT),
            ("JOANNA Smith", UserRole.ADMIN),
            ("Carl 100%", UserRole.STUDENT),
        ]
        for i, (name, role) in enumerate(people):
            await self.create_user(
                f"user{i}@example.com",
                name=name,
                role=role,
                created_at=BASE_TIME + timedelta(minutes=i),
            )

        async with self.SessionLocal() as db:
            for i, (title, free, price) in enumerate([
                ("Intro to Python", True, "0"),
                ("Advanced Python", False, "49.00"),
                ("SQL Basics", True, "0"),
            ]):
                db.add(Course(
                    id=uuid4(),
                    title=title,
                    slug=f"course-{i}",
                    level=CourseLevel.BEGINNER if free else CourseLevel.ADVANCED,
                    price=Decimal(price),
                    is_free=free,
                    is_published=i != 2,
                    created_at=BASE_TIME + timedelta(minutes=i),
                    updated_at=BASE_TIME + timedelta(minutes=i),
                ))
            await db.commit()

    async def _users(self, query: dict) -> tuple[list[str], int]:
        async with self.SessionLocal() as db:
            rows, total = await ListingService(db).fetch_page(
                select(User), USERS_TABLE, parse_query_params(query),
            )
            return [u.name for u in rows], total

    async def _courses(self, query: dict) -> tuple[list[str], int]:
        async with self.SessionLocal() as db:
            rows, total = await ListingService(db).fetch_page(
                select(Course), ADMIN_COURSES_TABLE, parse_query_params(query),
            )
            return [c.title for c in rows], total

    async def test_text_filter_is_case_insensitive_substring(self):
        names, total = await self._users({"name": "ann", "sort": "name"})
        self.assertEqual(names, ["Ann Lee", "JOANNA Smith", "Susanne Park"])
        self.assertEqual(total, 3)

    async def test_wildcards_in_text_filter_match_literally(self):
        names, _ = await self._users({"name": "%"})
        self.assertEqual(names, ["Carl 100%"])

    async def test_filters_are_combined_with_and(self):
        names, total = await self._users({"name": "ann", "role": "admin", "sort": "name"})
        self.assertEqual(names, ["Ann Lee", "JOANNA Smith"])
        self.assertEqual(total, 2)

    async def test_unknown_filter_is_ignored(self):
        _, total = await self._users({"nickname": "zzz"})
        self.assertEqual(total, 5)

    async def test_uncoercible_exact_value_matches_nothing(self):
        names, total = await self._users({"role": "superuser"})
        self.assertEqual((names, total), ([], 0))
        names, total = await self._users({"id": "not-a-uuid"})
        self.assertEqual((names, total), ([], 0))

    async def test_default_order_is_newest_first(self):
        names, _ = await self._users({})
        self.assertEqual(names[0], "Carl 100%")
        self.assertEqual(names[-1], "Ann Lee")

    async def test_boolean_filter(self):
        titles, total = await self._courses({"isFree": "true", "sort": "title"})
        self.assertEqual(titles, ["Intro to Python", "SQL Basics"])
        titles, total = await self._courses({"isFree": "false"})
        self.assertEqual((titles, total), (["Advanced Python"], 1))
        # Anything other than "true" means False.
        titles, _ = await self._courses({"isPublished": "yes"})
        self.assertEqual(titles, ["SQL Basics"])

    async def test_exact_decimal_filter(self):
        titles, _ = await self._courses({"price": "49.00"})
        self.assertEqual(titles, ["Advanced Python"])
        titles, total = await self._courses({"price": "forty"})
        self.assertEqual(total, 0)

    async def test_page_slice_and_total(self):
        async with self.SessionLocal() as db:
            rows, total = await ListingService(db).fetch_page(
                select(User), USERS_TABLE, parse_query_params({"page": "2", "limit": "2", "sort": "name"}),
            )
        self.assertEqual(total, 5)
        self.assertEqual([u.name for u in rows], ["Carl 100%", "JOANNA Smith"])

    async def test_page_past_the_end_is_empty_but_counted(self):
        names, total = await self._users({"page": "9", "limit": "10"})
        self.assertEqual((names, total), ([], 5))


if __name__ == "__main__":
    unittest.main()
