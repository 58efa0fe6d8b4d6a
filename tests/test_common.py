"""Tests for common utilities — filters, pagination, local-calendar helpers,
and the problem-detail error bodies.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.common.constants import UserRole
from crm.common.dates import (
    add_months,
    daterange,
    inclusive_days,
    local_date,
    local_day_bounds,
    month_bounds,
    parse_hhmm,
)
from crm.common.filters import _get_column, apply_filters, apply_search, apply_sorting
from crm.common.pagination import PaginationParams, paginate
from crm.users.models import User
from tests.conftest import auth_headers_for, make_user


async def _seed_people(db: AsyncSession) -> None:
    await make_user(db, name="Alice", role=UserRole.admin)
    await make_user(db, name="Bob", role=UserRole.employee)
    await make_user(db, name="Charlie", role=UserRole.employee)


# ═════════════════════════════════════════════════════════════════════
# FILTER TESTS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:
    """Tests for apply_filters utility."""

    async def test_filter_by_equality(self, db: AsyncSession):
        await _seed_people(db)
        query = apply_filters(select(User), User, {"name": "Alice"})
        users = (await db.execute(query)).scalars().all()
        assert [u.name for u in users] == ["Alice"]

    async def test_filter_none_values_skipped(self, db: AsyncSession):
        await _seed_people(db)
        query = apply_filters(select(User), User, {"name": None, "role": UserRole.employee})
        users = (await db.execute(query)).scalars().all()
        assert {u.name for u in users} == {"Bob", "Charlie"}

    async def test_filter_by_ilike(self, db: AsyncSession):
        await _seed_people(db)
        query = apply_filters(select(User), User, {"name__ilike": "CHAR"})
        users = (await db.execute(query)).scalars().all()
        assert [u.name for u in users] == ["Charlie"]

    async def test_filter_by_in_and_ne(self, db: AsyncSession):
        await _seed_people(db)
        query = apply_filters(
            select(User), User,
            {"name__in": ["Alice", "Bob", "Charlie"], "name__ne": "Bob"},
        )
        users = (await db.execute(query)).scalars().all()
        assert {u.name for u in users} == {"Alice", "Charlie"}

    async def test_filter_by_from_to_range(self, db: AsyncSession):
        await make_user(db, name="Old", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))
        await make_user(db, name="Mid", created_at=datetime(2025, 6, 1, tzinfo=timezone.utc))
        await make_user(db, name="New", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))

        query = apply_filters(select(User), User, {
            "created_at__from": datetime(2025, 3, 1, tzinfo=timezone.utc),
            "created_at__to": datetime(2025, 12, 31, tzinfo=timezone.utc),
        })
        users = (await db.execute(query)).scalars().all()
        assert [u.name for u in users] == ["Mid"]

    async def test_filter_nonexistent_column_ignored(self, db: AsyncSession):
        await _seed_people(db)
        query = apply_filters(select(User), User, {"nonexistent_field": "value"})
        assert len((await db.execute(query)).scalars().all()) == 3


class TestApplySearch:

    async def test_search_ors_over_columns(self, db: AsyncSession):
        await make_user(db, name="Priya", email="priya@example.com")
        await make_user(db, name="Rahul", email="ops-priya@example.com")
        await make_user(db, name="Meera", email="meera@example.com")

        query = apply_search(select(User), User, "priya", ("name", "email"))
        users = (await db.execute(query)).scalars().all()
        assert {u.name for u in users} == {"Priya", "Rahul"}

    def test_blank_search_is_noop(self):
        query = select(User)
        assert apply_search(query, User, "   ", ("name",)) is query


class TestApplySorting:

    async def test_sort_ascending_and_descending(self, db: AsyncSession):
        await _seed_people(db)
        asc = (await db.execute(apply_sorting(select(User), User, "name"))).scalars().all()
        desc = (await db.execute(apply_sorting(select(User), User, "-name"))).scalars().all()
        assert [u.name for u in asc] == ["Alice", "Bob", "Charlie"]
        assert [u.name for u in desc] == ["Charlie", "Bob", "Alice"]

    def test_unknown_column_is_ignored(self):
        query = select(User)
        assert apply_sorting(query, User, "-nonexistent_field") is query

    def test_get_column(self):
        assert _get_column(User, "name") is not None
        assert _get_column(User, "totally_fake_column") is None


class TestPagination:

    async def test_paginate_with_sort(self, db: AsyncSession):
        for i in range(5):
            await make_user(db, name=f"P{i}")

        params = PaginationParams(page=1, page_size=3, sort="-name")
        result = await paginate(db, select(User), params, model=User)
        assert [u.name for u in result.data] == ["P4", "P3", "P2"]
        assert result.meta.total == 5
        assert result.meta.total_pages == 2
        assert result.meta.has_next is True

    async def test_paginate_page_2(self, db: AsyncSession):
        for i in range(5):
            await make_user(db, name=f"Q{i}")

        params = PaginationParams(page=2, page_size=3, sort=None)
        result = await paginate(db, select(User), params, model=User)
        assert len(result.data) == 2
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_paginate_empty_result(self, db: AsyncSession):
        query = select(User).where(User.name == "ZZZ_NONEXISTENT")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, query, params, model=User)
        assert len(result.data) == 0
        assert result.meta.total == 0
        assert result.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# DATE HELPERS
# ═════════════════════════════════════════════════════════════════════


class TestDates:

    def test_add_months_clamps_to_month_end(self):
        jan31 = datetime(2026, 1, 31, 10, 0, tzinfo=timezone.utc)
        assert add_months(jan31, 1) == datetime(2026, 2, 28, 10, 0, tzinfo=timezone.utc)
        assert add_months(datetime(2028, 1, 31), 1).day == 29

    def test_add_months_crosses_year(self):
        assert add_months(datetime(2026, 11, 15), 12) == datetime(2027, 11, 15)
        assert add_months(datetime(2026, 12, 1), 1) == datetime(2027, 1, 1)

    def test_local_date_uses_business_timezone(self):
        """20:00 UTC is already the next day in Asia/Kolkata (+05:30)."""
        assert local_date(datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)) == date(2026, 3, 2)

    def test_local_day_bounds(self):
        start, end = local_day_bounds(date(2026, 3, 2))
        assert start == datetime(2026, 3, 1, 18, 30, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 2, 18, 30, tzinfo=timezone.utc)

    def test_ranges(self):
        assert inclusive_days(date(2026, 3, 2), date(2026, 3, 4)) == 3
        assert list(daterange(date(2026, 3, 30), date(2026, 4, 1))) == [
            date(2026, 3, 30), date(2026, 3, 31), date(2026, 4, 1),
        ]
        assert month_bounds(2026, 2) == (date(2026, 2, 1), date(2026, 2, 28))

    def test_parse_hhmm(self):
        parsed = parse_hhmm("19:30")
        assert (parsed.hour, parsed.minute) == (19, 30)


# ═════════════════════════════════════════════════════════════════════
# ERROR BODIES
# ═════════════════════════════════════════════════════════════════════


class TestProblemDetails:

    async def test_not_found_body(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()

        resp = await client.get(
            "/api/v1/tasks/00000000-0000-0000-0000-000000000000",
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 404
        body = resp.json()
        assert body["status"] == 404
        assert body["title"] == "Task Not Found"
        assert body["instance"].endswith("/00000000-0000-0000-0000-000000000000")

    async def test_validation_error_is_400_with_field_errors(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()

        resp = await client.post(
            "/api/v1/tasks", json={"title": ""}, headers=auth_headers_for(admin),
        )
        assert resp.status_code == 400
        assert "errors" in resp.json()

    async def test_health(self, client):
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
