"""Catalog test suite — pricing arithmetic, plans, price quotes and the
services API.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from crm.catalog.pricing import (
    base_amount,
    compute_total,
    effective_gst_rate,
    plan_price,
    round_half_up,
    total_with_gst,
)
from crm.catalog.schemas import PlanCreate, PlanUpdate
from crm.catalog.service import CatalogService
from crm.common.constants import BillingCycle, UserRole
from crm.common.exceptions import NotFoundException
from tests.conftest import auth_headers_for, make_service, make_user


def _service(base_price=None, gst_rate=Decimal("18"), plans=()):
    plans = list(plans)

    def find_plan(plan_id):
        return next((p for p in plans if str(p.id) == str(plan_id)), None)

    return SimpleNamespace(
        base_price=base_price, gst_rate=gst_rate, plans=plans, find_plan=find_plan,
    )


def _plan(monthly="0", yearly="0", one_time="0"):
    return SimpleNamespace(
        id=uuid.uuid4(),
        price_monthly=Decimal(monthly),
        price_yearly=Decimal(yearly),
        price_one_time=Decimal(one_time),
    )


# ═════════════════════════════════════════════════════════════════════
# Pricing
# ═════════════════════════════════════════════════════════════════════


class TestPricing:

    def test_round_half_up_matches_math_round(self):
        assert round_half_up(Decimal("1180.5")) == 1181
        assert round_half_up(Decimal("1180.49")) == 1180
        assert round_half_up(Decimal("-0.5")) == 0

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, Decimal("18")),
            (0, Decimal("18")),
            (-5, Decimal("18")),
            ("abc", Decimal("18")),
            (True, Decimal("18")),
            ("12", Decimal("12")),
            (Decimal("5"), Decimal("5")),
        ],
    )
    def test_effective_gst_rate(self, value, expected):
        assert effective_gst_rate(value) == expected

    def test_plan_price_per_cycle(self):
        plan = _plan(monthly="1000", yearly="10000", one_time="25000")
        assert plan_price(plan, BillingCycle.monthly) == Decimal("1000")
        assert plan_price(plan, BillingCycle.yearly) == Decimal("10000")
        assert plan_price(plan, BillingCycle.one_time) == Decimal("25000")

    def test_total_with_gst(self):
        assert total_with_gst(1000, 18) == 1180
        assert total_with_gst(999, 18) == 1179  # 1178.82
        assert total_with_gst(0, 18) == 0

    def test_plan_price_wins_over_base_price(self):
        plan = _plan(monthly="1000")
        service = _service(base_price=Decimal("500"), plans=[plan])
        assert base_amount(service, plan.id, BillingCycle.monthly) == Decimal("1000")
        assert compute_total(service, plan.id, BillingCycle.monthly) == 1180

    def test_zero_plan_price_falls_back_to_base_price(self):
        plan = _plan(monthly="1000")
        service = _service(base_price=Decimal("500"), plans=[plan])
        assert compute_total(service, plan.id, BillingCycle.yearly) == 590

    def test_unknown_plan_uses_base_price(self):
        service = _service(base_price=Decimal("2000"), gst_rate=Decimal("5"))
        assert compute_total(service, uuid.uuid4(), BillingCycle.monthly) == 2100

    def test_nothing_priced_is_zero(self):
        assert compute_total(_service(), None) == 0
        assert compute_total(None, None) == 0

    def test_invalid_service_rate_uses_default(self):
        plan = _plan(monthly="1000")
        service = _service(gst_rate=Decimal("0"), plans=[plan])
        assert compute_total(service, plan.id) == 1180


# ═════════════════════════════════════════════════════════════════════
# Catalog service
# ═════════════════════════════════════════════════════════════════════


class TestCatalogService:

    async def test_quote_price(self, db):
        service = await make_service(db)
        plan = service.plans[0]

        quote = await CatalogService.quote_price(db, service.id, plan.id, BillingCycle.yearly)
        assert quote.total_price == 11800
        assert quote.gst_rate == Decimal("18")

    async def test_quote_unknown_plan(self, db):
        service = await make_service(db)
        with pytest.raises(NotFoundException):
            await CatalogService.quote_price(db, service.id, uuid.uuid4(), BillingCycle.monthly)

    async def test_plan_lifecycle(self, db):
        service = await make_service(db)

        service = await CatalogService.add_plan(
            db, service.id, PlanCreate(name="Pro", price_monthly=Decimal("2500")),
        )
        pro = next(p for p in service.plans if p.name == "Pro")

        service = await CatalogService.update_plan(
            db, service.id, pro.id, PlanUpdate(features=["Backlinks"]),
        )
        assert service.find_plan(pro.id).features == ["Backlinks"]

        service = await CatalogService.delete_plan(db, service.id, pro.id)
        assert [p.name for p in service.plans] == ["Basic"]

    async def test_unknown_service(self, db):
        with pytest.raises(NotFoundException):
            await CatalogService.get_service(db, uuid.uuid4())


class TestCatalogAPI:

    async def test_admin_creates_service_with_plans(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()

        resp = await client.post(
            "/api/v1/services",
            json={
                "service_name": "Social Media",
                "gst_rate": "18",
                "plans": [
                    {"name": "Starter", "price_monthly": "1500", "features": ["3 posts"]},
                ],
            },
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["service_name"] == "Social Media"
        assert body["plans"][0]["features"] == ["3 posts"]
        assert body["service_id"]

    async def test_employee_cannot_create_service(self, client, db):
        employee = await make_user(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/services",
            json={"service_name": "Ads"},
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

    async def test_price_endpoint(self, client, db):
        employee = await make_user(db)
        service = await make_service(db)
        plan_id = service.plans[0].id
        await db.commit()

        resp = await client.get(
            f"/api/v1/services/{service.id}/price",
            params={"plan_id": str(plan_id), "billing_cycle": "Monthly"},
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 200
        assert resp.json()["total_price"] == 1180

    async def test_replace_notes(self, client, db):
        employee = await make_user(db)
        service = await make_service(db)
        await db.commit()

        resp = await client.put(
            f"/api/v1/services/{service.id}/notes",
            json={"notes": [{"text": "Ask for GA access", "author": "Esha"}]},
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 200
        assert resp.json()["notes"] == [
            {"text": "Ask for GA access", "timestamp": None, "author": "Esha"},
        ]
