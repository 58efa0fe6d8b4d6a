"""Subscription test suite — activation, plan snapshots, plan history,
cancellation, renewal reminders and the HTTP endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from crm.accounts.service import AccountService
from crm.alerts.service import AlertService
from crm.catalog.schemas import PlanUpdate
from crm.catalog.service import CatalogService
from crm.common.constants import (
    AccountStatus,
    BillingCycle,
    RealtimeEvent,
    SubscriptionStatus,
    UserRole,
)
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.subscriptions.schemas import PlanChangeRequest, SubscriptionCreate
from crm.subscriptions.service import SubscriptionService, renewal_date_for
from tests.conftest import auth_headers_for, make_account, make_service, make_user


# ═════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════


async def _seed(db) -> dict:
    owner = await make_user(db, name="Owner")
    service = await make_service(
        db,
        plans=[
            dict(name="Basic", price_monthly=Decimal("1000"), price_yearly=Decimal("10000"),
                 features=["Audit"]),
            dict(name="Pro", price_monthly=Decimal("2500"), price_yearly=Decimal("25000"),
                 features=["Audit", "Backlinks"]),
        ],
    )
    account = await make_account(db, owner_id=owner.id)
    return {"owner": owner, "service": service, "account": account}


def _plan(seed: dict, name: str):
    return next(p for p in seed["service"].plans if p.name == name)


async def _subscribe(db, notifier, seed, plan="Basic", cycle=BillingCycle.monthly, **extra):
    return await SubscriptionService.create_subscription(
        db, notifier,
        SubscriptionCreate(
            business_account_id=seed["account"].id,
            service_id=seed["service"].id,
            plan_id=_plan(seed, plan).id,
            billing_cycle=cycle,
            amount_paid=Decimal("1180"),
            **extra,
        ),
    )


# ═════════════════════════════════════════════════════════════════════
# Renewal date
# ═════════════════════════════════════════════════════════════════════


class TestRenewalDate:

    def test_monthly_adds_one_month(self):
        bought = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)
        assert renewal_date_for(bought, BillingCycle.monthly) == datetime(
            2026, 2, 28, 9, 0, tzinfo=timezone.utc,
        )

    def test_yearly_and_one_time_add_twelve_months(self):
        bought = datetime(2026, 5, 10, tzinfo=timezone.utc)
        expected = datetime(2027, 5, 10, tzinfo=timezone.utc)
        assert renewal_date_for(bought, BillingCycle.yearly) == expected
        assert renewal_date_for(bought, BillingCycle.one_time) == expected


# ═════════════════════════════════════════════════════════════════════
# Create
# ═════════════════════════════════════════════════════════════════════


class TestCreateSubscription:

    async def test_activates_and_snapshots_plan(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed)

        assert sub.status == SubscriptionStatus.active
        assert sub.plan_name == "Basic"
        assert sub.plan_price_monthly == Decimal("1000")
        assert sub.total_with_gst == 1180
        assert sub.amount_paid == Decimal("1180")
        assert sub.auto_renew is True
        assert sub.history == []
        assert sub.service_name == "SEO"
        assert sub.business_name == "Acme Traders"

    async def test_total_uses_billing_cycle_price(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed, cycle=BillingCycle.yearly)
        assert sub.total_with_gst == 11800
        assert (sub.renewal_date - sub.purchase_date).days >= 365

    async def test_submitted_gst_rate_overrides_service_rate(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed, gst_rate=Decimal("5"))
        assert sub.total_with_gst == 1050

    async def test_one_time_does_not_auto_renew(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed, cycle=BillingCycle.one_time)
        assert sub.auto_renew is False

    async def test_marks_account_customer(self, db, notifier):
        seed = await _seed(db)
        await _subscribe(db, notifier, seed, plan="Pro")

        account = await AccountService.get_account(db, seed["account"].id)
        assert account.status == AccountStatus.customer
        assert account.is_customer is True
        assert account.selected_plan_id == _plan(seed, "Pro").id
        assert account.total_price == 2950

    async def test_alerts_account_owner(self, db, notifier):
        seed = await _seed(db)
        await _subscribe(db, notifier, seed)

        alerts = await AlertService.list_alerts(db, seed["owner"].id)
        assert [a.message for a in alerts] == ["Subscription Activated - Basic"]
        pushed = notifier.events(RealtimeEvent.alert_received.value)
        assert pushed[0][0] == str(seed["owner"].id)

    async def test_missing_fields(self, db, notifier):
        with pytest.raises(BadRequestException) as exc_info:
            await SubscriptionService.create_subscription(
                db, notifier, SubscriptionCreate(service_id=uuid.uuid4()),
            )
        assert set(exc_info.value.errors) == {"business_account_id", "plan_id"}

    async def test_unknown_plan(self, db, notifier):
        seed = await _seed(db)
        with pytest.raises(NotFoundException):
            await SubscriptionService.create_subscription(
                db, notifier,
                SubscriptionCreate(
                    business_account_id=seed["account"].id,
                    service_id=seed["service"].id,
                    plan_id=uuid.uuid4(),
                ),
            )


# ═════════════════════════════════════════════════════════════════════
# Plan change / cancel
# ═════════════════════════════════════════════════════════════════════


class TestPlanChange:

    async def test_update_plan_records_history(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed)
        pro = _plan(seed, "Pro")

        sub = await SubscriptionService.update_plan(
            db, notifier, sub.id,
            PlanChangeRequest(service_id=seed["service"].id, plan_id=pro.id, note="Upsell"),
            changed_by=seed["owner"].id,
        )

        assert sub.plan_name == "Pro"
        assert sub.plan_id == pro.id
        assert sub.plan_price_monthly == Decimal("2500")
        assert len(sub.history) == 1
        entry = sub.history[0]
        assert entry.previous_plan_name == "Basic"
        assert entry.new_plan_name == "Pro"
        assert entry.changed_by == seed["owner"].id
        assert entry.note == "Upsell"

        messages = [a.message for a in await AlertService.list_alerts(db, seed["owner"].id)]
        assert "Subscription Plan Updated: Basic → Pro" in messages

    async def test_snapshot_survives_catalog_edit(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed)

        await CatalogService.update_plan(
            db, seed["service"].id, _plan(seed, "Basic").id,
            PlanUpdate(price_monthly=Decimal("9999")),
        )

        sub = await SubscriptionService.get_subscription(db, sub.id)
        assert sub.plan_price_monthly == Decimal("1000")
        assert sub.total_with_gst == 1180

    async def test_cancel(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed)

        sub = await SubscriptionService.cancel_subscription(db, notifier, sub.id)
        assert sub.status == SubscriptionStatus.cancelled
        assert sub.auto_renew is False

        messages = [a.message for a in await AlertService.list_alerts(db, seed["owner"].id)]
        assert "Subscription Cancelled - SEO" in messages

    async def test_details_include_plan_features(self, db, notifier):
        seed = await _seed(db)
        sub = await _subscribe(db, notifier, seed, plan="Pro")

        details = await SubscriptionService.get_details(db, sub.id)
        assert details.plan_features == ["Audit", "Backlinks"]
        assert details.business_name == "Acme Traders"


# ═════════════════════════════════════════════════════════════════════
# Renewal reminders
# ═════════════════════════════════════════════════════════════════════


class TestRenewalReminders:

    async def test_reminds_subscriptions_renewing_in_five_days(self, db, notifier):
        seed = await _seed(db)
        due = await _subscribe(db, notifier, seed)
        later = await _subscribe(db, notifier, seed)
        cancelled = await _subscribe(db, notifier, seed)

        # 11:30 local on 1 Mar; the target day is 6 Mar local.
        now = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)
        due.renewal_date = datetime(2026, 3, 6, 4, 0, tzinfo=timezone.utc)
        later.renewal_date = datetime(2026, 3, 6, 19, 0, tzinfo=timezone.utc)  # 7 Mar local
        cancelled.renewal_date = datetime(2026, 3, 6, 4, 0, tzinfo=timezone.utc)
        cancelled.status = SubscriptionStatus.cancelled
        await db.flush()

        sent = await SubscriptionService.send_renewal_reminders(db, notifier, now=now)

        assert sent == 1
        alerts = await AlertService.list_alerts(db, seed["owner"].id)
        reminders = [a for a in alerts if a.message.startswith("⏳")]
        assert [a.ref_id for a in reminders] == [due.id]
        assert reminders[0].message == '⏳ Subscription "SEO" expires in 5 days. Renew soon!'

    async def test_accounts_without_receiver_are_skipped(self, db, notifier):
        seed = await _seed(db)
        seed["account"] = await make_account(db, business_name="Nobody Home")
        sub = await _subscribe(db, notifier, seed)
        sub.renewal_date = datetime(2026, 3, 6, 4, 0, tzinfo=timezone.utc)
        await db.flush()

        sent = await SubscriptionService.send_renewal_reminders(
            db, notifier, now=datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc),
        )
        assert sent == 0


# ═════════════════════════════════════════════════════════════════════
# API
# ═════════════════════════════════════════════════════════════════════


class TestSubscriptionAPI:

    async def test_create_and_change_plan(self, client, db):
        seed = await _seed(db)
        await db.commit()
        headers = auth_headers_for(seed["owner"])

        resp = await client.post(
            "/api/v1/subscriptions",
            json={
                "business_account_id": str(seed["account"].id),
                "service_id": str(seed["service"].id),
                "plan_id": str(_plan(seed, "Basic").id),
                "billing_cycle": "Monthly",
                "amount_paid": "1180",
            },
            headers=headers,
        )
        assert resp.status_code == 201
        created = resp.json()
        assert created["total_with_gst"] == 1180
        assert created["service_name"] == "SEO"

        resp = await client.put(
            f"/api/v1/subscriptions/{created['id']}/plan",
            json={
                "service_id": str(seed["service"].id),
                "plan_id": str(_plan(seed, "Pro").id),
            },
            headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Plan Updated"
        assert body["subscription"]["plan_name"] == "Pro"
        assert body["subscription"]["history"][0]["changed_by"] == str(seed["owner"].id)

    async def test_missing_fields_is_400(self, client, db):
        user = await make_user(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/subscriptions", json={}, headers=auth_headers_for(user),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Missing required fields"

    async def test_list_all_requires_admin(self, client, db):
        employee = await make_user(db)
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()

        assert (await client.get(
            "/api/v1/subscriptions", headers=auth_headers_for(employee),
        )).status_code == 403
        assert (await client.get(
            "/api/v1/subscriptions", headers=auth_headers_for(admin),
        )).status_code == 200
