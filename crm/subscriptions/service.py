"""Subscription lifecycle — activation, plan changes, cancellation, renewal reminders.

Sold subscriptions keep a snapshot of the plan's name and prices so that
later catalog edits never reach back into what a customer already bought.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.accounts.service import AccountService
from crm.alerts.service import AlertDispatcher
from crm.catalog.pricing import base_amount, effective_gst_rate, total_with_gst
from crm.catalog.service import CatalogService
from crm.common.constants import AlertType, BillingCycle, SubscriptionStatus
from crm.common.dates import add_months, local_date, local_day_bounds
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.config import settings
from crm.database import utcnow
from crm.realtime.port import NotificationPort
from crm.subscriptions.models import Subscription, SubscriptionHistory
from crm.subscriptions.schemas import (
    PlanChangeRequest,
    SubscriptionCreate,
    SubscriptionDetails,
)

logger = structlog.get_logger(__name__)


def renewal_date_for(purchased: datetime, cycle: BillingCycle) -> datetime:
    """One month out for Monthly, twelve for Yearly and One Time."""
    months = 1 if cycle == BillingCycle.monthly else 12
    return add_months(purchased, months)


class SubscriptionService:
    """Async subscription operations."""

    @staticmethod
    async def _load(db: AsyncSession, subscription_id: uuid.UUID) -> Optional[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.id == subscription_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_subscription(db: AsyncSession, subscription_id: uuid.UUID) -> Subscription:
        subscription = await SubscriptionService._load(db, subscription_id)
        if subscription is None:
            raise NotFoundException("Subscription", subscription_id)
        return subscription

    # ─────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_subscription(
        db: AsyncSession,
        notifier: NotificationPort,
        data: SubscriptionCreate,
    ) -> Subscription:
        """Activate a plan for a business account.

        The total is computed from the catalog price for the cycle, not from
        ``amount_paid``; the paid amount is recorded as submitted.
        """
        if not data.business_account_id or not data.service_id or not data.plan_id:
            raise BadRequestException(
                "Missing required fields",
                errors={
                    field: ["This field is required."]
                    for field in ("business_account_id", "service_id", "plan_id")
                    if getattr(data, field) is None
                },
            )

        service = await CatalogService.get_service(db, data.service_id)
        plan = CatalogService._get_plan(service, data.plan_id)
        account = await AccountService.get_account(db, data.business_account_id)

        gst_rate = effective_gst_rate(data.gst_rate or service.gst_rate)
        total = total_with_gst(
            base_amount(service, plan.id, data.billing_cycle), gst_rate,
        )
        purchased = utcnow()

        subscription = Subscription(
            business_account_id=account.id,
            service_id=service.id,
            plan_id=plan.id,
            plan_name=plan.name,
            plan_price_monthly=plan.price_monthly,
            plan_price_yearly=plan.price_yearly,
            plan_price_one_time=plan.price_one_time,
            billing_cycle=data.billing_cycle,
            amount_paid=data.amount_paid,
            gst_rate=gst_rate,
            total_with_gst=total,
            order_id=data.order_id,
            payment_id=data.payment_id,
            purchase_date=purchased,
            renewal_date=renewal_date_for(purchased, data.billing_cycle),
            status=SubscriptionStatus.active,
            auto_renew=data.billing_cycle != BillingCycle.one_time,
            history=[],
        )
        db.add(subscription)
        await db.flush()

        await AccountService.mark_customer(
            db,
            account,
            service_id=service.id,
            plan_id=plan.id,
            billing_cycle=data.billing_cycle,
            total_price=total,
            gst_rate=gst_rate,
        )

        logger.info(
            "subscription_created",
            subscription_id=str(subscription.id),
            account_id=str(account.id),
            plan=plan.name,
            total_with_gst=total,
        )

        await AlertDispatcher.send_alert(
            db, notifier,
            account.alert_receiver(),
            f"Subscription Activated - {plan.name}",
            AlertType.subscription,
            subscription.id,
        )
        return await SubscriptionService.get_subscription(db, subscription.id)

    # ─────────────────────────────────────────────────────────────────
    # Plan change / cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_plan(
        db: AsyncSession,
        notifier: NotificationPort,
        subscription_id: uuid.UUID,
        data: PlanChangeRequest,
        changed_by: Optional[uuid.UUID] = None,
    ) -> Subscription:
        """Switch to another plan, recording the change in the history first."""
        service = await CatalogService.get_service(db, data.service_id)
        new_plan = CatalogService._get_plan(service, data.plan_id)
        subscription = await SubscriptionService.get_subscription(db, subscription_id)

        old_plan_name = subscription.plan_name
        subscription.history.append(
            SubscriptionHistory(
                previous_plan_name=old_plan_name,
                new_plan_name=new_plan.name,
                changed_by=data.changed_by or changed_by,
                note=data.note,
            )
        )

        subscription.service_id = service.id
        subscription.plan_id = new_plan.id
        subscription.plan_name = new_plan.name
        subscription.plan_price_monthly = new_plan.price_monthly
        subscription.plan_price_yearly = new_plan.price_yearly
        subscription.plan_price_one_time = new_plan.price_one_time
        await db.flush()

        logger.info(
            "subscription_plan_changed",
            subscription_id=str(subscription.id),
            previous=old_plan_name,
            new=new_plan.name,
        )

        account = subscription.account
        await AlertDispatcher.send_alert(
            db, notifier,
            account.alert_receiver() if account else None,
            f"Subscription Plan Updated: {old_plan_name} → {new_plan.name}",
            AlertType.subscription,
            subscription.id,
        )
        return await SubscriptionService.get_subscription(db, subscription.id)

    @staticmethod
    async def cancel_subscription(
        db: AsyncSession,
        notifier: NotificationPort,
        subscription_id: uuid.UUID,
    ) -> Subscription:
        subscription = await SubscriptionService.get_subscription(db, subscription_id)
        subscription.status = SubscriptionStatus.cancelled
        subscription.auto_renew = False
        await db.flush()

        logger.info("subscription_cancelled", subscription_id=str(subscription.id))

        account = subscription.account
        await AlertDispatcher.send_alert(
            db, notifier,
            account.alert_receiver() if account else None,
            f"Subscription Cancelled - {subscription.service_name or subscription.plan_name}",
            AlertType.subscription,
            subscription.id,
        )
        return await SubscriptionService.get_subscription(db, subscription.id)

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_all(db: AsyncSession) -> Sequence[Subscription]:
        result = await db.execute(
            select(Subscription).order_by(Subscription.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def list_by_business(
        db: AsyncSession, account_id: uuid.UUID,
    ) -> Sequence[Subscription]:
        result = await db.execute(
            select(Subscription)
            .where(Subscription.business_account_id == account_id)
            .order_by(Subscription.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def get_details(
        db: AsyncSession, subscription_id: uuid.UUID,
    ) -> SubscriptionDetails:
        """Subscription summary with the features of the plan named in the snapshot."""
        subscription = await SubscriptionService.get_subscription(db, subscription_id)
        features: list[str] = []
        if subscription.service is not None:
            plan = next(
                (p for p in subscription.service.plans if p.name == subscription.plan_name),
                None,
            )
            if plan is not None:
                features = list(plan.features or [])

        return SubscriptionDetails(
            id=subscription.id,
            business_name=subscription.business_name,
            service_name=subscription.service_name,
            billing_cycle=subscription.billing_cycle,
            status=subscription.status,
            renewal_date=subscription.renewal_date,
            amount_paid=subscription.amount_paid,
            gst_rate=subscription.gst_rate,
            total_with_gst=subscription.total_with_gst,
            order_id=subscription.order_id,
            plan_name=subscription.plan_name,
            plan_features=features,
        )

    # ─────────────────────────────────────────────────────────────────
    # Renewal reminders (scheduled)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def send_renewal_reminders(
        db: AsyncSession,
        notifier: NotificationPort,
        now: Optional[datetime] = None,
    ) -> int:
        """Alert every active subscription renewing on local today + N days.

        Each run alerts every match again; returns the number of alerts sent.
        """
        days = settings.RENEWAL_REMINDER_DAYS
        target = local_date(now or utcnow()) + timedelta(days=days)
        window_start, window_end = local_day_bounds(target)

        result = await db.execute(
            select(Subscription).where(
                Subscription.status == SubscriptionStatus.active,
                Subscription.renewal_date >= window_start,
                Subscription.renewal_date < window_end,
            )
        )
        sent = 0
        for subscription in result.scalars().all():
            account = subscription.account
            receiver = account.alert_receiver() if account else None
            if receiver is None:
                continue
            alert = await AlertDispatcher.send_alert(
                db, notifier,
                receiver,
                f'⏳ Subscription "{subscription.service_name}" expires in {days} days. '
                "Renew soon!",
                AlertType.subscription,
                subscription.id,
            )
            if alert is not None:
                sent += 1

        logger.info("renewal_reminders_sent", target=target.isoformat(), count=sent)
        return sent
