"""Subscriptions router."""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user, require_role
from crm.common.constants import UserRole
from crm.database import get_db
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.subscriptions.schemas import (
    PlanChangeRequest,
    SubscriptionActionResponse,
    SubscriptionCreate,
    SubscriptionDetails,
    SubscriptionOut,
)
from crm.subscriptions.service import SubscriptionService
from crm.users.models import User

router = APIRouter(prefix="", tags=["subscriptions"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[SubscriptionOut])
async def list_subscriptions(
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await SubscriptionService.list_all(db)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=SubscriptionOut, status_code=201)
async def create_subscription(
    body: SubscriptionCreate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await SubscriptionService.create_subscription(db, notifier, body)


# ── GET /business/{account_id} ──────────────────────────────────────

@router.get("/business/{account_id}", response_model=list[SubscriptionOut])
async def subscriptions_for_business(
    account_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SubscriptionService.list_by_business(db, account_id)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{subscription_id}", response_model=SubscriptionDetails)
async def subscription_details(
    subscription_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SubscriptionService.get_details(db, subscription_id)


# ── PUT /{id}/plan ──────────────────────────────────────────────────

@router.put("/{subscription_id}/plan", response_model=SubscriptionActionResponse)
async def change_plan(
    subscription_id: uuid.UUID,
    body: PlanChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    subscription = await SubscriptionService.update_plan(
        db, notifier, subscription_id, body, changed_by=user.id,
    )
    return SubscriptionActionResponse(
        message="Plan Updated",
        subscription=SubscriptionOut.model_validate(subscription),
    )


# ── PUT /{id}/cancel ────────────────────────────────────────────────

@router.put("/{subscription_id}/cancel", response_model=SubscriptionActionResponse)
async def cancel_subscription(
    subscription_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    subscription = await SubscriptionService.cancel_subscription(
        db, notifier, subscription_id,
    )
    return SubscriptionActionResponse(
        message="Subscription Cancelled",
        subscription=SubscriptionOut.model_validate(subscription),
    )
