"""Catalog router — brand services, plans, notes, price quotes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user, require_role
from crm.catalog.schemas import (
    BrandServiceCreate,
    BrandServiceOut,
    BrandServiceUpdate,
    PlanCreate,
    PlanUpdate,
    PriceQuote,
    ServiceNotesUpdate,
)
from crm.catalog.service import CatalogService
from crm.common.constants import BillingCycle, UserRole
from crm.database import get_db
from crm.users.models import User

router = APIRouter(prefix="", tags=["catalog"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[BrandServiceOut])
async def list_services(
    active_only: bool = Query(False),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.list_services(db, active_only=active_only)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=BrandServiceOut, status_code=201)
async def create_service(
    body: BrandServiceCreate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.create_service(db, body)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{service_id}", response_model=BrandServiceOut)
async def get_service(
    service_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.get_service(db, service_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{service_id}", response_model=BrandServiceOut)
async def update_service(
    service_id: uuid.UUID,
    body: BrandServiceUpdate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.update_service(db, service_id, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{service_id}")
async def delete_service(
    service_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await CatalogService.delete_service(db, service_id)
    return {"message": "Service deleted"}


# ── PUT /{id}/notes ─────────────────────────────────────────────────

@router.put("/{service_id}/notes", response_model=BrandServiceOut)
async def update_service_notes(
    service_id: uuid.UUID,
    body: ServiceNotesUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.update_notes(db, service_id, body.notes)


# ── GET /{id}/price ─────────────────────────────────────────────────

@router.get("/{service_id}/price", response_model=PriceQuote)
async def quote_price(
    service_id: uuid.UUID,
    plan_id: Optional[uuid.UUID] = Query(None),
    billing_cycle: BillingCycle = Query(BillingCycle.monthly),
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Total with GST for a plan and billing cycle."""
    return await CatalogService.quote_price(db, service_id, plan_id, billing_cycle)


# ═════════════════════════════════════════════════════════════════════
# Plans
# ═════════════════════════════════════════════════════════════════════


@router.post("/{service_id}/plans", response_model=BrandServiceOut, status_code=201)
async def add_plan(
    service_id: uuid.UUID,
    body: PlanCreate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.add_plan(db, service_id, body)


@router.put("/{service_id}/plans/{plan_id}", response_model=BrandServiceOut)
async def update_plan(
    service_id: uuid.UUID,
    plan_id: uuid.UUID,
    body: PlanUpdate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.update_plan(db, service_id, plan_id, body)


@router.delete("/{service_id}/plans/{plan_id}", response_model=BrandServiceOut)
async def delete_plan(
    service_id: uuid.UUID,
    plan_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogService.delete_plan(db, service_id, plan_id)
