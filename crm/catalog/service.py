"""Catalog service — brand services, their plans, price quotes."""

from __future__ import annotations

import uuid
from typing import Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.catalog.models import BrandService, Plan
from crm.catalog.pricing import compute_total, effective_gst_rate
from crm.catalog.schemas import (
    BrandServiceCreate,
    BrandServiceUpdate,
    PlanCreate,
    PlanUpdate,
    PriceQuote,
    ServiceNote,
)
from crm.common.constants import BillingCycle
from crm.common.exceptions import NotFoundException

logger = structlog.get_logger(__name__)


class CatalogService:
    """Async catalog operations."""

    @staticmethod
    async def list_services(
        db: AsyncSession, *, active_only: bool = False,
    ) -> Sequence[BrandService]:
        query = select(BrandService).order_by(BrandService.created_at.desc())
        if active_only:
            query = query.where(BrandService.is_active.is_(True))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def get_service(db: AsyncSession, service_id: uuid.UUID) -> BrandService:
        service = await db.get(BrandService, service_id)
        if service is None:
            raise NotFoundException("Service", service_id)
        return service

    @staticmethod
    async def find_service(
        db: AsyncSession, service_id: Optional[uuid.UUID],
    ) -> Optional[BrandService]:
        if service_id is None:
            return None
        return await db.get(BrandService, service_id)

    @staticmethod
    async def create_service(db: AsyncSession, data: BrandServiceCreate) -> BrandService:
        payload = data.model_dump(exclude={"plans", "notes"})
        service = BrandService(
            **payload,
            notes=[n.model_dump() for n in data.notes],
            plans=[Plan(**p.model_dump()) for p in data.plans],
        )
        db.add(service)
        await db.flush()
        logger.info("service_created", service_id=str(service.id), name=service.service_name)
        return service

    @staticmethod
    async def update_service(
        db: AsyncSession, service_id: uuid.UUID, data: BrandServiceUpdate,
    ) -> BrandService:
        service = await CatalogService.get_service(db, service_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(service, field, value)
        await db.flush()
        return service

    @staticmethod
    async def delete_service(db: AsyncSession, service_id: uuid.UUID) -> None:
        service = await CatalogService.get_service(db, service_id)
        await db.delete(service)
        await db.flush()

    @staticmethod
    async def update_notes(
        db: AsyncSession, service_id: uuid.UUID, notes: list[ServiceNote],
    ) -> BrandService:
        service = await CatalogService.get_service(db, service_id)
        service.notes = [n.model_dump() for n in notes]
        await db.flush()
        return service

    # ─────────────────────────────────────────────────────────────────
    # Plans
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _get_plan(service: BrandService, plan_id: uuid.UUID) -> Plan:
        plan = service.find_plan(plan_id)
        if plan is None:
            raise NotFoundException("Plan", plan_id)
        return plan

    @staticmethod
    async def add_plan(
        db: AsyncSession, service_id: uuid.UUID, data: PlanCreate,
    ) -> BrandService:
        service = await CatalogService.get_service(db, service_id)
        service.plans.append(Plan(**data.model_dump()))
        await db.flush()
        return service

    @staticmethod
    async def update_plan(
        db: AsyncSession, service_id: uuid.UUID, plan_id: uuid.UUID, data: PlanUpdate,
    ) -> BrandService:
        service = await CatalogService.get_service(db, service_id)
        plan = CatalogService._get_plan(service, plan_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(plan, field, value)
        await db.flush()
        return service

    @staticmethod
    async def delete_plan(
        db: AsyncSession, service_id: uuid.UUID, plan_id: uuid.UUID,
    ) -> BrandService:
        service = await CatalogService.get_service(db, service_id)
        plan = CatalogService._get_plan(service, plan_id)
        service.plans.remove(plan)
        await db.flush()
        return service

    # ─────────────────────────────────────────────────────────────────
    # Pricing
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def quote_price(
        db: AsyncSession,
        service_id: uuid.UUID,
        plan_id: Optional[uuid.UUID],
        billing_cycle: BillingCycle,
    ) -> PriceQuote:
        service = await CatalogService.get_service(db, service_id)
        if plan_id is not None:
            CatalogService._get_plan(service, plan_id)
        return PriceQuote(
            service_id=service.id,
            plan_id=plan_id,
            billing_cycle=billing_cycle,
            gst_rate=effective_gst_rate(service.gst_rate),
            total_price=compute_total(service, plan_id, billing_cycle),
        )
