"""Business account service — leads, customers, notes, follow-ups.

Every write re-derives ``is_customer`` from the status and, when a service
is selected, re-stamps ``gst_rate`` / ``total_price`` from the catalog.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm.accounts.models import AccountNote, BusinessAccount, FollowUp
from crm.accounts.schemas import (
    AccountCounts,
    AccountCreate,
    AccountUpdate,
    FollowUpCreate,
    FollowUpUpdate,
    NoteCreate,
)
from crm.catalog.pricing import compute_total, effective_gst_rate
from crm.catalog.service import CatalogService
from crm.common.constants import AccountStatus, UserRole
from crm.common.exceptions import (
    BadRequestException,
    DuplicateAccountException,
    NotFoundException,
)
from crm.common.filters import apply_search
from crm.common.pagination import PaginatedResponse, PaginationParams, paginate
from crm.users.models import User

logger = structlog.get_logger(__name__)

# JSON-typed columns that need plain values.
_JSON_FIELDS = ("additional_contacts", "lead_types", "client_ids")

_NOT_NULL = (
    "business_name", "contact_name", "contact_number",
    "status", "source_type", "billing_cycle",
) + _JSON_FIELDS

_COUNT_KEYS = {
    AccountStatus.active: "active",
    AccountStatus.pipeline: "pipeline",
    AccountStatus.quotations: "quotations",
    AccountStatus.customer: "customers",
    AccountStatus.closed: "closed",
    AccountStatus.target_leads: "target_leads",
}


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    """Convert nested pydantic output into what the columns store."""
    out = dict(data)
    for field in _JSON_FIELDS:
        if field in out and out[field] is not None:
            out[field] = [
                v if isinstance(v, dict) else (v.value if hasattr(v, "value") else str(v))
                for v in out[field]
            ]
    return out


class AccountService:
    """Async business-account operations."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _load(db: AsyncSession, account_id: uuid.UUID) -> Optional[BusinessAccount]:
        result = await db.execute(
            select(BusinessAccount)
            .where(BusinessAccount.id == account_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_account(db: AsyncSession, account_id: uuid.UUID) -> BusinessAccount:
        account = await AccountService._load(db, account_id)
        if account is None:
            raise NotFoundException("Business account", account_id)
        return account

    @staticmethod
    async def _ensure_unique_name(
        db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        """Raise 409 when another account has *name* (case-insensitive)."""
        query = select(BusinessAccount).where(
            func.lower(BusinessAccount.business_name) == name.strip().lower()
        )
        if exclude_id is not None:
            query = query.where(BusinessAccount.id != exclude_id)
        query = query.execution_options(populate_existing=True)
        existing = (await db.execute(query)).scalars().first()
        if existing is None:
            return

        assignee = None
        if existing.assignee is not None:
            assignee = {
                "name": existing.assignee.name,
                "role": existing.assignee.role.value,
            }
        raise DuplicateAccountException(name, existing.id, assignee)

    @staticmethod
    async def _stamp_pricing(db: AsyncSession, account: BusinessAccount) -> None:
        account.is_customer = account.status == AccountStatus.customer
        service = await CatalogService.find_service(db, account.selected_service_id)
        if service is None:
            return
        account.gst_rate = effective_gst_rate(service.gst_rate)
        account.total_price = compute_total(
            service, account.selected_plan_id, account.billing_cycle,
        )

    # ─────────────────────────────────────────────────────────────────
    # Create / update / soft delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_account(
        db: AsyncSession, data: AccountCreate, creator: User,
    ) -> BusinessAccount:
        await AccountService._ensure_unique_name(db, data.business_name)

        values = _column_values(data.model_dump(mode="json"))
        for key in (
            "owner_id", "assigned_to_id", "selected_user_id",
            "selected_service_id", "selected_plan_id",
        ):
            values[key] = getattr(data, key)
        values["owner_id"] = data.owner_id or creator.id
        values["status"] = data.status
        values["billing_cycle"] = data.billing_cycle

        account = BusinessAccount(**values, notes=[], follow_ups=[])
        await AccountService._stamp_pricing(db, account)
        db.add(account)
        await db.flush()

        logger.info(
            "account_created",
            account_id=str(account.id),
            status=account.status.value,
            total_price=account.total_price,
        )
        return await AccountService.get_account(db, account.id)

    @staticmethod
    async def update_account(
        db: AsyncSession, account_id: uuid.UUID, data: AccountUpdate,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        changes = data.model_dump(exclude_unset=True)
        for key in _NOT_NULL:
            if key in changes and changes[key] is None:
                del changes[key]

        if changes.get("business_name"):
            changes["business_name"] = changes["business_name"].strip()
            await AccountService._ensure_unique_name(
                db, changes["business_name"], exclude_id=account.id,
            )

        json_changes = _column_values(
            data.model_dump(mode="json", include=set(_JSON_FIELDS), exclude_unset=True)
        )
        changes.update({k: v for k, v in json_changes.items() if v is not None})

        for field, value in changes.items():
            setattr(account, field, value)

        await AccountService._stamp_pricing(db, account)
        await db.flush()
        return await AccountService.get_account(db, account.id)

    @staticmethod
    async def soft_delete(db: AsyncSession, account_id: uuid.UUID) -> BusinessAccount:
        """Close the account instead of deleting it."""
        account = await AccountService.get_account(db, account_id)
        account.status = AccountStatus.closed
        account.is_customer = False
        await db.flush()
        logger.info("account_closed", account_id=str(account.id))
        return account

    @staticmethod
    async def bulk_update_status(
        db: AsyncSession, ids: list[uuid.UUID], status: AccountStatus,
    ) -> int:
        if not ids:
            raise BadRequestException("No account IDs provided")
        result = await db.execute(
            update(BusinessAccount)
            .where(BusinessAccount.id.in_(ids))
            .values(status=status, is_customer=status == AccountStatus.customer)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    @staticmethod
    async def mark_customer(
        db: AsyncSession,
        account: BusinessAccount,
        *,
        service_id: uuid.UUID,
        plan_id: uuid.UUID,
        billing_cycle,
        total_price: int,
        gst_rate,
    ) -> None:
        """Stamp a sold subscription onto its account."""
        account.selected_service_id = service_id
        account.selected_plan_id = plan_id
        account.billing_cycle = billing_cycle
        account.total_price = total_price
        account.gst_rate = gst_rate
        account.status = AccountStatus.customer
        account.is_customer = True
        await db.flush()

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _scope(query: Select, viewer: Optional[User]) -> Select:
        """Employees only see accounts assigned to them."""
        if viewer is not None and viewer.role == UserRole.employee:
            query = query.where(BusinessAccount.assigned_to_id == viewer.id)
        return query

    @staticmethod
    async def list_accounts(
        db: AsyncSession,
        params: PaginationParams,
        *,
        viewer: Optional[User] = None,
        search: Optional[str] = None,
        status: Optional[AccountStatus] = None,
        assigned_to_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        query = AccountService._scope(select(BusinessAccount), viewer)
        if status is not None:
            query = query.where(BusinessAccount.status == status)
        if assigned_to_id is not None:
            query = query.where(BusinessAccount.assigned_to_id == assigned_to_id)
        query = apply_search(query, BusinessAccount, search, ("business_name", "contact_name"))
        if not params.sort:
            query = query.order_by(BusinessAccount.created_at.desc())
        return await paginate(db, query, params, model=BusinessAccount)

    @staticmethod
    async def counts(db: AsyncSession, *, viewer: Optional[User] = None) -> AccountCounts:
        query = AccountService._scope(
            select(BusinessAccount.status, func.count()).group_by(BusinessAccount.status),
            viewer,
        )
        rows = (await db.execute(query)).all()
        counts = AccountCounts()
        for status, total in rows:
            setattr(counts, _COUNT_KEYS[AccountStatus(status)], total)
            counts.all += total
        return counts

    @staticmethod
    async def list_by_status(
        db: AsyncSession, status: AccountStatus,
    ) -> Sequence[BusinessAccount]:
        result = await db.execute(
            select(BusinessAccount)
            .where(BusinessAccount.status == status)
            .order_by(BusinessAccount.created_at.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def leads_by_source(db: AsyncSession, source_type: str) -> Sequence[BusinessAccount]:
        """Non-customer accounts from one acquisition source."""
        result = await db.execute(
            select(BusinessAccount)
            .where(
                BusinessAccount.source_type == source_type,
                BusinessAccount.status != AccountStatus.customer,
            )
            .order_by(BusinessAccount.created_at.desc())
        )
        return result.scalars().all()

    # ─────────────────────────────────────────────────────────────────
    # Notes
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def add_note(
        db: AsyncSession, account_id: uuid.UUID, data: NoteCreate, author: Optional[str] = None,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        note = AccountNote(text=data.text, author=data.author or author)
        if data.timestamp is not None:
            note.timestamp = data.timestamp
        account.notes.append(note)
        await db.flush()
        return account

    @staticmethod
    async def delete_note(
        db: AsyncSession, account_id: uuid.UUID, note_id: uuid.UUID,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        note = next((n for n in account.notes if n.id == note_id), None)
        if note is None:
            raise NotFoundException("Note", note_id)
        account.notes.remove(note)
        await db.flush()
        return account

    # ─────────────────────────────────────────────────────────────────
    # Follow-ups (addressed by id)
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _get_follow_up(account: BusinessAccount, follow_up_id: uuid.UUID) -> FollowUp:
        follow_up = next((f for f in account.follow_ups if f.id == follow_up_id), None)
        if follow_up is None:
            raise NotFoundException("Follow-up", follow_up_id)
        return follow_up

    @staticmethod
    async def add_follow_up(
        db: AsyncSession, account_id: uuid.UUID, data: FollowUpCreate, added_by: User,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        account.follow_ups.append(
            FollowUp(
                date=data.date,
                note=data.note,
                added_by_id=data.added_by_id or added_by.id,
                status=data.status,
            )
        )
        await db.flush()
        return account

    @staticmethod
    async def update_follow_up(
        db: AsyncSession,
        account_id: uuid.UUID,
        follow_up_id: uuid.UUID,
        data: FollowUpUpdate,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        follow_up = AccountService._get_follow_up(account, follow_up_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(follow_up, field, value)
        await db.flush()
        return account

    @staticmethod
    async def delete_follow_up(
        db: AsyncSession, account_id: uuid.UUID, follow_up_id: uuid.UUID,
    ) -> BusinessAccount:
        account = await AccountService.get_account(db, account_id)
        account.follow_ups.remove(AccountService._get_follow_up(account, follow_up_id))
        await db.flush()
        return account
