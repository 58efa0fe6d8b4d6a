"""Business accounts router — leads, customers, notes, follow-ups."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.accounts.schemas import (
    AccountCounts,
    AccountCreate,
    AccountOut,
    AccountUpdate,
    BulkStatusUpdate,
    FollowUpCreate,
    FollowUpOut,
    FollowUpUpdate,
    NoteCreate,
    NoteOut,
)
from crm.accounts.service import AccountService
from crm.auth.dependencies import get_current_user, require_role
from crm.common.constants import AccountStatus, UserRole
from crm.common.pagination import PaginatedResponse, PaginationParams
from crm.database import get_db
from crm.users.models import User

router = APIRouter(prefix="", tags=["accounts"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[AccountOut])
async def list_accounts(
    params: PaginationParams = Depends(),
    search: Optional[str] = Query(None, description="Business or contact name"),
    status: Optional[AccountStatus] = Query(None),
    assigned_to_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Paginated accounts. Employees only see their own assignments."""
    return await AccountService.list_accounts(
        db,
        params,
        viewer=user,
        search=search,
        status=status,
        assigned_to_id=assigned_to_id,
    )


# ── GET /counts ─────────────────────────────────────────────────────

@router.get("/counts", response_model=AccountCounts)
async def account_counts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.counts(db, viewer=user)


# ── GET /customers ──────────────────────────────────────────────────

@router.get("/customers", response_model=list[AccountOut])
async def customers(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.list_by_status(db, AccountStatus.customer)


# ── GET /leads/active ───────────────────────────────────────────────

@router.get("/leads/active", response_model=list[AccountOut])
async def active_leads(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.list_by_status(db, AccountStatus.active)


# ── GET /leads/source/{source_type} ─────────────────────────────────

@router.get("/leads/source/{source_type}", response_model=list[AccountOut])
async def leads_by_source(
    source_type: str,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.leads_by_source(db, source_type)


# ── GET /quotations ─────────────────────────────────────────────────

@router.get("/quotations", response_model=list[AccountOut])
async def quotations_sent(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.list_by_status(db, AccountStatus.quotations)


# ── POST /bulk-status ───────────────────────────────────────────────

@router.post("/bulk-status")
async def bulk_status_update(
    body: BulkStatusUpdate,
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    updated = await AccountService.bulk_update_status(db, body.ids, body.status)
    return {"message": "Bulk update successful", "updated_count": updated}


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=AccountOut, status_code=201)
async def create_account(
    body: AccountCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a lead. 409 when the business name is already taken."""
    return await AccountService.create_account(db, body, user)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{account_id}", response_model=AccountOut)
async def get_account(
    account_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.get_account(db, account_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{account_id}", response_model=AccountOut)
async def update_account(
    account_id: uuid.UUID,
    body: AccountUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await AccountService.update_account(db, account_id, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{account_id}")
async def close_account(
    account_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the account is set to Closed."""
    account = await AccountService.soft_delete(db, account_id)
    return {
        "message": "Account status set to Closed",
        "account": AccountOut.model_validate(account),
    }


# ═════════════════════════════════════════════════════════════════════
# Notes
# ═════════════════════════════════════════════════════════════════════


@router.get("/{account_id}/notes", response_model=list[NoteOut])
async def list_notes(
    account_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return (await AccountService.get_account(db, account_id)).notes


@router.post("/{account_id}/notes", response_model=list[NoteOut], status_code=201)
async def add_note(
    account_id: uuid.UUID,
    body: NoteCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountService.add_note(db, account_id, body, author=user.name)
    return account.notes


@router.delete("/{account_id}/notes/{note_id}", response_model=list[NoteOut])
async def delete_note(
    account_id: uuid.UUID,
    note_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountService.delete_note(db, account_id, note_id)
    return account.notes


# ═════════════════════════════════════════════════════════════════════
# Follow-ups
# ═════════════════════════════════════════════════════════════════════


@router.get("/{account_id}/followups", response_model=list[FollowUpOut])
async def list_follow_ups(
    account_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return (await AccountService.get_account(db, account_id)).follow_ups


@router.post("/{account_id}/followups", response_model=list[FollowUpOut], status_code=201)
async def add_follow_up(
    account_id: uuid.UUID,
    body: FollowUpCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountService.add_follow_up(db, account_id, body, user)
    return account.follow_ups


@router.put("/{account_id}/followups/{follow_up_id}", response_model=list[FollowUpOut])
async def update_follow_up(
    account_id: uuid.UUID,
    follow_up_id: uuid.UUID,
    body: FollowUpUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountService.update_follow_up(db, account_id, follow_up_id, body)
    return account.follow_ups


@router.delete("/{account_id}/followups/{follow_up_id}", response_model=list[FollowUpOut])
async def delete_follow_up(
    account_id: uuid.UUID,
    follow_up_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    account = await AccountService.delete_follow_up(db, account_id, follow_up_id)
    return account.follow_ups
