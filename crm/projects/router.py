"""Projects and step-template routers."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.dependencies import get_current_user, require_role
from crm.common.constants import ProjectStatus, UserRole
from crm.database import get_db
from crm.projects.schemas import (
    ProjectCreate,
    ProjectNoteCreate,
    ProjectNoteOut,
    ProjectOut,
    ProjectStatusCount,
    ProjectUpdate,
    StepGroupCreate,
    StepGroupOut,
    StepGroupReplace,
    StepTemplateOut,
)
from crm.projects.service import ProjectService, StepTemplateService
from crm.realtime.dependencies import get_notifier
from crm.realtime.port import NotificationPort
from crm.users.models import User

steps_router = APIRouter(prefix="", tags=["steps"])
router = APIRouter(prefix="", tags=["projects"])


# ═════════════════════════════════════════════════════════════════════
# Step templates
# ═════════════════════════════════════════════════════════════════════


# ── POST / ──────────────────────────────────────────────────────────

@steps_router.post("", response_model=list[StepTemplateOut], status_code=201)
async def create_step_group(
    body: StepGroupCreate,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await StepTemplateService.create_group(db, body.step_type, body.steps)


# ── GET / ───────────────────────────────────────────────────────────

@steps_router.get("", response_model=list[StepGroupOut])
async def list_step_groups(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await StepTemplateService.list_grouped(db)


# ── DELETE /step/{id} ───────────────────────────────────────────────

@steps_router.delete("/step/{step_id}")
async def delete_step(
    step_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await StepTemplateService.delete_step(db, step_id)
    return {"success": True, "message": "Individual Step Deleted"}


# ── PUT /{step_type} ────────────────────────────────────────────────

@steps_router.put("/{step_type}", response_model=list[StepTemplateOut])
async def replace_step_group(
    step_type: str,
    body: StepGroupReplace,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    return await StepTemplateService.replace_group(db, step_type, body.steps)


# ── DELETE /{step_type} ─────────────────────────────────────────────

@steps_router.delete("/{step_type}")
async def delete_step_group(
    step_type: str,
    _: User = Depends(require_role(UserRole.admin)),
    db: AsyncSession = Depends(get_db),
):
    await StepTemplateService.delete_group(db, step_type)
    return {"success": True, "message": f"Step Group '{step_type}' Deleted"}


# ═════════════════════════════════════════════════════════════════════
# Projects
# ═════════════════════════════════════════════════════════════════════


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[ProjectOut])
async def list_projects(
    status: Optional[ProjectStatus] = Query(None),
    account_id: Optional[uuid.UUID] = Query(None),
    service_id: Optional[uuid.UUID] = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService.list_projects(
        db,
        viewer=user,
        status=status,
        account_id=account_id,
        service_id=service_id,
    )


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=ProjectOut, status_code=201)
async def create_project(
    body: ProjectCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    """Create a project; without explicit steps the service's template group is copied."""
    return await ProjectService.create_project(db, notifier, body, user)


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=list[ProjectStatusCount])
async def project_stats(
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService.stats(db)


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(
    project_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProjectService.get_project(db, project_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{project_id}", response_model=ProjectOut)
async def update_project(
    project_id: uuid.UUID,
    body: ProjectUpdate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: NotificationPort = Depends(get_notifier),
):
    return await ProjectService.update_project(db, notifier, project_id, body)


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{project_id}")
async def delete_project(
    project_id: uuid.UUID,
    _: User = Depends(require_role(UserRole.team_leader)),
    db: AsyncSession = Depends(get_db),
):
    await ProjectService.delete_project(db, project_id)
    return {"success": True, "message": "Deleted Successfully"}


# ── POST /{id}/notes ────────────────────────────────────────────────

@router.post("/{project_id}/notes", response_model=list[ProjectNoteOut], status_code=201)
async def add_project_note(
    project_id: uuid.UUID,
    body: ProjectNoteCreate,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService.add_note(db, project_id, body)
    return project.notes


# ── DELETE /{id}/notes/{note_id} ────────────────────────────────────

@router.delete("/{project_id}/notes/{note_id}", response_model=list[ProjectNoteOut])
async def delete_project_note(
    project_id: uuid.UUID,
    note_id: uuid.UUID,
    _: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    project = await ProjectService.delete_note(db, project_id, note_id)
    return project.notes
