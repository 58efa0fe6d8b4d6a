"""Project service — step templates and projects built from them.

Business logic:
  - Step templates are grouped by ``step_type`` (the service name)
  - Group writes renumber ``order`` densely from 1 by list position
  - A project created without steps gets a Pending copy of its service's group
  - Creators and members are alerted on create; members on update
"""

from __future__ import annotations

import uuid
from itertools import groupby
from typing import Optional, Sequence

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm.alerts.service import AlertDispatcher
from crm.catalog.service import CatalogService
from crm.common.constants import AlertType, ProjectStatus, StepStatus, UserRole
from crm.common.exceptions import BadRequestException, ConflictError, NotFoundException
from crm.projects.models import (
    ProcessStep,
    Project,
    ProjectNote,
    ProjectStep,
    project_members,
)
from crm.projects.schemas import (
    ProjectCreate,
    ProjectNoteCreate,
    ProjectStatusCount,
    ProjectStepIn,
    ProjectUpdate,
    StepGroupOut,
    StepTemplateIn,
    StepTemplateOut,
)
from crm.realtime.port import NotificationPort
from crm.users.models import User

logger = structlog.get_logger(__name__)

_REQUIRED = ("name", "status", "start_date", "account_id", "service_id")


def _numbered_steps(steps: Sequence[ProjectStepIn]) -> list[ProjectStep]:
    return [
        ProjectStep(
            step_name=step.step_name,
            url=step.url,
            description=step.description,
            status=step.status,
            order=position,
        )
        for position, step in enumerate(steps, start=1)
    ]


# ═════════════════════════════════════════════════════════════════════
# Step templates
# ═════════════════════════════════════════════════════════════════════


class StepTemplateService:
    """Step groups keyed by service name."""

    @staticmethod
    async def _group(db: AsyncSession, step_type: str) -> Sequence[ProcessStep]:
        result = await db.execute(
            select(ProcessStep)
            .where(ProcessStep.step_type == step_type)
            .order_by(ProcessStep.order.asc())
        )
        return result.scalars().all()

    @staticmethod
    def _build(step_type: str, steps: Sequence[StepTemplateIn]) -> list[ProcessStep]:
        return [
            ProcessStep(step_type=step_type, order=position, **step.model_dump())
            for position, step in enumerate(steps, start=1)
        ]

    @staticmethod
    async def create_group(
        db: AsyncSession, step_type: str, steps: Sequence[StepTemplateIn],
    ) -> list[ProcessStep]:
        if await StepTemplateService._group(db, step_type):
            raise ConflictError(
                "step_type",
                step_type,
                detail=f'Step Type "{step_type}" already exists. Please use PUT to update.',
            )
        if not steps:
            raise BadRequestException("Steps are required")

        created = StepTemplateService._build(step_type, steps)
        db.add_all(created)
        await db.flush()
        logger.info("step_group_created", step_type=step_type, steps=len(created))
        return created

    @staticmethod
    async def replace_group(
        db: AsyncSession, step_type: str, steps: Sequence[StepTemplateIn],
    ) -> list[ProcessStep]:
        """Delete every template of *step_type* and insert *steps* in order."""
        if not steps:
            raise BadRequestException("Steps array is required")

        await db.execute(delete(ProcessStep).where(ProcessStep.step_type == step_type))
        replaced = StepTemplateService._build(step_type, steps)
        db.add_all(replaced)
        await db.flush()
        logger.info("step_group_replaced", step_type=step_type, steps=len(replaced))
        return replaced

    @staticmethod
    async def list_grouped(db: AsyncSession) -> list[StepGroupOut]:
        result = await db.execute(
            select(ProcessStep).order_by(ProcessStep.step_type.asc(), ProcessStep.order.asc())
        )
        return [
            StepGroupOut(
                step_type=step_type,
                steps=[StepTemplateOut.model_validate(s) for s in rows],
            )
            for step_type, rows in groupby(result.scalars().all(), key=lambda s: s.step_type)
        ]

    @staticmethod
    async def delete_group(db: AsyncSession, step_type: str) -> None:
        result = await db.execute(
            delete(ProcessStep).where(ProcessStep.step_type == step_type)
        )
        if result.rowcount == 0:
            raise NotFoundException("Step group", step_type)

    @staticmethod
    async def delete_step(db: AsyncSession, step_id: uuid.UUID) -> None:
        step = await db.get(ProcessStep, step_id)
        if step is None:
            raise NotFoundException("Step", step_id)
        await db.delete(step)
        await db.flush()

    @staticmethod
    async def instantiate(db: AsyncSession, step_type: str) -> list[ProjectStep]:
        """Pending project steps copied from the *step_type* group."""
        templates = await StepTemplateService._group(db, step_type)
        return [
            ProjectStep(
                step_name=t.step_name,
                url=t.url or "",
                description=t.description or "",
                status=StepStatus.pending,
                order=position,
            )
            for position, t in enumerate(templates, start=1)
        ]


# ═════════════════════════════════════════════════════════════════════
# Projects
# ═════════════════════════════════════════════════════════════════════


class ProjectService:
    """Async project operations."""

    @staticmethod
    async def _load(db: AsyncSession, project_id: uuid.UUID) -> Optional[Project]:
        result = await db.execute(
            select(Project)
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_project(db: AsyncSession, project_id: uuid.UUID) -> Project:
        project = await ProjectService._load(db, project_id)
        if project is None:
            raise NotFoundException("Project", project_id)
        return project

    @staticmethod
    async def _members(db: AsyncSession, member_ids: Sequence[uuid.UUID]) -> list[User]:
        if not member_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(set(member_ids))))
        members = list(result.scalars().all())
        missing = set(member_ids) - {m.id for m in members}
        if missing:
            raise BadRequestException(
                "Unknown project members",
                errors={"member_ids": [str(m) for m in sorted(missing, key=str)]},
            )
        return members

    @staticmethod
    async def _alert_all(
        db: AsyncSession,
        notifier: NotificationPort,
        user_ids: Sequence[uuid.UUID],
        message: str,
        project_id: uuid.UUID,
    ) -> None:
        for user_id in user_ids:
            await AlertDispatcher.send_alert(
                db, notifier, user_id, message, AlertType.project, project_id,
            )

    @staticmethod
    async def create_project(
        db: AsyncSession,
        notifier: NotificationPort,
        data: ProjectCreate,
        creator: User,
    ) -> Project:
        if data.steps:
            steps = _numbered_steps(data.steps)
        else:
            step_type = data.service_name
            if not step_type:
                service = await CatalogService.find_service(db, data.service_id)
                step_type = service.service_name if service else None
            steps = await StepTemplateService.instantiate(db, step_type) if step_type else []

        project = Project(
            name=data.name,
            description=data.description,
            status=data.status,
            start_date=data.start_date,
            end_date=data.end_date,
            account_id=data.account_id,
            service_id=data.service_id,
            created_by=creator.id,
            attachments=[a.model_dump() for a in data.attachments],
            members=await ProjectService._members(db, data.member_ids),
            steps=steps,
            notes=[],
        )
        db.add(project)
        await db.flush()

        logger.info(
            "project_created",
            project_id=str(project.id),
            steps=len(steps),
            members=len(project.members),
        )

        await AlertDispatcher.send_alert(
            db, notifier,
            creator.id,
            f"Project created: {project.name}",
            AlertType.project,
            project.id,
        )
        await ProjectService._alert_all(
            db, notifier,
            [m.id for m in project.members],
            f"You have been added to project: {project.name}",
            project.id,
        )
        return await ProjectService.get_project(db, project.id)

    @staticmethod
    async def update_project(
        db: AsyncSession,
        notifier: NotificationPort,
        project_id: uuid.UUID,
        data: ProjectUpdate,
    ) -> Project:
        project = await ProjectService.get_project(db, project_id)
        changes = data.model_dump(
            exclude_unset=True, exclude={"steps", "member_ids", "attachments"},
        )
        for field, value in changes.items():
            if value is None and field in _REQUIRED:
                continue
            setattr(project, field, value)

        if data.steps is not None:
            project.steps = _numbered_steps(data.steps)
        if data.member_ids is not None:
            project.members = await ProjectService._members(db, data.member_ids)
        if data.attachments is not None:
            project.attachments = [a.model_dump() for a in data.attachments]

        await db.flush()
        project = await ProjectService.get_project(db, project.id)

        await ProjectService._alert_all(
            db, notifier,
            [m.id for m in project.members],
            f"Project updated: {project.name}",
            project.id,
        )
        return project

    @staticmethod
    async def delete_project(db: AsyncSession, project_id: uuid.UUID) -> None:
        project = await ProjectService.get_project(db, project_id)
        await db.delete(project)
        await db.flush()
        logger.info("project_deleted", project_id=str(project_id))

    @staticmethod
    async def list_projects(
        db: AsyncSession,
        *,
        viewer: Optional[User] = None,
        status: Optional[ProjectStatus] = None,
        account_id: Optional[uuid.UUID] = None,
        service_id: Optional[uuid.UUID] = None,
    ) -> Sequence[Project]:
        """Projects, most recently updated first.

        Employees see the projects they are members of; clients see the
        projects of their business account.
        """
        query = select(Project)
        if status is not None:
            query = query.where(Project.status == status)
        if service_id is not None:
            query = query.where(Project.service_id == service_id)
        if account_id is not None:
            query = query.where(Project.account_id == account_id)

        if viewer is not None and viewer.role == UserRole.employee:
            query = query.where(
                Project.id.in_(
                    select(project_members.c.project_id).where(
                        project_members.c.user_id == viewer.id
                    )
                )
            )
        elif (
            viewer is not None
            and viewer.role == UserRole.client
            and viewer.business_account_id is not None
        ):
            query = query.where(Project.account_id == viewer.business_account_id)

        result = await db.execute(query.order_by(Project.updated_at.desc()))
        return result.scalars().all()

    @staticmethod
    async def stats(db: AsyncSession) -> list[ProjectStatusCount]:
        result = await db.execute(
            select(Project.status, func.count()).group_by(Project.status)
        )
        return [
            ProjectStatusCount(status=ProjectStatus(status), count=total)
            for status, total in result.all()
        ]

    # ─────────────────────────────────────────────────────────────────
    # Notes
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def add_note(
        db: AsyncSession, project_id: uuid.UUID, data: ProjectNoteCreate,
    ) -> Project:
        project = await ProjectService.get_project(db, project_id)
        note = ProjectNote(text=data.text, author=data.author)
        if data.timestamp is not None:
            note.timestamp = data.timestamp
        project.notes.append(note)
        await db.flush()
        return project

    @staticmethod
    async def delete_note(
        db: AsyncSession, project_id: uuid.UUID, note_id: uuid.UUID,
    ) -> Project:
        project = await ProjectService.get_project(db, project_id)
        note = next((n for n in project.notes if n.id == note_id), None)
        if note is None:
            raise NotFoundException("Note", note_id)
        project.notes.remove(note)
        await db.flush()
        return project
