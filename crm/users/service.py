"""User service — CRUD, role lookups, presence, teams and transfers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crm.auth.security import hash_password
from crm.common.constants import Presence, UserRole
from crm.common.exceptions import BadRequestException, ConflictError, NotFoundException
from crm.users.models import Team, User
from crm.users.schemas import TeamCreate, TeamUpdate, UserBrief, UserCreate, UserUpdate

logger = structlog.get_logger(__name__)

# Roles that file end-of-day reports.
EOD_ROLES = (UserRole.employee, UserRole.team_leader)

ACTIVE_PRESENCE = (Presence.online, Presence.busy, Presence.in_meeting)


class UserService:
    """Async user and team operations."""

    # ─────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundException("User", user_id)
        return user

    @staticmethod
    async def list_users(db: AsyncSession, *, eod_only: bool = False) -> Sequence[User]:
        query = select(User).order_by(User.created_at.desc())
        if eod_only:
            query = query.where(User.role.in_(EOD_ROLES))
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(User.email == email.strip().lower())
        )
        return result.scalars().first()

    @staticmethod
    async def find_first_by_role(db: AsyncSession, role: UserRole) -> Optional[User]:
        """Earliest-created user holding *role*, or None."""
        result = await db.execute(
            select(User)
            .where(User.role == role)
            .order_by(User.created_at.asc())
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def find_team_leader(
        db: AsyncSession, team_id: Optional[uuid.UUID],
    ) -> Optional[User]:
        if team_id is None:
            return None
        result = await db.execute(
            select(User)
            .where(User.team_id == team_id, User.role == UserRole.team_leader)
            .order_by(User.created_at.asc())
            .limit(1)
        )
        return result.scalars().first()

    # ─────────────────────────────────────────────────────────────────
    # Writes
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_user(db: AsyncSession, data: UserCreate) -> User:
        email = data.email.strip().lower()
        if await UserService.get_by_email(db, email) is not None:
            raise ConflictError("email", email, detail="A user with this email already exists.")

        user = User(
            name=data.name,
            email=email,
            mobile=data.mobile,
            password_hash=hash_password(data.password),
            role=data.role,
            team_id=data.team_id,
            business_account_id=data.business_account_id,
            status=data.status,
        )
        db.add(user)
        await db.flush()
        return user

    @staticmethod
    async def update_user(
        db: AsyncSession, user_id: uuid.UUID, data: UserUpdate,
    ) -> User:
        user = await UserService.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)

        password = changes.pop("password", None)
        if password:
            user.password_hash = hash_password(password)

        if changes.get("email"):
            email = changes["email"].strip().lower()
            existing = await UserService.get_by_email(db, email)
            if existing is not None and existing.id != user.id:
                raise ConflictError("email", email, detail="A user with this email already exists.")
            changes["email"] = email

        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()
        return user

    @staticmethod
    async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> None:
        user = await UserService.get_user(db, user_id)
        await db.delete(user)
        await db.flush()

    @staticmethod
    async def update_presence(
        db: AsyncSession, user_id: uuid.UUID, presence: Presence,
    ) -> User:
        """Record a presence change, keeping the prior value.

        Active states stamp ``last_active_at``; offline and away stamp
        ``last_seen``.
        """
        user = await UserService.get_user(db, user_id)
        now = datetime.now(timezone.utc)
        user.previous_presence = user.presence
        user.presence = presence
        if presence in ACTIVE_PRESENCE:
            user.last_active_at = now
        else:
            user.last_seen = now
        await db.flush()
        return user

    @staticmethod
    async def touch_last_message(db: AsyncSession, user_id: uuid.UUID) -> None:
        user = await UserService.get_user(db, user_id)
        user.last_message_at = datetime.now(timezone.utc)
        await db.flush()

    @staticmethod
    async def list_chat_users(db: AsyncSession, viewer_id: uuid.UUID) -> Sequence[User]:
        """Everyone but the viewer, most recent conversation first."""
        result = await db.execute(
            select(User)
            .where(User.id != viewer_id)
            .order_by(
                User.last_message_at.desc().nulls_last(),
                User.last_active_at.desc().nulls_last(),
            )
        )
        return result.scalars().all()

    @staticmethod
    async def transfer_user(
        db: AsyncSession, user_id: uuid.UUID, team_id: Optional[uuid.UUID],
    ) -> User:
        """Move *user_id* to *team_id* (or out of any team).

        Leaving a team the user leads clears its leader. A Team Leader joining
        a team without a leader becomes its leader.
        """
        user = await UserService.get_user(db, user_id)

        new_team: Optional[Team] = None
        if team_id is not None:
            new_team = await db.get(Team, team_id)
            if new_team is None:
                raise BadRequestException(
                    "New team not found.", errors={"team_id": ["Unknown team."]},
                )

        if user.team_id is not None and user.team_id != team_id:
            old_team = await db.get(Team, user.team_id)
            if old_team is not None and old_team.team_leader_id == user.id:
                old_team.team_leader_id = None

        if (
            new_team is not None
            and user.role == UserRole.team_leader
            and new_team.team_leader_id is None
        ):
            await UserService._release_leadership(db, user.id, keep=new_team.id)
            new_team.team_leader_id = user.id

        user.team_id = team_id
        await db.flush()
        logger.info(
            "user_transferred",
            user_id=str(user.id),
            team_id=str(team_id) if team_id else None,
        )
        return user

    # ─────────────────────────────────────────────────────────────────
    # Teams
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def list_teams(db: AsyncSession) -> Sequence[Team]:
        return (await db.execute(select(Team).order_by(Team.name))).scalars().all()

    @staticmethod
    async def get_team(db: AsyncSession, team_id: uuid.UUID) -> Team:
        team = await db.get(Team, team_id)
        if team is None:
            raise NotFoundException("Team", team_id)
        return team

    @staticmethod
    async def get_team_detail(db: AsyncSession, team_id: uuid.UUID) -> dict:
        """Team with its leader and members (the leader is not repeated)."""
        team = await UserService.get_team(db, team_id)
        leader = (
            await db.get(User, team.team_leader_id)
            if team.team_leader_id is not None else None
        )
        members = await UserService._team_members(db, team)
        return {
            "id": team.id,
            "name": team.name,
            "team_leader_id": team.team_leader_id,
            "created_at": team.created_at,
            "team_leader": UserBrief.model_validate(leader) if leader else None,
            "members": [UserBrief.model_validate(m) for m in members],
        }

    @staticmethod
    async def create_team(db: AsyncSession, data: TeamCreate) -> Team:
        await UserService._ensure_team_name_free(db, data.name)
        if data.team_leader_id is not None:
            await UserService._check_leader(db, data.team_leader_id)
        members = await UserService._load_users(db, data.member_ids)

        team = Team(name=data.name, team_leader_id=data.team_leader_id)
        db.add(team)
        await db.flush()

        if data.team_leader_id is not None:
            leader = await UserService.get_user(db, data.team_leader_id)
            leader.team_id = team.id
        for member in members:
            member.team_id = team.id
        await db.flush()

        logger.info("team_created", team_id=str(team.id), members=len(members))
        return team

    @staticmethod
    async def update_team(
        db: AsyncSession, team_id: uuid.UUID, data: TeamUpdate,
    ) -> Team:
        """Rename, change leader, and reconcile the roster.

        Users dropped from the roster, and a replaced leader, leave the team.
        """
        team = await UserService.get_team(db, team_id)
        changes = data.model_dump(exclude_unset=True)

        name = changes.get("name")
        if name and name.strip() != team.name:
            await UserService._ensure_team_name_free(db, name.strip())
            team.name = name.strip()

        if "team_leader_id" in changes and changes["team_leader_id"] != team.team_leader_id:
            new_leader_id = changes["team_leader_id"]
            if new_leader_id is not None:
                await UserService._check_leader(db, new_leader_id, team_id=team.id)
            if team.team_leader_id is not None:
                old_leader = await db.get(User, team.team_leader_id)
                if old_leader is not None and old_leader.team_id == team.id:
                    old_leader.team_id = None
            team.team_leader_id = new_leader_id
            if new_leader_id is not None:
                new_leader = await UserService.get_user(db, new_leader_id)
                new_leader.team_id = team.id

        if data.member_ids is not None:
            wanted = await UserService._load_users(db, data.member_ids)
            wanted_ids = {u.id for u in wanted}
            for current in await UserService._team_members(db, team):
                if current.id not in wanted_ids:
                    current.team_id = None
            for member in wanted:
                member.team_id = team.id

        await db.flush()
        return team

    @staticmethod
    async def delete_team(db: AsyncSession, team_id: uuid.UUID) -> None:
        team = await UserService.get_team(db, team_id)
        await db.execute(
            update(User).where(User.team_id == team.id).values(team_id=None)
        )
        await db.delete(team)
        await db.flush()
        logger.info("team_deleted", team_id=str(team_id))

    # ── helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _team_members(db: AsyncSession, team: Team) -> Sequence[User]:
        query = select(User).where(User.team_id == team.id).order_by(User.name)
        if team.team_leader_id is not None:
            query = query.where(User.id != team.team_leader_id)
        return (await db.execute(query)).scalars().all()

    @staticmethod
    async def _ensure_team_name_free(db: AsyncSession, name: str) -> None:
        existing = await db.execute(select(Team).where(Team.name == name))
        if existing.scalars().first() is not None:
            raise ConflictError("name", name)

    @staticmethod
    async def _check_leader(
        db: AsyncSession, user_id: uuid.UUID, team_id: Optional[uuid.UUID] = None,
    ) -> User:
        leader = await db.get(User, user_id)
        if leader is None:
            raise BadRequestException(
                "Team Leader not found.", errors={"team_leader_id": ["Unknown user."]},
            )
        if leader.role != UserRole.team_leader:
            raise BadRequestException(
                "Assigned user is not a Team Leader.",
                errors={"team_leader_id": [f"User has role '{leader.role.value}'."]},
            )
        query = select(Team).where(Team.team_leader_id == user_id)
        if team_id is not None:
            query = query.where(Team.id != team_id)
        if (await db.execute(query)).scalars().first() is not None:
            raise ConflictError(
                "team_leader_id",
                user_id,
                detail="This user is already a Team Leader for another team.",
            )
        return leader

    @staticmethod
    async def _load_users(db: AsyncSession, user_ids: list[uuid.UUID]) -> list[User]:
        if not user_ids:
            return []
        result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
        users = list(result.scalars().all())
        missing = set(user_ids) - {u.id for u in users}
        if missing:
            raise BadRequestException(
                "Unknown team members.",
                errors={"member_ids": [str(m) for m in sorted(missing, key=str)]},
            )
        return users

    @staticmethod
    async def _release_leadership(
        db: AsyncSession, user_id: uuid.UUID, keep: uuid.UUID,
    ) -> None:
        await db.execute(
            update(Team)
            .where(Team.team_leader_id == user_id, Team.id != keep)
            .values(team_leader_id=None)
        )
