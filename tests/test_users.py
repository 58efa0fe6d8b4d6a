"""Users and teams test suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from crm.auth.security import verify_password
from crm.common.constants import Presence, UserRole
from crm.common.exceptions import BadRequestException, ConflictError, NotFoundException
from crm.users.schemas import TeamCreate, TeamUpdate, UserCreate, UserUpdate
from crm.users.service import UserService
from tests.conftest import auth_headers_for, make_user


class TestUserService:

    async def test_create_normalises_email_and_hashes(self, db):
        user = await UserService.create_user(
            db,
            UserCreate(name="  Kiran ", email="Kiran@Example.com", password="s3cret-pass"),
        )
        assert user.email == "kiran@example.com"
        assert user.name == "Kiran"
        assert verify_password("s3cret-pass", user.password_hash)

    async def test_duplicate_email(self, db):
        await make_user(db, email="kiran@example.com")
        with pytest.raises(ConflictError):
            await UserService.create_user(
                db, UserCreate(name="Kiran", email="KIRAN@example.com", password="s3cret-pass"),
            )

    async def test_update_rehashes_password(self, db):
        user = await make_user(db, password="old-password")
        await UserService.update_user(db, user.id, UserUpdate(password="new-password"))
        assert verify_password("new-password", user.password_hash)
        assert not verify_password("old-password", user.password_hash)

    async def test_update_to_taken_email(self, db):
        await make_user(db, email="taken@example.com")
        user = await make_user(db)
        with pytest.raises(ConflictError):
            await UserService.update_user(db, user.id, UserUpdate(email="taken@example.com"))

    async def test_first_by_role_is_earliest_created(self, db):
        await make_user(
            db, name="Later", role=UserRole.admin,
            created_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
        )
        await make_user(
            db, name="First", role=UserRole.admin,
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )
        found = await UserService.find_first_by_role(db, UserRole.admin)
        assert found.name == "First"
        assert await UserService.find_first_by_role(db, UserRole.superadmin) is None

    async def test_team_leader_lookup(self, db):
        team = await UserService.create_team(db, TeamCreate(name="Design"))
        await make_user(db, name="Member", team_id=team.id)
        await make_user(db, name="Lead", role=UserRole.team_leader, team_id=team.id)

        leader = await UserService.find_team_leader(db, team.id)
        assert leader.name == "Lead"
        assert await UserService.find_team_leader(db, None) is None

    async def test_duplicate_team_name(self, db):
        await UserService.create_team(db, TeamCreate(name="Design"))
        with pytest.raises(ConflictError):
            await UserService.create_team(db, TeamCreate(name="Design"))


class TestTeamService:

    async def test_create_assigns_leader_and_members(self, db):
        leader = await make_user(db, name="Lead", role=UserRole.team_leader)
        a = await make_user(db, name="Asha")
        b = await make_user(db, name="Bala")

        team = await UserService.create_team(
            db, TeamCreate(name="Design", team_leader_id=leader.id, member_ids=[a.id, b.id]),
        )

        assert leader.team_id == team.id
        assert a.team_id == team.id and b.team_id == team.id
        detail = await UserService.get_team_detail(db, team.id)
        assert detail["team_leader"].id == leader.id
        assert [m.name for m in detail["members"]] == ["Asha", "Bala"]

    async def test_leader_must_hold_team_leader_role(self, db):
        employee = await make_user(db)
        with pytest.raises(BadRequestException):
            await UserService.create_team(
                db, TeamCreate(name="Design", team_leader_id=employee.id),
            )

    async def test_leader_cannot_lead_two_teams(self, db):
        leader = await make_user(db, role=UserRole.team_leader)
        await UserService.create_team(db, TeamCreate(name="Design", team_leader_id=leader.id))
        with pytest.raises(ConflictError):
            await UserService.create_team(
                db, TeamCreate(name="Growth", team_leader_id=leader.id),
            )

    async def test_unknown_member_is_rejected(self, db):
        with pytest.raises(BadRequestException):
            await UserService.create_team(
                db, TeamCreate(name="Design", member_ids=[uuid.uuid4()]),
            )

    async def test_update_reconciles_roster_and_leader(self, db):
        old_lead = await make_user(db, name="Old Lead", role=UserRole.team_leader)
        new_lead = await make_user(db, name="New Lead", role=UserRole.team_leader)
        stays = await make_user(db, name="Stays")
        leaves = await make_user(db, name="Leaves")
        joins = await make_user(db, name="Joins")
        team = await UserService.create_team(
            db,
            TeamCreate(
                name="Design", team_leader_id=old_lead.id, member_ids=[stays.id, leaves.id],
            ),
        )

        await UserService.update_team(
            db, team.id,
            TeamUpdate(
                name="Brand Design",
                team_leader_id=new_lead.id,
                member_ids=[stays.id, joins.id],
            ),
        )

        assert team.name == "Brand Design"
        assert team.team_leader_id == new_lead.id
        assert old_lead.team_id is None
        assert leaves.team_id is None
        assert new_lead.team_id == team.id
        assert stays.team_id == team.id and joins.team_id == team.id
        assert (await UserService.find_team_leader(db, team.id)).id == new_lead.id

    async def test_update_without_roster_keeps_members(self, db):
        member = await make_user(db)
        team = await UserService.create_team(
            db, TeamCreate(name="Design", member_ids=[member.id]),
        )
        await UserService.update_team(db, team.id, TeamUpdate(name="Studio"))
        assert member.team_id == team.id

    async def test_delete_releases_everyone(self, db):
        leader = await make_user(db, role=UserRole.team_leader)
        member = await make_user(db)
        team = await UserService.create_team(
            db, TeamCreate(name="Design", team_leader_id=leader.id, member_ids=[member.id]),
        )

        await UserService.delete_team(db, team.id)

        assert (await UserService.get_user(db, leader.id)).team_id is None
        assert (await UserService.get_user(db, member.id)).team_id is None
        with pytest.raises(NotFoundException):
            await UserService.get_team(db, team.id)


class TestTransferAndPresence:

    async def test_transfer_moves_member(self, db):
        source = await UserService.create_team(db, TeamCreate(name="Design"))
        target = await UserService.create_team(db, TeamCreate(name="Growth"))
        user = await make_user(db, team_id=source.id)

        await UserService.transfer_user(db, user.id, target.id)
        assert user.team_id == target.id

        await UserService.transfer_user(db, user.id, None)
        assert user.team_id is None

    async def test_transfer_hands_over_leadership(self, db):
        leader = await make_user(db, role=UserRole.team_leader)
        source = await UserService.create_team(
            db, TeamCreate(name="Design", team_leader_id=leader.id),
        )
        target = await UserService.create_team(db, TeamCreate(name="Growth"))

        await UserService.transfer_user(db, leader.id, target.id)

        assert source.team_leader_id is None
        assert target.team_leader_id == leader.id
        assert leader.team_id == target.id

    async def test_transfer_to_unknown_team(self, db):
        user = await make_user(db)
        with pytest.raises(BadRequestException):
            await UserService.transfer_user(db, user.id, uuid.uuid4())

    async def test_presence_stamps(self, db):
        user = await make_user(db)

        away = await UserService.update_presence(db, user.id, Presence.away)
        assert away.last_seen is not None
        assert away.previous_presence == Presence.offline

        seen = away.last_seen
        online = await UserService.update_presence(db, user.id, Presence.online)
        assert online.previous_presence == Presence.away
        assert online.last_seen == seen

    async def test_chat_list_orders_by_last_message(self, db):
        viewer = await make_user(db, name="Viewer")
        quiet = await make_user(db, name="Quiet")
        chatty = await make_user(db, name="Chatty")
        quiet.last_active_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
        chatty.last_message_at = datetime(2026, 2, 1, tzinfo=timezone.utc)
        await db.flush()

        users = await UserService.list_chat_users(db, viewer.id)
        assert [u.name for u in users] == ["Chatty", "Quiet"]


class TestUserAPI:

    async def test_admin_creates_user(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()

        resp = await client.post(
            "/api/v1/users",
            json={"name": "Nia", "email": "nia@example.com", "password": "s3cret-pass"},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["role"] == "Employee"
        assert body["presence"] == "offline"
        assert "password" not in body

    async def test_employee_cannot_create_user(self, client, db):
        employee = await make_user(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/users",
            json={"name": "Nia", "email": "nia@example.com", "password": "s3cret-pass"},
            headers=auth_headers_for(employee),
        )
        assert resp.status_code == 403

    async def test_eod_listing(self, client, db):
        admin = await make_user(db, name="Admin", role=UserRole.admin)
        await make_user(db, name="Worker")
        await make_user(db, name="Customer", role=UserRole.client)
        await db.commit()

        resp = await client.get(
            "/api/v1/users", params={"type": "eod"}, headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200
        names = {u["name"] for u in resp.json()}
        assert "Worker" in names
        assert "Customer" not in names

    async def test_update_and_delete(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        user = await make_user(db, name="Old Name")
        await db.commit()
        headers = auth_headers_for(admin)

        resp = await client.put(
            f"/api/v1/users/{user.id}", json={"name": "New Name"}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["name"] == "New Name"

        resp = await client.delete(f"/api/v1/users/{user.id}", headers=headers)
        assert resp.status_code == 200

        resp = await client.get(f"/api/v1/users/{user.id}", headers=headers)
        assert resp.status_code == 404

    async def test_teams(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        await db.commit()
        headers = auth_headers_for(admin)

        resp = await client.post("/api/v1/teams", json={"name": "Growth"}, headers=headers)
        assert resp.status_code == 201

        resp = await client.post("/api/v1/teams", json={"name": "Growth"}, headers=headers)
        assert resp.status_code == 409

        resp = await client.get("/api/v1/teams", headers=headers)
        assert [t["name"] for t in resp.json()] == ["Growth"]

    async def test_team_detail_update_and_delete(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        leader = await make_user(db, name="Lead", role=UserRole.team_leader)
        member = await make_user(db, name="Member")
        await db.commit()
        headers = auth_headers_for(admin)

        resp = await client.post(
            "/api/v1/teams",
            json={
                "name": "Growth",
                "team_leader_id": str(leader.id),
                "member_ids": [str(member.id)],
            },
            headers=headers,
        )
        team_id = resp.json()["id"]

        resp = await client.get(f"/api/v1/teams/{team_id}", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["team_leader"]["name"] == "Lead"
        assert [m["name"] for m in resp.json()["members"]] == ["Member"]

        resp = await client.put(
            f"/api/v1/teams/{team_id}", json={"member_ids": []}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["members"] == []

        resp = await client.delete(f"/api/v1/teams/{team_id}", headers=headers)
        assert resp.json() == {"message": "Team deleted successfully"}

        resp = await client.get(f"/api/v1/teams/{team_id}", headers=headers)
        assert resp.status_code == 404

    async def test_non_leader_as_team_leader_is_400(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        employee = await make_user(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/teams",
            json={"name": "Growth", "team_leader_id": str(employee.id)},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Assigned user is not a Team Leader."

    async def test_transfer(self, client, db):
        admin = await make_user(db, role=UserRole.admin)
        user = await make_user(db)
        team = await UserService.create_team(db, TeamCreate(name="Growth"))
        await db.commit()

        resp = await client.put(
            f"/api/v1/users/{user.id}/transfer",
            json={"team_id": str(team.id)},
            headers=auth_headers_for(admin),
        )
        assert resp.status_code == 200
        assert resp.json()["team_id"] == str(team.id)

    async def test_presence_update_broadcasts(self, client, db, notifier):
        user = await make_user(db)
        await db.commit()

        resp = await client.put(
            "/api/v1/users/me/presence",
            json={"presence": "in_meeting"},
            headers=auth_headers_for(user),
        )
        assert resp.status_code == 200
        assert resp.json()["presence"] == "in_meeting"
        assert resp.json()["previous_presence"] == "offline"

        (to, _, payload), = notifier.events("presence_updated")
        assert to is None
        assert payload["user_id"] == str(user.id)
        assert payload["presence"] == "in_meeting"

    async def test_invalid_presence_is_400(self, client, db):
        user = await make_user(db)
        await db.commit()

        resp = await client.put(
            "/api/v1/users/me/presence",
            json={"presence": "sleeping"},
            headers=auth_headers_for(user),
        )
        assert resp.status_code == 400

    async def test_chat_list_excludes_caller(self, client, db):
        viewer = await make_user(db, name="Viewer")
        await make_user(db, name="Other")
        await db.commit()

        resp = await client.get("/api/v1/users/chat-list", headers=auth_headers_for(viewer))
        assert resp.status_code == 200
        assert [u["name"] for u in resp.json()] == ["Other"]
