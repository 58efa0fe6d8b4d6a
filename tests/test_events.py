"""Calendar events test suite — owner scoping, alerts, HTTP endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from crm.alerts.service import AlertService
from crm.common.constants import AlertType, UserRole
from crm.common.exceptions import BadRequestException, NotFoundException
from crm.events.schemas import EventCreate, EventUpdate
from crm.events.service import EventService
from tests.conftest import auth_headers_for, make_user

MARCH_2 = datetime(2026, 3, 2, 4, 30, tzinfo=timezone.utc)
MARCH_5 = datetime(2026, 3, 5, 4, 30, tzinfo=timezone.utc)


class TestEventService:

    async def test_create_stamps_owner_and_alerts(self, db, notifier):
        owner = await make_user(db, role=UserRole.team_leader)
        account_id = uuid.uuid4()

        event = await EventService.create_event(
            db, notifier, owner,
            EventCreate(title="Client review", start_at=MARCH_2, account_id=account_id),
        )

        assert event.user_id == owner.id
        assert event.role == UserRole.team_leader
        assert event.account_id == account_id
        (alert,) = await AlertService.list_alerts(db, owner.id)
        assert alert.message == "Event created: Client review"
        assert alert.type == AlertType.event
        assert alert.ref_id == event.id

    async def test_list_is_own_events_by_start(self, db, notifier):
        owner = await make_user(db)
        other = await make_user(db)
        await EventService.create_event(
            db, notifier, owner, EventCreate(title="Later", start_at=MARCH_5),
        )
        await EventService.create_event(
            db, notifier, owner, EventCreate(title="Sooner", start_at=MARCH_2),
        )
        await EventService.create_event(
            db, notifier, other, EventCreate(title="Not mine", start_at=MARCH_2),
        )

        events = await EventService.list_events(db, owner.id)
        assert [e.title for e in events] == ["Sooner", "Later"]

    async def test_update_clears_omitted_links(self, db, notifier):
        owner = await make_user(db)
        event = await EventService.create_event(
            db, notifier, owner,
            EventCreate(title="Shoot", start_at=MARCH_2, service_id=uuid.uuid4()),
        )

        updated = await EventService.update_event(
            db, notifier, owner, event.id, EventUpdate(title="Shoot day"),
        )

        assert updated.title == "Shoot day"
        assert updated.service_id is None
        messages = [a.message for a in await AlertService.list_alerts(db, owner.id)]
        assert "Event updated: Shoot day" in messages

    async def test_update_rejects_end_before_start(self, db, notifier):
        owner = await make_user(db)
        event = await EventService.create_event(
            db, notifier, owner, EventCreate(title="Call", start_at=MARCH_5),
        )
        with pytest.raises(BadRequestException):
            await EventService.update_event(
                db, notifier, owner, event.id, EventUpdate(end_at=MARCH_2),
            )

    async def test_other_users_event_is_not_found(self, db, notifier):
        owner = await make_user(db)
        intruder = await make_user(db)
        event = await EventService.create_event(
            db, notifier, owner, EventCreate(title="Private", start_at=MARCH_2),
        )

        with pytest.raises(NotFoundException):
            await EventService.update_event(
                db, notifier, intruder, event.id, EventUpdate(title="Mine now"),
            )
        with pytest.raises(NotFoundException):
            await EventService.delete_event(db, notifier, intruder, event.id)

    async def test_delete_alerts_owner(self, db, notifier):
        owner = await make_user(db)
        event = await EventService.create_event(
            db, notifier, owner, EventCreate(title="Standup", start_at=MARCH_2),
        )

        await EventService.delete_event(db, notifier, owner, event.id)

        assert await EventService.list_events(db, owner.id) == []
        messages = [a.message for a in await AlertService.list_alerts(db, owner.id)]
        assert "Event deleted" in messages

    def test_end_before_start_is_invalid(self):
        with pytest.raises(ValueError):
            EventCreate(title="Backwards", start_at=MARCH_5, end_at=MARCH_2)


class TestEventAPI:

    async def test_crud(self, client, db):
        owner = await make_user(db)
        await db.commit()
        headers = auth_headers_for(owner)

        resp = await client.post(
            "/api/v1/events",
            json={"title": "Launch", "start_at": MARCH_2.isoformat(), "all_day": True},
            headers=headers,
        )
        assert resp.status_code == 201
        event_id = resp.json()["id"]
        assert resp.json()["all_day"] is True

        resp = await client.get("/api/v1/events", headers=headers)
        assert [e["title"] for e in resp.json()] == ["Launch"]

        resp = await client.put(
            f"/api/v1/events/{event_id}", json={"title": "Launch v2"}, headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Launch v2"

        resp = await client.delete(f"/api/v1/events/{event_id}", headers=headers)
        assert resp.json() == {"message": "Event deleted"}

        resp = await client.delete(f"/api/v1/events/{event_id}", headers=headers)
        assert resp.status_code == 404

    async def test_invalid_range_is_400(self, client, db):
        owner = await make_user(db)
        await db.commit()

        resp = await client.post(
            "/api/v1/events",
            json={
                "title": "Backwards",
                "start_at": MARCH_5.isoformat(),
                "end_at": MARCH_2.isoformat(),
            },
            headers=auth_headers_for(owner),
        )
        assert resp.status_code == 400

    async def test_requires_auth(self, client):
        resp = await client.get("/api/v1/events")
        assert resp.status_code == 401
