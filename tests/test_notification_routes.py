"""Notification listing, read state, preferences, and manual send."""

import pytest_asyncio

from cpms.notifications.store import NotificationRecord

BASE = "/api/v1/notifications"


@pytest_asyncio.fixture
async def people(make_account):
    admin = await make_account(email="admin@university.edu")
    other = await make_account(email="other@university.edu", campus_id="campus-south")
    root = await make_account(email="root@university.edu", role="SuperAdmin")
    return admin, other, root


async def _seed(store, account_id, count, category="System"):
    return [
        await store.create(NotificationRecord(account_id, f"Title {i}", f"Message {i}", category))
        for i in range(count)
    ]


class TestListing:
    async def test_admin_sees_only_own(self, client, people, notification_store, headers_for):
        admin, other, _root = people
        await _seed(notification_store, admin.id, 2)
        await _seed(notification_store, other.id, 3)

        response = await client.get(BASE, headers=headers_for(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {n["account_id"] for n in data["notifications"]} == {admin.id}

    async def test_superadmin_sees_all(self, client, people, notification_store, headers_for):
        admin, other, root = people
        await _seed(notification_store, admin.id, 2)
        await _seed(notification_store, other.id, 3)

        response = await client.get(BASE, headers=headers_for(root))

        assert response.json()["total"] == 5

    async def test_most_recent_first_and_paginated(self, client, people, notification_store, headers_for):
        admin, _other, _root = people
        created = await _seed(notification_store, admin.id, 12)

        response = await client.get(BASE, params={"page": 2, "per_page": 5}, headers=headers_for(admin))

        data = response.json()
        assert data["total"] == 12
        assert data["pages"] == 3
        assert data["page"] == 2
        assert [n["id"] for n in data["notifications"]] == [c.id for c in reversed(created)][5:10]

    async def test_filters(self, client, people, notification_store, headers_for):
        admin, _other, _root = people
        await _seed(notification_store, admin.id, 2, category="Alerts")
        system = await _seed(notification_store, admin.id, 2, category="System")
        system[0].is_read = True

        alerts = await client.get(BASE, params={"category": "Alerts"}, headers=headers_for(admin))
        unread_system = await client.get(
            BASE, params={"category": "System", "is_read": "false"}, headers=headers_for(admin)
        )

        assert alerts.json()["total"] == 2
        assert [n["id"] for n in unread_system.json()["notifications"]] == [system[1].id]

    async def test_unknown_category_rejected(self, client, people, headers_for):
        admin, _other, _root = people
        response = await client.get(BASE, params={"category": "Marketing"}, headers=headers_for(admin))
        assert response.status_code == 422

    async def test_requires_auth(self, client):
        response = await client.get(BASE)
        assert response.status_code == 401


class TestUnread:
    async def test_unread_list_and_count(self, client, people, notification_store, headers_for):
        admin, _other, _root = people
        seeded = await _seed(notification_store, admin.id, 3)
        seeded[0].is_read = True

        listing = await client.get(f"{BASE}/unread", headers=headers_for(admin))
        count = await client.get(f"{BASE}/unread-count", headers=headers_for(admin))

        assert len(listing.json()) == 2
        assert count.json() == {"unread_count": 2}


class TestReadState:
    async def test_mark_own_as_read(self, client, people, notification_store, headers_for, fake_session):
        admin, _other, _root = people
        (notification,) = await _seed(notification_store, admin.id, 1)

        response = await client.patch(f"{BASE}/{notification.id}/read", headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert notification.is_read is True
        assert fake_session.commits == 1

    async def test_cannot_mark_someone_elses(self, client, people, notification_store, headers_for):
        admin, other, _root = people
        (notification,) = await _seed(notification_store, other.id, 1)

        response = await client.patch(f"{BASE}/{notification.id}/read", headers=headers_for(admin))

        assert response.status_code == 404
        assert notification.is_read is False

    async def test_superadmin_can_mark_any(self, client, people, notification_store, headers_for):
        _admin, other, root = people
        (notification,) = await _seed(notification_store, other.id, 1)

        response = await client.patch(f"{BASE}/{notification.id}/read", headers=headers_for(root))

        assert response.status_code == 200

    async def test_mark_all(self, client, people, notification_store, headers_for):
        admin, other, _root = people
        await _seed(notification_store, admin.id, 3)
        theirs = await _seed(notification_store, other.id, 1)

        response = await client.patch(f"{BASE}/read-all", headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json() == {"detail": "Marked 3 notifications as read"}
        assert theirs[0].is_read is False


class TestDelete:
    async def test_delete_own(self, client, people, notification_store, headers_for):
        admin, _other, _root = people
        (notification,) = await _seed(notification_store, admin.id, 1)

        response = await client.delete(f"{BASE}/{notification.id}", headers=headers_for(admin))

        assert response.status_code == 200
        assert notification_store.notifications == []

    async def test_delete_someone_elses(self, client, people, notification_store, headers_for):
        admin, other, _root = people
        (notification,) = await _seed(notification_store, other.id, 1)

        response = await client.delete(f"{BASE}/{notification.id}", headers=headers_for(admin))

        assert response.status_code == 404
        assert len(notification_store.notifications) == 1

    async def test_delete_missing(self, client, people, headers_for):
        admin, _other, _root = people
        response = await client.delete(f"{BASE}/999", headers=headers_for(admin))
        assert response.status_code == 404


class TestSettings:
    async def test_first_read_creates_all_enabled(self, client, people, preference_store, headers_for):
        admin, _other, _root = people

        response = await client.get(f"{BASE}/settings", headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json() == {"system": True, "partnership": True, "alerts": True}
        assert admin.id in preference_store.preferences

    async def test_partial_update(self, client, people, headers_for):
        admin, _other, _root = people

        response = await client.put(f"{BASE}/settings", json={"alerts": False}, headers=headers_for(admin))
        again = await client.get(f"{BASE}/settings", headers=headers_for(admin))

        assert response.json() == {"system": True, "partnership": True, "alerts": False}
        assert again.json() == {"system": True, "partnership": True, "alerts": False}


class TestSend:
    async def test_broadcast(self, client, people, preference_store, notification_store, headers_for):
        admin, other, root = people
        await preference_store.upsert(other.id, {"alerts": False})

        response = await client.post(
            BASE,
            json={"title": "Maintenance", "message": "Tonight at 10pm", "category": "Alerts"},
            headers=headers_for(root),
        )

        assert response.status_code == 201
        assert response.json() == {"recipients": 3, "delivered": 2}
        assert {n.account_id for n in notification_store.notifications} == {admin.id, root.id}

    async def test_targeted(self, client, people, notification_store, headers_for):
        admin, _other, root = people

        response = await client.post(
            BASE,
            json={"title": "Hello", "message": "Just you", "category": "System", "account_id": admin.id},
            headers=headers_for(root),
        )

        assert response.json() == {"recipients": 1, "delivered": 1}
        assert [n.account_id for n in notification_store.notifications] == [admin.id]

    async def test_admin_cannot_send(self, client, people, headers_for):
        admin, _other, _root = people
        response = await client.post(
            BASE,
            json={"title": "Hello", "message": "Everyone", "category": "System"},
            headers=headers_for(admin),
        )
        assert response.status_code == 403

    async def test_missing_fields_rejected(self, client, people, headers_for):
        _admin, _other, root = people
        response = await client.post(BASE, json={"title": "Hello", "category": "System"}, headers=headers_for(root))
        assert response.status_code == 422
