"""In-app notifications and broadcasts."""

from app.core.scope import AppRole, Scope, ScopeType
from app.modules.notifications.schemas import BroadcastRequest
from app.modules.notifications.service import NotificationService


def _member(org_tree):
    return {
        "organization_id": org_tree["organization_id"],
        "workspace_id": org_tree["workspace_id"],
        "facility_id": org_tree["facility_id"],
        "department_id": org_tree["department_id"],
    }


def test_broadcast_to_one_role(client, db, catalog, org_tree, make_user, login):
    nurses = [make_user("staff", **_member(org_tree)) for _ in range(2)]
    make_user("department_head", **_member(org_tree))
    login(make_user("super_admin"))

    response = client.post("/api/v1/notifications/broadcast", json={
        "title": "Ward Closure",
        "message": "Ward 3 is closed for maintenance on Friday.",
        "target_role": "staff",
    })

    assert response.status_code == 200, response.text
    assert response.json() == {"count": 2}
    sent = db.rows("notifications")
    assert sorted(n["user_id"] for n in sent) == sorted(nurses)
    assert all(n["type"] == "system_announcement" and n["is_read"] is False for n in sent)


def test_broadcast_to_everyone(client, db, catalog, org_tree, make_user, login):
    make_user("staff", **_member(org_tree))
    login(make_user("super_admin"))

    response = client.post("/api/v1/notifications/broadcast", json={"title": "Hello", "message": "Welcome aboard"})

    # Every profile, the sender included
    assert response.json() == {"count": 2}


def test_broadcast_requires_broadcasts_module(client, catalog, org_tree, make_user, login):
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.post("/api/v1/notifications/broadcast", json={"title": "Hello", "message": "Hi"})

    assert response.status_code == 403


def test_broadcast_stays_inside_scope(db, org_tree, make_user):
    inside = make_user("staff", **_member(org_tree))
    make_user("staff", organization_id="another-org")
    service = NotificationService(db)
    scope = Scope(type=ScopeType.ORGANIZATION, organization_id=org_tree["organization_id"])

    result = service.broadcast(BroadcastRequest(title="Drill", message="Fire drill at noon", target_role=AppRole.STAFF), scope)

    assert result.count == 1
    assert [n["user_id"] for n in db.rows("notifications")] == [inside]
    assert service.broadcast(BroadcastRequest(title="Drill", message="Again"), None).count == 0


def test_read_state_and_stats(client, db, catalog, org_tree, make_user, login):
    nurse = make_user("staff", **_member(org_tree))
    admin = make_user("super_admin")
    login(admin)
    client.post("/api/v1/notifications/broadcast", json={"title": "One", "message": "First", "target_role": "staff"})
    client.post("/api/v1/notifications/broadcast", json={"title": "Two", "message": "Second", "target_role": "staff"})

    login(nurse)
    mine = client.get("/api/v1/notifications").json()
    assert len(mine) == 2
    read = client.patch(f"/api/v1/notifications/{mine[0]['id']}/read")
    assert read.json()["is_read"] is True
    assert len(client.get("/api/v1/notifications", params={"unread_only": True}).json()) == 1

    login(admin)
    assert client.patch(f"/api/v1/notifications/{mine[1]['id']}/read").status_code == 404
    stats = client.get("/api/v1/notifications/stats").json()
    assert stats == {"total": 2, "unread": 1, "today_sent": 2}

    login(nurse)
    assert client.post("/api/v1/notifications/read-all").json() == {"updated": 1}
