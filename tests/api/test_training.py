"""Training events: registration, capacity, attendance and cancellation."""

import pytest


def _member(org_tree):
    return {
        "organization_id": org_tree["organization_id"],
        "workspace_id": org_tree["workspace_id"],
        "facility_id": org_tree["facility_id"],
        "department_id": org_tree["department_id"],
    }


def _event(org_tree, **overrides):
    event = {
        "title": "Fire Safety Refresher",
        "organization_id": org_tree["organization_id"],
        "start_datetime": "2026-11-02T09:00:00Z",
        "end_datetime": "2026-11-02T11:00:00Z",
        "status": "published",
        "max_participants": 2,
    }
    event.update(overrides)
    return event


@pytest.fixture
def admin(org_tree, make_user):
    return make_user("organization_admin", organization_id=org_tree["organization_id"])


@pytest.fixture
def event_id(client, catalog, org_tree, admin, login):
    login(admin)
    response = client.post("/api/v1/training/events", json=_event(org_tree))
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_end_before_start_is_rejected(client, catalog, org_tree, admin, login):
    login(admin)

    response = client.post("/api/v1/training/events", json=_event(
        org_tree, end_datetime="2026-11-02T08:00:00Z"
    ))

    assert response.status_code == 422


def test_duplicate_title_in_organization(client, catalog, org_tree, admin, login, event_id):
    login(admin)

    response = client.post("/api/v1/training/events", json=_event(org_tree))

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


def test_staff_cannot_create_events(client, catalog, org_tree, make_user, login):
    login(make_user("staff", **_member(org_tree)))

    response = client.post("/api/v1/training/events", json=_event(org_tree))

    assert response.status_code == 403


def test_registration_capacity_and_duplicates(client, db, catalog, org_tree, make_user, login, event_id):
    first, second, third = (make_user("staff", **_member(org_tree)) for _ in range(3))
    url = f"/api/v1/training/events/{event_id}/registrations"

    login(first)
    assert client.post(url).status_code == 201
    duplicate = client.post(url)
    login(second)
    assert client.post(url).status_code == 201
    login(third)
    full = client.post(url)

    assert duplicate.status_code == 400
    assert duplicate.json()["detail"] == "Already registered for this event"
    assert full.status_code == 409
    assert full.json()["detail"] == "This event has reached its maximum capacity"

    confirmations = [n for n in db.rows("notifications") if n["title"] == "Registration Confirmed"]
    assert sorted(n["user_id"] for n in confirmations) == sorted([first, second])


def test_draft_event_does_not_accept_registrations(client, catalog, org_tree, admin, make_user, login):
    login(admin)
    draft = client.post("/api/v1/training/events", json=_event(org_tree, title="Draft Session", status="draft")).json()
    login(make_user("staff", **_member(org_tree)))

    response = client.post(f"/api/v1/training/events/{draft['id']}/registrations")

    assert response.status_code == 400


def test_event_in_other_organization_is_hidden(client, db, catalog, org_tree, make_user, login, event_id):
    other_org = db.seed("organizations", {"name": "Elsewhere", "is_active": True})[0]
    login(make_user("staff", organization_id=other_org["id"]))

    assert client.get(f"/api/v1/training/events/{event_id}").status_code == 403
    assert client.get("/api/v1/training/events").json() == []


def test_attendance_checklist(client, catalog, org_tree, admin, make_user, login, event_id):
    attendees = [make_user("staff", **_member(org_tree)) for _ in range(2)]
    for user_id in attendees:
        login(user_id)
        client.post(f"/api/v1/training/events/{event_id}/registrations")
    login(admin)
    base = f"/api/v1/training/events/{event_id}/attendance"

    summary = client.get(base).json()
    assert (summary["checked_in"], summary["total"], summary["percentage"]) == (0, 2, 0)

    summary = client.put(f"{base}/{attendees[0]}", json={"checked_in": True}).json()
    assert (summary["checked_in"], summary["percentage"]) == (1, 50)
    labels = {a["user_id"]: a["label"] for a in summary["attendees"]}
    assert labels == {attendees[0]: "Checked In (Manual)", attendees[1]: "Not Checked In"}

    bulk = client.post(f"{base}/check-in-all")
    assert bulk.json() == {"checked_in": 1}
    assert client.get(base).json()["percentage"] == 100

    again = client.post(f"{base}/check-in-all")
    assert again.status_code == 400
    assert again.json()["detail"] == "No pending attendees to check in"


def test_staff_cannot_view_attendance(client, catalog, org_tree, make_user, login, event_id):
    login(make_user("staff", **_member(org_tree)))

    response = client.get(f"/api/v1/training/events/{event_id}/attendance")

    assert response.status_code == 403


def test_cancel_notifies_registered_and_deletes_event(client, db, catalog, org_tree, admin, make_user, login, event_id):
    attendees = [make_user("staff", **_member(org_tree)) for _ in range(2)]
    for user_id in attendees:
        login(user_id)
        client.post(f"/api/v1/training/events/{event_id}/registrations")
    login(admin)

    response = client.post(f"/api/v1/training/events/{event_id}/cancel")

    assert response.status_code == 200, response.text
    assert response.json()["notified"] == 2
    cancelled = [n for n in db.rows("notifications") if n["title"] == "Event Cancelled: Fire Safety Refresher"]
    assert sorted(n["user_id"] for n in cancelled) == sorted(attendees)
    assert all(n["type"] == "training" and n["related_id"] == event_id for n in cancelled)
    assert client.get(f"/api/v1/training/events/{event_id}").status_code == 404


def test_staff_cannot_cancel(client, catalog, org_tree, make_user, login, event_id):
    login(make_user("staff", **_member(org_tree)))

    response = client.post(f"/api/v1/training/events/{event_id}/cancel")

    assert response.status_code == 403


def test_unregister_frees_a_seat(client, catalog, org_tree, make_user, login, event_id):
    login(make_user("staff", **_member(org_tree)))
    url = f"/api/v1/training/events/{event_id}/registrations"
    client.post(url)

    assert client.delete(f"{url}/me").status_code == 204
    assert client.get(url).json() == []
    assert client.delete(f"{url}/me").status_code == 404
