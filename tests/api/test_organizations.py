"""Organization, workspace and facility endpoints."""

from postgrest.exceptions import APIError


def test_super_admin_creates_organization(client, catalog, make_user, login):
    login(make_user("super_admin"))

    response = client.post("/api/v1/organizations", json={"name": "Acme Health", "max_facilities": 2})

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Acme Health"
    assert body["max_facilities"] == 2


def test_organization_admin_cannot_create_organization(client, catalog, org_tree, make_user, login):
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.post("/api/v1/organizations", json={"name": "Other"})

    assert response.status_code == 403


def test_organization_admin_lists_only_own_organization(client, db, catalog, org_tree, make_user, login):
    db.seed("organizations", {"name": "Someone Else", "is_active": True})
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.get("/api/v1/organizations")

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [org_tree["organization_id"]]


def test_delete_organization_with_workspaces_is_rejected(client, catalog, org_tree, make_user, login):
    login(make_user("super_admin"))

    response = client.delete(f"/api/v1/organizations/{org_tree['organization_id']}")

    assert response.status_code == 409
    assert "Remove workspaces first" in response.json()["detail"]


def test_facility_limit_reached_rejects_creation(client, db, catalog, org_tree, make_user, login):
    db.table("organizations").update({"max_facilities": 2}).eq("id", org_tree["organization_id"]).execute()
    db.seed("facilities", {"name": "Dental Facility", "workspace_id": org_tree["workspace_id"]})
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    limit = client.get(f"/api/v1/organizations/{org_tree['organization_id']}/limits/facilities")
    response = client.post(
        "/api/v1/facilities",
        json={"name": "Third Facility", "workspace_id": org_tree["workspace_id"]},
    )

    assert limit.json()["allowed"] is False
    assert response.status_code == 409
    assert "facilities limit (2)" in response.json()["detail"]
    assert len(db.rows("facilities")) == 2


def test_duplicate_facility_name_in_workspace(client, catalog, org_tree, make_user, login):
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.post(
        "/api/v1/facilities",
        json={"name": "general hospital", "workspace_id": org_tree["workspace_id"]},
    )

    assert response.status_code == 400


def test_general_admin_cannot_create_workspace(client, catalog, org_tree, make_user, login):
    login(make_user("general_admin", workspace_id=org_tree["workspace_id"], organization_id=org_tree["organization_id"]))

    response = client.post(
        "/api/v1/workspaces",
        json={"name": "South", "organization_id": org_tree["organization_id"]},
    )

    assert response.status_code == 403


def test_backend_rejection_is_returned_verbatim(client, db, catalog, make_user, login):
    login(make_user("super_admin"))
    db.errors[("organizations", "insert")] = APIError({
        "message": 'duplicate key value violates unique constraint "organizations_name_key"',
        "code": "23505",
        "hint": None,
        "details": None,
    })

    response = client.post("/api/v1/organizations", json={"name": "Acme Health"})

    assert response.status_code == 400
    assert "organizations_name_key" in response.json()["detail"]
