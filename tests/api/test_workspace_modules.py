"""Workspace module toggles and their effect on resolved access."""

from app.core.realtime import change_feed


def test_disabling_module_with_enabled_dependents_returns_409(client, db, catalog, org_tree, make_user, login):
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.put(
        f"/api/v1/workspaces/{org_tree['workspace_id']}/modules/{catalog['notifications']}",
        json={"is_enabled": False},
    )

    assert response.status_code == 409
    body = response.json()
    assert sorted(body["dependents"]) == ["Broadcasts", "Meeting & Training"]
    assert "Disable the dependent modules first" in body["detail"]
    assert db.rows("workspace_module_access") == []


def test_disable_dependents_first_then_target(client, db, catalog, org_tree, make_user, login):
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))
    base = f"/api/v1/workspaces/{org_tree['workspace_id']}/modules"

    for key in ("training", "emails", "notifications"):
        response = client.put(f"{base}/{catalog[key]}", json={"is_enabled": False})
        assert response.status_code == 200, response.text
        assert response.json()["state"] == "workspace_restricted"

    states = {m["key"]: m["state"] for m in client.get(base).json()}
    assert states["notifications"] == "workspace_restricted"
    assert states["core"] == "active"

    # Re-enabling updates the existing override row
    response = client.put(f"{base}/{catalog['notifications']}", json={"is_enabled": True})
    assert response.json()["enabled"] is True
    assert len(db.rows("workspace_module_access")) == 3


def test_system_disabled_module_cannot_be_enabled(client, db, catalog, org_tree, make_user, login):
    db.table("module_definitions").update({"is_active": False}).eq("id", catalog["analytics"]).execute()
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.put(
        f"/api/v1/workspaces/{org_tree['workspace_id']}/modules/{catalog['analytics']}",
        json={"is_enabled": True},
    )

    assert response.status_code == 400
    assert "disabled system-wide" in response.json()["detail"]


def test_restricted_module_disappears_from_member_access(client, db, catalog, org_tree, make_user, login):
    staff_id = make_user(
        "staff",
        organization_id=org_tree["organization_id"],
        workspace_id=org_tree["workspace_id"],
        facility_id=org_tree["facility_id"],
        department_id=org_tree["department_id"],
    )
    login(staff_id)
    before = {m["module_key"] for m in client.get("/api/v1/modules/me").json()}

    db.seed("workspace_module_access", {
        "workspace_id": org_tree["workspace_id"],
        "module_id": catalog["messaging"],
        "is_enabled": False,
    })
    # The seed bypasses services, so drop cached access by hand
    change_feed.notify("workspace_module_access")
    after = {m["module_key"] for m in client.get("/api/v1/modules/me").json()}

    assert "messaging" in before
    assert "messaging" not in after
    assert "core" in after
