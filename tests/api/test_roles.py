"""Custom roles, built-in role grants and per-user module overrides."""

import pytest


@pytest.fixture
def general_admin(org_tree, make_user, login):
    return login(make_user(
        "general_admin",
        organization_id=org_tree["organization_id"],
        workspace_id=org_tree["workspace_id"],
    ))


def _grant(module_id, **caps):
    return {"module_id": module_id, "can_view": True, **caps}


def _modules_of(client, user_id):
    return {m["module_key"]: m for m in client.get(f"/api/v1/modules/users/{user_id}").json()}


def test_custom_role_grants_follow_bulk_replace(client, catalog, org_tree, general_admin, make_user):
    created = client.post("/api/v1/roles/custom", json={
        "name": "Shift Coordinator",
        "organization_id": org_tree["organization_id"],
        "permissions": [_grant(catalog["messaging"], can_edit=True)],
    })
    assert created.status_code == 201, created.text
    role_id = created.json()["id"]
    holder = make_user(
        "custom",
        custom_role_id=role_id,
        organization_id=org_tree["organization_id"],
        workspace_id=org_tree["workspace_id"],
    )

    before = _modules_of(client, holder)
    assert before["messaging"]["can_edit"] is True

    replaced = client.put(f"/api/v1/roles/custom/{role_id}/modules", json={
        "permissions": [_grant(catalog["training"]), _grant(catalog["training"], can_edit=True)],
    })
    assert replaced.json()["assigned_count"] == 1

    after = _modules_of(client, holder)
    assert "messaging" not in after
    assert after["training"]["can_edit"] is True


def test_assigned_custom_role_cannot_be_deleted(client, db, catalog, org_tree, general_admin, make_user):
    role_id = client.post("/api/v1/roles/custom", json={
        "name": "Auditor", "organization_id": org_tree["organization_id"],
    }).json()["id"]
    make_user("custom", custom_role_id=role_id)

    response = client.delete(f"/api/v1/roles/custom/{role_id}")

    assert response.status_code == 409
    assert db.rows("custom_roles")


def test_builtin_grants_reject_custom_and_unknown_roles(client, catalog, make_user, login):
    login(make_user("super_admin"))
    body = {"can_view": True, "module_id": catalog["training"]}

    custom = client.put(f"/api/v1/roles/builtin/custom/modules/{catalog['training']}", json=body)
    unknown = client.put(f"/api/v1/roles/builtin/janitor/modules/{catalog['training']}", json=body)

    assert custom.status_code == 400
    assert unknown.status_code == 400


def test_builtin_grant_change_reaches_role_holders(client, catalog, org_tree, make_user, login):
    intern = make_user("intern", **org_tree)
    login(make_user("super_admin"))
    assert "analytics" not in _modules_of(client, intern)

    response = client.put(
        f"/api/v1/roles/builtin/intern/modules/{catalog['analytics']}",
        json={"module_id": catalog["analytics"], "can_view": True},
    )

    assert response.status_code == 200, response.text
    assert _modules_of(client, intern)["analytics"]["can_view"] is True


def test_override_replaces_role_capabilities(client, catalog, org_tree, general_admin, make_user):
    nurse = make_user("staff", **org_tree)
    url = f"/api/v1/modules/overrides/{nurse}/{catalog['training']}"

    client.put(url, json={"can_view": True, "can_edit": True})
    caps = client.get(f"/api/v1/modules/users/{nurse}/{catalog['training']}").json()
    assert (caps["can_edit"], caps["source"]) == (True, "override")

    # An all-false override hides the module
    client.put(url, json={})
    assert "training" not in _modules_of(client, nurse)

    assert client.delete(url).status_code == 204
    caps = client.get(f"/api/v1/modules/users/{nurse}/{catalog['training']}").json()
    assert (caps["can_view"], caps["can_edit"], caps["source"]) == (True, False, "roles")
    assert client.delete(url).status_code == 404


def test_staff_cannot_manage_overrides(client, catalog, org_tree, make_user, login):
    nurse = login(make_user("staff", **org_tree))

    response = client.put(f"/api/v1/modules/overrides/{nurse}/{catalog['training']}", json={"can_edit": True})

    assert response.status_code == 403


@pytest.fixture
def other_org(db, make_user):
    """A second organization with one staff member and one custom role"""
    org = db.seed("organizations", {"name": "Riverside Clinics", "is_active": True})[0]
    ws = db.seed("workspaces", {"name": "South", "organization_id": org["id"]})[0]
    role = db.seed("custom_roles", {"name": "Night Auditor", "organization_id": org["id"], "is_active": True})[0]
    member = make_user("staff", organization_id=org["id"], workspace_id=ws["id"])
    return {"organization_id": org["id"], "role_id": role["id"], "member": member}


def test_overrides_outside_scope_are_refused(client, db, catalog, general_admin, other_org):
    url = f"/api/v1/modules/overrides/{other_org['member']}/{catalog['training']}"

    assert client.put(url, json={"can_view": True, "can_edit": True}).status_code == 403
    assert client.delete(url).status_code == 403
    assert client.get(f"/api/v1/modules/users/{other_org['member']}").status_code == 403
    assert client.get("/api/v1/modules/overrides", params={"user_id": other_org["member"]}).status_code == 403
    assert db.rows("user_module_access") == []


def test_override_listing_is_limited_to_scope(client, db, catalog, org_tree, general_admin, make_user, other_org):
    nurse = make_user("staff", **org_tree)
    db.seed(
        "user_module_access",
        {"user_id": nurse, "module_id": catalog["training"], "can_view": True, "is_override": True},
        {"user_id": other_org["member"], "module_id": catalog["training"], "can_view": True, "is_override": True},
    )

    response = client.get("/api/v1/modules/overrides")

    assert [o["user_id"] for o in response.json()] == [nurse]


def test_custom_roles_of_other_organizations_are_refused(client, db, catalog, general_admin, other_org):
    role_url = f"/api/v1/roles/custom/{other_org['role_id']}"

    assert client.get(role_url).status_code == 403
    assert client.put(role_url, json={"name": "Renamed"}).status_code == 403
    assert client.put(f"{role_url}/modules", json={"permissions": []}).status_code == 403
    assert client.delete(role_url).status_code == 403
    created = client.post("/api/v1/roles/custom", json={
        "name": "Intruder", "organization_id": other_org["organization_id"],
    })
    assert created.status_code == 403
    assert [r["name"] for r in db.rows("custom_roles")] == ["Night Auditor"]
    assert all(r["id"] != other_org["role_id"] for r in client.get("/api/v1/roles/custom").json())


def test_super_admin_manages_any_organization_role(client, db, catalog, make_user, login, other_org):
    login(make_user("super_admin"))

    response = client.delete(f"/api/v1/roles/custom/{other_org['role_id']}")

    assert response.status_code == 204
    assert db.rows("custom_roles") == []
