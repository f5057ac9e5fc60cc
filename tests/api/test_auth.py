"""Current-user endpoint."""


def test_me_reports_roles_scope_and_modules(client, catalog, org_tree, make_user, login):
    head = make_user(
        "department_head",
        organization_id=org_tree["organization_id"],
        workspace_id=org_tree["workspace_id"],
        facility_id=org_tree["facility_id"],
        department_id=org_tree["department_id"],
    )
    login(head, email="head@acmehealth.org")

    response = client.get("/api/v1/auth/me")

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "head@acmehealth.org"
    assert [r["role"] for r in body["roles"]] == ["department_head"]
    assert body["scope"]["type"] == "department"
    assert body["scope"]["department_id"] == org_tree["department_id"]
    modules = {m["module_key"]: m for m in body["modules"]}
    assert modules["training"]["can_view"] is True
    assert modules["training"]["can_edit"] is False
    assert "user_management" not in modules


def test_me_without_assignments(client, catalog, login):
    login("nobody")

    body = client.get("/api/v1/auth/me").json()

    assert body["roles"] == []
    assert body["scope"] is None
    # The dashboard is always listed
    assert [m["module_key"] for m in body["modules"]] == ["core"]
    assert body["modules"][0]["can_edit"] is False


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code in (401, 403)


def test_change_password_lifts_first_login_requirement(client, db, login):
    user = db.auth.admin.create_user({"email": "new.nurse@acmehealth.org", "password": "123456"}).user
    db.seed("profiles", {"id": user.id, "email": user.email, "force_password_change": True, "is_active": True})
    login(user.id)

    response = client.post("/api/v1/auth/change-password", json={"new_password": "correct-horse-42"})

    assert response.status_code == 200
    assert db.auth.admin.users[user.id].password == "correct-horse-42"
    assert db.rows("profiles")[0]["force_password_change"] is False


def test_default_password_cannot_be_reused(client, db, login):
    user = db.auth.admin.create_user({"email": "new.nurse@acmehealth.org"}).user
    login(user.id)

    default = client.post("/api/v1/auth/change-password", json={"new_password": "123456"})
    short = client.post("/api/v1/auth/change-password", json={"new_password": "abc"})

    assert default.status_code == 400
    assert "more secure password" in default.json()["detail"]
    assert short.status_code == 422
