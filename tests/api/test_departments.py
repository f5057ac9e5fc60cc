"""Template departments, facility copies and the selectable-department picker."""

import pytest


@pytest.fixture
def dental(client, db, catalog, org_tree, make_user, login):
    """A dental facility without departments whose workspace has two templates assigned"""
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))
    db.seed("categories", {"name": "Dental", "is_active": True}, {"name": "Hospital", "is_active": True})

    oral = client.post("/api/v1/departments", json={
        "name": "Oral Surgery", "category": "Dental", "is_template": True,
    }).json()
    cardio = client.post("/api/v1/departments", json={
        "name": "Cardiology", "category": "Hospital", "is_template": True,
    }).json()
    client.post(f"/api/v1/departments/{oral['id']}/subdepartments", json={"names": ["Implants"]})
    client.post(f"/api/v1/workspaces/{org_tree['workspace_id']}/templates", json={
        "department_template_ids": [oral["id"], cardio["id"]],
    })
    facility = db.seed("facilities", {"name": "Dental Clinic", "workspace_id": org_tree["workspace_id"]})[0]
    return {"facility_id": facility["id"], "template_id": oral["id"]}


def test_duplicate_template_name_in_category(client, dental):
    response = client.post("/api/v1/departments", json={
        "name": "oral surgery", "category": "Dental", "is_template": True,
    })

    assert response.status_code == 400
    assert response.json()["detail"] == "Department with this name already exists in this category"


def test_facility_without_departments_offers_matching_templates(client, dental):
    response = client.get("/api/v1/departments/selectable", params={"facility_id": dental["facility_id"]})

    assert response.status_code == 200
    assert [d["label"] for d in response.json()] == ["Oral Surgery"]


def test_inactive_category_does_not_narrow_templates(client, db, dental):
    db.table("categories").update({"is_active": False}).eq("name", "Dental").execute()

    response = client.get("/api/v1/departments/selectable", params={"facility_id": dental["facility_id"]})

    assert sorted(d["label"] for d in response.json()) == ["Cardiology", "Oral Surgery"]


def test_copied_template_replaces_fallback(client, db, dental):
    copy = client.post(
        f"/api/v1/departments/{dental['template_id']}/copy",
        json={"facility_id": dental["facility_id"]},
    )
    assert copy.status_code == 201, copy.text
    assert copy.json()["is_template"] is False

    labels = {d["label"] for d in client.get(
        "/api/v1/departments/selectable", params={"facility_id": dental["facility_id"]}
    ).json()}

    assert labels == {"Oral Surgery", "Oral Surgery └─ Implants"}
    copied = [d for d in db.rows("departments") if d.get("facility_id") == dental["facility_id"]]
    assert len(copied) == 2


def test_department_with_subdepartments_cannot_be_deleted(client, dental):
    copy = client.post(
        f"/api/v1/departments/{dental['template_id']}/copy",
        json={"facility_id": dental["facility_id"]},
    ).json()

    response = client.delete(f"/api/v1/departments/{copy['id']}")

    assert response.status_code == 409
    assert "Delete subdepartments first" in response.json()["detail"]


def test_subdepartments_are_one_level_deep(client, dental):
    implants = client.get(f"/api/v1/departments/{dental['template_id']}/specialties").json()[0]

    response = client.post("/api/v1/departments", json={
        "name": "Zygomatic", "parent_department_id": implants["id"],
    })

    assert response.status_code == 400


def test_department_with_users_cannot_be_deleted(client, catalog, org_tree, make_user, login):
    make_user("staff", **org_tree)
    login(make_user("organization_admin", organization_id=org_tree["organization_id"]))

    response = client.delete(f"/api/v1/departments/{org_tree['department_id']}")

    assert response.status_code == 409
    assert "Reassign users first" in response.json()["detail"]
