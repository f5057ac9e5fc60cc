"""Selectable department lists and the facility/category name heuristic."""

from app.modules.departments.hierarchy import (
    CategoryRecord,
    DepartmentRecord,
    match_category_for_facility,
    select_departments,
)

CATEGORIES = [CategoryRecord(name="Dental"), CategoryRecord(name="Hospital")]

TEMPLATES = [
    DepartmentRecord(id="t1", name="Orthodontics", category="Dental", is_template=True),
    DepartmentRecord(id="t2", name="Surgery", category="Hospital", is_template=True),
    DepartmentRecord(id="t3", name="Cardiology", category="Hospital", is_template=True, parent_department_id="t2"),
]


def test_category_match_strips_facility_suffix():
    assert match_category_for_facility("Dental Facility", CATEGORIES).name == "Dental"
    assert match_category_for_facility("City General HOSPITAL", CATEGORIES).name == "Hospital"
    assert match_category_for_facility("Main Clinic", CATEGORIES) is None
    assert match_category_for_facility(None, CATEGORIES) is None


def test_facility_departments_win_over_templates():
    own = [DepartmentRecord(id="d1", name="Emergency", facility_id="f")]
    result = select_departments(own, TEMPLATES, "Dental Facility", CATEGORIES)
    assert [d.id for d in result] == ["d1"]


def test_templates_narrowed_by_matched_category_with_parent_labels():
    result = select_departments([], TEMPLATES, "Riverside Hospital", CATEGORIES)

    assert [d.id for d in result] == ["t2", "t3"]
    assert result[1].label == "Surgery └─ Cardiology"


def test_unmatched_facility_keeps_every_template():
    result = select_departments([], TEMPLATES, "Main Clinic", CATEGORIES)
    assert [d.id for d in result] == ["t1", "t2", "t3"]


def test_nothing_selectable_is_an_empty_list():
    assert select_departments([], [], "Dental Facility", CATEGORIES) == []


def test_duplicates_removed_and_result_is_stable():
    templates = TEMPLATES + [TEMPLATES[0]]
    first = select_departments([], templates, "Main Clinic", CATEGORIES)
    second = select_departments([], templates, "Main Clinic", CATEGORIES)

    assert [d.id for d in first] == ["t1", "t2", "t3"]
    assert first == second


def test_parent_label_from_lookup_when_parent_not_in_list():
    sub = DepartmentRecord(id="s1", name="Pediatric ER", facility_id="f", parent_department_id="p1")
    parent = DepartmentRecord(id="p1", name="Emergency", facility_id="f")
    result = select_departments([sub], [], "x", [], lookup=[parent])
    assert result[0].label == "Emergency └─ Pediatric ER"
