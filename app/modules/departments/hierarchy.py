"""
Selectable departments for a role assignment.

Facility-scoped departments win outright. A facility without its own
departments falls back to the template departments assigned to its
workspace, narrowed to one category when the facility name suggests one.
Sub-departments are relabelled "Parent └─ Child" so a flat picker still
shows the hierarchy.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

SUB_DEPARTMENT_SEPARATOR = " └─ "


class DepartmentRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    category: Optional[str] = None
    parent_department_id: Optional[str] = None
    facility_id: Optional[str] = None
    is_template: Optional[bool] = False


class CategoryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str


class SelectableDepartment(BaseModel):
    id: str
    name: str
    label: str
    category: Optional[str] = None
    parent_department_id: Optional[str] = None


def match_category_for_facility(
    facility_name: Optional[str], categories: Iterable[CategoryRecord]
) -> Optional[CategoryRecord]:
    """Guess a facility's category from its name.

    Heuristic only: the first category whose name is contained in the facility
    name, or which contains the facility name with one " facility" removed,
    case-insensitively. "Dental Facility" matches "Dental"; "General Hospital"
    matches nothing unless a category is named e.g. "Hospital". Callers must
    treat None as "no narrowing", never as an error.
    """
    if not facility_name:
        return None
    lowered = facility_name.lower()
    stripped = lowered.replace(" facility", "", 1).strip()
    for category in categories:
        name = category.name.lower()
        if name in lowered or (stripped and stripped in name):
            return category
    return None


def label_sub_departments(
    departments: Iterable[DepartmentRecord],
    lookup: Iterable[DepartmentRecord] = (),
) -> List[SelectableDepartment]:
    """Attach display labels; parents are looked up in departments first, then lookup"""
    departments = list(departments)
    by_id: Dict[str, DepartmentRecord] = {d.id: d for d in lookup}
    by_id.update({d.id: d for d in departments})

    labelled = []
    for dept in departments:
        label = dept.name
        parent = by_id.get(dept.parent_department_id) if dept.parent_department_id else None
        if parent is not None:
            label = f"{parent.name}{SUB_DEPARTMENT_SEPARATOR}{dept.name}"
        labelled.append(SelectableDepartment(
            id=dept.id,
            name=dept.name,
            label=label,
            category=dept.category,
            parent_department_id=dept.parent_department_id,
        ))
    return labelled


def select_departments(
    facility_departments: Iterable[DepartmentRecord],
    template_departments: Iterable[DepartmentRecord],
    facility_name: Optional[str],
    categories: Iterable[CategoryRecord],
    lookup: Iterable[DepartmentRecord] = (),
) -> List[SelectableDepartment]:
    facility_departments = list(facility_departments)
    if facility_departments:
        chosen = facility_departments
    else:
        chosen = list(template_departments)
        category = match_category_for_facility(facility_name, categories)
        if category is not None:
            wanted = category.name.lower()
            chosen = [d for d in chosen if (d.category or "").lower() == wanted]

    seen = set()
    result = []
    for dept in label_sub_departments(chosen, lookup):
        if dept.id in seen:
            continue
        seen.add(dept.id)
        result.append(dept)
    return result
