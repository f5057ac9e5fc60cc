"""Scope resolution and assignment validation."""

import itertools

import pytest

from app.core.scope import (
    AppRole,
    RoleAssignment,
    Scope,
    ScopeType,
    resolve_scope,
    scope_covers,
    scope_user_filter,
    validate_assignment_scope,
)


def _a(role, **ids):
    return RoleAssignment(role=role, **ids)


def test_no_management_role_resolves_to_no_scope():
    assert resolve_scope([]) is None
    assert resolve_scope([_a(AppRole.STAFF, workspace_id="w", facility_id="f", department_id="d")]) is None


def test_super_admin_wins_over_everything():
    scope = resolve_scope([
        _a(AppRole.DEPARTMENT_HEAD, workspace_id="w", facility_id="f", department_id="d"),
        _a(AppRole.SUPER_ADMIN),
    ])
    assert scope == Scope(type=ScopeType.ALL)


def test_department_head_keeps_facility_and_workspace():
    scope = resolve_scope([_a(AppRole.DEPARTMENT_HEAD, workspace_id="w", facility_id="f", department_id="d")])
    assert scope.type == ScopeType.DEPARTMENT
    assert (scope.workspace_id, scope.facility_id, scope.department_id) == ("w", "f", "d")


def test_general_admin_and_workplace_supervisor_are_workspace_scoped():
    assert resolve_scope([_a(AppRole.GENERAL_ADMIN, workspace_id="w1")]).type == ScopeType.WORKSPACE
    assert resolve_scope([_a(AppRole.WORKPLACE_SUPERVISOR, workspace_id="w2")]).workspace_id == "w2"


def test_resolution_is_independent_of_assignment_order():
    assignments = [
        _a(AppRole.FACILITY_SUPERVISOR, workspace_id="w", facility_id="f"),
        _a(AppRole.ORGANIZATION_ADMIN, organization_id="o"),
        _a(AppRole.STAFF, workspace_id="w", facility_id="f", department_id="d"),
        _a(AppRole.DEPARTMENT_HEAD, workspace_id="w", facility_id="f", department_id="d"),
    ]
    results = {resolve_scope(list(p)) for p in itertools.permutations(assignments)}
    assert results == {Scope(type=ScopeType.ORGANIZATION, organization_id="o")}


@pytest.mark.parametrize("role,ids,missing", [
    (AppRole.SUPER_ADMIN, {}, []),
    (AppRole.ORGANIZATION_ADMIN, {}, ["organization_id"]),
    (AppRole.FACILITY_SUPERVISOR, {"workspace_id": "w"}, ["facility_id"]),
    (AppRole.STAFF, {"workspace_id": "w", "facility_id": "f"}, ["department_id"]),
    (AppRole.CUSTOM, {}, ["custom_role_id"]),
])
def test_validate_assignment_scope_reports_missing_fields(role, ids, missing):
    assert validate_assignment_scope(_a(role, **ids)) == missing


def test_scope_user_filter_per_scope_type():
    assert scope_user_filter(Scope(type=ScopeType.ALL)) is None
    assert scope_user_filter(Scope(type=ScopeType.FACILITY, facility_id="f")) == ("facility_id", "f")


def test_scope_covers_only_assignments_inside_it():
    scope = Scope(type=ScopeType.WORKSPACE, workspace_id="w")
    assert scope_covers(scope, _a(AppRole.STAFF, workspace_id="w", facility_id="f", department_id="d"))
    assert not scope_covers(scope, _a(AppRole.STAFF, workspace_id="other", facility_id="f", department_id="d"))
    assert not scope_covers(None, _a(AppRole.STAFF, workspace_id="w"))
