"""Capability aggregation across role grants, custom roles, overrides and workspace restrictions."""

from app.core.module_access import (
    NO_ACCESS,
    Capabilities,
    ModuleDefinition,
    ModuleGrant,
    UserModuleOverride,
    capabilities_for_key,
    resolve_module_capabilities,
    resolve_user_modules,
)
from app.core.scope import AppRole, RoleAssignment

STAFF = RoleAssignment(role=AppRole.STAFF, workspace_id="w", facility_id="F", department_id="d")
CUSTOM = RoleAssignment(role=AppRole.CUSTOM, custom_role_id="C")


def test_builtin_and_custom_grants_are_or_combined():
    role_grants = [ModuleGrant(module_id="M", role="staff", can_view=True)]
    custom_grants = [ModuleGrant(module_id="M", role_id="C", can_edit=True)]

    caps = resolve_module_capabilities([STAFF, CUSTOM], "M", role_grants, custom_grants, [], "u1")

    assert caps == Capabilities(can_view=True, can_edit=True, can_delete=False, can_admin=False)


def test_no_matching_rows_means_no_access():
    role_grants = [
        ModuleGrant(module_id="M", role="organization_admin", can_view=True, can_admin=True),
        ModuleGrant(module_id="OTHER", role="staff", can_view=True),
    ]
    assert resolve_module_capabilities([STAFF], "M", role_grants, [], [], "u1") == NO_ACCESS


def test_override_replaces_role_result_outright():
    role_grants = [ModuleGrant(module_id="M", role="staff", can_view=True, can_edit=True, can_delete=True)]
    overrides = [UserModuleOverride(user_id="u1", module_id="M", can_admin=True)]

    caps = resolve_module_capabilities([STAFF], "M", role_grants, [], overrides, "u1")

    assert caps == Capabilities(can_admin=True)


def test_override_for_another_user_is_ignored():
    role_grants = [ModuleGrant(module_id="M", role="staff", can_view=True)]
    overrides = [UserModuleOverride(user_id="someone-else", module_id="M")]
    assert resolve_module_capabilities([STAFF], "M", role_grants, [], overrides, "u1").can_view


def _modules():
    return [
        ModuleDefinition(id="core", key="core", name="Dashboard"),
        ModuleDefinition(id="tr", key="training", name="Training"),
        ModuleDefinition(id="msg", key="messaging", name="Messages"),
        ModuleDefinition(id="an", key="analytics", name="Analytics", is_active=False),
    ]


def test_resolve_user_modules_keeps_viewable_active_modules_and_dashboard():
    grants = [
        ModuleGrant(module_id="tr", role="staff", can_view=True),
        ModuleGrant(module_id="an", role="staff", can_view=True),
    ]
    resolved = resolve_user_modules([STAFF], _modules(), grants, [], [], "u1")

    assert [m.module_key for m in resolved] == ["core", "training"]
    assert not resolved[0].can_view


def test_workspace_restriction_removes_module_despite_override():
    grants = [ModuleGrant(module_id="tr", role="staff", can_view=True)]
    overrides = [UserModuleOverride(user_id="u1", module_id="tr", can_view=True, can_edit=True)]

    resolved = resolve_user_modules(
        [STAFF], _modules(), grants, [], overrides, "u1", restricted_module_ids=["tr"]
    )

    assert capabilities_for_key(resolved, "training") == NO_ACCESS
