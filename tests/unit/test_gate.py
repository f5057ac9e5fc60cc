"""Workspace module states and the disable guard."""

from app.core.module_access import ModuleDefinition
from app.modules.workspace_modules.gate import (
    ModuleState,
    WorkspaceModuleOverride,
    check_toggle,
    find_enabled_dependents,
    module_state,
)

NOTIFICATIONS = ModuleDefinition(id="n", key="notifications", name="Notifications")
TRAINING = ModuleDefinition(id="t", key="training", name="Meeting & Training", depends_on=["notifications"])
EMAILS = ModuleDefinition(id="e", key="emails", name="Broadcasts", depends_on=["notifications"])
STAFF = ModuleDefinition(id="s", key="staff_management", name="Staff", depends_on=["organization"])
ORGANIZATION = ModuleDefinition(id="o", key="organization", name="Organization")
VACATION = ModuleDefinition(id="v", key="vacation_planning", name="Vacation", depends_on=["staff_management"])
RETIRED = ModuleDefinition(id="r", key="retired", name="Retired", is_active=False, depends_on=["notifications"])

ALL = [NOTIFICATIONS, TRAINING, EMAILS, STAFF, ORGANIZATION, VACATION, RETIRED]


def _off(module):
    return WorkspaceModuleOverride(workspace_id="w", module_id=module.id, is_enabled=False)


def test_three_states():
    assert module_state(RETIRED, []) == ModuleState.SYSTEM_DISABLED
    assert module_state(RETIRED, [WorkspaceModuleOverride(workspace_id="w", module_id="r")]) == ModuleState.SYSTEM_DISABLED
    assert module_state(TRAINING, []) == ModuleState.ACTIVE
    assert module_state(TRAINING, [_off(TRAINING)]) == ModuleState.WORKSPACE_RESTRICTED


def test_disable_rejected_while_active_dependents_exist():
    decision = check_toggle(NOTIFICATIONS, False, ALL, [])

    assert not decision.allowed
    assert decision.dependents == ["Meeting & Training", "Broadcasts"]
    assert "Meeting & Training, Broadcasts" in decision.reason


def test_restricted_or_system_disabled_dependents_do_not_block():
    decision = check_toggle(NOTIFICATIONS, False, ALL, [_off(TRAINING), _off(EMAILS)])
    assert decision.allowed
    assert decision.dependents == []


def test_scan_is_single_level():
    # Vacation depends on Staff, Staff on Organization; only Staff is reported
    assert find_enabled_dependents(ORGANIZATION, ALL, []) == ["Staff"]


def test_enable_only_requires_system_active():
    assert check_toggle(TRAINING, True, ALL, [_off(NOTIFICATIONS)]).allowed
    refused = check_toggle(RETIRED, True, ALL, [])
    assert not refused.allowed
    assert "disabled system-wide" in refused.reason
