"""
Per-workspace module availability.

A module is in exactly one of three states inside a workspace:

  system_disabled       module_definitions.is_active is false; nothing a
                        workspace does can turn it on
  workspace_restricted  an override row exists with is_enabled = false
  active                no override row, or an override row with is_enabled = true

Disabling is guarded by a single-level dependency scan: if another module
that is active in the same workspace lists the target's key in depends_on,
the toggle is refused and the dependents are reported. Transitive
dependencies are not followed.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from app.core.module_access import ModuleDefinition


class ModuleState(str, Enum):
    SYSTEM_DISABLED = "system_disabled"
    WORKSPACE_RESTRICTED = "workspace_restricted"
    ACTIVE = "active"


class WorkspaceModuleOverride(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    workspace_id: str
    module_id: str
    is_enabled: bool = True


class GateDecision(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    dependents: List[str] = []


def _override_map(overrides: Iterable[WorkspaceModuleOverride]) -> Dict[str, bool]:
    return {o.module_id: o.is_enabled for o in overrides}


def module_state(module: ModuleDefinition, overrides: Iterable[WorkspaceModuleOverride]) -> ModuleState:
    if not module.active:
        return ModuleState.SYSTEM_DISABLED
    if _override_map(overrides).get(module.id, True):
        return ModuleState.ACTIVE
    return ModuleState.WORKSPACE_RESTRICTED


def find_enabled_dependents(
    target: ModuleDefinition,
    modules: Iterable[ModuleDefinition],
    overrides: Iterable[WorkspaceModuleOverride],
) -> List[str]:
    """Names of other active modules whose depends_on contains target.key."""
    overrides = list(overrides)
    return [
        m.name
        for m in modules
        if m.id != target.id
        and target.key in m.dependencies
        and module_state(m, overrides) == ModuleState.ACTIVE
    ]


def check_toggle(
    target: ModuleDefinition,
    enable: bool,
    modules: Iterable[ModuleDefinition],
    overrides: Iterable[WorkspaceModuleOverride],
) -> GateDecision:
    if enable:
        if not target.active:
            return GateDecision(
                allowed=False,
                reason=f"{target.name} is disabled system-wide and cannot be enabled for a workspace",
            )
        return GateDecision(allowed=True)

    dependents = find_enabled_dependents(target, modules, overrides)
    if dependents:
        return GateDecision(
            allowed=False,
            reason=f"Cannot disable {target.name}: the following modules depend on it: {', '.join(dependents)}. "
                   "Disable the dependent modules first.",
            dependents=dependents,
        )
    return GateDecision(allowed=True)
