"""
Module permission aggregation.

Capabilities come from three layers:
  1. built-in role grants (role_module_access) and custom role grants
     (custom_role_module_access), OR-ed together across every role the user holds;
  2. a per-user override row (user_module_access), which replaces the
     role-derived result for that module outright;
  3. workspace restrictions, which can only take access away.

The four capabilities are independent booleans; admin does not imply view.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict

from app.config.modules_config import CORE_MODULE_KEY
from app.core.scope import AppRole, RoleAssignment

CAPABILITIES = ("can_view", "can_edit", "can_delete", "can_admin")


class Capabilities(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False

    def allows(self, capability: str) -> bool:
        return bool(getattr(self, capability))


NO_ACCESS = Capabilities()


class ModuleGrant(BaseModel):
    """A role_module_access row (role set) or custom_role_module_access row (role_id set)."""
    model_config = ConfigDict(extra="ignore")

    module_id: str
    role: Optional[str] = None
    role_id: Optional[str] = None
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False


class UserModuleOverride(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user_id: str
    module_id: str
    can_view: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_admin: bool = False


class ModuleDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    key: str
    name: str
    description: Optional[str] = None
    is_active: Optional[bool] = True
    depends_on: Optional[List[str]] = None

    @property
    def active(self) -> bool:
        return bool(self.is_active)

    @property
    def dependencies(self) -> List[str]:
        return list(self.depends_on or [])


class ResolvedModule(Capabilities):
    module_id: str
    module_key: str
    module_name: str


def _grant_capabilities(row) -> Capabilities:
    return Capabilities(**{cap: bool(getattr(row, cap)) for cap in CAPABILITIES})


def aggregate_grants(grants: Iterable[ModuleGrant]) -> Capabilities:
    """OR every capability across the grants; no grants means no access."""
    result = {cap: False for cap in CAPABILITIES}
    for grant in grants:
        for cap in CAPABILITIES:
            result[cap] = result[cap] or bool(getattr(grant, cap))
    return Capabilities(**result)


def apply_override(base: Capabilities, override: Optional[UserModuleOverride]) -> Capabilities:
    """A user override replaces the role-derived value; it is never merged."""
    if override is None:
        return base
    return _grant_capabilities(override)


def matching_grants(
    assignments: Iterable[RoleAssignment],
    module_id: str,
    role_grants: Iterable[ModuleGrant],
    custom_role_grants: Iterable[ModuleGrant],
) -> List[ModuleGrant]:
    assignments = list(assignments)
    roles = {a.role.value for a in assignments if a.role != AppRole.CUSTOM}
    custom_role_ids = {a.custom_role_id for a in assignments if a.custom_role_id}

    matched = [g for g in role_grants if g.module_id == module_id and g.role in roles]
    matched.extend(
        g for g in custom_role_grants if g.module_id == module_id and g.role_id in custom_role_ids
    )
    return matched


def find_override(
    overrides: Iterable[UserModuleOverride], user_id: str, module_id: str
) -> Optional[UserModuleOverride]:
    return next(
        (o for o in overrides if o.user_id == user_id and o.module_id == module_id),
        None,
    )


def resolve_module_capabilities(
    assignments: Iterable[RoleAssignment],
    module_id: str,
    role_grants: Iterable[ModuleGrant],
    custom_role_grants: Iterable[ModuleGrant],
    overrides: Iterable[UserModuleOverride],
    user_id: str,
) -> Capabilities:
    grants = matching_grants(assignments, module_id, role_grants, custom_role_grants)
    base = aggregate_grants(grants)
    return apply_override(base, find_override(overrides, user_id, module_id))


def resolve_user_modules(
    assignments: Iterable[RoleAssignment],
    modules: Iterable[ModuleDefinition],
    role_grants: Iterable[ModuleGrant],
    custom_role_grants: Iterable[ModuleGrant],
    overrides: Iterable[UserModuleOverride],
    user_id: str,
    restricted_module_ids: Optional[Iterable[str]] = None,
) -> List[ResolvedModule]:
    """Every system-active module the user can view, plus the dashboard, sorted by name.

    restricted_module_ids holds modules switched off in the user's workspace;
    they are removed regardless of grants or overrides.
    """
    assignments = list(assignments)
    role_grants = list(role_grants)
    custom_role_grants = list(custom_role_grants)
    overrides = list(overrides)
    restricted = set(restricted_module_ids or [])

    resolved: Dict[str, ResolvedModule] = {}
    for module in modules:
        if not module.active or module.id in restricted:
            continue
        caps = resolve_module_capabilities(
            assignments, module.id, role_grants, custom_role_grants, overrides, user_id
        )
        if not caps.can_view and module.key != CORE_MODULE_KEY:
            continue
        resolved[module.id] = ResolvedModule(
            module_id=module.id,
            module_key=module.key,
            module_name=module.name,
            **caps.model_dump(),
        )
    return sorted(resolved.values(), key=lambda m: m.module_name)


def capabilities_for_key(modules: Iterable[ResolvedModule], module_key: str) -> Capabilities:
    for module in modules:
        if module.module_key == module_key:
            return Capabilities(**{cap: getattr(module, cap) for cap in CAPABILITIES})
    return NO_ACCESS
