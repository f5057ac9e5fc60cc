import logging
from datetime import datetime, timezone
from supabase import Client
from app.core.module_access import ModuleDefinition
from app.core.realtime import ChangeFeed, change_feed
from app.modules.workspace_modules.gate import (
    GateDecision, ModuleState, WorkspaceModuleOverride, check_toggle, module_state
)
from app.modules.workspace_modules.schemas import WorkspaceModuleStatus
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class ModuleDependencyError(Exception):
    """Disabling a module that enabled modules still depend on"""

    def __init__(self, decision: GateDecision):
        super().__init__(decision.reason)
        self.decision = decision


class WorkspaceModuleService:
    def __init__(self, supabase: Client, feed: ChangeFeed = change_feed):
        self.supabase = supabase
        self.feed = feed

    def _modules(self) -> List[ModuleDefinition]:
        result = self.supabase.table("module_definitions")\
            .select("*")\
            .order("name")\
            .execute()
        return [ModuleDefinition(**m) for m in result.data or []]

    def _overrides(self, workspace_id: str) -> List[WorkspaceModuleOverride]:
        result = self.supabase.table("workspace_module_access")\
            .select("*")\
            .eq("workspace_id", workspace_id)\
            .execute()
        return [WorkspaceModuleOverride(**row) for row in result.data or []]

    def list_module_states(self, workspace_id: str) -> List[WorkspaceModuleStatus]:
        """Every catalog module with its state inside the workspace"""
        overrides = self._overrides(workspace_id)
        statuses = []
        for module in self._modules():
            state = module_state(module, overrides)
            statuses.append(WorkspaceModuleStatus(
                module_id=module.id,
                key=module.key,
                name=module.name,
                description=module.description,
                depends_on=module.dependencies,
                state=state,
                enabled=state == ModuleState.ACTIVE,
                can_toggle=state != ModuleState.SYSTEM_DISABLED,
            ))
        return statuses

    def set_module_enabled(self, workspace_id: str, module_id: str, enabled: bool) -> WorkspaceModuleStatus:
        """Enable or restrict a module for one workspace after the dependency check"""
        modules = self._modules()
        target = next((m for m in modules if m.id == module_id), None)
        if target is None:
            raise HTTPException(status_code=404, detail="Module not found")

        overrides = self._overrides(workspace_id)
        decision = check_toggle(target, enabled, modules, overrides)
        if not decision.allowed:
            logger.warning("Module toggle refused in workspace %s: %s", workspace_id, decision.reason)
            if decision.dependents:
                raise ModuleDependencyError(decision)
            raise HTTPException(status_code=400, detail=decision.reason)

        existing = next((o for o in overrides if o.module_id == module_id), None)
        now = datetime.now(timezone.utc).isoformat()
        if existing is not None and existing.id:
            self.supabase.table("workspace_module_access")\
                .update({"is_enabled": enabled, "updated_at": now})\
                .eq("id", existing.id)\
                .execute()
        else:
            self.supabase.table("workspace_module_access").insert({
                "workspace_id": workspace_id,
                "module_id": module_id,
                "is_enabled": enabled,
            }).execute()

        logger.info("Module %s %s in workspace %s", target.key, "enabled" if enabled else "restricted", workspace_id)
        self.feed.notify("workspace_module_access")

        state = ModuleState.ACTIVE if enabled else ModuleState.WORKSPACE_RESTRICTED
        return WorkspaceModuleStatus(
            module_id=target.id,
            key=target.key,
            name=target.name,
            description=target.description,
            depends_on=target.dependencies,
            state=state,
            enabled=enabled,
            can_toggle=True,
        )
