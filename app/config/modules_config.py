"""
Module Catalog and Default Role Matrix
This config defines every feature module of the console and the capabilities
each built-in role receives on it by default.
Used by the seed script to populate module_definitions and role_module_access.
"""

# Define modules: key -> name, description, keys of modules it depends on
MODULES = {
    "core": {
        "name": "Dashboard",
        "description": "Main dashboard and system overview",
        "depends_on": [],
    },
    "user_management": {
        "name": "Users",
        "description": "User management and role assignment",
        "depends_on": [],
    },
    "organization": {
        "name": "Organization",
        "description": "Organization structure and settings",
        "depends_on": [],
    },
    "staff_management": {
        "name": "Staff",
        "description": "Staff assignment and management",
        "depends_on": ["organization"],
    },
    "vacation_planning": {
        "name": "Vacation",
        "description": "Vacation planning and approval",
        "depends_on": ["staff_management"],
    },
    "scheduling": {
        "name": "Scheduling",
        "description": "Staff scheduling and shift management",
        "depends_on": ["staff_management"],
    },
    "task_management": {
        "name": "Tasks",
        "description": "Task assignment and tracking",
        "depends_on": ["staff_management"],
    },
    "training": {
        "name": "Meeting & Training",
        "description": "Training sessions and events",
        "depends_on": ["notifications"],
    },
    "messaging": {
        "name": "Messages",
        "description": "Internal messaging system",
        "depends_on": [],
    },
    "notifications": {
        "name": "Notifications",
        "description": "System notifications and alerts",
        "depends_on": [],
    },
    "analytics": {
        "name": "Analytics",
        "description": "System analytics and reporting",
        "depends_on": [],
    },
    "audit": {
        "name": "Audit Logs",
        "description": "System audit logs and tracking",
        "depends_on": [],
    },
    "emails": {
        "name": "Broadcasts",
        "description": "Email broadcasts and communications",
        "depends_on": ["notifications"],
    },
    "settings": {
        "name": "Settings",
        "description": "System settings and configuration",
        "depends_on": [],
    },
    "modules": {
        "name": "Module Access",
        "description": "Manage module access and permissions",
        "depends_on": [],
    },
}

# The dashboard is always listed for a signed-in user, with or without grants
CORE_MODULE_KEY = "core"

FULL = {"can_view": True, "can_edit": True, "can_delete": True, "can_admin": True}
VIEW = {"can_view": True, "can_edit": False, "can_delete": False, "can_admin": False}
EDIT = {"can_view": True, "can_edit": True, "can_delete": False, "can_admin": False}

SYSTEM_MODULES = ["analytics", "audit", "emails", "settings", "modules"]

# Per-role grants: module key -> capability set
ROLE_MATRIX = {
    "super_admin": {key: FULL for key in MODULES},
    "organization_admin": {
        **{key: FULL for key in MODULES if key not in SYSTEM_MODULES},
        "analytics": VIEW,
        "audit": VIEW,
        "settings": VIEW,
    },
    "general_admin": {
        **{key: FULL for key in MODULES if key not in SYSTEM_MODULES},
        "analytics": VIEW,
        "audit": VIEW,
        "settings": VIEW,
        "modules": FULL,
    },
    "workplace_supervisor": {
        "user_management": VIEW,
        "organization": VIEW,
        "staff_management": VIEW,
        "scheduling": VIEW,
        "core": FULL,
        "vacation_planning": FULL,
        "task_management": FULL,
        "training": FULL,
        "messaging": FULL,
        "notifications": FULL,
    },
    "department_head": {
        "training": VIEW,
        "core": FULL,
        "staff_management": FULL,
        "vacation_planning": FULL,
        "scheduling": FULL,
        "task_management": FULL,
        "messaging": FULL,
        "notifications": FULL,
    },
    "staff": {
        "vacation_planning": VIEW,
        "scheduling": VIEW,
        "task_management": VIEW,
        "training": VIEW,
        "messaging": EDIT,
        "core": FULL,
        "notifications": FULL,
    },
}
ROLE_MATRIX["workspace_supervisor"] = ROLE_MATRIX["workplace_supervisor"]
ROLE_MATRIX["facility_supervisor"] = ROLE_MATRIX["workplace_supervisor"]
ROLE_MATRIX["intern"] = ROLE_MATRIX["staff"]


def get_module_matrix():
    """
    Returns the catalog rows and the role grant rows keyed by module key
    Format: {
        "modules": [
            {"key": "core", "name": "Dashboard", "description": "...", "depends_on": [], "is_active": True},
            ...
        ],
        "grants": [
            {"role": "staff", "module_key": "core", "can_view": True, ...},
            ...
        ]
    }
    """
    modules = []
    grants = []

    for key, config in MODULES.items():
        modules.append({
            "key": key,
            "name": config["name"],
            "description": config["description"],
            "depends_on": list(config["depends_on"]),
            "is_active": True,
        })

    for role, module_grants in ROLE_MATRIX.items():
        for module_key, capabilities in sorted(module_grants.items()):
            grants.append({"role": role, "module_key": module_key, **capabilities})

    return {
        "modules": modules,
        "grants": grants
    }


# Export the matrix for use in seed scripts
MODULE_MATRIX = get_module_matrix()
