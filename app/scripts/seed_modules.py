"""
Seed Modules Script
This script populates module_definitions and the default built-in role grants
(role_module_access) using the config.
Can be run manually or as part of a deployment job.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.config.modules_config import MODULE_MATRIX
from app.database.supabase_client import get_service_supabase
from supabase import Client
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def seed_modules(supabase: Client) -> dict:
    """Seed module definitions from config. Returns module key -> id."""
    logger.info("Seeding module definitions...")

    created_count = 0
    updated_count = 0
    module_ids = {}

    for module in MODULE_MATRIX["modules"]:
        try:
            existing = supabase.table("module_definitions")\
                .select("id")\
                .eq("key", module["key"])\
                .execute()

            if existing.data:
                # is_active is left alone: it may have been switched off system-wide
                supabase.table("module_definitions")\
                    .update({
                        "name": module["name"],
                        "description": module["description"],
                        "depends_on": module["depends_on"]
                    })\
                    .eq("key", module["key"])\
                    .execute()
                module_ids[module["key"]] = existing.data[0]["id"]
                updated_count += 1
                logger.debug(f"Updated module: {module['key']}")
            else:
                result = supabase.table("module_definitions").insert(module).execute()
                module_ids[module["key"]] = result.data[0]["id"]
                created_count += 1
                logger.debug(f"Created module: {module['key']}")
        except Exception as e:
            logger.error(f"Error processing module {module['key']}: {e}")

    logger.info(f"Modules seeded: {created_count} created, {updated_count} updated")
    return module_ids


def seed_role_grants(supabase: Client, module_ids: dict) -> int:
    """Upsert the default capabilities of every built-in role"""
    logger.info("Seeding built-in role grants...")

    rows = []
    for grant in MODULE_MATRIX["grants"]:
        module_id = module_ids.get(grant["module_key"])
        if not module_id:
            logger.warning(f"Skipping grant for unknown module {grant['module_key']}")
            continue
        rows.append({
            "role": grant["role"],
            "module_id": module_id,
            "can_view": grant["can_view"],
            "can_edit": grant["can_edit"],
            "can_delete": grant["can_delete"],
            "can_admin": grant["can_admin"],
        })

    if rows:
        supabase.table("role_module_access")\
            .upsert(rows, on_conflict="role,module_id")\
            .execute()

    logger.info(f"Role grants seeded: {len(rows)} upserted")
    return len(rows)


def main():
    """Main function to seed modules and role grants"""
    try:
        supabase = get_service_supabase()

        logger.info("Starting module seeding...")

        # Modules first, grants reference their ids
        module_ids = seed_modules(supabase)
        grant_count = seed_role_grants(supabase, module_ids)

        logger.info("Seeding completed successfully!")
        logger.info(f"Total: {len(module_ids)} modules, {grant_count} role grants processed")

    except Exception as e:
        logger.error(f"Error during seeding: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
