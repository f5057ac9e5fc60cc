# Supabase tables: module_definitions, user_module_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

module_definitions:
- id: uuid (primary key)
- key: text (not null, unique) - e.g. "core", "training", "scheduling"
- name: text (not null)
- description: text (nullable)
- icon: text (nullable)
- is_active: boolean (default: true) - false disables the module everywhere
- depends_on: text[] (nullable) - keys of modules this one needs
- created_at: timestamp (default: now())

user_module_access:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- module_id: uuid (foreign key to module_definitions.id, not null)
- can_view, can_edit, can_delete, can_admin: boolean (default: false)
- is_override: boolean (default: true)
- created_by: uuid (nullable)
- created_at, updated_at: timestamp (default: now())
- unique constraint on (user_id, module_id)

A user_module_access row replaces whatever the user's roles grant on that module.
"""
