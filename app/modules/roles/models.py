# Supabase tables: custom_roles, custom_role_module_access, role_module_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

custom_roles:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- organization_id: uuid (nullable, foreign key to organizations.id) - null for system-wide roles
- is_active: boolean (default: true)
- created_by: uuid (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

custom_role_module_access:
- id: uuid (primary key)
- role_id: uuid (foreign key to custom_roles.id, not null)
- module_id: uuid (foreign key to module_definitions.id, not null)
- can_view, can_edit, can_delete, can_admin: boolean (default: false)
- unique constraint on (role_id, module_id)

role_module_access:
- id: uuid (primary key)
- role: app_role enum (built-in role name, not null)
- module_id: uuid (foreign key to module_definitions.id, not null)
- can_view, can_edit, can_delete, can_admin: boolean (default: false)
- unique constraint on (role, module_id)

Users hold a custom role through user_roles rows with role = 'custom' and custom_role_id set.
"""
