# Supabase table: workspace_module_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

workspace_module_access:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id)
- module_id: uuid (foreign key to module_definitions.id)
- is_enabled: boolean (default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
- unique (workspace_id, module_id)

A missing row means the module follows its system-wide module_definitions.is_active flag.
"""
