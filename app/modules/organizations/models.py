# Supabase table: organizations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

organizations:
- id: uuid (primary key)
- name: text (not null)
- description: text (nullable)
- is_active: boolean (default: true)
- owner_id: uuid (foreign key to profiles.id, nullable)
- max_workspaces: integer (nullable) - null means unlimited
- max_facilities: integer (nullable) - null means unlimited
- max_users: integer (nullable) - null means unlimited
- created_by: uuid (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Workspaces reference organizations through workspaces.organization_id.
"""
