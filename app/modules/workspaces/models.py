# Supabase tables: workspaces, workspace_departments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

workspaces:
- id: uuid (primary key)
- name: text (not null)
- organization_id: uuid (foreign key to organizations.id, nullable)
- created_by: uuid (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

workspace_departments:
- id: uuid (primary key)
- workspace_id: uuid (foreign key to workspaces.id, not null)
- department_template_id: uuid (foreign key to departments.id where is_template, not null)
- created_at: timestamp (default: now())
- unique constraint on (workspace_id, department_template_id)
"""
