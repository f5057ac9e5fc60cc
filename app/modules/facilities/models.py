# Supabase table: facilities
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

facilities:
- id: uuid (primary key)
- name: text (not null, unique per workspace, case-insensitive)
- workspace_id: uuid (foreign key to workspaces.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())
"""
