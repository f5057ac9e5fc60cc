# Supabase tables: profiles, user_roles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- email: text (unique, not null) - lower-cased
- full_name: text (not null)
- phone: text (nullable)
- is_active: boolean (default: true)
- force_password_change: boolean (default: false)
- created_by: uuid (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

user_roles:
- id: uuid (primary key)
- user_id: uuid (foreign key to profiles.id, not null)
- role: app_role enum (super_admin, organization_admin, general_admin,
        workplace_supervisor, workspace_supervisor, facility_supervisor,
        department_head, staff, intern, custom)
- organization_id, workspace_id, facility_id, department_id, specialty_id: uuid (nullable)
- custom_role_id: uuid (nullable, foreign key to custom_roles.id)
- created_by: uuid (nullable)
- created_at: timestamp (default: now())

Which scope columns must be set depends on the role (see app.core.scope.REQUIRED_SCOPE_FIELDS).
Passwords live in auth.users, managed by Supabase Auth.
"""
