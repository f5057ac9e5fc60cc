# Supabase tables: categories, departments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

categories:
- id: uuid (primary key)
- name: text (not null, unique)
- description: text (nullable)
- is_system_default: boolean (default: false)
- is_active: boolean (default: true)
- created_by: uuid (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

departments:
- id: uuid (primary key)
- name: text (not null)
- category: text (nullable) - categories.name, not an id
- parent_department_id: uuid (nullable, foreign key to departments.id) - one level deep
- facility_id: uuid (nullable, foreign key to facilities.id) - null for templates
- is_template: boolean (default: false)
- min_staffing: integer (default: 1)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

Sub-departments of a department are its "specialties" (user_roles.specialty_id).
"""
