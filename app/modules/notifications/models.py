# Supabase table: notifications
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

notifications:
- id: uuid (primary key)
- user_id: uuid (foreign key to auth.users.id, the recipient)
- title: text (not null)
- message: text (not null)
- type: text (system | system_announcement | training | ...)
- related_id: uuid (nullable, e.g. the training event a notice is about)
- is_read: boolean (default: false)
- created_at: timestamp (default: now())
"""
