# Supabase tables: training_events, training_event_targets,
# training_registrations, training_attendance
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

training_events:
- id: uuid (primary key)
- title: text (not null, unique per organization)
- description: text (nullable)
- event_type: text (training | workshop | seminar | webinar | meeting | conference | other)
- location_type: text (online | physical | hybrid)
- location_address: text (nullable)
- online_link: text (nullable)
- start_datetime: timestamp (not null)
- end_datetime: timestamp (not null, after start_datetime)
- organization_id: uuid (foreign key to organizations.id)
- max_participants: integer (nullable, no limit when null)
- registration_type: text (open | mandatory | invite_only, default: open)
- responsible_user_id: uuid (nullable, foreign key to profiles.id)
- status: text (draft | published | cancelled | completed)
- created_by: uuid (foreign key to auth.users.id)
- created_at: timestamp (default: now())
- updated_at: timestamp (default: now())

training_event_targets:
- id: uuid (primary key)
- event_id: uuid (foreign key to training_events.id)
- target_type: text (department | user)
- department_id: uuid (set when target_type = department)
- user_id: uuid (set when target_type = user)
- is_mandatory: boolean (default: false)

training_registrations:
- id: uuid (primary key)
- event_id: uuid (foreign key to training_events.id)
- user_id: uuid (foreign key to profiles.id)
- status: text (registered | cancelled)
- Unique constraint on (event_id, user_id)

training_attendance:
- id: uuid (primary key)
- event_id: uuid (foreign key to training_events.id)
- user_id: uuid (foreign key to profiles.id)
- joined_at: timestamp
- left_at: timestamp (nullable)
- duration_minutes: integer (nullable)
- attendance_status: text (present | absent)
- check_in_method: text (auto | manual, default: auto)
- checked_in_at: timestamp (nullable)
- checked_in_by: uuid (nullable)
- Unique constraint on (event_id, user_id)
"""
