# Supabase table: group_statuses
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- group_id: uuid (foreign key to groups.id, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- message: text (not null)
- emoji: text (nullable)
- image: text (nullable) - reference to an uploaded image, upload itself is handled elsewhere
- expires_at: timestamp (nullable) - null means the status never expires
- updated_at: timestamp (not null)
- unique constraint on (group_id, user_id); writes go through upsert(on_conflict="group_id,user_id")

Rows whose expires_at is in the past are treated as absent by every read.
They are only physically removed by the status reaper.
"""

STATUSES_TABLE = "group_statuses"
