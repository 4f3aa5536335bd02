# Supabase tables: groups, group_members
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- icon: text (not null)
- preset: text (not null, default: 'custom')
- owner_id: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())

group_members:
- group_id: uuid (foreign key to groups.id, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- role: text (not null, default: 'member') - values: owner, member
- invited_by: uuid (nullable)
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id); writes go through upsert(on_conflict="group_id,user_id")
"""

GROUPS_TABLE = "groups"
MEMBERS_TABLE = "group_members"
