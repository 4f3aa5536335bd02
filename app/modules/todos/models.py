# Supabase tables: group_lists, group_list_items
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

group_lists:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- title: text (not null)
- created_by: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())

group_list_items:
- id: uuid (primary key)
- list_id: uuid (foreign key to group_lists.id, on delete cascade)
- label: text (not null)
- completed: boolean (not null, default: false)
- position: integer (not null) - dense 0-based order within the list
- created_at: timestamp (default: now())
"""

LISTS_TABLE = "group_lists"
ITEMS_TABLE = "group_list_items"
