# Supabase tables: group_polls, group_poll_options, group_poll_votes
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

group_polls:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- question: text (not null)
- created_by: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())

group_poll_options:
- id: uuid (primary key)
- poll_id: uuid (foreign key to group_polls.id, on delete cascade)
- label: text (not null)
- position: integer (not null) - 0-based display order
- created_at: timestamp (default: now())

group_poll_votes:
- poll_id: uuid (foreign key to group_polls.id, on delete cascade)
- option_id: uuid (foreign key to group_poll_options.id, on delete cascade)
- user_id: uuid (foreign key to auth.users.id, not null)
- created_at: timestamp (default: now())

One vote per (poll_id, user_id) is kept by the service's delete-then-insert,
not by a constraint. A poll has between 2 and 6 options.
"""

POLLS_TABLE = "group_polls"
OPTIONS_TABLE = "group_poll_options"
VOTES_TABLE = "group_poll_votes"
