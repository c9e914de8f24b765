# Supabase tables: groups (memberships live in app/modules/memberships)
# Schema, constraints and server-side functions live in
# app/database/migrations/001_membership_schema.sql

"""
Expected Supabase table structure:

groups:
- id: uuid (primary key)
- name: text (not null)
- description: text (default: '')
- color: text (default: '#3B82F6')
- created_by: uuid (foreign key to profiles.id, not null, immutable) - creator
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Deleting a group cascades to group_members and group_activity.
"""

DEFAULT_GROUP_COLOR = "#3B82F6"
