"""
Centralized table names for the Supabase schema.

Intent:
    Provide a single source of truth for the tables the backend reads and
    writes so adapters, tests and tooling cannot drift apart.

Permissions:
    Pure configuration; no external calls or privileges required.
"""
from __future__ import annotations


PROFILES_TABLE = "profiles"
STAFF_MEMBERS_TABLE = "staff_members"
STAFF_PERMISSIONS_TABLE = "staff_permissions"
TRAINERS_TABLE = "trainers"
CLIENT_PACKAGES_TABLE = "client_packages"

# Upserts on the one-to-one tables resolve conflicts on the owning user.
USER_KEY = "user_id"

CLIENT_PACKAGE_COLUMNS = (
    "id, client_id, sessions_remaining, expiry_date, status, "
    "packages (name, sessions_included), "
    "clients (first_name, last_name, email)"
)


__all__ = [
    "PROFILES_TABLE",
    "STAFF_MEMBERS_TABLE",
    "STAFF_PERMISSIONS_TABLE",
    "TRAINERS_TABLE",
    "CLIENT_PACKAGES_TABLE",
    "USER_KEY",
    "CLIENT_PACKAGE_COLUMNS",
]
