"""
Identity domain constants.

Why:
- Centralize role names and payroll types to avoid drift between the
  provisioning service and the web layer.
"""

from __future__ import annotations

ADMIN_ROLE = "admin"
# Staff accounts are stored with the trainer role; granular rights live in
# the staff permission set.
STAFF_PROFILE_ROLE = "trainer"

PAYROLL_TYPES = frozenset({"per_session", "percentage"})

__all__ = ["ADMIN_ROLE", "STAFF_PROFILE_ROLE", "PAYROLL_TYPES"]
