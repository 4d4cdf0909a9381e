"""Default staff permission flags and the override merge."""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping, Optional

DEFAULT_PERMISSIONS: Mapping[str, bool] = MappingProxyType(
    {
        "bookings_view_own": True,
        "bookings_create_edit_own": False,
        "bookings_reconcile_own": False,
        "bookings_view_all": False,
        "bookings_create_edit_all": False,
        "bookings_reconcile_all": False,
        "hide_booking_prices": False,
        "prevent_edit_past_reconciled": True,
        "clients_view": True,
        "clients_show_financial_info": False,
        "clients_hide_payment_integration": False,
        "clients_hide_services": False,
        "clients_assign_services": False,
        "clients_only_show_assigned": True,
        "prevent_changing_client_status": True,
        "make_payment_access": False,
        "only_data_for_assigned_clients": True,
        "show_messages_sent_to_others": False,
    }
)


def merge_permissions(overrides: Optional[Mapping[str, object]]) -> Dict[str, bool]:
    """Return the defaults with `overrides` applied.

    Raises ValueError("unknown_permission") for flags outside the default set
    and ValueError("invalid_permission_value") for non-boolean values.
    """
    merged = dict(DEFAULT_PERMISSIONS)
    for name, value in (overrides or {}).items():
        if name not in DEFAULT_PERMISSIONS:
            raise ValueError("unknown_permission")
        if not isinstance(value, bool):
            raise ValueError("invalid_permission_value")
        merged[name] = value
    return merged


__all__ = ["DEFAULT_PERMISSIONS", "merge_permissions"]
