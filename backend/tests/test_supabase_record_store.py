"""
Supabase table adapter over a fake PostgREST client.

The fake records the builder chain per table so tests can assert filters,
conflict targets and how rejections become StoreError with the original
message.
"""
from __future__ import annotations

import types
from typing import Any, List, Optional

import pytest

from storage.ports import StoreError
from storage.supabase_tables import SupabaseRecordStore, error_message


class _FakeAPIError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__({"message": message, "code": "42501"})
        self.message = message


class _FakeQuery:
    def __init__(self, client: "_FakeClient", table: str) -> None:
        self.client = client
        self.table = table
        self.chain: List[tuple] = []

    def __getattr__(self, name: str):
        def _method(*args, **kwargs):
            self.chain.append((name, args, kwargs))
            return self

        return _method

    def execute(self):
        self.client.executed.append((self.table, self.chain))
        if self.client.error is not None:
            raise self.client.error
        if self.client.respond_none:
            return None
        return types.SimpleNamespace(data=self.client.data)


class _FakeClient:
    def __init__(self, data: Any = None) -> None:
        self.data = data
        self.error: Optional[Exception] = None
        self.respond_none = False
        self.executed: List[tuple] = []

    def table(self, name: str) -> _FakeQuery:
        return _FakeQuery(self, name)


def _calls(chain):
    return [name for name, _, _ in chain]


def test_upsert_profile_uses_user_id_conflict_target():
    client = _FakeClient(data=[{"user_id": "u1", "role": "trainer"}])
    row = SupabaseRecordStore(client).upsert_profile({"user_id": "u1", "role": "trainer"})
    assert row == {"user_id": "u1", "role": "trainer"}
    table, chain = client.executed[0]
    assert table == "profiles"
    name, args, kwargs = chain[0]
    assert name == "upsert"
    assert args[0] == [{"user_id": "u1", "role": "trainer"}]
    assert kwargs == {"on_conflict": "user_id"}


def test_delete_filters_by_user_id():
    client = _FakeClient(data=[])
    SupabaseRecordStore(client).delete_staff_member("u1")
    table, chain = client.executed[0]
    assert table == "staff_members"
    assert chain == [("delete", (), {}), ("eq", ("user_id", "u1"), {})]


def test_rejection_becomes_store_error_with_message():
    client = _FakeClient()
    client.error = _FakeAPIError("permission denied for table staff_permissions")
    with pytest.raises(StoreError) as excinfo:
        SupabaseRecordStore(client).upsert_permissions({"user_id": "u1"})
    assert excinfo.value.message == "permission denied for table staff_permissions"
    assert excinfo.value.operation == "upsert:staff_permissions"


def test_empty_upsert_result_is_an_error():
    client = _FakeClient(data=[])
    with pytest.raises(StoreError) as excinfo:
        SupabaseRecordStore(client).upsert_trainer({"user_id": "u1"})
    assert excinfo.value.message == "No row returned"


def test_insert_trainer_uses_plain_insert():
    client = _FakeClient(data=[{"user_id": "u1", "session_rate": 40}])
    row = SupabaseRecordStore(client).insert_trainer({"user_id": "u1", "session_rate": 40})
    assert row["session_rate"] == 40
    assert _calls(client.executed[0][1]) == ["insert"]


def test_get_profile_role_handles_missing_row():
    client = _FakeClient()
    client.respond_none = True
    assert SupabaseRecordStore(client).get_profile_role("u1") is None


def test_get_profile_role_reads_role():
    client = _FakeClient(data={"role": "admin"})
    assert SupabaseRecordStore(client).get_profile_role("u1") == "admin"
    assert _calls(client.executed[0][1]) == ["select", "eq", "maybe_single"]


def test_expiring_packages_query_filters():
    client = _FakeClient(data=[{"id": "p1"}])
    rows = SupabaseRecordStore(client).list_active_expiring_between(after="2026-10-18", until="2026-11-01")
    assert rows == [{"id": "p1"}]
    table, chain = client.executed[0]
    assert table == "client_packages"
    assert chain[1:] == [
        ("eq", ("status", "active"), {}),
        ("lte", ("expiry_date", "2026-11-01"), {}),
        ("gt", ("expiry_date", "2026-10-18"), {}),
    ]


def test_low_session_packages_query_filters():
    client = _FakeClient(data=None)
    assert SupabaseRecordStore(client).list_active_with_sessions_at_most(3) == []
    _, chain = client.executed[0]
    assert chain[1:] == [
        ("eq", ("status", "active"), {}),
        ("lte", ("sessions_remaining", 3), {}),
        ("gt", ("sessions_remaining", 0), {}),
    ]


def test_error_message_falls_back_to_str():
    assert error_message(RuntimeError("plain")) == "plain"
    assert error_message(_FakeAPIError("from api")) == "from api"
