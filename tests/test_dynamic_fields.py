from __future__ import annotations

import pytest

from taskos.errors import LedgerRpcError
from taskos.ledger.dynamic_fields import flatten_bucketed_ids, read_role_table, walk_children
from taskos.ledger.types import RoleGrant
from taskos.testing.memory_ledger import MemoryLedger


def _mk_buckets(buckets) -> MemoryLedger:
    led = MemoryLedger()
    for status, ids in buckets:
        led.add_table_entry("0xBUCKETS", status, list(ids))
    return led


def test_flatten_is_order_independent() -> None:
    a = flatten_bucketed_ids(_mk_buckets([(0, ["0xA", "0xB"]), (2, ["0xC"])]), "0xBUCKETS")
    b = flatten_bucketed_ids(_mk_buckets([(2, ["0xC"]), (0, ["0xA", "0xB"])]), "0xBUCKETS")
    assert set(a) == set(b) == {"0xA", "0xB", "0xC"}
    assert len(a) == 3


def test_flatten_dedupes_keeping_first_occurrence() -> None:
    led = _mk_buckets([(0, ["0xA", "0xB"]), (1, ["0xB", "0xC"])])
    assert flatten_bucketed_ids(led, "0xBUCKETS") == ["0xA", "0xB", "0xC"]


def test_flatten_isolates_a_missing_bucket() -> None:
    led = MemoryLedger()
    led.add_broken_entry("0xBUCKETS", 0)
    led.add_table_entry("0xBUCKETS", 1, ["0xC"])
    assert flatten_bucketed_ids(led, "0xBUCKETS") == ["0xC"]


def test_flatten_isolates_a_failing_bucket_read() -> None:
    led = MemoryLedger()
    bad = led.add_table_entry("0xBUCKETS", 0, ["0xA", "0xB"])
    led.add_table_entry("0xBUCKETS", 1, ["0xC"])
    led.fail_on("get_dynamic_field_object", bad, LedgerRpcError("rpc_timeout", "timed out"))
    assert flatten_bucketed_ids(led, "0xBUCKETS") == ["0xC"]


def test_flatten_skips_malformed_bucket_value() -> None:
    led = MemoryLedger()
    led.add_table_entry("0xBUCKETS", 0, {"unexpected": True})
    led.add_table_entry("0xBUCKETS", 1, ["0xC", "", 7])
    assert flatten_bucketed_ids(led, "0xBUCKETS") == ["0xC"]


def test_empty_table() -> None:
    led = MemoryLedger()
    assert flatten_bucketed_ids(led, "0xNOTHING") == []
    assert led.calls["list_dynamic_fields"] == 1
    assert led.calls["get_dynamic_field_object"] == 0


def test_enumeration_failure_propagates() -> None:
    led = _mk_buckets([(0, ["0xA"])])
    led.fail_on("list_dynamic_fields", "0xBUCKETS", LedgerRpcError("rpc_unreachable", "down"))
    with pytest.raises(LedgerRpcError):
        flatten_bucketed_ids(led, "0xBUCKETS")


def test_walk_children_uses_interpreter() -> None:
    led = _mk_buckets([(0, ["0xA"]), (1, ["0xB"])])
    keys = walk_children(led, "0xBUCKETS", lambda info, obj: info.name_value if info.name_value else None)
    assert keys == [1]


def test_role_table_first_row_per_address_wins() -> None:
    led = MemoryLedger()
    led.add_table_entry("0xROLES", "0xAbC", 2, key_type="address")
    led.add_table_entry("0xROLES", "0xdef", 1, key_type="address")
    led.add_table_entry("0xROLES", "0xABC", 0, key_type="address")
    assert read_role_table(led, "0xROLES") == [RoleGrant("0xAbC", 2), RoleGrant("0xdef", 1)]


def test_role_table_skips_bad_rows() -> None:
    led = MemoryLedger()
    led.add_table_entry("0xROLES", "0xA", {"fields": {}}, key_type="address")
    led.add_broken_entry("0xROLES", "0xB", key_type="address")
    led.add_table_entry("0xROLES", "0xC", "3", key_type="address")
    assert read_role_table(led, "0xROLES") == [RoleGrant("0xC", 3)]
