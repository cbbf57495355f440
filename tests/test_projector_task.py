from __future__ import annotations

from datetime import datetime, timedelta, timezone

from taskos.ledger.projector import (
    DEFAULT_DUE_OFFSET,
    ms_to_datetime,
    project_role_row,
    project_task,
    registry_bucket_table_id,
    table_id_of,
)
from taskos.ledger.raw import RawObject
from taskos.ledger.types import RoleGrant, TaskStatus

CREATED_MS = 1_700_000_000_000
CREATED = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


def _task(object_id: str = "0xT1", **fields) -> RawObject:
    base = {
        "title": "Write docs",
        "description": "All of them",
        "creator": "0xC0FFEE",
        "status": 0,
        "created_at": str(CREATED_MS),
        "priority": "2",
    }
    base.update(fields)
    return RawObject(object_id=object_id, data_type="moveObject", type="0xpkg::task_manage::Task", fields=base)


def test_basic_projection() -> None:
    t = project_task(_task())
    assert t is not None
    assert t.task_id == "0xT1"
    assert t.title == "Write docs"
    assert t.creator == "0xC0FFEE"
    assert t.status == TaskStatus.TODO
    assert t.is_completed is False
    assert t.priority == 2
    assert t.created_at == CREATED
    assert t.assignee is None
    assert t.content_blob_id is None


def test_due_date_defaults_to_created_plus_seven_days() -> None:
    t = project_task(_task())
    assert t is not None
    assert DEFAULT_DUE_OFFSET == timedelta(days=7)
    assert t.due_date == CREATED + timedelta(days=7)


def test_explicit_due_date_in_option_wrapper() -> None:
    due_ms = CREATED_MS + 86_400_000
    t = project_task(_task(due_date={"vec": [str(due_ms)]}))
    assert t is not None
    assert t.due_date == CREATED + timedelta(days=1)


def test_completed_statuses() -> None:
    for status, done in ((0, False), (1, False), (2, True), (3, True)):
        t = project_task(_task(status=status))
        assert t is not None
        assert t.is_completed is done


def test_unknown_status_is_not_completed() -> None:
    t = project_task(_task(status=99))
    assert t is not None
    assert t.status == 99
    assert t.is_completed is False


def test_unparseable_created_at_leaves_dates_empty() -> None:
    t = project_task(_task(created_at="yesterday"))
    assert t is not None
    assert t.created_at is None
    assert t.due_date is None


def test_priority_defaults_to_one() -> None:
    for raw in (None, "0", "", "high"):
        t = project_task(_task(priority=raw))
        assert t is not None
        assert t.priority == 1


def test_assignee_and_blob_options() -> None:
    t = project_task(
        _task(
            assignee={"vec": ["0xA55"]},
            content_blob_id={"vec": []},
            walrus_blob_id="blobX",
        )
    )
    assert t is not None
    assert t.assignee == "0xA55"
    assert t.content_blob_id == "blobX"

    t2 = project_task(_task(assignee={"vec": []}))
    assert t2 is not None
    assert t2.assignee is None


def test_access_control_table_shapes() -> None:
    shapes = [
        {"fields": {"roles": {"fields": {"id": {"id": "0xROLES"}}}}},
        {"fields": {"roles": {"fields": {"id": "0xROLES"}}}},
        {"fields": {"roles": {"id": {"id": "0xROLES"}}}},
        {"fields": {"roles": {"id": "0xROLES"}}},
    ]
    for ac in shapes:
        t = project_task(_task(access_control=ac))
        assert t is not None
        assert t.access_control_table_id == "0xROLES"


def test_unusable_objects_are_skipped() -> None:
    assert project_task(None) is None
    assert project_task(RawObject.missing("0xGONE")) is None
    assert project_task(RawObject(object_id="0xT2")) is None
    assert project_task(RawObject(object_id="0xT3", data_type="package")) is None


def test_to_json_uses_iso_utc() -> None:
    t = project_task(_task())
    assert t is not None
    j = t.to_json()
    assert j["id"] == "0xT1"
    assert j["created_at"] == "2023-11-14T22:13:20Z"
    assert j["due_date"] == "2023-11-21T22:13:20Z"


def test_ms_to_datetime() -> None:
    assert ms_to_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert ms_to_datetime("1700000000000") == CREATED
    assert ms_to_datetime("nope") is None
    assert ms_to_datetime(None) is None
    assert ms_to_datetime(True) is None


def test_table_id_of_nestings() -> None:
    assert table_id_of("0xT") == "0xT"
    assert table_id_of({"fields": {"id": {"id": "0xT"}}}) == "0xT"
    assert table_id_of({"id": "0xT"}) == "0xT"
    assert table_id_of({}) == ""
    assert table_id_of(None) == ""


def test_registry_bucket_table_id() -> None:
    reg = RawObject(
        object_id="0xREG",
        data_type="moveObject",
        fields={"tasks_by_status": {"type": "0x2::table::Table", "fields": {"id": {"id": "0xBUCKETS"}, "size": "2"}}},
    )
    assert registry_bucket_table_id(reg) == "0xBUCKETS"
    assert registry_bucket_table_id(RawObject(object_id="0xREG", data_type="moveObject")) == ""
    assert registry_bucket_table_id(None) == ""


def _row(**fields) -> RawObject:
    return RawObject(object_id="0xROW", data_type="moveObject", fields=fields)


def test_role_rows() -> None:
    assert project_role_row(_row(name="0xAB", value=2)) == RoleGrant("0xAB", 2)
    assert project_role_row(_row(key="0xCD", value="1")) == RoleGrant("0xCD", 1)
    assert project_role_row(_row(value=0), fallback_name="0xEF") == RoleGrant("0xEF", 0)


def test_role_rows_rejected() -> None:
    assert project_role_row(_row(name="0xAB", value={"fields": {}})) is None
    assert project_role_row(_row(name="0xAB", value=-1)) is None
    assert project_role_row(_row(name="0xAB")) is None
    assert project_role_row(_row(value=1)) is None
    assert project_role_row(RawObject.missing("0xROW")) is None
