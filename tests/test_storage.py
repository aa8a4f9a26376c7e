from __future__ import annotations

import datetime as dt
import logging

import pytest

from leave_ledger.errors import PersistenceFailure
from leave_ledger.models import Employee, LeaveApplication, LeaveStatus, LeaveType
from leave_ledger.storage import (
    PersistenceStore,
    escape,
    split_fields,
    unescape,
)


def _leave(leave_id, reason="", status=LeaveStatus.PENDING):
    return LeaveApplication(
        id=leave_id,
        employee_id=1001,
        type=LeaveType.ANNUAL,
        start=dt.date(2025, 8, 22),
        end=dt.date(2025, 8, 22),
        days=1,
        status=status,
        reason=reason,
    )


@pytest.mark.parametrize(
    "text, escaped",
    [
        ("Alice", "Alice"),
        ("Smith, Jane", "Smith\\, Jane"),
        ("C:\\temp", "C:\\\\temp"),
        ("a\\,b", "a\\\\\\,b"),
        ("", ""),
    ],
)
def test_escape_and_unescape(text, escaped):
    assert escape(text) == escaped
    assert unescape(escaped) == text


def test_split_fields_ignores_escaped_commas_and_keeps_trailing_empty():
    assert split_fields("1,Smith\\, Jane,20") == ["1", "Smith\\, Jane", "20"]
    assert split_fields("a,b,") == ["a", "b", ""]
    assert split_fields("x\\\\,y") == ["x\\\\", "y"]


def test_first_load_seeds_employees(store):
    employees = store.load_employees()

    assert list(employees) == [1001, 1002]
    assert employees[1001] == Employee(1001, "Alice", 20)
    assert store.employee_file.read_text(encoding="utf-8") == (
        "id,name,balance\n1001,Alice,20\n1002,Bob,20\n"
    )


def test_first_load_writes_empty_leave_table(store):
    assert store.load_leaves() == []
    assert store.leave_file.read_text(encoding="utf-8") == (
        "id,employeeId,type,start,end,days,status,reason\n"
    )


def test_leave_row_format(store):
    store.save_leaves([_leave(1001, reason="Family event")])

    assert store.leave_file.read_text(encoding="utf-8").splitlines() == [
        "id,employeeId,type,start,end,days,status,reason",
        "1001,1001,ANNUAL,2025-08-22,2025-08-22,1,PENDING,Family event",
    ]


def test_round_trip_with_commas_and_backslashes(store):
    employees = {
        7: Employee(7, "O'Brien, Pat \\ Jr", 3),
        1001: Employee(1001, "Plain", 0),
    }
    leaves = [
        _leave(1001, reason="trip, then \\rest\\"),
        _leave(1002, reason="", status=LeaveStatus.REJECTED),
        _leave(1003, reason="trailing comma,", status=LeaveStatus.APPROVED),
    ]

    store.save_employees(employees)
    store.save_leaves(leaves)

    assert store.load_employees() == employees
    assert list(store.load_employees()) == [7, 1001]
    assert store.load_leaves() == leaves


def test_load_skips_header_and_blank_lines(store, data_dir):
    data_dir.mkdir(parents=True)
    store.employee_file.write_text(
        "id,name,balance\n\n1002,Bob,5\n   \n1001,Alice,7\n", encoding="utf-8"
    )

    employees = store.load_employees()

    assert list(employees) == [1002, 1001]
    assert employees[1001].balance == 7


def test_malformed_rows_are_skipped_with_warning(store, data_dir, caplog):
    data_dir.mkdir(parents=True)
    store.leave_file.write_text(
        "id,employeeId,type,start,end,days,status,reason\n"
        "1001,1001,ANNUAL,2025-08-22,2025-08-22,1,PENDING,ok\n"
        "1002,1001,HOLIDAY,2025-08-22,2025-08-22,1,PENDING,bad type\n"
        "1003,1001,SICK,2025-08-22\n",
        encoding="utf-8",
    )

    with caplog.at_level(logging.WARNING, logger="leave_ledger.storage"):
        leaves = store.load_leaves()

    assert [leave.id for leave in leaves] == [1001]
    assert "leaves.csv:3" in caplog.text
    assert "leaves.csv:4" in caplog.text


def test_next_leave_id():
    assert PersistenceStore.next_leave_id([]) == 1001
    assert PersistenceStore.next_leave_id([_leave(1005), _leave(1002)]) == 1006
    assert PersistenceStore.next_leave_id([_leave(3)]) == 4


def test_save_failure_raises_persistence_failure(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = PersistenceStore(blocker / "data")

    with pytest.raises(PersistenceFailure):
        store.save_leaves([_leave(1001)])


def test_seed_write_failure_still_returns_defaults(tmp_path, caplog):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = PersistenceStore(blocker / "data")

    with caplog.at_level(logging.WARNING, logger="leave_ledger.storage"):
        employees = store.load_employees()
        leaves = store.load_leaves()

    assert list(employees) == [1001, 1002]
    assert leaves == []
    assert "unsaved seed employees" in caplog.text


def test_name_with_line_break_is_not_written(store):
    store.save_employees({1001: Employee(1001, "Alice", 20)})

    with pytest.raises(PersistenceFailure):
        store.save_employees({1001: Employee(1001, "Alice\nSmith", 20)})

    assert store.employee_file.read_text(encoding="utf-8") == "id,name,balance\n1001,Alice,20\n"


def test_reason_with_line_break_is_not_written(store):
    store.save_leaves([_leave(1001, reason="fine")])

    with pytest.raises(PersistenceFailure):
        store.save_leaves([_leave(1001, reason="two\nlines")])

    assert [leave.reason for leave in store.load_leaves()] == ["fine"]


def test_enum_text_codec_uses_on_disk_names():
    assert [member.to_text() for member in LeaveType] == ["ANNUAL", "SICK", "UNPAID"]
    assert LeaveStatus.parse("REJECTED") is LeaveStatus.REJECTED
    with pytest.raises(ValueError):
        LeaveStatus.parse("rejected")
