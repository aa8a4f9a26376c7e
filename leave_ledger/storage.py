"""Flat-file persistence for employees and leave applications.

Each table is a UTF-8 text file with a header row followed by one
comma-separated record per line.  Free-text fields escape backslashes and
commas with a backslash so that a record always splits cleanly.
"""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Mapping, Sequence, Union

from .errors import PersistenceFailure
from .models import Employee, LeaveApplication, LeaveStatus, LeaveType


logger = logging.getLogger(__name__)

EMPLOYEE_HEADER = "id,name,balance"
LEAVE_HEADER = "id,employeeId,type,start,end,days,status,reason"

SEED_EMPLOYEES = (
    (1001, "Alice", 20),
    (1002, "Bob", 20),
)

LEAVE_ID_FLOOR = 1000


LINE_BREAKS = ("\n", "\r")


def check_single_line(text: str, field: str) -> None:
    if any(char in text for char in LINE_BREAKS):
        raise ValueError(f"{field} must not contain line breaks")


def escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace(",", "\\,")


def unescape(text: str) -> str:
    out = []
    pending_escape = False
    for char in text:
        if pending_escape:
            out.append(char)
            pending_escape = False
        elif char == "\\":
            pending_escape = True
        else:
            out.append(char)
    return "".join(out)


def split_fields(line: str) -> List[str]:
    """Split ``line`` on unescaped commas, keeping escapes in each field.

    Trailing empty fields are preserved: ``"a,"`` yields ``["a", ""]``.
    """
    fields = []
    current = []
    pending_escape = False
    for char in line:
        if pending_escape:
            current.append(char)
            pending_escape = False
        elif char == "\\":
            current.append(char)
            pending_escape = True
        elif char == ",":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


def _employee_row(employee: Employee) -> str:
    check_single_line(employee.name, "name")
    return f"{employee.id},{escape(employee.name)},{employee.balance}"


def _leave_row(leave: LeaveApplication) -> str:
    check_single_line(leave.reason, "reason")
    return ",".join(
        [
            str(leave.id),
            str(leave.employee_id),
            leave.type.to_text(),
            leave.start.isoformat(),
            leave.end.isoformat(),
            str(leave.days),
            leave.status.to_text(),
            escape(leave.reason),
        ]
    )


def _parse_employee(fields: Sequence[str]) -> Employee:
    if len(fields) != 3:
        raise ValueError(f"expected 3 fields, found {len(fields)}")
    return Employee(id=int(fields[0]), name=unescape(fields[1]), balance=int(fields[2]))


def _parse_leave(fields: Sequence[str]) -> LeaveApplication:
    if len(fields) != 8:
        raise ValueError(f"expected 8 fields, found {len(fields)}")
    return LeaveApplication(
        id=int(fields[0]),
        employee_id=int(fields[1]),
        type=LeaveType.parse(fields[2]),
        start=dt.date.fromisoformat(fields[3]),
        end=dt.date.fromisoformat(fields[4]),
        days=int(fields[5]),
        status=LeaveStatus.parse(fields[6]),
        reason=unescape(fields[7]),
    )


class PersistenceStore:
    """Reads and rewrites the ``employees`` and ``leaves`` tables."""

    def __init__(self, data_dir: Union[str, Path] = "data") -> None:
        self.data_dir = Path(data_dir)
        self.employee_file = self.data_dir / "employees.csv"
        self.leave_file = self.data_dir / "leaves.csv"
        self._lock = Lock()

    def load_employees(self) -> Dict[int, Employee]:
        if not self.employee_file.exists():
            seeded = {
                emp_id: Employee(id=emp_id, name=name, balance=balance)
                for emp_id, name, balance in SEED_EMPLOYEES
            }
            logger.info("Seeding %s with %d default employees", self.employee_file, len(seeded))
            try:
                self.save_employees(seeded)
            except PersistenceFailure:
                logger.warning("Continuing with unsaved seed employees")
            return seeded

        employees: Dict[int, Employee] = {}
        for employee in self._read_rows(self.employee_file, _parse_employee):
            employees[employee.id] = employee
        return employees

    def save_employees(self, employees: Mapping[int, Employee]) -> None:
        self._write_table(
            self.employee_file,
            EMPLOYEE_HEADER,
            (_employee_row(employee) for employee in employees.values()),
        )

    def load_leaves(self) -> List[LeaveApplication]:
        if not self.leave_file.exists():
            leaves: List[LeaveApplication] = []
            try:
                self.save_leaves(leaves)
            except PersistenceFailure:
                logger.warning("Continuing without an on-disk leave table")
            return leaves
        return list(self._read_rows(self.leave_file, _parse_leave))

    def save_leaves(self, leaves: Iterable[LeaveApplication]) -> None:
        self._write_table(self.leave_file, LEAVE_HEADER, (_leave_row(leave) for leave in leaves))

    @staticmethod
    def next_leave_id(leaves: Iterable[LeaveApplication]) -> int:
        return max((leave.id for leave in leaves), default=LEAVE_ID_FLOOR) + 1

    def _read_rows(self, path: Path, parse) -> List:
        records = []
        try:
            with path.open("r", encoding="utf-8", newline="") as handle:
                next(handle, None)
                for line_number, line in enumerate(handle, start=2):
                    line = line.rstrip("\r\n")
                    if not line.strip():
                        continue
                    try:
                        records.append(parse(split_fields(line)))
                    except ValueError as exc:
                        logger.warning("Skipping malformed row %s:%d: %s", path, line_number, exc)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Could not read %s, keeping %d rows parsed so far: %s", path, len(records), exc
            )
        return records

    def _write_table(self, path: Path, header: str, rows: Iterable[str]) -> None:
        with self._lock:
            temp_path = path.with_suffix(".tmp")
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                with temp_path.open("w", encoding="utf-8", newline="\n") as handle:
                    handle.write(header + "\n")
                    for row in rows:
                        handle.write(row + "\n")
                temp_path.replace(path)
            except (OSError, ValueError) as exc:
                logger.error("Failed to write %s: %s", path, exc)
                raise PersistenceFailure(f"Could not save {path.name}: {exc}") from exc


__all__ = [
    "EMPLOYEE_HEADER",
    "LEAVE_HEADER",
    "PersistenceStore",
    "check_single_line",
    "escape",
    "split_fields",
    "unescape",
]
