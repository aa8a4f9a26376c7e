"""Entities tracked by the leave ledger."""

from __future__ import annotations

import datetime as dt
import enum
from dataclasses import dataclass
from typing import Any, Dict


class _TextCodec(enum.Enum):
    """Enum whose on-disk text is the member value, spelled like its name."""

    def to_text(self) -> str:
        return self.value

    @classmethod
    def parse(cls, text: str):
        try:
            return cls(text)
        except ValueError:
            names = ", ".join(member.value for member in cls)
            raise ValueError(f"'{text}' is not one of {names}") from None


class LeaveType(_TextCodec):
    ANNUAL = "ANNUAL"
    SICK = "SICK"
    UNPAID = "UNPAID"


class LeaveStatus(_TextCodec):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass
class Employee:
    id: int
    name: str
    balance: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "balance": self.balance}


@dataclass
class LeaveApplication:
    id: int
    employee_id: int
    type: LeaveType
    start: dt.date
    end: dt.date
    days: int
    status: LeaveStatus
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "type": self.type.to_text(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "days": self.days,
            "status": self.status.to_text(),
            "reason": self.reason,
        }


def inclusive_days(start: dt.date, end: dt.date) -> int:
    """Number of calendar days from ``start`` to ``end``, both included."""
    return (end - start).days + 1


__all__ = [
    "Employee",
    "LeaveApplication",
    "LeaveStatus",
    "LeaveType",
    "inclusive_days",
]
