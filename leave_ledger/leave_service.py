"""Business logic for the leave request lifecycle."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, replace
from threading import RLock
from typing import Dict, List, Optional

from .errors import (
    InsufficientBalance,
    InvalidRange,
    InvalidTransition,
    LeaveError,
    NotFound,
    PersistenceFailure,
    UnknownEmployee,
)
from .models import Employee, LeaveApplication, LeaveStatus, LeaveType, inclusive_days
from .storage import PersistenceStore, check_single_line


logger = logging.getLogger(__name__)

ADMIN_USERNAME = "admin"


@dataclass(frozen=True)
class Identity:
    """Outcome of the login role selector."""

    role: str
    employee: Optional[Employee] = None


def _clean_reason(reason: Optional[str]) -> str:
    if reason is None:
        return ""
    if not isinstance(reason, str):
        raise LeaveError("Reason must be text")
    try:
        check_single_line(reason, "Reason")
    except ValueError as exc:
        raise LeaveError(str(exc)) from exc
    return reason


class LeaveLedger:
    """Authoritative in-memory state for employees and leave applications.

    Both tables are loaded once from ``store`` when the ledger is built.  Every
    successful mutation rewrites the affected table(s) before returning; if a
    write fails the in-memory change is undone and the error propagates.
    """

    def __init__(self, store: PersistenceStore) -> None:
        self.store = store
        self._lock = RLock()
        self._employees: Dict[int, Employee] = store.load_employees()
        self._leaves: List[LeaveApplication] = store.load_leaves()
        logger.info(
            "Loaded %d employees and %d leave applications from %s",
            len(self._employees),
            len(self._leaves),
            store.data_dir,
        )

    def get_all_employees(self) -> List[Employee]:
        with self._lock:
            return [replace(employee) for employee in self._employees.values()]

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        with self._lock:
            employee = self._employees.get(employee_id)
            return replace(employee) if employee else None

    def get_all_leaves(self) -> List[LeaveApplication]:
        with self._lock:
            return [replace(leave) for leave in self._leaves]

    def get_leaves_for_employee(self, employee_id: int) -> List[LeaveApplication]:
        with self._lock:
            return [replace(leave) for leave in self._leaves if leave.employee_id == employee_id]

    def get_pending_leaves(self) -> List[LeaveApplication]:
        with self._lock:
            return [
                replace(leave) for leave in self._leaves if leave.status is LeaveStatus.PENDING
            ]

    def get_leave(self, leave_id: int) -> LeaveApplication:
        with self._lock:
            return replace(self._find_leave(leave_id))

    def identify(self, username: str) -> Identity:
        username = (username or "").strip()
        if username.lower() == ADMIN_USERNAME:
            return Identity(role="admin")
        try:
            employee_id = int(username)
        except ValueError:
            employee_id = None
        employee = self.get_employee(employee_id) if employee_id is not None else None
        if employee is None:
            raise UnknownEmployee("Enter a valid Employee ID (e.g., 1001)")
        return Identity(role="employee", employee=employee)

    def apply_leave(
        self,
        employee_id: int,
        leave_type: LeaveType,
        start: dt.date,
        end: dt.date,
        reason: Optional[str] = None,
    ) -> LeaveApplication:
        if end < start:
            raise InvalidRange("End date cannot be before start date")
        days = inclusive_days(start, end)
        reason = _clean_reason(reason)

        with self._lock:
            employee = self._employees.get(employee_id)
            if employee is None:
                raise UnknownEmployee(f"Employee {employee_id} was not found")
            # Pending requests do not hold balance; only approval debits it.
            if leave_type is LeaveType.ANNUAL and employee.balance < days:
                raise InsufficientBalance(
                    f"Insufficient leave balance: {days} days requested, "
                    f"{employee.balance} available"
                )

            application = LeaveApplication(
                id=self.store.next_leave_id(self._leaves),
                employee_id=employee_id,
                type=leave_type,
                start=start,
                end=end,
                days=days,
                status=LeaveStatus.PENDING,
                reason=reason,
            )
            self._leaves.append(application)
            try:
                self.store.save_leaves(self._leaves)
            except Exception:
                self._leaves.pop()
                raise

        logger.info(
            "Leave %d submitted for employee %d: %s, %d days",
            application.id,
            employee_id,
            leave_type.to_text(),
            days,
        )
        return replace(application)

    def approve_leave(self, leave_id: int) -> LeaveApplication:
        with self._lock:
            application = self._find_pending(leave_id, "approved")
            employee = None
            if application.type is LeaveType.ANNUAL:
                employee = self._employees.get(application.employee_id)
                if employee is None:
                    raise UnknownEmployee(f"Employee {application.employee_id} was not found")

            application.status = LeaveStatus.APPROVED
            previous_balance = employee.balance if employee is not None else None
            employees_saved = False
            try:
                if employee is not None:
                    employee.balance = max(0, employee.balance - application.days)
                    self.store.save_employees(self._employees)
                    employees_saved = True
                self.store.save_leaves(self._leaves)
            except Exception:
                application.status = LeaveStatus.PENDING
                if employee is not None:
                    employee.balance = previous_balance
                if employees_saved:
                    self._restore_employee_table()
                raise

        logger.info("Leave %d approved", leave_id)
        return replace(application)

    def reject_leave(self, leave_id: int) -> LeaveApplication:
        with self._lock:
            application = self._find_pending(leave_id, "rejected")
            application.status = LeaveStatus.REJECTED
            try:
                self.store.save_leaves(self._leaves)
            except Exception:
                application.status = LeaveStatus.PENDING
                raise

        logger.info("Leave %d rejected", leave_id)
        return replace(application)

    def _restore_employee_table(self) -> None:
        try:
            self.store.save_employees(self._employees)
        except PersistenceFailure:
            logger.error("Employee table on disk no longer matches the ledger")

    def _find_leave(self, leave_id: int) -> LeaveApplication:
        for application in self._leaves:
            if application.id == leave_id:
                return application
        raise NotFound(f"Leave not found: {leave_id}")

    def _find_pending(self, leave_id: int, verb: str) -> LeaveApplication:
        application = self._find_leave(leave_id)
        if application.status is not LeaveStatus.PENDING:
            raise InvalidTransition(f"Only pending requests can be {verb}")
        return application


__all__ = ["ADMIN_USERNAME", "Identity", "LeaveLedger"]
