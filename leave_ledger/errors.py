"""Error kinds raised by the leave ledger."""

from __future__ import annotations


class LeaveError(RuntimeError):
    """Base class for every failure a ledger operation can report."""


class InvalidRange(LeaveError):
    """The requested end date precedes the start date."""


class UnknownEmployee(LeaveError):
    """No employee matches the supplied identifier."""


class InsufficientBalance(LeaveError):
    """An annual leave request asks for more days than the employee has left."""


class InvalidTransition(LeaveError):
    """The leave application is no longer pending."""


class NotFound(LeaveError):
    """No leave application matches the supplied identifier."""


class PersistenceFailure(LeaveError):
    """A table could not be written to disk."""


__all__ = [
    "InsufficientBalance",
    "InvalidRange",
    "InvalidTransition",
    "LeaveError",
    "NotFound",
    "PersistenceFailure",
    "UnknownEmployee",
]
