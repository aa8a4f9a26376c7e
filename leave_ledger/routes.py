"""HTTP routes for the leave ledger."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request

from .errors import (
    InvalidTransition,
    LeaveError,
    NotFound,
    PersistenceFailure,
    UnknownEmployee,
)
from .leave_service import LeaveLedger
from .models import LeaveStatus, LeaveType


api_bp = Blueprint("leave_api", __name__)


ERROR_STATUS = {
    UnknownEmployee: 404,
    NotFound: 404,
    InvalidTransition: 409,
    PersistenceFailure: 500,
}


def get_ledger() -> LeaveLedger:
    return current_app.extensions["leave_ledger"]


def _parse_date(value: Any, field: str) -> dt.date:
    if not value:
        raise LeaveError(f"'{field}' is required in YYYY-MM-DD format")
    try:
        return dt.datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError) as exc:
        raise LeaveError(f"'{field}' must be in YYYY-MM-DD format") from exc


def _parse_enum(codec, value: Any, field: str):
    try:
        return codec.parse(str(value).strip().upper())
    except ValueError as exc:
        raise LeaveError(f"'{field}' {exc}") from exc


def _parse_employee_id(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise LeaveError("'employee_id' must be an integer") from exc


def _json_object() -> Dict[str, Any]:
    payload = request.get_json(force=True)
    if not isinstance(payload, dict):
        raise LeaveError("JSON object body required")
    return payload


def _parse_reason(value: Any):
    if value is not None and not isinstance(value, str):
        raise LeaveError("'reason' must be a string")
    return value


def _dump(items) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]


@api_bp.errorhandler(LeaveError)
def handle_leave_error(exc: LeaveError):
    status = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)),
        400,
    )
    if status >= 500:
        current_app.logger.error("Request failed: %s", exc)
    return jsonify({"error": str(exc), "kind": type(exc).__name__}), status


@api_bp.route("/health", methods=["GET"])
def health_check():
    return jsonify({"status": "ok"})


@api_bp.route("/login", methods=["POST"])
def login():
    payload = _json_object()
    identity = get_ledger().identify(payload.get("username") or "")
    body: Dict[str, Any] = {"role": identity.role}
    if identity.employee is not None:
        body["employee"] = identity.employee.to_dict()
    return jsonify(body)


@api_bp.route("/employees", methods=["GET"])
def employees():
    return jsonify(_dump(get_ledger().get_all_employees()))


@api_bp.route("/employees/<int:employee_id>", methods=["GET"])
def employee_detail(employee_id: int):
    employee = get_ledger().get_employee(employee_id)
    if employee is None:
        raise UnknownEmployee(f"Employee {employee_id} was not found")
    return jsonify(employee.to_dict())


@api_bp.route("/employees/<int:employee_id>/leaves", methods=["GET"])
def employee_leaves(employee_id: int):
    ledger = get_ledger()
    if ledger.get_employee(employee_id) is None:
        raise UnknownEmployee(f"Employee {employee_id} was not found")
    return jsonify(_dump(ledger.get_leaves_for_employee(employee_id)))


@api_bp.route("/leave/applications", methods=["GET"])
def applications():
    ledger = get_ledger()
    status = request.args.get("status")
    employee_id = request.args.get("employee_id")

    if employee_id:
        results = ledger.get_leaves_for_employee(_parse_employee_id(employee_id))
    elif status and status.upper() == LeaveStatus.PENDING.to_text():
        results = ledger.get_pending_leaves()
    else:
        results = ledger.get_all_leaves()

    if status and status.lower() != "all":
        wanted = _parse_enum(LeaveStatus, status, "status")
        results = [leave for leave in results if leave.status is wanted]
    return jsonify(_dump(results))


@api_bp.route("/leave/apply", methods=["POST"])
def apply_leave():
    payload = _json_object()
    employee_id = payload.get("employee_id")
    leave_type = payload.get("leave_type")

    if employee_id is None:
        raise LeaveError("'employee_id' is required")
    if not leave_type:
        raise LeaveError("'leave_type' is required")

    application = get_ledger().apply_leave(
        employee_id=_parse_employee_id(employee_id),
        leave_type=_parse_enum(LeaveType, leave_type, "leave_type"),
        start=_parse_date(payload.get("start"), "start"),
        end=_parse_date(payload.get("end"), "end"),
        reason=_parse_reason(payload.get("reason")),
    )
    return jsonify(application.to_dict()), 201


@api_bp.route("/leave/<int:leave_id>/approve", methods=["POST"])
def approve_leave(leave_id: int):
    return jsonify(get_ledger().approve_leave(leave_id).to_dict())


@api_bp.route("/leave/<int:leave_id>/reject", methods=["POST"])
def reject_leave(leave_id: int):
    return jsonify(get_ledger().reject_leave(leave_id).to_dict())


__all__ = ["api_bp", "get_ledger"]
