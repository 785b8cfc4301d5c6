# Overview: JSON envelope helpers shared by API routes.

from __future__ import annotations

from flask import jsonify, request

from .errors import ShopError


def ok(data=None, message: str | None = None, status: int = 200, **extra):
    """{success: true, message, data} with optional top-level extras (pagination)."""
    body = {"success": True, "message": message, "data": data}
    body.update(extra)
    return jsonify(body), status


def fail(message: str, status: int = 400, code: str | None = None, data=None):
    body = {"success": False, "message": message, "data": data}
    if code:
        body["code"] = code
    return jsonify(body), status


def from_error(exc: ShopError):
    """Render a service-layer ShopError with its own code and status."""
    return jsonify(exc.to_dict()), exc.status_code


def request_payload() -> dict:
    """JSON body, falling back to form fields and then query args."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    if request.form:
        return request.form.to_dict()
    return request.args.to_dict()
