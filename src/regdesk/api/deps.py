"""FastAPI dependencies: admin auth, service lookups and the response envelope."""
from typing import Any, Dict

from fastapi import Request

from regdesk.errors import UnauthorizedError


def ok(data: Any = None, **extra: Any) -> Dict[str, Any]:
    """Success envelope: {"success": true, "data": ...}."""
    body: Dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def require_admin(request: Request) -> str:
    """
    Return the caller's email if it is on the admin allow-list.

    The OAuth login itself happens upstream; the identity proxy forwards the
    authenticated email in settings.auth_email_header.

    Raises:
        UnauthorizedError: header missing or email not allow-listed.
    """
    settings = request.app.state.settings
    email = (request.headers.get(settings.auth_email_header) or "").strip().lower()
    if not email:
        raise UnauthorizedError("Unauthorized")
    if email not in settings.admin_email_list:
        raise UnauthorizedError("Unauthorized: admin access required")
    return email


def get_app_settings(request: Request):
    return request.app.state.settings


def get_audit(request: Request):
    return request.app.state.audit


def get_notifier(request: Request):
    return request.app.state.notifier


def get_dispatcher(request: Request):
    return request.app.state.dispatcher


def get_sync_service(request: Request):
    return request.app.state.sync_service
