from __future__ import annotations

from typing import Any, Dict

from assettrack.ui_strings import error_message


class AppError(Exception):
    """Base for every error rendered as ``{"error", "message", "request_id", ...payload}``.

    ``critical`` errors are logged at ERROR with a traceback; the rest at WARNING.
    """

    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        # A custom code doubles as its message key unless one is given.
        self.message_key = (message_key or code or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = bool(self.default_critical if critical is None else critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        return error_message(self.message_key, error_message("unexpected_error", "Nao foi possivel concluir a operacao."))

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.user_message(), "request_id": request_id}
        payload.update(self.payload)
        return payload

    def log_extra(self) -> Dict[str, Any]:
        # details never reach the client; they only go to the log.
        return {
            "error_code": self.code,
            "http_status": self.http_status,
            "message_key": self.message_key,
            "details": self.details,
        }


class ValidationError(AppError):
    default_code = "validation_error"
    default_message_key = "validation_error"
    default_http_status = 400
    default_critical = False


class NotFoundError(AppError):
    default_code = "not_found"
    default_message_key = "not_found"
    default_http_status = 404
    default_critical = False


class PermissionError(AppError):
    default_code = "permission_denied"
    default_message_key = "permission_denied"
    default_http_status = 403
    default_critical = False


class WorkflowError(AppError):
    """A purchase, request or audit transition the current status does not allow."""

    default_code = "action_not_allowed_for_status"
    default_message_key = "action_not_allowed_for_status"
    default_http_status = 409
    default_critical = False


class StoreError(AppError):
    """Database driver failure; the driver message stays in ``details``."""

    default_code = "store_unavailable"
    default_message_key = "store_unavailable"
    default_http_status = 503
    default_critical = False


class SystemError(AppError):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True
