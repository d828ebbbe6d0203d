from __future__ import annotations

from typing import Iterable, List

from flask import current_app, g, has_request_context

from assettrack.domain.contracts import SYSTEM_ACTOR, Actor
from assettrack.domain.records import APP_MODULES
from assettrack.errors import PermissionError as AppPermissionError


DUTY_APPROVE = "approve"
DUTY_EXECUTE = "execute"

ADMIN_USERNAME = "admin"


def normalize_modules(modules: Iterable[str] | None) -> List[str]:
    result: List[str] = []
    for module in modules or []:
        normalized = str(module or "").strip().lower()
        if normalized and normalized not in result:
            result.append(normalized)
    return result


def invalid_modules(modules: Iterable[str]) -> List[str]:
    return [module for module in modules if module not in APP_MODULES]


def current_actor() -> Actor:
    if has_request_context():
        actor = getattr(g, "actor", None)
        if isinstance(actor, Actor):
            return actor
    return SYSTEM_ACTOR


def has_module(actor: Actor, module: str) -> bool:
    return actor.is_admin or module in actor.modules


def require_module(module: str, actor: Actor | None = None) -> Actor:
    resolved = actor or current_actor()
    if has_module(resolved, module):
        return resolved
    raise AppPermissionError(
        code="module_forbidden",
        message_key="module_forbidden",
        http_status=403,
        critical=False,
        payload={"module": module},
    )


def duties_enforced() -> bool:
    try:
        return bool(current_app.config.get("ENFORCE_PURCHASE_DUTIES", True))
    except RuntimeError:
        return True


def require_duty(actor: Actor, duty: str) -> None:
    if actor.is_admin or not duties_enforced():
        return
    if duty == DUTY_APPROVE and actor.can_approve:
        return
    if duty == DUTY_EXECUTE and actor.can_execute:
        return
    raise AppPermissionError(
        code=f"{duty}_duty_required",
        message_key=f"{duty}_duty_required",
        http_status=403,
        critical=False,
        payload={"duty": duty, "username": actor.username},
    )
