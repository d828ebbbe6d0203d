from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List

from flask import request

from assettrack.errors import ValidationError


def json_payload() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError(code="json_body_required")
    return payload


def text(payload: Dict[str, Any], key: str, default: str = "") -> str:
    value = payload.get(key)
    if value is None:
        return default
    return str(value).strip()


def optional_text(payload: Dict[str, Any], key: str) -> str | None:
    return text(payload, key) or None


def flag(payload: Dict[str, Any], key: str, default: bool = False) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on", "sim"}
    return bool(value)


def parse_int(value: Any, *, field: str) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(code="validation_error", payload={"field": field}) from None


def parse_optional_float(value: Any, *, field: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        parsed = float(str(value).strip().replace(",", "."))
    except ValueError:
        raise ValidationError(code="quotation_price_invalid", payload={"field": field}) from None
    if not math.isfinite(parsed):
        raise ValidationError(code="quotation_price_invalid", payload={"field": field})
    return parsed


def string_list(payload: Dict[str, Any], key: str) -> List[str]:
    value = payload.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(code="validation_error", payload={"field": key})
    return [str(item).strip() for item in value if str(item or "").strip()]


def records(items: Iterable[Any]) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in items]
