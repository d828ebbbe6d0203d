from __future__ import annotations

import http.client
import json
import os
import urllib.error
import urllib.request
from datetime import datetime

from flask import current_app

from assettrack.domain.records import Asset


class TelegramError(RuntimeError):
    pass


def send_message(token: str, chat_id: str, text: str) -> dict:
    base = str(_get_config("TELEGRAM_API_BASE", "https://api.telegram.org/bot") or "").rstrip("/")
    url = f"{base}{token}/sendMessage"
    payload = {"chat_id": chat_id, "text": text, "parse_mode": "Markdown"}
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    request = urllib.request.Request(
        url,
        data=data,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
        method="POST",
    )
    timeout = _int_config("TELEGRAM_TIMEOUT_SECONDS", 10)
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            body = response.read().decode("utf-8")
            return json.loads(body) if body else {}
    except urllib.error.HTTPError as exc:
        error_body = exc.read().decode("utf-8", "replace") if exc.fp else ""
        raise TelegramError(f"Telegram HTTP {exc.code}: {error_body[:200]}") from exc
    except urllib.error.URLError as exc:
        raise TelegramError(f"Erro de rede Telegram: {exc.reason}") from exc
    except json.JSONDecodeError as exc:
        raise TelegramError("Telegram retornou JSON invalido.") from exc
    except UnicodeDecodeError as exc:
        raise TelegramError("Telegram retornou resposta ilegivel.") from exc
    except (http.client.HTTPException, OSError) as exc:
        raise TelegramError(f"Falha de conexao Telegram: {exc!r}") from exc


def notify(token: str | None, chat_id: str | None, text: str) -> bool:
    """Best-effort delivery; returns False when skipped or failed."""
    if not token or not chat_id:
        current_app.logger.info("telegram_not_configured")
        return False
    try:
        send_message(token, chat_id, text)
    except TelegramError as exc:
        current_app.logger.warning("telegram_send_failed", extra={"details": str(exc)})
        return False
    return True


def maintenance_alert_text(asset: Asset, reason: str, requester_name: str, requester_sector: str = "") -> str:
    now = datetime.now()
    sector = f" ({requester_sector})" if requester_sector else ""
    lines = [
        "*NOVA SOLICITACAO DE REPARO*",
        "",
        f"*Ativo:* {asset.type} {asset.brand} {asset.model}".rstrip(),
        f"*ID:* `{asset.id}`",
        f"*Tag:* {asset.tag_id or 'N/A'}",
        "",
        f"*Solicitante:* {requester_name}{sector}",
        "*Motivo:*",
        f"_{reason}_",
        "",
        f"*Data:* {now.strftime('%d/%m/%Y')} as {now.strftime('%H:%M:%S')}",
    ]
    return "\n".join(lines)


def _get_config(key: str, default: object | None = None) -> object | None:
    try:
        return current_app.config.get(key, default)
    except RuntimeError:
        return os.environ.get(key, default)


def _int_config(key: str, default: int) -> int:
    value = _get_config(key, default)
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
