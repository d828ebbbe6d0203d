from __future__ import annotations

import dataclasses
from typing import List

from assettrack.domain.records import (
    AUDIT_DIVERGENT_STATUSES,
    AUDIT_STATUSES,
    AuditEntry,
    AuditSession,
    utc_now_iso,
)
from assettrack.errors import ValidationError, WorkflowError


def new_session(session_id: str, sector: str) -> AuditSession:
    name = (sector or "").strip()
    if not name:
        raise ValidationError(code="sector_required")
    return AuditSession(id=session_id, sector=name, created_at=utc_now_iso())


def _ensure_open(session: AuditSession) -> None:
    if session.is_finished:
        raise WorkflowError(code="session_finished", message_key="session_finished", payload={"session_id": session.id})


def record_entry(session: AuditSession, asset_id: str, status: str, observation: str | None = None) -> AuditSession:
    """Upserts the check of one asset; a later check replaces the earlier one."""
    _ensure_open(session)
    if status not in AUDIT_STATUSES:
        raise ValidationError(code="status_invalid", payload={"status": status})
    entries: List[AuditEntry] = list(session.entries)
    checked_at = utc_now_iso()
    for idx, entry in enumerate(entries):
        if entry.asset_id == asset_id:
            entries[idx] = AuditEntry(
                asset_id=asset_id,
                status=status,
                checked_at=checked_at,
                observation=entry.observation if observation is None else (observation.strip() or None),
            )
            break
    else:
        entries.append(
            AuditEntry(
                asset_id=asset_id,
                status=status,
                checked_at=checked_at,
                observation=(observation or "").strip() or None,
            )
        )
    return dataclasses.replace(session, entries=entries)


def divergent_entries(session: AuditSession) -> List[AuditEntry]:
    return [entry for entry in session.entries if entry.status in AUDIT_DIVERGENT_STATUSES]


def finish(session: AuditSession, generated_request_id: str | None = None) -> AuditSession:
    _ensure_open(session)
    return dataclasses.replace(session, is_finished=True, generated_request_id=generated_request_id)


def progress(session: AuditSession, expected_asset_ids: List[str]) -> dict:
    checked = {entry.asset_id for entry in session.entries}
    expected = set(expected_asset_ids)
    return {
        "expected": len(expected),
        "checked": len(checked & expected) if expected else len(checked),
        "divergent": len(divergent_entries(session)),
        "pending_asset_ids": sorted(expected - checked),
    }
