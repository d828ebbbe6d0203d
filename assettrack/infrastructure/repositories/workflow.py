from __future__ import annotations

from assettrack.domain.records import AuditSession, EquipmentRequest
from assettrack.infrastructure.repositories.base import BaseRepository


class RequestRepository(BaseRepository):
    table = "requests"
    record_cls = EquipmentRequest
    json_fields = ("items", "item_fulfillments")
    order_by = "created_at DESC, id"


class AuditSessionRepository(BaseRepository):
    table = "audit_sessions"
    record_cls = AuditSession
    json_fields = ("entries",)
    bool_fields = ("is_finished",)
    order_by = "created_at DESC, id"
