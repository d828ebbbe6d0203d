"""Plain records mirrored from the store tables.

Records hold state only. Rules that move a record from one status to another live in
``purchase_workflow`` and ``request_flow``.
"""

from __future__ import annotations

import dataclasses
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Iterable, List


ASSET_TYPES: List[str] = [
    "Desktop",
    "Notebook",
    "Mouse",
    "Cabo",
    "Monitor",
    "Teclado",
    "Headset",
    "Suporte Notebook",
]

ASSET_AVAILABLE = "Disponível"
ASSET_IN_USE = "Em Uso"
ASSET_MAINTENANCE = "Manutenção"
ASSET_RETIRED = "Baixado"
ASSET_PENDING_DOCUMENTS = "Pendente Documentos"
ASSET_STATUSES: List[str] = [
    ASSET_AVAILABLE,
    ASSET_IN_USE,
    ASSET_MAINTENANCE,
    ASSET_RETIRED,
    ASSET_PENDING_DOCUMENTS,
]

AUDIT_GOOD = "Bom"
AUDIT_FAIR = "Regular"
AUDIT_BAD = "Ruim"
AUDIT_NOT_FOUND = "Não Encontrado"
AUDIT_STATUSES: List[str] = [AUDIT_GOOD, AUDIT_FAIR, AUDIT_BAD, AUDIT_NOT_FOUND]
AUDIT_DIVERGENT_STATUSES = {AUDIT_BAD, AUDIT_NOT_FOUND}

APP_MODULES: List[str] = [
    "dashboard",
    "companies",
    "assets",
    "maintenance",
    "employees",
    "requests",
    "purchase-orders",
    "printing",
    "user-management",
    "inventory-check",
    "accounting",
    "system-info",
]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def generate_id(prefix: str, taken: Iterable[str] = ()) -> str:
    """Return ``PREFIX-####`` not present in ``taken``; widens to a hex suffix when crowded."""
    used = set(taken)
    for _ in range(50):
        candidate = f"{prefix}-{random.randint(1000, 9999)}"
        if candidate not in used:
            return candidate
    while True:
        candidate = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
        if candidate not in used:
            return candidate


def new_history_id() -> str:
    return f"HIS-{uuid.uuid4().hex[:10].upper()}"


def _coerce(annotation: str, value: Any) -> Any:
    if value is None:
        return {"str": "", "bool": False, "float": 0.0}.get(annotation)
    if annotation == "bool":
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on", "sim"}
        return bool(value)
    if annotation in {"float", "float | None"}:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0 if annotation == "float" else None
    if annotation in {"int", "int | None"}:
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    if annotation in {"str", "str | None"}:
        return str(value)
    return value


class Record:
    # field name -> record class name, for list fields holding nested records
    NESTED: ClassVar[Dict[str, str]] = {}

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any] | None):
        raw = dict(data or {})
        kwargs: Dict[str, Any] = {}
        for item in dataclasses.fields(cls):
            if item.name not in raw:
                continue
            value = raw[item.name]
            nested_name = cls.NESTED.get(item.name)
            if nested_name:
                nested_cls = globals()[nested_name]
                value = [
                    entry if isinstance(entry, nested_cls) else nested_cls.from_dict(entry)
                    for entry in (value or [])
                ]
            elif str(item.type).startswith("List["):
                value = list(value or [])
            else:
                value = _coerce(str(item.type), value)
            kwargs[item.name] = value
        return cls(**kwargs)


@dataclass
class HistoryEntry(Record):
    id: str
    date: str
    type: str
    description: str
    performed_by: str = ""
    user_context: str | None = None


@dataclass
class Asset(Record):
    NESTED: ClassVar[Dict[str, str]] = {"history": "HistoryEntry"}

    id: str
    type: str
    brand: str = ""
    model: str = ""
    status: str = ASSET_AVAILABLE
    assigned_to: str | None = None
    department_id: str | None = None
    legal_entity_id: str | None = None
    classification_id: str | None = None
    tag_id: str | None = None
    serial_number: str | None = None
    purchase_value: float = 0.0
    ram: str | None = None
    storage: str | None = None
    processor: str | None = None
    screen_size: str | None = None
    observations: str = ""
    photos: List[str] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)
    qr_code: str = ""
    created_at: str = ""

    def with_history(self, entry: HistoryEntry, **changes) -> "Asset":
        return dataclasses.replace(self, history=[*self.history, entry], **changes)


@dataclass
class Employee(Record):
    id: str
    name: str
    sector: str = ""
    role: str = ""
    cpf: str = ""
    department_id: str | None = None
    is_active: bool = True


@dataclass
class Department(Record):
    id: str
    name: str
    cost_center: str = ""
    created_at: str = ""


@dataclass
class LegalEntity(Record):
    id: str
    name: str
    cnpj: str = ""
    address: str = ""
    created_at: str = ""


@dataclass
class Quotation(Record):
    url: str = ""
    price: float | None = None
    delivery_prediction: str = ""

    def is_filled(self) -> bool:
        return bool((self.url or "").strip()) or self.price is not None


@dataclass
class ItemFulfillment(Record):
    NESTED: ClassVar[Dict[str, str]] = {"quotations": "Quotation"}

    type: str
    linked_asset_id: str | None = None
    is_purchase_order: bool = False
    purchase_status: str | None = None
    quotations: List[Quotation] = field(default_factory=list)
    approved_quotation_index: int | None = None
    delivery_forecast_date: str | None = None
    is_delivered: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.is_purchase_order or bool(self.linked_asset_id)


@dataclass
class EquipmentRequest(Record):
    NESTED: ClassVar[Dict[str, str]] = {"item_fulfillments": "ItemFulfillment"}

    id: str
    items: List[str] = field(default_factory=list)
    item_fulfillments: List[ItemFulfillment] = field(default_factory=list)
    employee_id: str | None = None
    requester_id: str | None = None
    observation: str = ""
    status: str = "Pendente"
    type: str = "Padrao"
    created_at: str = ""


@dataclass
class UserAccount(Record):
    id: str
    name: str
    username: str
    password: str = ""
    sector: str = ""
    modules: List[str] = field(default_factory=list)
    employee_id: str | None = None
    can_approve: bool = False
    can_execute: bool = False

    def to_public_dict(self) -> Dict[str, Any]:
        payload = self.to_dict()
        payload.pop("password", None)
        return payload


@dataclass
class AuditEntry(Record):
    asset_id: str
    status: str
    checked_at: str
    observation: str | None = None


@dataclass
class AuditSession(Record):
    NESTED: ClassVar[Dict[str, str]] = {"entries": "AuditEntry"}

    id: str
    sector: str
    created_at: str = ""
    entries: List[AuditEntry] = field(default_factory=list)
    is_finished: bool = False
    generated_request_id: str | None = None


@dataclass
class AccountingAccount(Record):
    id: str
    code: str
    name: str


@dataclass
class AccountingClassification(Record):
    id: str
    code: str
    name: str
    account_id: str | None = None


@dataclass
class AssetTypeConfig(Record):
    id: str
    name: str
    classification_id: str | None = None


@dataclass
class SystemConfig(Record):
    key: str
    value: str = ""
