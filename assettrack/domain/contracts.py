from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class Actor:
    user_id: str
    username: str
    name: str = ""
    can_approve: bool = False
    can_execute: bool = False
    modules: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return self.username == "admin"

    @property
    def label(self) -> str:
        return self.name or self.username or "sistema"


SYSTEM_ACTOR = Actor(user_id="", username="admin", name="Sistema", can_approve=True, can_execute=True)


@dataclass(frozen=True)
class RequestCreateInput:
    items: List[str]
    employee_id: str | None
    observation: str
    requester_id: str | None


@dataclass(frozen=True)
class DirectPurchaseInput:
    item_type: str
    observation: str
    requester_id: str | None


@dataclass(frozen=True)
class PurchaseSelection:
    request_id: str
    index: int


@dataclass(frozen=True)
class QuotationUpdateInput:
    slot: int
    url: str | None = None
    price: float | None = None
    delivery_prediction: str | None = None
    clear_price: bool = False


@dataclass(frozen=True)
class ReceiptInput:
    brand: str
    model: str
    asset_id: str | None = None
    serial_number: str | None = None
    tag_id: str | None = None
    observations: str | None = None


@dataclass(frozen=True)
class AssetInput:
    values: Dict[str, Any]


@dataclass(frozen=True)
class MaintenanceOpenInput:
    asset_id: str
    maintenance_type: str
    scope: str
    reason: str


@dataclass(frozen=True)
class AuditEntryInput:
    asset_id: str
    status: str
    observation: str | None = None


@dataclass(frozen=True)
class EmployeeInput:
    name: str
    sector: str = ""
    role: str = ""
    cpf: str = ""
    department_id: str | None = None
    is_active: bool = True
    id: str | None = None


@dataclass(frozen=True)
class DepartmentInput:
    name: str
    cost_center: str = ""
    id: str | None = None


@dataclass(frozen=True)
class LegalEntityInput:
    name: str
    cnpj: str = ""
    address: str = ""
    id: str | None = None


@dataclass(frozen=True)
class UserInput:
    name: str
    username: str
    password: str = ""
    sector: str = ""
    modules: List[str] = field(default_factory=list)
    employee_id: str | None = None
    can_approve: bool = False
    can_execute: bool = False
    id: str | None = None


@dataclass(frozen=True)
class AccountInput:
    code: str
    name: str
    id: str | None = None


@dataclass(frozen=True)
class ClassificationInput:
    code: str
    name: str
    account_id: str | None
    id: str | None = None


@dataclass(frozen=True)
class AssetTypeConfigInput:
    name: str
    classification_id: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class ResponsibilityTermInput:
    employee_id: str
    asset_ids: List[str]
    legal_entity_id: str | None = None
    include_photos: bool = False


@dataclass(frozen=True)
class AuthLoginInput:
    username: str
    password: str
