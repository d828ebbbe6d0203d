from __future__ import annotations

from io import BytesIO
from typing import Any, Dict, List, Mapping

from flask import current_app

from assettrack.application.asset_service import AssetService
from assettrack.documents import workbook
from assettrack.domain.contracts import Actor, AssetInput
from assettrack.domain.records import (
    ASSET_STATUSES,
    AccountingAccount,
    AccountingClassification,
    generate_id,
)
from assettrack.errors import ValidationError
from assettrack.infrastructure.repositories.accounting import (
    AccountingAccountRepository,
    AccountingClassificationRepository,
    SystemConfigRepository,
)
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import DepartmentRepository, EmployeeRepository
from assettrack.infrastructure.repositories.workflow import RequestRepository


TELEGRAM_TOKEN_KEY = "telegram_bot_token"
TELEGRAM_CHAT_KEY = "telegram_chat_id"
COMPANY_NAME_KEY = "company_name"
CONFIG_KEYS = (TELEGRAM_TOKEN_KEY, TELEGRAM_CHAT_KEY, COMPANY_NAME_KEY)


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


class SystemService:
    def __init__(
        self,
        configs: SystemConfigRepository | None = None,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        departments: DepartmentRepository | None = None,
        requests: RequestRepository | None = None,
        accounts: AccountingAccountRepository | None = None,
        classifications: AccountingClassificationRepository | None = None,
        asset_service: AssetService | None = None,
    ) -> None:
        self.configs = configs or SystemConfigRepository()
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.departments = departments or DepartmentRepository()
        self.requests = requests or RequestRepository()
        self.accounts = accounts or AccountingAccountRepository()
        self.classifications = classifications or AccountingClassificationRepository()
        self.asset_service = asset_service or AssetService(assets=self.assets, employees=self.employees)

    def company_name(self, db) -> str:
        return self.configs.get_value(db, COMPANY_NAME_KEY, current_app.config.get("COMPANY_NAME") or "AssetTrack Pro")

    def integration_configs(self, db) -> Dict[str, Any]:
        stored = self.configs.as_dict(db)
        token = stored.get(TELEGRAM_TOKEN_KEY, "")
        return {
            TELEGRAM_TOKEN_KEY: mask_secret(token),
            "telegram_configured": bool(token and stored.get(TELEGRAM_CHAT_KEY)),
            TELEGRAM_CHAT_KEY: stored.get(TELEGRAM_CHAT_KEY, ""),
            COMPANY_NAME_KEY: self.company_name(db),
        }

    def save_integration_configs(self, db, actor: Actor, values: Mapping[str, Any]) -> Dict[str, Any]:
        unknown = sorted(key for key in values if key not in CONFIG_KEYS)
        if unknown:
            raise ValidationError(code="config_key_invalid", payload={"keys": unknown})
        with db.transaction():
            for key in CONFIG_KEYS:
                if key in values:
                    self.configs.set_value(db, key, str(values[key] or "").strip())
        current_app.logger.info(
            "system_configs_saved",
            extra={"config_keys": sorted(values), "actor": actor.username},
        )
        return self.integration_configs(db)

    def export_workbook(self, db) -> BytesIO:
        wb = workbook.build_export_workbook(
            assets=self.assets.list(db),
            employees=self.employees.list(db),
            requests=self.requests.list(db),
            departments=self.departments.list(db),
            accounts=self.accounts.list(db),
            classifications=self.classifications.list(db),
        )
        return workbook.workbook_to_bytes(wb)

    def import_workbook(self, db, actor: Actor, stream) -> Dict[str, Any]:
        """Upserts every row of the inventory sheet in one transaction.

        A row that fails validation aborts the whole import; the error payload names the row.
        """
        rows = workbook.read_inventory_rows(stream)
        summary: Dict[str, Any] = {
            "created": 0,
            "updated": 0,
            "accounts_created": [],
            "classifications_created": [],
        }
        with db.transaction():
            departments = {item.name.strip().lower(): item.id for item in self.departments.list(db)}
            accounts = self.accounts.list(db)
            classifications = self.classifications.list(db)
            for row in rows:
                try:
                    values = self._row_values(db, row, departments)
                    classification_id = self._resolve_classification(
                        db, row, accounts, classifications, summary
                    )
                    if classification_id:
                        values["classification_id"] = classification_id
                    asset_id = values.pop("id", "")
                    if asset_id and self.assets.exists(db, asset_id):
                        self.asset_service.update_asset(db, actor, asset_id, AssetInput(values))
                        summary["updated"] += 1
                    else:
                        self.asset_service.create_asset(db, actor, AssetInput({**values, "id": asset_id}))
                        summary["created"] += 1
                except ValidationError as exc:
                    exc.payload.setdefault("row", row["_row"])
                    raise

        current_app.logger.info(
            "workbook_imported",
            extra={
                "created": summary["created"],
                "updated": summary["updated"],
                "accounts_created": len(summary["accounts_created"]),
                "classifications_created": len(summary["classifications_created"]),
                "actor": actor.username,
            },
        )
        return summary

    def _row_values(self, db, row: Mapping[str, Any], departments: Dict[str, str]) -> Dict[str, Any]:
        def text(column: str) -> str:
            return workbook.cell_text(row, column)

        values: Dict[str, Any] = {
            "id": text("ID Patrimonial"),
            "type": text("Tipo"),
            "brand": text("Marca"),
            "model": text("Modelo"),
            "tag_id": text("Etiqueta (Tag)"),
            "serial_number": text("Número de Série"),
            "purchase_value": row.get("Valor de Aquisição"),
            "processor": text("Processador"),
            "ram": text("RAM"),
            "storage": text("Armazenamento"),
            "observations": text("Observações"),
            "assigned_to": self._resolve_employee(db, text("ID Colaborador"), text("Responsável Atual")),
        }
        status = text("Status")
        if status in ASSET_STATUSES:
            values["status"] = status
        department_name = text("Departamento").lower()
        if department_name in departments:
            values["department_id"] = departments[department_name]
        return values

    def _resolve_employee(self, db, employee_id: str, employee_name: str) -> str | None:
        if employee_id and self.employees.exists(db, employee_id):
            return employee_id
        if not employee_name or employee_name == workbook.STOCK_OWNER_LABEL:
            return None
        employee = self.employees.find_by_name(db, employee_name)
        return employee.id if employee else None

    def _resolve_classification(
        self,
        db,
        row: Mapping[str, Any],
        accounts: List[AccountingAccount],
        classifications: List[AccountingClassification],
        summary: Dict[str, Any],
    ) -> str | None:
        classification_text = workbook.cell_text(row, "Classificação")
        account_text = workbook.cell_text(row, "Conta Contábil")
        if not classification_text:
            return None

        matched = workbook.best_match(
            classification_text,
            ((item.id, workbook.match_labels(item.code, item.name)) for item in classifications),
        )
        if matched:
            return matched

        account_id = None
        if account_text:
            account_id = workbook.best_match(
                account_text,
                ((item.id, workbook.match_labels(item.code, item.name)) for item in accounts),
            )
            if account_id is None:
                code, name = workbook.split_coded_label(account_text)
                account = AccountingAccount(
                    id=generate_id("ACC", {item.id for item in accounts}),
                    code=code,
                    name=name,
                )
                self.accounts.upsert(db, account)
                accounts.append(account)
                summary["accounts_created"].append(account.id)
                account_id = account.id

        code, name = workbook.split_coded_label(classification_text)
        classification = AccountingClassification(
            id=generate_id("CLS", {item.id for item in classifications}),
            code=code,
            name=name,
            account_id=account_id,
        )
        self.classifications.upsert(db, classification)
        classifications.append(classification)
        summary["classifications_created"].append(classification.id)
        return classification.id
