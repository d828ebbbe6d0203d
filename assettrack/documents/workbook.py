"""Excel export and import of the inventory workbook."""

from __future__ import annotations

import difflib
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, Iterable, List, Mapping

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from assettrack.domain.records import (
    AccountingAccount,
    AccountingClassification,
    Asset,
    Department,
    Employee,
    EquipmentRequest,
)
from assettrack.errors import ValidationError


XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

ASSET_SHEET = "Inventário Ativos"
EMPLOYEE_SHEET = "Colaboradores"
REQUEST_SHEET = "Requisições"
DEPARTMENT_SHEET = "Departamentos"

ASSET_HEADERS = [
    "ID Patrimonial",
    "Etiqueta (Tag)",
    "Tipo",
    "Marca",
    "Modelo",
    "Número de Série",
    "Valor de Aquisição",
    "Status",
    "Responsável Atual",
    "ID Colaborador",
    "Departamento",
    "Conta Contábil",
    "Classificação",
    "Processador",
    "RAM",
    "Armazenamento",
    "Observações",
    "Data Criação",
]
EMPLOYEE_HEADERS = ["Nome", "CPF", "Cargo/Função", "Setor/Departamento", "Status Cadastro", "Qtd Ativos em Posse"]
REQUEST_HEADERS = ["Protocolo", "Status", "Data", "Solicitante (ID)", "Beneficiário", "Itens Solicitados", "Observação"]
DEPARTMENT_HEADERS = ["ID", "Nome Departamento", "Centro de Custo", "Total Ativos Vinculados"]

STOCK_OWNER_LABEL = "Estoque"
NO_DEPARTMENT_LABEL = "Não Vinculado"
MATCH_CUTOFF = 0.75


def _display_date(value: str | None) -> str:
    text = (value or "").strip()
    if not text:
        return ""
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return text


def coded_label(code: str, name: str) -> str:
    return f"{code} - {name}" if code else name


def build_export_workbook(
    *,
    assets: Iterable[Asset],
    employees: Iterable[Employee],
    requests: Iterable[EquipmentRequest],
    departments: Iterable[Department],
    accounts: Iterable[AccountingAccount] = (),
    classifications: Iterable[AccountingClassification] = (),
) -> Workbook:
    assets = list(assets)
    employees_by_id = {employee.id: employee for employee in employees}
    departments = list(departments)
    departments_by_id = {department.id: department for department in departments}
    accounts_by_id = {account.id: account for account in accounts}
    classifications_by_id = {item.id: item for item in classifications}

    wb = Workbook()
    ws = wb.active
    ws.title = ASSET_SHEET
    ws.append(ASSET_HEADERS)
    for asset in assets:
        employee = employees_by_id.get(asset.assigned_to or "")
        department = departments_by_id.get(asset.department_id or "")
        classification = classifications_by_id.get(asset.classification_id or "")
        account = accounts_by_id.get(classification.account_id or "") if classification else None
        ws.append(
            [
                asset.id,
                asset.tag_id or "",
                asset.type,
                asset.brand,
                asset.model,
                asset.serial_number or "",
                float(asset.purchase_value or 0),
                asset.status,
                employee.name if employee else STOCK_OWNER_LABEL,
                asset.assigned_to or "",
                department.name if department else NO_DEPARTMENT_LABEL,
                coded_label(account.code, account.name) if account else "",
                coded_label(classification.code, classification.name) if classification else "",
                asset.processor or "",
                asset.ram or "",
                asset.storage or "",
                asset.observations or "",
                _display_date(asset.created_at),
            ]
        )

    ws = wb.create_sheet(EMPLOYEE_SHEET)
    ws.append(EMPLOYEE_HEADERS)
    for employee in employees_by_id.values():
        department = departments_by_id.get(employee.department_id or "")
        ws.append(
            [
                employee.name,
                employee.cpf,
                employee.role,
                department.name if department else employee.sector,
                "Ativo" if employee.is_active else "Inativo",
                sum(1 for asset in assets if asset.assigned_to == employee.id),
            ]
        )

    ws = wb.create_sheet(REQUEST_SHEET)
    ws.append(REQUEST_HEADERS)
    for request in requests:
        employee = employees_by_id.get(request.employee_id or "")
        ws.append(
            [
                request.id,
                request.status,
                _display_date(request.created_at),
                request.requester_id or "",
                employee.name if employee else "Estoque/Outro",
                ", ".join(request.items),
                request.observation,
            ]
        )

    ws = wb.create_sheet(DEPARTMENT_SHEET)
    ws.append(DEPARTMENT_HEADERS)
    for department in departments:
        ws.append(
            [
                department.id,
                department.name,
                department.cost_center,
                sum(1 for asset in assets if asset.department_id == department.id),
            ]
        )
    return wb


def workbook_to_bytes(wb: Workbook) -> BytesIO:
    bio = BytesIO()
    wb.save(bio)
    bio.seek(0)
    return bio


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def read_inventory_rows(stream) -> List[Dict[str, Any]]:
    """Rows of the inventory sheet keyed by header, with their spreadsheet row number."""
    try:
        wb = load_workbook(stream, read_only=True, data_only=True)
    except (InvalidFileException, KeyError, OSError, ValueError) as exc:
        raise ValidationError(code="workbook_invalid", details=str(exc)) from exc
    if ASSET_SHEET not in wb.sheetnames:
        wb.close()
        raise ValidationError(code="workbook_invalid", payload={"sheet": ASSET_SHEET})

    rows = wb[ASSET_SHEET].iter_rows(values_only=True)
    header = [_cell_text(value) for value in next(rows, ())]
    if "Tipo" not in header:
        wb.close()
        raise ValidationError(code="workbook_invalid", payload={"missing_column": "Tipo"})

    parsed: List[Dict[str, Any]] = []
    for row_number, values in enumerate(rows, start=2):
        row = {name: values[index] if index < len(values) else None for index, name in enumerate(header) if name}
        if not any(_cell_text(value) for value in row.values()):
            continue
        row["_row"] = row_number
        parsed.append(row)
    wb.close()
    return parsed


def cell_text(row: Mapping[str, Any], column: str) -> str:
    return _cell_text(row.get(column))


def split_coded_label(text: str) -> tuple[str, str]:
    """``"1.2.3 - Computadores"`` -> ``("1.2.3", "Computadores")``; a bare label is used as both."""
    clean = (text or "").strip()
    if " - " in clean:
        code, name = clean.split(" - ", 1)
        return code.strip(), name.strip()
    return clean, clean


def match_labels(code: str, name: str) -> List[str]:
    return [coded_label(code, name), code, name]


def best_match(text: str, choices: Iterable[tuple[str, List[str]]], cutoff: float = MATCH_CUTOFF) -> str | None:
    """Returns the key whose labels come closest to ``text``.

    ``choices`` yields ``(key, labels)`` pairs. An exact label wins over a fuzzy one.
    """
    needle = (text or "").strip().lower()
    if not needle:
        return None
    by_label: Dict[str, str] = {}
    for key, labels in choices:
        for label in labels:
            clean = (label or "").strip().lower()
            if clean:
                by_label.setdefault(clean, key)
    if not by_label:
        return None
    if needle in by_label:
        return by_label[needle]
    close = difflib.get_close_matches(needle, list(by_label), n=1, cutoff=cutoff)
    return by_label[close[0]] if close else None
