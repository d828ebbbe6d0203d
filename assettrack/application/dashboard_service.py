from __future__ import annotations

from datetime import date
from typing import Any, Dict, List

from assettrack.domain import purchase_workflow, request_flow
from assettrack.domain.records import (
    ASSET_IN_USE,
    ASSET_MAINTENANCE,
    ASSET_RETIRED,
    ASSET_STATUSES,
)
from assettrack.infrastructure.repositories.assets import AssetRepository
from assettrack.infrastructure.repositories.directory import EmployeeRepository
from assettrack.infrastructure.repositories.workflow import RequestRepository


CHART_TYPES = ("Desktop", "Notebook", "Monitor")
CHART_OTHERS = "Outros"


class DashboardService:
    def __init__(
        self,
        assets: AssetRepository | None = None,
        employees: EmployeeRepository | None = None,
        requests: RequestRepository | None = None,
    ) -> None:
        self.assets = assets or AssetRepository()
        self.employees = employees or EmployeeRepository()
        self.requests = requests or RequestRepository()

    def build(self, db, today: date | None = None) -> Dict[str, Any]:
        today_iso = (today or date.today()).isoformat()
        assets = self.assets.list(db)
        employees = {employee.id: employee for employee in self.employees.list(db)}
        requests = self.requests.list(db)

        by_status = {status: 0 for status in ASSET_STATUSES}
        by_chart_type = {name: 0 for name in (*CHART_TYPES, CHART_OTHERS)}
        in_use_by_employee: Dict[str, Dict[str, Any]] = {}
        for asset in assets:
            by_status[asset.status] = by_status.get(asset.status, 0) + 1
            bucket = asset.type if asset.type in CHART_TYPES else CHART_OTHERS
            by_chart_type[bucket] += 1
            if asset.status == ASSET_IN_USE and asset.assigned_to:
                employee = employees.get(asset.assigned_to)
                group = in_use_by_employee.setdefault(
                    asset.assigned_to,
                    {
                        "employee_id": asset.assigned_to,
                        "employee_name": employee.name if employee else "N/A",
                        "sector": employee.sector if employee else "N/A",
                        "assets": [],
                    },
                )
                group["assets"].append({"id": asset.id, "type": asset.type, "brand": asset.brand, "model": asset.model})

        deliveries: List[Dict[str, Any]] = []
        open_orders = []
        for request in requests:
            employee = employees.get(request.employee_id or "")
            for index, fulfillment in enumerate(request_flow.aligned_fulfillments(request)):
                if not fulfillment.is_purchase_order or fulfillment.is_delivered:
                    continue
                open_orders.append(fulfillment)
                if (
                    fulfillment.purchase_status == purchase_workflow.PURCHASED
                    and fulfillment.delivery_forecast_date == today_iso
                ):
                    deliveries.append(
                        {
                            "request_id": request.id,
                            "index": index,
                            "item": fulfillment.type,
                            "employee_name": employee.name if employee else "N/A",
                            "sector": employee.sector if employee else "N/A",
                        }
                    )

        return {
            "totals": {
                "total": len(assets),
                "in_use": by_status.get(ASSET_IN_USE, 0),
                "maintenance": by_status.get(ASSET_MAINTENANCE, 0),
                "retired": by_status.get(ASSET_RETIRED, 0),
            },
            "by_status": by_status,
            "by_type": by_chart_type,
            "today": today_iso,
            "today_deliveries": deliveries,
            "in_use_by_employee": sorted(in_use_by_employee.values(), key=lambda item: item["employee_name"]),
            "purchase_summary": purchase_workflow.status_counts(open_orders),
            "pending_requests": sum(1 for request in requests if request.status == request_flow.REQUEST_PENDING),
        }
