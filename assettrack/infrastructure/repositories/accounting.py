from __future__ import annotations

from typing import Dict

from assettrack.domain.records import (
    AccountingAccount,
    AccountingClassification,
    AssetTypeConfig,
    SystemConfig,
)
from assettrack.infrastructure.repositories.base import BaseRepository


class AccountingAccountRepository(BaseRepository):
    table = "accounting_accounts"
    record_cls = AccountingAccount
    order_by = "code, id"


class AccountingClassificationRepository(BaseRepository):
    table = "accounting_classifications"
    record_cls = AccountingClassification
    order_by = "code, id"

    def count_for_account(self, db, account_id: str) -> int:
        row = db.execute(
            "SELECT COUNT(*) AS total FROM accounting_classifications WHERE account_id = ?",
            (account_id,),
        ).fetchone()
        return int(dict(row)["total"] or 0) if row else 0


class AssetTypeConfigRepository(BaseRepository):
    table = "asset_type_configs"
    record_cls = AssetTypeConfig
    order_by = "name, id"


class SystemConfigRepository(BaseRepository):
    table = "system_configs"
    record_cls = SystemConfig
    key_field = "key"
    order_by = '"key"'

    def as_dict(self, db) -> Dict[str, str]:
        return {item.key: item.value for item in self.list(db)}

    def get_value(self, db, key: str, default: str = "") -> str:
        record = self.get(db, key)
        if record is None or not record.value:
            return default
        return record.value

    def set_value(self, db, key: str, value: str | None) -> None:
        self.upsert(db, SystemConfig(key=key, value=str(value or "")))
