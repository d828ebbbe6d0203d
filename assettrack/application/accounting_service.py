from __future__ import annotations

from typing import List

from flask import current_app

from assettrack.domain.contracts import AccountInput, Actor, AssetTypeConfigInput, ClassificationInput
from assettrack.domain.records import (
    AccountingAccount,
    AccountingClassification,
    AssetTypeConfig,
    generate_id,
)
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.accounting import (
    AccountingAccountRepository,
    AccountingClassificationRepository,
    AssetTypeConfigRepository,
)


class AccountingService:
    def __init__(
        self,
        accounts: AccountingAccountRepository | None = None,
        classifications: AccountingClassificationRepository | None = None,
        asset_types: AssetTypeConfigRepository | None = None,
    ) -> None:
        self.accounts = accounts or AccountingAccountRepository()
        self.classifications = classifications or AccountingClassificationRepository()
        self.asset_types = asset_types or AssetTypeConfigRepository()

    @staticmethod
    def _code_and_name(code: str | None, name: str | None) -> tuple[str, str]:
        clean_code = (code or "").strip()
        clean_name = (name or "").strip()
        if not clean_code:
            raise ValidationError(code="code_required")
        if not clean_name:
            raise ValidationError(code="name_required")
        return clean_code, clean_name

    def list_accounts(self, db) -> List[AccountingAccount]:
        return self.accounts.list(db)

    def save_account(self, db, actor: Actor, account_input: AccountInput) -> AccountingAccount:
        code, name = self._code_and_name(account_input.code, account_input.name)
        with db.transaction():
            account_id = (account_input.id or "").strip() or generate_id("ACC", self.accounts.keys(db))
            account = AccountingAccount(id=account_id, code=code, name=name)
            self.accounts.upsert(db, account)
        current_app.logger.info("accounting_account_saved", extra={"account_id": account.id, "actor": actor.username})
        return account

    def remove_account(self, db, actor: Actor, account_id: str) -> None:
        with db.transaction():
            if self.classifications.count_for_account(db, account_id):
                raise ValidationError(code="account_in_use", payload={"account_id": account_id})
            if not self.accounts.remove(db, account_id):
                raise NotFoundError(code="account_not_found", payload={"account_id": account_id})
        current_app.logger.info("accounting_account_removed", extra={"account_id": account_id, "actor": actor.username})

    def list_classifications(self, db) -> List[AccountingClassification]:
        return self.classifications.list(db)

    def save_classification(
        self,
        db,
        actor: Actor,
        classification_input: ClassificationInput,
    ) -> AccountingClassification:
        code, name = self._code_and_name(classification_input.code, classification_input.name)
        account_id = (classification_input.account_id or "").strip()
        with db.transaction():
            if not account_id or not self.accounts.exists(db, account_id):
                raise ValidationError(code="account_not_found", payload={"account_id": account_id or None})
            classification_id = (classification_input.id or "").strip() or generate_id(
                "CLS", self.classifications.keys(db)
            )
            classification = AccountingClassification(
                id=classification_id,
                code=code,
                name=name,
                account_id=account_id,
            )
            self.classifications.upsert(db, classification)
        current_app.logger.info(
            "accounting_classification_saved",
            extra={"classification_id": classification.id, "actor": actor.username},
        )
        return classification

    def remove_classification(self, db, actor: Actor, classification_id: str) -> None:
        with db.transaction():
            if not self.classifications.remove(db, classification_id):
                raise NotFoundError(code="classification_not_found", payload={"classification_id": classification_id})
        current_app.logger.info(
            "accounting_classification_removed",
            extra={"classification_id": classification_id, "actor": actor.username},
        )

    def list_asset_types(self, db) -> List[AssetTypeConfig]:
        return self.asset_types.list(db)

    def save_asset_type(self, db, actor: Actor, type_input: AssetTypeConfigInput) -> AssetTypeConfig:
        name = (type_input.name or "").strip()
        if not name:
            raise ValidationError(code="name_required")
        classification_id = (type_input.classification_id or "").strip() or None
        with db.transaction():
            if classification_id and not self.classifications.exists(db, classification_id):
                raise ValidationError(code="classification_not_found", payload={"classification_id": classification_id})
            config = AssetTypeConfig(
                id=(type_input.id or "").strip() or generate_id("TYP", self.asset_types.keys(db)),
                name=name,
                classification_id=classification_id,
            )
            self.asset_types.upsert(db, config)
        current_app.logger.info("asset_type_saved", extra={"asset_type_id": config.id, "actor": actor.username})
        return config

    def remove_asset_type(self, db, actor: Actor, type_id: str) -> None:
        with db.transaction():
            if not self.asset_types.remove(db, type_id):
                raise NotFoundError(code="asset_type_not_found", payload={"asset_type_id": type_id})
        current_app.logger.info("asset_type_removed", extra={"asset_type_id": type_id, "actor": actor.username})
