from __future__ import annotations

from typing import List

from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from assettrack.domain.contracts import Actor, AuthLoginInput, UserInput
from assettrack.domain.records import UserAccount, generate_id
from assettrack.errors import NotFoundError, ValidationError
from assettrack.infrastructure.repositories.directory import EmployeeRepository, UserRepository
from assettrack.policies import ADMIN_USERNAME, invalid_modules, normalize_modules


USER_MANAGEMENT_MODULE = "user-management"
DEFAULT_ADMIN_PASSWORD = "admin"
_HASH_PREFIXES = ("scrypt:", "pbkdf2:")


def normalize_username(username: str | None) -> str:
    return (username or "").strip().lower()


def is_password_hash(value: str | None) -> bool:
    return str(value or "").startswith(_HASH_PREFIXES)


def password_matches(stored: str | None, provided: str) -> bool:
    if not stored:
        return provided == DEFAULT_ADMIN_PASSWORD
    if is_password_hash(stored):
        return check_password_hash(stored, provided)
    return stored == provided


def actor_for(user: UserAccount) -> Actor:
    return Actor(
        user_id=user.id,
        username=user.username,
        name=user.name,
        can_approve=user.can_approve,
        can_execute=user.can_execute,
        modules=list(user.modules),
    )


class UserService:
    def __init__(self, users: UserRepository | None = None, employees: EmployeeRepository | None = None) -> None:
        self.users = users or UserRepository()
        self.employees = employees or EmployeeRepository()

    def list_users(self, db) -> List[UserAccount]:
        return self.users.list(db)

    def get_user(self, db, user_id: str) -> UserAccount:
        user = self.users.get(db, user_id)
        if user is None:
            raise NotFoundError(code="user_not_found", payload={"user_id": user_id})
        return user

    def save_user(self, db, actor: Actor, user_input: UserInput) -> UserAccount:
        username = normalize_username(user_input.username)
        if not username:
            raise ValidationError(code="username_required")
        name = (user_input.name or "").strip()
        if not name:
            raise ValidationError(code="name_required")
        modules = normalize_modules(user_input.modules)
        unknown = invalid_modules(modules)
        if unknown:
            raise ValidationError(code="module_invalid", payload={"modules": unknown})

        with db.transaction():
            user_id = (user_input.id or "").strip()
            existing = self.users.get(db, user_id) if user_id else None
            if user_id and existing is None:
                raise NotFoundError(code="user_not_found", payload={"user_id": user_id})
            if existing and existing.username == ADMIN_USERNAME and username != ADMIN_USERNAME:
                raise ValidationError(code="admin_user_protected")

            clash = self.users.find_by_username(db, username)
            if clash and (existing is None or clash.id != existing.id):
                raise ValidationError(code="username_taken", payload={"username": username})

            employee_id = (user_input.employee_id or "").strip() or None
            if employee_id and not self.employees.exists(db, employee_id):
                raise ValidationError(code="employee_not_found", payload={"employee_id": employee_id})

            if username == ADMIN_USERNAME and USER_MANAGEMENT_MODULE not in modules:
                modules.append(USER_MANAGEMENT_MODULE)

            password = user_input.password or ""
            if password:
                stored_password = generate_password_hash(password)
            else:
                stored_password = existing.password if existing else ""

            user = UserAccount(
                id=existing.id if existing else generate_id("USR", self.users.keys(db)),
                name=name,
                username=username,
                password=stored_password,
                sector=(user_input.sector or "").strip(),
                modules=modules,
                employee_id=employee_id,
                can_approve=bool(user_input.can_approve),
                can_execute=bool(user_input.can_execute),
            )
            self.users.upsert(db, user)
        current_app.logger.info(
            "user_saved",
            extra={"user_id": user.id, "username": user.username, "actor": actor.username},
        )
        return user

    def remove_user(self, db, actor: Actor, user_id: str) -> None:
        with db.transaction():
            user = self.get_user(db, user_id)
            if user.username == ADMIN_USERNAME:
                raise ValidationError(code="admin_user_protected")
            self.users.remove(db, user_id)
        current_app.logger.info("user_removed", extra={"user_id": user_id, "actor": actor.username})


class AuthService:
    def __init__(self, users: UserRepository | None = None) -> None:
        self.users = users or UserRepository()

    def login(self, db, auth_input: AuthLoginInput) -> UserAccount | None:
        username = normalize_username(auth_input.username)
        password = auth_input.password or ""
        if not username or not password:
            return None
        user = self.users.find_by_username(db, username)
        if user and password_matches(user.password, password):
            return user
        return None

    def load_actor(self, db, user_id: str | None) -> Actor | None:
        if not user_id:
            return None
        user = self.users.get(db, user_id)
        return actor_for(user) if user else None
