"""Profile CRUD and statistics for verified accounts."""

import math
from collections.abc import Callable
from datetime import datetime
from typing import Any

from app.models.account import Account, utcnow
from app.repositories.accounts import AccountStore
from app.services.accounts import AccountResult, ErrorCode
from app.services.bmi import calculate_bmi, weight_status
from app.services.passwords import check_password, hash_password, validate_password

MAX_PAGE_SIZE = 100
UPDATABLE_FIELDS = ("name", "password", "profile_image_url", "age", "weight_kg", "height_cm")


class ProfileService:
    """Reads and edits the profiles of active accounts."""

    def __init__(self, store: AccountStore, clock: Callable[[], datetime] = utcnow) -> None:
        self.store = store
        self.clock = clock

    def get_account(self, account_id: str) -> Account | None:
        return self.store.find_active_by_id(account_id)

    def get_account_by_email(self, email: str) -> Account | None:
        return self.store.find_active_by_email(email)

    def list_accounts(self, page: int = 1, limit: int = 10) -> tuple[list[Account], dict]:
        """List active accounts newest first. Returns (items, pagination)."""
        page = max(page, 1)
        limit = max(min(limit, MAX_PAGE_SIZE), 1)
        items, total = self.store.list_active(offset=(page - 1) * limit, limit=limit)
        pagination = {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit),
        }
        return items, pagination

    def update_account(self, account: Account, changes: dict[str, Any]) -> AccountResult:
        """Apply profile changes. A new password must satisfy the policy and is re-hashed."""
        fields = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}

        if "password" in fields:
            violations = validate_password(fields["password"])
            if violations:
                return AccountResult.fail(
                    ErrorCode.PASSWORD_POLICY_VIOLATION, "Password does not meet requirements", violations
                )
            fields["password_hash"] = hash_password(fields.pop("password"))

        if "name" in fields:
            fields["name"] = fields["name"].strip()

        return AccountResult.ok(self.store.update_fields(account, fields, self.clock()))

    def deactivate_account(self, account: Account) -> None:
        """Soft delete. The email stays reserved."""
        self.store.deactivate(account, self.clock())

    def check_password(self, account: Account, password: str) -> bool:
        return check_password(password, account.password_hash)

    def get_stats(self, account: Account) -> dict:
        bmi = calculate_bmi(account.weight_kg, account.height_cm)
        return {
            "bmi": bmi,
            "weight_status": weight_status(bmi),
            "age": account.age,
            "weight_kg": account.weight_kg,
            "height_cm": account.height_cm,
        }
