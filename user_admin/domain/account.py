from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AccountStatus(str, Enum):
    """Lifecycle gate controlling access, independent of email verification."""

    UNVERIFIED = "unverified"
    ACTIVE = "active"
    BLOCKED = "blocked"


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user."""

    id: int
    name: str
    email: str
    password_hash: str
    status: AccountStatus
    created_at: datetime
    verification_token: str | None = None
    last_login: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.status is AccountStatus.BLOCKED
