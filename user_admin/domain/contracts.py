"""Domain-level contracts shared by the service, the store and the API layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from .account import Account, AccountStatus


@dataclass(slots=True)
class NewAccountInput:
    """Normalised values required to insert an account."""

    name: str
    email: str
    password_hash: str
    verification_token: str
    status: AccountStatus = AccountStatus.UNVERIFIED


@dataclass(slots=True)
class AccountMutation:
    """Field changes applied by ``AccountStore.update_many``.

    ``None`` leaves a field untouched; the verification token can only be
    cleared, never rewritten.
    """

    status: AccountStatus | None = None
    last_login: datetime | None = None
    clear_verification_token: bool = False


@dataclass(slots=True)
class AuthResult:
    """Session credential plus the account it was issued for."""

    token: str
    account: Account


@dataclass(slots=True)
class BulkResult:
    """Outcome of a bulk administration call."""

    count: int
    self_affected: bool


class AccountStore(Protocol):
    """Persistence contract required by the account workflows."""

    def find_by_id(self, account_id: int) -> Account | None: ...

    def find_by_email(self, email: str) -> Account | None: ...

    def find_by_verification_token(self, token: str) -> Account | None: ...

    def list_accounts(self) -> list[Account]: ...

    def insert(self, payload: NewAccountInput) -> Account:
        """Persist a new account; raise ``ConflictError`` on a duplicate email."""
        ...

    def update_many(
        self,
        ids: Iterable[int],
        mutation: AccountMutation,
        *,
        current_status: AccountStatus | None = None,
    ) -> int: ...

    def delete_many(self, ids: Iterable[int]) -> int: ...

    def delete_where(self, status: AccountStatus) -> list[int]: ...


class VerificationSender(Protocol):
    def send_verification_email(self, to_address: str, token: str) -> None: ...
