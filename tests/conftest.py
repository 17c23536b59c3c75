from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from user_admin.api import routes
from user_admin.domain.account import Account, AccountStatus
from user_admin.domain.admin import AdminService
from user_admin.domain.contracts import AccountMutation, NewAccountInput
from user_admin.domain.gate import AccessGate
from user_admin.domain.service import AccountService
from user_admin.errors import ConflictError
from user_admin.security.passwords import PasswordHasher
from user_admin.security.rate_limiter import SlidingWindowRateLimiter


class FakeRepository:
    """In-memory store mimicking the Postgres constraints."""

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def insert(self, payload: NewAccountInput) -> Account:
        with self._lock:
            if any(account.email == payload.email for account in self._accounts.values()):
                raise ConflictError()
            account = Account(
                id=self._next_id,
                name=payload.name,
                email=payload.email,
                password_hash=payload.password_hash,
                status=payload.status,
                verification_token=payload.verification_token,
                created_at=datetime.now(timezone.utc),
            )
            self._accounts[account.id] = account
            self._next_id += 1
            return replace(account)

    def find_by_id(self, account_id: int) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return replace(account) if account else None

    def find_by_email(self, email: str) -> Account | None:
        return self._find(lambda account: account.email == email.strip().lower())

    def find_by_verification_token(self, token: str) -> Account | None:
        return self._find(lambda account: account.verification_token == token)

    def list_accounts(self) -> list[Account]:
        with self._lock:
            accounts = [replace(account) for account in self._accounts.values()]
        floor = datetime.min.replace(tzinfo=timezone.utc)
        accounts.sort(key=lambda a: (a.last_login or floor, a.created_at), reverse=True)
        return accounts

    def update_many(
        self,
        ids: Iterable[int],
        mutation: AccountMutation,
        *,
        current_status: AccountStatus | None = None,
    ) -> int:
        count = 0
        with self._lock:
            for account_id in set(ids):
                account = self._accounts.get(account_id)
                if account is None:
                    continue
                if current_status is not None and account.status is not current_status:
                    continue
                if mutation.status is not None:
                    account.status = mutation.status
                if mutation.last_login is not None:
                    account.last_login = mutation.last_login
                if mutation.clear_verification_token:
                    account.verification_token = None
                count += 1
        return count

    def delete_many(self, ids: Iterable[int]) -> int:
        with self._lock:
            removed = [self._accounts.pop(account_id) for account_id in set(ids) if account_id in self._accounts]
        return len(removed)

    def delete_where(self, status: AccountStatus) -> list[int]:
        with self._lock:
            doomed = [account_id for account_id, account in self._accounts.items() if account.status is status]
            for account_id in doomed:
                del self._accounts[account_id]
        return doomed

    def set_status(self, account_id: int, status: AccountStatus) -> None:
        with self._lock:
            self._accounts[account_id].status = status

    def _find(self, predicate) -> Account | None:
        with self._lock:
            for account in self._accounts.values():
                if predicate(account):
                    return replace(account)
        return None


class RecordingMailer:
    """Captures verification emails instead of sending them."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    def send_verification_email(self, to_address: str, token: str) -> None:
        if self.fail:
            raise ConnectionError("smtp down")
        self.sent.append((to_address, token))


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def service(repository, mailer) -> AccountService:
    return AccountService(repository, mailer, PasswordHasher(rounds=4))


@pytest.fixture
def admin(repository) -> AdminService:
    return AdminService(repository)


@pytest.fixture
def gate(repository) -> AccessGate:
    return AccessGate(repository)


@pytest.fixture
def api_client(repository, mailer, service, admin, gate):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    routes.install_routes(app)
    app.state.account_service = service
    app.state.admin_service = admin
    app.state.access_gate = gate

    original_limiter = routes.rate_limiter
    routes.rate_limiter = SlidingWindowRateLimiter(max_requests=5, window_seconds=60)

    with TestClient(app) as client:
        yield client, repository, mailer

    routes.rate_limiter = original_limiter
