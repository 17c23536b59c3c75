"""FastAPI dependencies resolving services and the authenticated caller."""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..domain.account import Account
from ..domain.admin import AdminService
from ..domain.gate import AccessGate
from ..domain.service import AccountService

bearer_scheme = HTTPBearer(auto_error=False, description="Session token from register or login")


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_admin_service(request: Request) -> AdminService:
    service: AdminService = request.app.state.admin_service
    return service


def get_gate(request: Request) -> AccessGate:
    gate: AccessGate = request.app.state.access_gate
    return gate


def current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    gate: AccessGate = Depends(get_gate),
) -> Account:
    """Run the access gate for a protected route and return the caller."""
    token = credentials.credentials if credentials else None
    return gate.resolve(token)
