"""Per-request access check for protected operations."""

from __future__ import annotations

import logging

import jwt

from .account import Account, AccountStatus
from .contracts import AccountStore
from .. import metrics
from ..errors import AuthenticationError, ForbiddenError
from ..security.tokens import decode_session_token

logger = logging.getLogger(__name__)


class AccessGate:
    """Resolve a bearer credential to a live, non-blocked account.

    Status is read from the store on every call, so blocking or deleting an
    account takes effect on its very next request.
    """

    def __init__(self, repository: AccountStore) -> None:
        self._repository = repository

    def resolve(self, token: str | None) -> Account:
        if not token:
            metrics.GATE_REJECTIONS.labels(reason="missing").inc()
            raise AuthenticationError("Authentication required", code="MISSING_TOKEN")

        try:
            claims = decode_session_token(token)
            account_id = int(claims["sub"])
        except jwt.ExpiredSignatureError as exc:
            metrics.GATE_REJECTIONS.labels(reason="expired").inc()
            raise AuthenticationError("Authentication token has expired", code="TOKEN_EXPIRED") from exc
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
            metrics.GATE_REJECTIONS.labels(reason="invalid").inc()
            raise AuthenticationError("Invalid authentication token", code="INVALID_TOKEN") from exc

        account = self._repository.find_by_id(account_id)
        if account is None:
            metrics.GATE_REJECTIONS.labels(reason="unknown_account").inc()
            raise AuthenticationError("User not found", code="USER_NOT_FOUND")

        if account.status is AccountStatus.BLOCKED:
            metrics.GATE_REJECTIONS.labels(reason="blocked").inc()
            logger.info("rejected request from blocked account %s", account.id)
            raise ForbiddenError()
        return account
