"""Bulk administration over sets of accounts."""

from __future__ import annotations

import logging
from typing import Sequence

from .account import Account, AccountStatus
from .contracts import AccountMutation, AccountStore, BulkResult
from .. import metrics
from ..errors import ValidationError

logger = logging.getLogger(__name__)


class AdminService:
    """Block, unblock and delete accounts on behalf of any signed-in user.

    There is no separate administrator role. Every result reports whether the
    caller's own account was targeted so the client can drop its session.
    """

    def __init__(self, repository: AccountStore) -> None:
        self._repository = repository

    def block(self, caller: Account, ids: Sequence[int]) -> BulkResult:
        targets = self._require_ids(ids)
        count = self._repository.update_many(targets, AccountMutation(status=AccountStatus.BLOCKED))
        metrics.BULK_ROWS.labels(operation="block").inc(count)
        logger.info("blocked %d users by user %s", count, caller.id)
        return BulkResult(count=count, self_affected=caller.id in targets)

    def unblock(self, caller: Account, ids: Sequence[int]) -> BulkResult:
        """Set every target to ``active``, including never-verified accounts."""
        targets = self._require_ids(ids)
        count = self._repository.update_many(targets, AccountMutation(status=AccountStatus.ACTIVE))
        metrics.BULK_ROWS.labels(operation="unblock").inc(count)
        logger.info("unblocked %d users by user %s", count, caller.id)
        return BulkResult(count=count, self_affected=caller.id in targets)

    def delete(self, caller: Account, ids: Sequence[int]) -> BulkResult:
        targets = self._require_ids(ids)
        count = self._repository.delete_many(targets)
        metrics.BULK_ROWS.labels(operation="delete").inc(count)
        logger.info("deleted %d users by user %s", count, caller.id)
        return BulkResult(count=count, self_affected=caller.id in targets)

    def delete_unverified(self, caller: Account) -> BulkResult:
        removed = self._repository.delete_where(AccountStatus.UNVERIFIED)
        metrics.BULK_ROWS.labels(operation="delete_unverified").inc(len(removed))
        logger.info("deleted %d unverified users by user %s", len(removed), caller.id)
        return BulkResult(count=len(removed), self_affected=caller.id in removed)

    @staticmethod
    def _require_ids(ids: Sequence[int] | None) -> list[int]:
        if not ids:
            raise ValidationError("No users selected")
        return list(dict.fromkeys(ids))
