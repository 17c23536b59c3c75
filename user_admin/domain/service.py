"""Account service orchestrating registration, login and email verification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from .account import Account, AccountStatus
from .contracts import (
    AccountMutation,
    AccountStore,
    AuthResult,
    NewAccountInput,
    VerificationSender,
)
from .. import metrics
from ..errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from ..security.passwords import PasswordHasher
from ..security.tokens import generate_verification_token, issue_session_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
# bcrypt ignores everything past this many bytes
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _require_encodable(*values: str) -> None:
    # lone surrogates survive JSON decoding but not UTF-8 encoding
    for value in values:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValidationError("Invalid input") from exc


class AccountService:
    """Account lifecycle workflows backed by an ``AccountStore``."""

    def __init__(
        self,
        repository: AccountStore,
        mailer: VerificationSender,
        hasher: PasswordHasher | None = None,
    ) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._mailer = mailer
        self._hasher = hasher or PasswordHasher()

    def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create an unverified account and return a usable session for it.

        The verification email is queued best-effort; a delivery problem is
        logged and the account stays created.
        """
        if not email or not email.strip():
            raise ValidationError("Email is required")
        if not password or not password.strip():
            raise ValidationError("Password is required")
        if not name or not name.strip():
            raise ValidationError("Name is required")
        _require_encodable(name, email, password)
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError("Password is too long")

        payload = NewAccountInput(
            name=name.strip(),
            email=normalize_email(email),
            password_hash=self._hasher.hash(password),
            verification_token=generate_verification_token(),
        )
        try:
            account = self._repository.insert(payload)
        except ConflictError:
            logger.warning("duplicate email registration attempt: %s", payload.email)
            metrics.REGISTRATIONS.labels(outcome="conflict").inc()
            raise

        metrics.REGISTRATIONS.labels(outcome="created").inc()
        logger.info("registered account %s", account.id)
        self._queue_verification(account)

        token, _ = issue_session_token(account)
        return AuthResult(token=token, account=account)

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate with email and password and stamp ``last_login``."""
        if not email or not email.strip() or not password or not password.strip():
            raise ValidationError("Email and password are required")
        _require_encodable(email, password)

        account = self._repository.find_by_email(normalize_email(email))
        if account is None or not self._hasher.verify(password, account.password_hash):
            metrics.LOGINS.labels(outcome="invalid").inc()
            raise AuthenticationError(INVALID_CREDENTIALS, code="INVALID_CREDENTIALS")

        # status is only revealed once the password has been proven
        if account.is_blocked:
            metrics.LOGINS.labels(outcome="blocked").inc()
            raise ForbiddenError()

        now = datetime.now(timezone.utc)
        self._repository.update_many([account.id], AccountMutation(last_login=now))
        account.last_login = now
        metrics.LOGINS.labels(outcome="success").inc()

        token, _ = issue_session_token(account)
        return AuthResult(token=token, account=account)

    def verify_email(self, token: str) -> str:
        """Consume a verification token and return the user-facing message."""
        account = self._repository.find_by_verification_token(token) if token else None
        if account is None:
            raise NotFoundError("Invalid verification token", code="INVALID_VERIFICATION_TOKEN")

        if account.status is AccountStatus.UNVERIFIED:
            updated = self._repository.update_many(
                [account.id],
                AccountMutation(status=AccountStatus.ACTIVE, clear_verification_token=True),
                current_status=AccountStatus.UNVERIFIED,
            )
            if updated:
                logger.info("account %s verified email", account.id)
                return "Email verified successfully"
            # lost a race with another status change
            account = self._repository.find_by_id(account.id)
            if account is None:
                raise NotFoundError("Invalid verification token", code="INVALID_VERIFICATION_TOKEN")

        return self._verification_message(account)

    def _verification_message(self, account: Account) -> str:
        if account.status is AccountStatus.BLOCKED:
            # token is left in place; the account stays blocked
            return "User is blocked"
        return "Email already verified"

    def list_accounts(self) -> list[Account]:
        return self._repository.list_accounts()

    def _queue_verification(self, account: Account) -> None:
        if account.verification_token is None:
            return
        try:
            self._mailer.send_verification_email(account.email, account.verification_token)
        except Exception:
            logger.exception("could not queue verification email for account %s", account.id)
