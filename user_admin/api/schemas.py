"""Request and response bodies for the JSON API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.account import Account, AccountStatus
from ..domain.contracts import AuthResult


class ApiModel(BaseModel):
    """Base model emitting camelCase keys while accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserResponse(ApiModel):
    """Public view of an account; credentials and tokens are never included."""

    id: int
    name: str
    # stored as registered; format is not re-validated on the way out
    email: str
    status: AccountStatus
    last_login: datetime | None = None
    created_at: datetime

    @classmethod
    def from_domain(cls, account: Account) -> "UserResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            status=account.status,
            last_login=account.last_login,
            created_at=account.created_at,
        )


class AuthResponse(ApiModel):
    token: str
    user: UserResponse

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(token=result.token, user=UserResponse.from_domain(result.account))


# blank fields are reported by the service with its own messages
class RegisterRequest(ApiModel):
    name: str = ""
    email: str = ""
    password: str = ""


class LoginRequest(ApiModel):
    email: str = ""
    password: str = ""


class UserIdsRequest(ApiModel):
    ids: list[int] = Field(default_factory=list)


class MessageResponse(ApiModel):
    message: str


class CountResponse(MessageResponse):
    count: int


class BlockResponse(CountResponse):
    self_blocked: bool


class DeleteResponse(CountResponse):
    self_deleted: bool
