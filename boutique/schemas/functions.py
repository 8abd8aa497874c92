"""Request bodies of the two action endpoints, one model per ``action`` value."""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from boutique.models.activity import ActivityType
from boutique.models.user import UserRole


class ListUsersAction(BaseModel):
    action: Literal["list"]


class CreateUserAction(BaseModel):
    action: Literal["create"]
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    nom_complet: str = Field(min_length=1, max_length=160)
    role: UserRole
    telephone: str | None = Field(default=None, max_length=32)


class DeleteUserAction(BaseModel):
    action: Literal["delete"]
    user_id: int


class UpdateRoleAction(BaseModel):
    action: Literal["update_role"]
    user_id: int
    new_role: UserRole


class UpdateProfileAction(BaseModel):
    action: Literal["update_profile"]
    user_id: int
    nom_complet: str | None = Field(default=None, max_length=160)
    telephone: str | None = Field(default=None, max_length=32)
    new_role: UserRole | None = None


ManageUsersRequest = Annotated[
    Union[ListUsersAction, CreateUserAction, DeleteUserAction, UpdateRoleAction, UpdateProfileAction],
    Field(discriminator="action"),
]
manage_users_request = TypeAdapter(ManageUsersRequest)


class LogActivityAction(BaseModel):
    action: Literal["log"]
    action_type: ActivityType
    entity_type: str | None = Field(default=None, max_length=64)
    entity_id: str | int | None = None
    entity_name: str | None = Field(default=None, max_length=255)
    details: dict[str, Any] | None = None


class FetchLogsAction(BaseModel):
    action: Literal["fetch"]
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1, le=500)
    action_type: ActivityType | None = None
    user_id: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class ExportLogsAction(BaseModel):
    action: Literal["export"]
    start_date: datetime | None = None
    end_date: datetime | None = None
    format: Literal["csv", "json"] = "csv"


ActivityLogsRequest = Annotated[
    Union[LogActivityAction, FetchLogsAction, ExportLogsAction],
    Field(discriminator="action"),
]
activity_logs_request = TypeAdapter(ActivityLogsRequest)


class ManagedUserOut(BaseModel):
    id: int
    email: str
    nom_complet: str | None
    telephone: str | None
    role: UserRole
    created_at: datetime


class ActivityLogOut(BaseModel):
    id: int
    user_id: int | None
    user_name: str
    action_type: ActivityType
    entity_type: str | None
    entity_id: str | None
    entity_name: str | None
    details: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}
