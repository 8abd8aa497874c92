import logging
from typing import Any

import pydantic
from fastapi import APIRouter, Body, Depends, Response
from pydantic import TypeAdapter
from sqlalchemy.orm import Session

from boutique.api.deps import get_current_user, require_owner
from boutique.api.presenters import managed_user_out
from boutique.core.errors import PermissionDenied, ValidationError
from boutique.db.database import atomic, get_db
from boutique.models.user import User, UserRole
from boutique.schemas.functions import (
    ActivityLogOut,
    CreateUserAction,
    DeleteUserAction,
    ExportLogsAction,
    FetchLogsAction,
    ListUsersAction,
    LogActivityAction,
    UpdateProfileAction,
    UpdateRoleAction,
    activity_logs_request,
    manage_users_request,
)
from boutique.services import accounts, activity_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Functions"])

OWNER_ONLY_LOG_ACTIONS = {"fetch", "export"}


def parse_action(adapter: TypeAdapter, body: Any):
    try:
        return adapter.validate_python(body)
    except pydantic.ValidationError as exc:
        errors = exc.errors()
        if any(error["type"] in {"union_tag_invalid", "union_tag_not_found", "model_attributes_type"} for error in errors):
            raise ValidationError("Invalid action") from exc
        fields = sorted({str(error["loc"][-1]) for error in errors if error["loc"]})
        raise ValidationError(f"Missing or invalid fields: {', '.join(fields)}") from exc


@router.options("/manage-users")
def manage_users_preflight():
    return Response(status_code=200)


@router.post("/manage-users")
def manage_users(
    body: Any = Body(default=None),
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    request = parse_action(manage_users_request, body)
    logger.info("manage-users %s by %s", request.action, current_user.id)

    if isinstance(request, ListUsersAction):
        return {"users": [managed_user_out(user).model_dump(mode="json") for user in accounts.list_users(db)]}

    if isinstance(request, CreateUserAction):
        user = accounts.create_user(
            db,
            email=request.email,
            password=request.password,
            full_name=request.nom_complet,
            role=request.role,
            actor=current_user,
            phone=request.telephone,
        )
        return {"success": True, "user": managed_user_out(user).model_dump(mode="json")}

    if isinstance(request, DeleteUserAction):
        accounts.delete_user(db, request.user_id, actor=current_user)
        return {"success": True}

    if isinstance(request, UpdateRoleAction):
        accounts.update_role(db, request.user_id, request.new_role, actor=current_user)
        return {"success": True}

    if isinstance(request, UpdateProfileAction):
        accounts.update_profile(
            db,
            request.user_id,
            actor=current_user,
            full_name=request.nom_complet,
            phone=request.telephone,
            new_role=request.new_role,
        )
        return {"success": True}

    raise ValidationError("Invalid action")


@router.options("/activity-logs")
def activity_logs_preflight():
    return Response(status_code=200)


@router.post("/activity-logs")
def activity_logs(
    body: Any = Body(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    action = body.get("action") if isinstance(body, dict) else None
    if action in OWNER_ONLY_LOG_ACTIONS and current_user.role != UserRole.OWNER:
        logger.warning("User %s refused activity log %s", current_user.id, action)
        raise PermissionDenied("Permission denied")
    request = parse_action(activity_logs_request, body)

    if isinstance(request, LogActivityAction):
        with atomic(db):
            entry = activity_log.record_activity(
                db,
                current_user,
                request.action_type,
                entity_type=request.entity_type,
                entity_id=request.entity_id,
                entity_name=request.entity_name,
                details=request.details,
            )
        db.refresh(entry)
        return {"success": True, "log": ActivityLogOut.model_validate(entry).model_dump(mode="json")}

    if isinstance(request, FetchLogsAction):
        page = activity_log.fetch_logs(
            db,
            page=request.page,
            limit=request.limit,
            action_type=request.action_type,
            user_id=request.user_id,
            start_date=request.start_date,
            end_date=request.end_date,
        )
        return {
            "logs": [ActivityLogOut.model_validate(row).model_dump(mode="json") for row in page.logs],
            "total": page.total,
            "page": page.page,
            "limit": page.limit,
            "totalPages": page.total_pages,
        }

    if isinstance(request, ExportLogsAction):
        rows = activity_log.export_rows(db, start_date=request.start_date, end_date=request.end_date)
        if request.format == "json":
            return {"logs": [ActivityLogOut.model_validate(row).model_dump(mode="json") for row in rows]}
        return {"csv": activity_log.rows_to_csv(rows)}

    raise ValidationError("Invalid action")
