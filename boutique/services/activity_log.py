import csv
import io
import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from boutique.core.clock import business_zone, to_local
from boutique.core.config import settings
from boutique.models.activity import ACTIVITY_LABELS, ActivityLog, ActivityType
from boutique.models.user import User

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Date", "Utilisateur", "Action", "Type entité", "Nom entité", "Détails"]


@dataclass(frozen=True)
class LogPage:
    logs: list[ActivityLog]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _as_utc_naive(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def record_activity(
    db: Session,
    actor: User | None,
    action_type: ActivityType,
    entity_type: str | None = None,
    entity_id: str | int | None = None,
    entity_name: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=actor.id if actor is not None else None,
        user_name=actor.display_name if actor is not None else "Utilisateur inconnu",
        action_type=action_type,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        entity_name=entity_name,
        details=details,
    )
    db.add(entry)
    return entry


def _filtered(query, *, action_type, user_id, start_date, end_date):
    if action_type is not None:
        query = query.where(ActivityLog.action_type == action_type)
    if user_id is not None:
        query = query.where(ActivityLog.user_id == user_id)
    if start_date is not None:
        query = query.where(ActivityLog.created_at >= _as_utc_naive(start_date))
    if end_date is not None:
        query = query.where(ActivityLog.created_at <= _as_utc_naive(end_date))
    return query


def fetch_logs(
    db: Session,
    *,
    page: int = 1,
    limit: int | None = None,
    action_type: ActivityType | None = None,
    user_id: int | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> LogPage:
    page = max(1, page)
    limit = limit or settings.activity_page_size
    filters = {"action_type": action_type, "user_id": user_id, "start_date": start_date, "end_date": end_date}

    total = db.scalar(_filtered(select(func.count(ActivityLog.id)), **filters)) or 0
    rows = db.scalars(
        _filtered(select(ActivityLog), **filters)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return LogPage(logs=list(rows), total=int(total), page=page, limit=limit)


def export_rows(
    db: Session,
    *,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[ActivityLog]:
    query = _filtered(
        select(ActivityLog),
        action_type=None,
        user_id=None,
        start_date=start_date,
        end_date=end_date,
    )
    rows = db.scalars(
        query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(settings.activity_export_limit)
    ).all()
    return list(rows)


def rows_to_csv(rows: list[ActivityLog]) -> str:
    tz = business_zone()
    sio = io.StringIO()
    csv.writer(sio, lineterminator="\n").writerow(EXPORT_HEADER)
    writer = csv.writer(sio, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(
            [
                to_local(row.created_at, tz).strftime("%d/%m/%Y %H:%M:%S"),
                row.user_name,
                ACTIVITY_LABELS.get(row.action_type, str(row.action_type)),
                row.entity_type or "",
                row.entity_name or "",
                json.dumps(row.details, ensure_ascii=False) if row.details else "",
            ]
        )
    return sio.getvalue().removesuffix("\n")
