"""Activity log: recording, paginated reads and export."""

from datetime import datetime
from zoneinfo import ZoneInfo

from boutique.models.activity import ActivityType
from boutique.services import activity_log
from boutique.services.activity_log import EXPORT_HEADER


def _record(db, actor, action_type, created_at, **fields):
    entry = activity_log.record_activity(db, actor, action_type, **fields)
    entry.created_at = created_at
    db.commit()
    return entry


def test_record_uses_profile_name_then_email(db, owner, make_user):
    nameless = make_user("sans.nom@boutique.test")
    nameless.profile.full_name = ""
    db.commit()

    named = activity_log.record_activity(db, owner, ActivityType.LOGIN)
    fallback = activity_log.record_activity(db, nameless, ActivityType.LOGIN)
    anonymous = activity_log.record_activity(db, None, ActivityType.LOGIN)
    db.commit()

    assert named.user_name == "Awa Diallo"
    assert fallback.user_name == "sans.nom@boutique.test"
    assert anonymous.user_id is None


def test_fetch_is_newest_first_and_paginated(db, owner):
    for day in (1, 2, 3):
        _record(db, owner, ActivityType.PRODUCT_CREATED, datetime(2024, 1, day, 9, 0), entity_name=f"P{day}")

    first = activity_log.fetch_logs(db, page=1, limit=2)
    second = activity_log.fetch_logs(db, page=2, limit=2)

    assert [log.entity_name for log in first.logs] == ["P3", "P2"]
    assert [log.entity_name for log in second.logs] == ["P1"]
    assert (first.total, first.total_pages) == (3, 2)


def test_fetch_filters_are_combined(db, owner, employee):
    _record(db, owner, ActivityType.LOGIN, datetime(2024, 1, 1, 9, 0))
    _record(db, employee, ActivityType.LOGIN, datetime(2024, 1, 2, 9, 0))
    _record(db, employee, ActivityType.SALE_CREATED, datetime(2024, 1, 3, 9, 0))
    _record(db, employee, ActivityType.LOGIN, datetime(2024, 1, 5, 9, 0))

    page = activity_log.fetch_logs(
        db,
        action_type=ActivityType.LOGIN,
        user_id=employee.id,
        start_date=datetime(2024, 1, 2),
        end_date=datetime(2024, 1, 4),
    )

    assert page.total == 1
    assert page.logs[0].created_at == datetime(2024, 1, 2, 9, 0)
    assert page.limit == 50


def test_export_csv_quotes_fields_and_uses_labels(db, owner, monkeypatch):
    monkeypatch.setattr(activity_log, "business_zone", lambda name=None: ZoneInfo("UTC"))
    _record(
        db,
        owner,
        ActivityType.PRODUCT_CREATED,
        datetime(2024, 1, 10, 14, 5, 9),
        entity_type="product",
        entity_name='Robe "wax"',
        details={"code": "RB-01"},
    )
    _record(db, owner, ActivityType.LOGOUT, datetime(2024, 1, 11, 8, 0, 0))

    text = activity_log.rows_to_csv(activity_log.export_rows(db))
    lines = text.split("\n")

    assert lines[0] == ",".join(EXPORT_HEADER)
    assert lines[1] == '"11/01/2024 08:00:00","Awa Diallo","Déconnexion","","",""'
    assert lines[2] == (
        '"10/01/2024 14:05:09","Awa Diallo","Produit créé","product","Robe ""wax""","{""code"": ""RB-01""}"'
    )
    assert len(lines) == 3


def test_export_respects_date_range(db, owner):
    _record(db, owner, ActivityType.LOGIN, datetime(2024, 1, 1, 9, 0))
    _record(db, owner, ActivityType.LOGIN, datetime(2024, 2, 1, 9, 0))

    rows = activity_log.export_rows(db, start_date=datetime(2024, 1, 15))

    assert [row.created_at for row in rows] == [datetime(2024, 2, 1, 9, 0)]
