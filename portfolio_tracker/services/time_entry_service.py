"""Time entry service: daily upserts, atomic bulk updates and week views.

One row per (user, date). Positive hours are worked time, negative hours
are PTO (a full day off is -8).
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from portfolio_tracker.core.exceptions import NotFoundError, ValidationError
from portfolio_tracker.models import db
from portfolio_tracker.models.time_entry import TimeEntry
from portfolio_tracker.models.user import User
from portfolio_tracker.utils.helpers import parse_date

logger = logging.getLogger(__name__)

MAX_DAILY_HOURS = 24


def _parse_hours(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("hours is required", details={"hours": value})
    try:
        hours = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("hours must be a number", details={"hours": value})
    if not hours.is_finite() or not math.isfinite(float(hours)):
        raise ValidationError("hours must be a number", details={"hours": value})
    if abs(hours) > MAX_DAILY_HOURS:
        raise ValidationError(
            f"hours must be between -{MAX_DAILY_HOURS} and {MAX_DAILY_HOURS}",
            details={"hours": value},
        )
    return hours


def _validate_entry(data: dict) -> tuple[int, object, Decimal]:
    """Return (user_id, entry_date, hours) or raise ValidationError."""
    if not isinstance(data, dict):
        raise ValidationError("entry must be an object")
    user_id = data.get("user_id")
    entry_date = data.get("entry_date")
    missing = [k for k in ("user_id", "entry_date") if not data.get(k)]
    if "hours" not in data:
        missing.append("hours")
    if missing:
        raise ValidationError(
            "user_id, entry_date, and hours are required",
            details={k: "required" for k in missing},
        )
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError("user_id must be an integer", details={"user_id": user_id})
    parsed_date = parse_date(entry_date)
    if parsed_date is None:
        raise ValidationError("entry_date is not a valid date", details={"entry_date": entry_date})
    if db.session.get(User, user_id) is None:
        raise ValidationError("user_id references an unknown user", details={"user_id": user_id})
    return user_id, parsed_date, _parse_hours(data.get("hours"))


def _upsert(user_id: int, entry_date, hours: Decimal, description=None) -> TimeEntry:
    entry = TimeEntry.query.filter_by(user_id=user_id, entry_date=entry_date).first()
    if entry is None:
        entry = TimeEntry(user_id=user_id, entry_date=entry_date, hours=hours, description=description)
        db.session.add(entry)
    else:
        entry.hours = hours
        if description is not None:
            entry.description = description
    db.session.flush()
    return entry


def get_entry_or_404(entry_id: int) -> TimeEntry:
    entry = db.session.get(TimeEntry, entry_id)
    if entry is None:
        raise NotFoundError(resource="Time entry", resource_id=entry_id)
    return entry


# ── Queries ──────────────────────────────────────────────────────────────────


def list_entries(*, user_id=None, start_date=None, end_date=None, week_start=None) -> list[TimeEntry]:
    """Filtered entries, newest date first. ``week_start`` selects a 7-day window."""
    query = TimeEntry.query.join(User, TimeEntry.user_id == User.id)
    if user_id:
        query = query.filter(TimeEntry.user_id == user_id)
    if start_date:
        query = query.filter(TimeEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.entry_date <= end_date)
    if week_start:
        query = query.filter(
            TimeEntry.entry_date >= week_start,
            TimeEntry.entry_date <= week_start + timedelta(days=6),
        )
    return query.order_by(TimeEntry.entry_date.desc(), User.first_name, User.last_name).all()


def week_view(user_id: int, week_start) -> dict:
    """Daily hours for one user across the 7 days starting at ``week_start``."""
    week_end = week_start + timedelta(days=6)
    entries = (
        TimeEntry.query
        .filter(
            TimeEntry.user_id == user_id,
            TimeEntry.entry_date >= week_start,
            TimeEntry.entry_date <= week_end,
        )
        .order_by(TimeEntry.entry_date)
        .all()
    )
    week_data = {e.entry_date.isoformat(): float(e.hours) for e in entries}
    return {
        "user_id": user_id,
        "week_start": week_start.isoformat(),
        "week_end": week_end.isoformat(),
        "week_data": week_data,
        "week_total": float(sum((e.hours for e in entries), Decimal("0"))),
    }


# ── Mutations ────────────────────────────────────────────────────────────────


def upsert_entry(data: dict) -> TimeEntry:
    """Insert or overwrite the entry for (user_id, entry_date)."""
    user_id, entry_date, hours = _validate_entry(data)
    return _upsert(user_id, entry_date, hours, data.get("description"))


def bulk_upsert(entries) -> list[TimeEntry]:
    """Upsert a batch atomically.

    Every entry is validated and written inside the current transaction; the
    first invalid entry (or database error) rolls back the whole batch.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("entries array is required")

    saved = []
    try:
        for index, item in enumerate(entries):
            try:
                user_id, entry_date, hours = _validate_entry(item)
            except ValidationError as exc:
                raise ValidationError(
                    f"Entry {index}: {exc}",
                    details={"index": index, **exc.details},
                ) from exc
            saved.append(_upsert(user_id, entry_date, hours, item.get("description")))
    except Exception:
        db.session.rollback()
        logger.warning("Bulk time-entry update rolled back (%d entries submitted)", len(entries))
        raise

    logger.info("Bulk time-entry update: %d entries staged", len(saved))
    return saved


def update_entry(entry_id: int, data: dict) -> TimeEntry:
    """Partial update of hours and/or description."""
    entry = get_entry_or_404(entry_id)
    if data.get("hours") is not None:
        entry.hours = _parse_hours(data["hours"])
    if data.get("description") is not None:
        entry.description = data["description"]
    db.session.flush()
    return entry


def delete_entry(entry_id: int) -> dict:
    entry = get_entry_or_404(entry_id)
    snapshot = entry.to_dict()
    db.session.delete(entry)
    db.session.flush()
    return snapshot
