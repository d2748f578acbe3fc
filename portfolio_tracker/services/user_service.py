"""
User Service — team member CRUD and per-user time summaries.
"""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email

from portfolio_tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from portfolio_tracker.models import db
from portfolio_tracker.models.time_entry import TimeEntry
from portfolio_tracker.models.user import DEFAULT_TIER, VALID_TIERS, User

logger = logging.getLogger(__name__)


def _normalize_email(email):
    if email is None or str(email).strip() == "":
        return None
    try:
        valid = validate_email(str(email).strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": email})
    return valid.normalized


def _validate_tier(tier) -> int:
    try:
        tier = int(tier)
    except (TypeError, ValueError):
        raise ValidationError("tier must be 1, 2 or 3", details={"tier": tier})
    if tier not in VALID_TIERS:
        raise ValidationError("tier must be 1, 2 or 3", details={"tier": tier})
    return tier


def _ensure_email_free(email: str | None, *, exclude_id: int | None = None) -> None:
    if email is None:
        return
    query = User.query.filter(db.func.lower(User.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(User.id != exclude_id)
    if query.first():
        raise ConflictError(resource="User", field="email", value=email)


def get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError(resource="User", resource_id=user_id)
    return user


# ═══════════════════════════════════════════════════════════════
# User CRUD
# ═══════════════════════════════════════════════════════════════


def list_users() -> list[User]:
    return User.query.order_by(User.first_name, User.last_name, User.id).all()


def create_user(data: dict) -> User:
    """Create an active user; tier defaults to 2."""
    first_name = str(data.get("first_name") or "").strip()
    last_name = str(data.get("last_name") or "").strip()
    if not first_name or not last_name:
        raise ValidationError(
            "first_name and last_name are required",
            details={"first_name": first_name or "required", "last_name": last_name or "required"},
        )

    email = _normalize_email(data.get("email"))
    _ensure_email_free(email)

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        tier=_validate_tier(data["tier"]) if data.get("tier") is not None else DEFAULT_TIER,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()
    logger.info("User created id=%s tier=%s", user.id, user.tier)
    return user


def update_user(user_id: int, data: dict) -> User:
    """Partial update; null/absent fields keep their stored value."""
    user = get_user_or_404(user_id)

    for attr in ("first_name", "last_name"):
        if data.get(attr) is not None:
            value = str(data[attr]).strip()
            if not value:
                raise ValidationError(f"{attr} cannot be empty", details={attr: "empty"})
            setattr(user, attr, value)

    if data.get("email") is not None:
        email = _normalize_email(data["email"])
        _ensure_email_free(email, exclude_id=user.id)
        user.email = email
    if data.get("tier") is not None:
        user.tier = _validate_tier(data["tier"])
    if data.get("is_active") is not None:
        user.is_active = bool(data["is_active"])

    db.session.flush()
    return user


def deactivate_user(user_id: int) -> User:
    """Soft delete: the user keeps their history but drops out of reports."""
    user = get_user_or_404(user_id)
    user.is_active = False
    db.session.flush()
    logger.info("User deactivated id=%s", user.id)
    return user


def user_time_summary(user_id: int, start_date=None, end_date=None) -> list[dict]:
    """Daily hours for one user, newest first."""
    get_user_or_404(user_id)
    query = TimeEntry.query.filter(TimeEntry.user_id == user_id)
    if start_date:
        query = query.filter(TimeEntry.entry_date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.entry_date <= end_date)
    return [
        {
            "entry_date": e.entry_date.isoformat(),
            "total_hours": float(e.hours),
            "days_worked": 1,
        }
        for e in query.order_by(TimeEntry.entry_date.desc())
    ]
