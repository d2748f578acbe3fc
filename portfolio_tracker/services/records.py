"""
Typed read-side records for the reporting pipeline.

Query rows are converted into frozen dataclasses here, at the data-store
boundary. Closed-set fields (status, health, tier) are checked on the way in:
unexpected values are logged and normalized so they can never be mis-sorted
into a real bucket further down.

Also home of the tier-3 owner codec. ``projects.tier3_owners`` is a JSON
array of user ids stored in a text column; every read of that column goes
through ``decode_tier3_owners``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date

from portfolio_tracker.models.project import HEALTH_VALUES, PROJECT_STATUSES
from portfolio_tracker.models.user import VALID_TIERS

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════════
# tier3_owners codec
# ═════════════════════════════════════════════════════════════════════════════


def _coerce_owner_id(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        if digits.isascii() and digits.isdigit():
            return int(text)
    return None


def encode_tier3_owners(owner_ids) -> str | None:
    """Serialize tier-3 owner ids to the JSON text stored on the project.

    ``None`` or an empty sequence encodes to ``None`` (no owners). Order is
    kept; duplicates and non-integer ids are dropped.
    """
    if not owner_ids:
        return None
    ids = []
    for raw in owner_ids:
        owner_id = _coerce_owner_id(raw)
        if owner_id is not None and owner_id not in ids:
            ids.append(owner_id)
    return json.dumps(ids) if ids else None


def decode_tier3_owners(raw) -> tuple[int, ...]:
    """Parse the stored tier-3 owner column into an ordered tuple of ids.

    - ``None``, ``""``, whitespace and ``"[]"`` mean no owners.
    - A JSON array yields its integer members in order.
    - A bare value such as ``"7"`` (legacy single-owner rows) yields ``(7,)``.
    - Anything unparseable yields ``()``; this function never raises.
    """
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        items = raw
    else:
        text = str(raw).strip()
        if not text:
            return ()
        try:
            parsed = json.loads(text)
        except (ValueError, RecursionError):
            if text.startswith("["):
                logger.debug("Malformed tier3_owners value ignored: %r", text)
                return ()
            parsed = text
        items = parsed if isinstance(parsed, list) else [parsed]

    ids: list[int] = []
    for item in items:
        owner_id = _coerce_owner_id(item)
        if owner_id is None:
            logger.debug("Non-integer tier3 owner id ignored: %r", item)
            continue
        if owner_id not in ids:
            ids.append(owner_id)
    return tuple(ids)


# ═════════════════════════════════════════════════════════════════════════════
# Boundary validation
# ═════════════════════════════════════════════════════════════════════════════


def normalize_health(value, *, project_id=None) -> str | None:
    """Return the health literal, or None (logged) when outside the closed set."""
    if value in HEALTH_VALUES:
        return value
    if value is not None:
        logger.warning("Project %s has unexpected health %r; treated as unknown", project_id, value)
    return None


def normalize_status(value, *, project_id=None) -> str | None:
    if value in PROJECT_STATUSES:
        return value
    logger.warning("Project %s has unexpected status %r", project_id, value)
    return None


def normalize_tier(value, *, user_id=None) -> int | None:
    if value in VALID_TIERS:
        return value
    logger.warning("User %s has unexpected tier %r; excluded from tier breakdown", user_id, value)
    return None


def _as_float(value) -> float | None:
    return float(value) if value is not None else None


def _as_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value else None


# ═════════════════════════════════════════════════════════════════════════════
# Records
# ═════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProjectRecord:
    """Read-only snapshot of one project as consumed by the aggregation engine."""

    id: int
    project_name: str
    status: str | None
    health: str | None
    arr_value: float | None = None
    close_date: date | None = None
    start_date: date | None = None
    is_closed: bool = False
    tier1_owner_id: int | None = None
    tier2_owner_id: int | None = None
    tier3_owner_ids: tuple[int, ...] = ()
    tier_1_name: str | None = None
    tier_2_name: str | None = None
    latest_note: str = ""
    risk_description: str | None = None
    ask_description: str | None = None
    impact_description: str | None = None
    # No due-date column exists; always None so the "Due Soon" rule never fires.
    due_date: date | None = None

    @classmethod
    def from_row(cls, row) -> "ProjectRecord":
        """Build from a mapping-like query row (``Row._mapping`` or dict)."""
        project_id = row["id"]
        return cls(
            id=project_id,
            project_name=row["project_name"],
            status=normalize_status(row.get("status"), project_id=project_id),
            health=normalize_health(row.get("health"), project_id=project_id),
            arr_value=_as_float(row.get("arr_value")),
            close_date=_as_date(row.get("close_date")),
            start_date=_as_date(row.get("start_date")),
            is_closed=bool(row.get("is_closed")),
            tier1_owner_id=row.get("tier1_owner_id"),
            tier2_owner_id=row.get("tier2_owner_id"),
            tier3_owner_ids=decode_tier3_owners(row.get("tier3_owners")),
            tier_1_name=row.get("tier_1_name"),
            tier_2_name=row.get("tier_2_name"),
            latest_note=row.get("latest_note") or "",
            risk_description=row.get("risk_description"),
            ask_description=row.get("ask_description"),
            impact_description=row.get("impact_description"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_name": self.project_name,
            "status": self.status,
            "health": self.health,
            "arr_value": self.arr_value,
            "close_date": _iso(self.close_date),
            "start_date": _iso(self.start_date),
            "is_closed": self.is_closed,
            "tier1_owner_id": self.tier1_owner_id,
            "tier2_owner_id": self.tier2_owner_id,
            "tier3_owner_ids": list(self.tier3_owner_ids),
            "tier_1_name": self.tier_1_name,
            "tier_2_name": self.tier_2_name,
            "latest_note": self.latest_note,
            "risk_description": self.risk_description,
            "ask_description": self.ask_description,
            "impact_description": self.impact_description,
        }


@dataclass(frozen=True)
class UserHours:
    """One active user's worked and PTO hours over a reporting window."""

    user_id: int
    user_name: str
    tier: int | None
    total_hours: float = 0.0
    pto_hours: float = 0.0
    days_worked: int = 0

    @classmethod
    def from_row(cls, row) -> "UserHours":
        user_id = row["id"]
        return cls(
            user_id=user_id,
            user_name=row["user_name"],
            tier=normalize_tier(row.get("tier"), user_id=user_id),
            total_hours=float(row.get("total_hours") or 0),
            pto_hours=float(row.get("pto_hours") or 0),
            days_worked=int(row.get("days_worked") or 0),
        )

    @property
    def is_active_in_period(self) -> bool:
        return self.total_hours > 0 or self.pto_hours > 0
