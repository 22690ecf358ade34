"""Slot conflict detection and date helpers.

A slot carries two ranges: a time-of-day range (``start_time``/``end_time``)
and a calendar range (``start_date``/``end_date``).  Two active slots of the
same owner conflict when *either* range overlaps the other's, using open
intervals, so slots on disjoint dates still clash if their hours overlap.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from slotmatch.errors import ValidationError

if TYPE_CHECKING:
    from slotmatch.database import Database

SLOT_BOUND_FIELDS = ("start_time", "end_time", "start_date", "end_date")

# Time-only values ("09:30") are anchored on this day so they compare as instants.
_TIME_ANCHOR = date(1970, 1, 1)

WINDOW_DAYS = 7


# ── Instants ──────────────────────────────────────────────────────────────

def parse_instant(value: str | datetime, field: str = "value") -> datetime:
    """Parse an ISO-8601 date, datetime or time-of-day into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = (value or "").strip()
        if not text:
            raise ValidationError(f"{field} is required.")
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            try:
                return _time_of_day(time.fromisoformat(text))
            except ValueError:
                raise ValidationError(f"{field} is not a valid date/time: {text!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _time_of_day(tod: time) -> datetime:
    """Shift a time-of-day to UTC and keep it on the anchor day.

    "23:00-03:00" becomes 02:00 UTC, not 02:00 on the next day, so
    time-only bounds always compare by clock time alone.
    """
    utc = datetime.combine(_TIME_ANCHOR, tod, tzinfo=tod.tzinfo or timezone.utc).astimezone(timezone.utc)
    return datetime.combine(_TIME_ANCHOR, utc.timetz())


def to_iso(dt: datetime) -> str:
    """Fixed-width UTC string; lexical order matches chronological order."""
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def normalize_instant(value: str | datetime, field: str = "value") -> str:
    return to_iso(parse_instant(value, field))


def normalize_slot_bounds(payload: dict) -> dict[str, str]:
    """Validate and normalise the four bound fields of a slot payload."""
    return {f: normalize_instant(payload.get(f, ""), f) for f in SLOT_BOUND_FIELDS}


# ── Conflict checker ──────────────────────────────────────────────────────

def _bounds(slot: dict) -> tuple[datetime, datetime, datetime, datetime]:
    return tuple(parse_instant(slot[f], f) for f in SLOT_BOUND_FIELDS)  # type: ignore[return-value]


def slots_overlap(existing: dict, proposed: dict) -> bool:
    """True when the time-of-day ranges OR the calendar ranges overlap."""
    e_start_t, e_end_t, e_start_d, e_end_d = _bounds(existing)
    p_start_t, p_end_t, p_start_d, p_end_d = _bounds(proposed)

    times_overlap = e_start_t < p_end_t and e_end_t > p_start_t
    dates_overlap = e_start_d < p_end_d and e_end_d > p_start_d
    return times_overlap or dates_overlap


def find_conflict(existing_slots: list[dict], proposed: dict) -> dict | None:
    """Return the first active slot that overlaps *proposed*, if any."""
    for slot in existing_slots:
        if not slot.get("active", True):
            continue
        if slots_overlap(slot, proposed):
            return slot
    return None


def conflicts(db: Database, proposed: dict, exclude_slot_id: int | None = None) -> bool:
    """Check *proposed* against the owner's active slots in the store.

    ``proposed`` needs ``user_id`` and the four bound fields.  Read-only.
    """
    existing = db.list_active_slots_for_user(proposed["user_id"], exclude_slot_id=exclude_slot_id)
    return find_conflict(existing, proposed) is not None


# ── Day windows ───────────────────────────────────────────────────────────

def window_days(start: str, days: int = WINDOW_DAYS) -> list[str]:
    """``days`` consecutive YYYY-MM-DD strings starting at *start*."""
    first = parse_instant(start, "date").date()
    return [(first + timedelta(days=i)).isoformat() for i in range(days)]


def window_bounds(start: str, days: int = WINDOW_DAYS) -> tuple[str, str]:
    """Half-open [first day 00:00, first day + days) as stored instants."""
    first = parse_instant(start, "date").date()
    lo = datetime.combine(first, time(), tzinfo=timezone.utc)
    return to_iso(lo), to_iso(lo + timedelta(days=days))


def group_by_day(rows: list[dict], key: str, days: list[str]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {d: [] for d in days}
    for row in rows:
        day = parse_instant(row[key], key).date().isoformat()
        if day in grouped:
            grouped[day].append(row)
    return grouped
