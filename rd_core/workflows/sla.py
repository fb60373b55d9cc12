# rd_core/workflows/sla.py
"""
Authoritative request SLA rules and helpers.

This module is PURE LOGIC + DATA.
- No Django imports
- Deadlines depend on the request complexity level and direction
- UI and API must consume computed SLA payloads, not raw rules
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, Mapping, Optional

# ===============================================================
# SLA RULES (days)
# ===============================================================
# dev               : first development round (PENDING -> IN_PROGRESS)
# test              : customer testing window after handoff
# rework_functional : rework round for FUNCTIONAL / COMPLEX directions
# rework_flavor     : rework round for every other direction
# ===============================================================

SLA_RULES: Dict[str, Dict[str, int]] = {
    "EASY": {"dev": 3, "test": 10, "rework_functional": 3, "rework_flavor": 3},
    "MEDIUM": {"dev": 10, "test": 10, "rework_functional": 5, "rework_flavor": 5},
    "COMPLEX": {"dev": 20, "test": 10, "rework_functional": 10, "rework_flavor": 7},
    "EXPERT": {"dev": 90, "test": 10, "rework_functional": 30, "rework_flavor": 20},
}

FUNCTIONAL_DIRECTIONS = {"FUNCTIONAL", "COMPLEX"}

SLA_STATUSES = ("IN_PROGRESS", "SENT_FOR_TEST")


# ===============================================================
# PUBLIC API
# ===============================================================

def get_rules(complexity: Optional[str]) -> Optional[Dict[str, int]]:
    if not complexity:
        return None
    return SLA_RULES.get(str(complexity).strip().upper())


def rework_days(rules: Mapping[str, int], direction: Optional[str]) -> int:
    if str(direction or "").strip().upper() in FUNCTIONAL_DIRECTIONS:
        return rules["rework_functional"]
    return rules["rework_flavor"]


def _last_entry_into(events: Iterable[Mapping[str, Any]], status: str) -> Optional[Mapping[str, Any]]:
    last = None
    for event in sorted(events, key=lambda e: e["created_at"]):
        payload = event.get("payload") or {}
        if payload.get("to") == status:
            last = event
    return last


def compute_sla_date(
    *,
    status: Optional[str],
    complexity: Optional[str],
    direction: Optional[str],
    events: Iterable[Mapping[str, Any]] = (),
    sent_for_test: Optional[date] = None,
    tz=None,
) -> Optional[datetime]:
    """
    Deadline for the request's current status, or None when no SLA applies.

    Args:
        status:        current request status
        complexity:    EASY | MEDIUM | COMPLEX | EXPERT (None -> no SLA)
        direction:     request direction, selects rework days
        events:        STATUS_CHANGED events as {"created_at", "payload": {"from", "to"}}
        sent_for_test: date (or datetime) the request was sent for testing
        tz:            tzinfo applied when sent_for_test is a plain date

    IN_PROGRESS counts from the last event into IN_PROGRESS; coming back from
    SENT_FOR_TEST is a rework round. SENT_FOR_TEST counts from sent_for_test.
    """
    rules = get_rules(complexity)
    if not rules:
        return None

    status = str(status or "").strip().upper()

    if status == "IN_PROGRESS":
        entry = _last_entry_into(events, "IN_PROGRESS")
        if entry is None:
            return None
        is_rework = (entry.get("payload") or {}).get("from") == "SENT_FOR_TEST"
        days = rework_days(rules, direction) if is_rework else rules["dev"]
        return entry["created_at"] + timedelta(days=days)

    if status == "SENT_FOR_TEST":
        if sent_for_test is None:
            return None
        if not isinstance(sent_for_test, datetime):
            sent_for_test = datetime.combine(sent_for_test, time.min, tzinfo=tz)
        return sent_for_test + timedelta(days=rules["test"])

    return None


def _day(value: datetime, tz) -> date:
    if tz is not None and value.tzinfo is not None:
        value = value.astimezone(tz)
    return value.date()


def sla_payload(sla_date: Optional[datetime], now: datetime, tz=None) -> Dict[str, Any]:
    """
    {"applies", "sla_date", "is_overdue", "remaining_days"}.
    remaining_days counts calendar days in tz (both values are converted
    first): 0 on the deadline day, negative on the days after it.
    """
    if sla_date is None:
        return {
            "applies": False,
            "sla_date": None,
            "is_overdue": False,
            "remaining_days": None,
        }

    return {
        "applies": True,
        "sla_date": sla_date,
        "is_overdue": now > sla_date,
        "remaining_days": (_day(sla_date, tz) - _day(now, tz)).days,
    }
