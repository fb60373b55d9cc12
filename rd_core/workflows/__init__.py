# rd_core/workflows/__init__.py
"""
Authoritative workflow definitions for R&D entities.

This module defines:
- Valid statuses per workflow kind (sample, recipe, request)
- Allowed transitions
- Role-based enforcement
- Introspection helpers for UI and API

Pure logic: no Django imports. Do not bypass these rules at model or view level.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set


# ===============================================================
# Roles
# ===============================================================

SALES_MANAGER = "SALES_MANAGER"
RD_DEV = "RD_DEV"
RD_MANAGER = "RD_MANAGER"
ADMIN = "ADMIN"
READONLY = "READONLY"

ROLE_ALIASES: Dict[str, str] = {
    "ADMIN": ADMIN,
    "SYSTEM_ADMIN": ADMIN,
    "SUPERUSER": ADMIN,
    "RD_MANAGER": RD_MANAGER,
    "R&D_MANAGER": RD_MANAGER,
    "RD_HEAD": RD_MANAGER,
    "RD_DEV": RD_DEV,
    "RD_DEVELOPER": RD_DEV,
    "TECHNOLOGIST": RD_DEV,
    "SALES_MANAGER": SALES_MANAGER,
    "SALES": SALES_MANAGER,
    "MANAGER": SALES_MANAGER,
    "READONLY": READONLY,
    "VIEWER": READONLY,
}

ALL_ROLES = (SALES_MANAGER, RD_DEV, RD_MANAGER, ADMIN)

RD_ROLES: Set[str] = {RD_DEV, RD_MANAGER, ADMIN}
TESTING_ROLES: Set[str] = {SALES_MANAGER, ADMIN}
RD_LEAD_ROLES: Set[str] = {RD_MANAGER, ADMIN}


# ===============================================================
# SAMPLE WORKFLOW
# ===============================================================

SAMPLE_STATUSES: Set[str] = {
    "Draft",
    "Prepared",
    "Lab",
    "LabDone",
    "Pilot",
    "PilotDone",
    "ReadyForHandoff",
    "HandedOff",
    "Testing",
    "Approved",
    "Rejected",
    "Archived",
}

# Main path of a development sample, in order. Archived/Rejected are side exits.
SAMPLE_PATH: List[str] = [
    "Draft",
    "Prepared",
    "Lab",
    "LabDone",
    "Pilot",
    "PilotDone",
    "ReadyForHandoff",
    "HandedOff",
    "Testing",
    "Approved",
]

SAMPLE_TRANSITIONS: Dict[str, Set[str]] = {
    "Draft": {"Prepared", "Archived"},
    "Prepared": {"Lab", "Archived"},
    "Lab": {"LabDone", "Archived"},
    "LabDone": {"Pilot", "Archived"},
    "Pilot": {"PilotDone", "Archived"},
    "PilotDone": {"ReadyForHandoff", "HandedOff", "Archived"},
    "ReadyForHandoff": {"HandedOff", "Archived"},
    "HandedOff": {"Testing"},
    "Testing": {"Approved", "Rejected"},
    "Rejected": {"Archived"},
    "Approved": set(),  # terminal
    "Archived": set(),  # terminal
}

SAMPLE_TRANSITION_ROLES: Dict[str, Dict[str, Set[str]]] = {
    "Draft": {
        "Prepared": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "Prepared": {
        "Lab": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "Lab": {
        "LabDone": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "LabDone": {
        "Pilot": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "Pilot": {
        "PilotDone": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "PilotDone": {
        "ReadyForHandoff": RD_ROLES,
        "HandedOff": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "ReadyForHandoff": {
        "HandedOff": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "HandedOff": {
        "Testing": TESTING_ROLES,
    },
    "Testing": {
        "Approved": TESTING_ROLES,
        "Rejected": TESTING_ROLES,
    },
    "Rejected": {
        "Archived": RD_LEAD_ROLES,
    },
}


# ===============================================================
# RECIPE WORKFLOW
# ===============================================================

RECIPE_STATUSES: Set[str] = {"Draft", "Locked", "Archived"}

RECIPE_TRANSITIONS: Dict[str, Set[str]] = {
    "Draft": {"Locked", "Archived"},
    "Locked": {"Archived"},
    "Archived": set(),
}

RECIPE_TRANSITION_ROLES: Dict[str, Dict[str, Set[str]]] = {
    "Draft": {
        "Locked": RD_ROLES,
        "Archived": RD_ROLES,
    },
    "Locked": {
        "Archived": RD_ROLES,
    },
}


# ===============================================================
# REQUEST WORKFLOW
# ===============================================================

REQUEST_STATUSES: Set[str] = {
    "PENDING",
    "IN_PROGRESS",
    "SENT_FOR_TEST",
    "APPROVED_FOR_PRODUCTION",
    "REJECTED_BY_CLIENT",
    "CANCELLED",
}

REQUEST_CLOSED_STATUSES: Set[str] = {
    "APPROVED_FOR_PRODUCTION",
    "REJECTED_BY_CLIENT",
    "CANCELLED",
}

REQUEST_TRANSITIONS: Dict[str, Set[str]] = {
    "PENDING": {"IN_PROGRESS", "CANCELLED"},
    "IN_PROGRESS": {"SENT_FOR_TEST", "CANCELLED"},
    "SENT_FOR_TEST": {"APPROVED_FOR_PRODUCTION", "REJECTED_BY_CLIENT", "IN_PROGRESS"},
    "APPROVED_FOR_PRODUCTION": set(),
    "REJECTED_BY_CLIENT": set(),
    "CANCELLED": set(),
}

REQUEST_TRANSITION_ROLES: Dict[str, Dict[str, Set[str]]] = {
    "PENDING": {
        "IN_PROGRESS": RD_LEAD_ROLES,
        "CANCELLED": {SALES_MANAGER, RD_MANAGER, ADMIN},
    },
    "IN_PROGRESS": {
        "SENT_FOR_TEST": RD_ROLES,
        "CANCELLED": {SALES_MANAGER, RD_MANAGER, ADMIN},
    },
    "SENT_FOR_TEST": {
        "APPROVED_FOR_PRODUCTION": TESTING_ROLES,
        "REJECTED_BY_CLIENT": TESTING_ROLES,
        "IN_PROGRESS": TESTING_ROLES,
    },
}


# ===============================================================
# Registry
# ===============================================================

_REGISTRY: Dict[str, Dict[str, Any]] = {
    "sample": {
        "statuses": SAMPLE_STATUSES,
        "transitions": SAMPLE_TRANSITIONS,
        "roles": SAMPLE_TRANSITION_ROLES,
    },
    "recipe": {
        "statuses": RECIPE_STATUSES,
        "transitions": RECIPE_TRANSITIONS,
        "roles": RECIPE_TRANSITION_ROLES,
    },
    "request": {
        "statuses": REQUEST_STATUSES,
        "transitions": REQUEST_TRANSITIONS,
        "roles": REQUEST_TRANSITION_ROLES,
    },
}

WORKFLOW_KINDS = tuple(sorted(_REGISTRY))


def normalize_kind(kind: str) -> str:
    return str(kind or "").strip().lower()


def _definition(kind: str) -> Dict[str, Any]:
    k = normalize_kind(kind)
    if k not in _REGISTRY:
        raise ValueError(f"Unknown workflow kind: {kind}")
    return _REGISTRY[k]


def normalize_state(kind: str, value: Optional[str]) -> str:
    """
    Map any casing of a status onto its canonical spelling for the kind
    ("labdone" -> "LabDone", "in_progress" -> "IN_PROGRESS").

    Unknown values are returned stripped so validation can report them.
    """
    raw = str(value or "").strip()
    k = normalize_kind(kind)
    if k not in _REGISTRY:
        return raw
    lookup = {s.lower(): s for s in _REGISTRY[k]["statuses"]}
    return lookup.get(raw.lower(), raw)


def normalize_role(value: Optional[str]) -> str:
    raw = str(value or "").strip().upper().replace(" ", "_").replace("-", "_")
    return ROLE_ALIASES.get(raw, raw or READONLY)


# ===============================================================
# VALIDATION
# ===============================================================

def validate_transition(kind: str, old: Optional[str], new: Optional[str]) -> None:
    """
    Raises ValueError if old -> new is not a legal edge for the kind.
    A same-state "transition" is accepted as a no-op.
    """
    definition = _definition(kind)
    k = normalize_kind(kind)
    old = normalize_state(k, old)
    new = normalize_state(k, new)

    if old not in definition["statuses"]:
        raise ValueError(f"Unknown {k} status: {old}")

    if new not in definition["statuses"]:
        raise ValueError(f"Unknown {k} status: {new}")

    if old == new:
        return

    if new not in definition["transitions"].get(old, set()):
        raise ValueError(f"Invalid {k} status transition: {old} -> {new}")


def is_terminal(kind: str, status: Optional[str]) -> bool:
    definition = _definition(kind)
    state = normalize_state(kind, status)
    return state in definition["statuses"] and not definition["transitions"].get(state)


# ===============================================================
# INTROSPECTION HELPERS
# ===============================================================

def allowed_next_states(kind: str, current: Optional[str]) -> List[str]:
    """
    Canonical next states only, independent of role.
    """
    definition = _definition(kind)
    return sorted(definition["transitions"].get(normalize_state(kind, current), set()))


def required_roles(kind: str, current: Optional[str], target: Optional[str]) -> Set[str]:
    definition = _definition(kind)
    current = normalize_state(kind, current)
    target = normalize_state(kind, target)
    return set(definition["roles"].get(current, {}).get(target, set()))


def allowed_transitions(kind: str, current: Optional[str], role: Optional[str]) -> List[str]:
    """
    Return all target states the given role is allowed to transition to
    from the current state.
    """
    r = normalize_role(role)
    allowed: List[str] = []

    for target in allowed_next_states(kind, current):
        if r in required_roles(kind, current, target):
            allowed.append(target)

    return sorted(allowed)


def allowed_for_roles(kind: str, current: Optional[str], roles) -> List[str]:
    """
    Union allowed transitions across all roles a user holds.
    """
    out: Set[str] = set()
    for role in roles or ():
        out |= set(allowed_transitions(kind, current, role))
    return sorted(out)


def workflow_definition(kind: str) -> Dict[str, Any]:
    """
    Stable JSON-serializable definition for UI.
    """
    definition = _definition(kind)
    transitions = definition["transitions"]
    return {
        "kind": normalize_kind(kind),
        "statuses": sorted(definition["statuses"]),
        "transitions": {k: sorted(v) for k, v in transitions.items()},
        "terminal_states": sorted(state for state, nexts in transitions.items() if not nexts),
        "roles": {
            current: {target: sorted(roles) for target, roles in targets.items()}
            for current, targets in definition["roles"].items()
        },
    }


def sample_stage_progress(status: Optional[str]) -> Dict[str, bool]:
    """
    Which display stages a sample has completed, as shown on the sample tracker.
    Draft and Archived samples have no completed stages.
    """
    state = normalize_state("sample", status)
    if state == "Rejected":
        # rejected by the customer after testing, earlier stages still count
        state = "Testing"
    stages = {
        "prepared": SAMPLE_PATH[1:],
        "lab": SAMPLE_PATH[3:],
        "pilot": SAMPLE_PATH[5:],
        "testing": SAMPLE_PATH[6:],
        "approved": SAMPLE_PATH[9:],
    }
    return {key: state in members for key, members in stages.items()}


__all__ = [
    "SAMPLE_STATUSES",
    "SAMPLE_PATH",
    "SAMPLE_TRANSITIONS",
    "RECIPE_STATUSES",
    "RECIPE_TRANSITIONS",
    "REQUEST_STATUSES",
    "REQUEST_CLOSED_STATUSES",
    "REQUEST_TRANSITIONS",
    "WORKFLOW_KINDS",
    "ALL_ROLES",
    "normalize_kind",
    "normalize_state",
    "normalize_role",
    "validate_transition",
    "is_terminal",
    "allowed_next_states",
    "required_roles",
    "allowed_transitions",
    "allowed_for_roles",
    "workflow_definition",
    "sample_stage_progress",
]
