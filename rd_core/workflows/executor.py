# rd_core/workflows/executor.py

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from rest_framework.exceptions import PermissionDenied, ValidationError

from rd_core.models import WorkflowTransition, WorkflowAlert
from rd_core.permissions import resolve_user_roles
from rd_core.workflows import (
    validate_transition,
    allowed_next_states,
    required_roles,
    normalize_kind,
    normalize_state,
)
from rd_core.workflows.guards import WorkflowGuardError, check_transition_guards
from rd_core.workflows.side_effects import apply_side_effects

logger = logging.getLogger(__name__)


def _resolve_open_sla_alerts(*, kind: str, object_id: int, state: str) -> int:
    if not kind or not state:
        return 0

    now = timezone.now()

    qs = WorkflowAlert.objects.filter(
        kind=kind,
        object_id=object_id,
        state=state,
        resolved_at__isnull=True,
    )

    updated = 0
    for alert in qs.iterator():
        alert.resolved_at = now
        if alert.triggered_at:
            delta = now - alert.triggered_at
            alert.duration_seconds = max(0, int(delta.total_seconds()))
        else:
            alert.duration_seconds = 0
        alert.save(update_fields=["resolved_at", "duration_seconds"])
        updated += 1

    return updated


def execute_transition(*, instance, kind: str, new_status: str, user, comment: str = "") -> str:
    """
    The only code path that changes a workflow-controlled status.

    Order of checks: terminal lock, edge legality, role, data guards.
    Returns the resulting status; a same-state request is a no-op.
    """
    kind = normalize_kind(kind)
    current = normalize_state(kind, getattr(instance, "status", None))
    target = normalize_state(kind, new_status)

    # 1) Terminal state lock
    try:
        nexts = allowed_next_states(kind, current)
    except ValueError as e:
        raise ValidationError({"status": str(e)})

    if not nexts:
        raise ValidationError(
            {"status": f"{kind.capitalize()} is in terminal state '{current}' and cannot be modified."}
        )

    # 2) Validate transition legality (must be field-shaped)
    try:
        validate_transition(kind, current, target)
    except ValueError as e:
        raise ValidationError({"status": str(e)})

    # No-op transition
    if current == target:
        return current

    # 3) Role enforcement
    required = required_roles(kind, current, target)
    matched = set()
    if required:
        matched = resolve_user_roles(user) & required
        if not matched:
            raise PermissionDenied(
                "You do not have the required role to transition "
                f"{kind} from {current} to {target}."
            )

    # 4) Lock the row, then check data guards and apply transition + timeline + side effects
    with transaction.atomic():
        stored = (
            instance.__class__.objects
            .select_for_update()
            .filter(pk=instance.pk)
            .values_list("status", flat=True)
            .first()
        )
        if stored != current:
            raise ValidationError(
                {"status": f"{kind.capitalize()} status changed concurrently; reload and retry."}
            )

        try:
            check_transition_guards(kind, instance, current, target)
        except WorkflowGuardError as e:
            raise ValidationError({"status": str(e)})

        instance.__class__.objects.filter(pk=instance.pk).update(status=target)

        # keep the in-memory object in step with the row for later saves
        instance.status = target

        WorkflowTransition.objects.create(
            kind=kind,
            object_id=instance.pk,
            from_status=current,
            to_status=target,
            performed_by=user,
            role=sorted(matched)[0] if matched else "",
            comment=(comment or "").strip(),
        )

        apply_side_effects(kind=kind, instance=instance, current=current, target=target, user=user)

        _resolve_open_sla_alerts(kind=kind, object_id=instance.pk, state=current)

    logger.info(
        "Workflow %s %s: %s -> %s by %s",
        kind,
        instance.pk,
        current,
        target,
        getattr(user, "username", None),
    )
    return target
