# rd_core/workflows/sla_scanner.py
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from rd_core.models import Request, WorkflowAlert
from rd_core.workflows.sla import SLA_STATUSES, compute_sla_date, sla_payload

logger = logging.getLogger(__name__)


def request_sla_date(request_obj):
    """
    SLA deadline of a request in its current status.
    RequestEvent STATUS_CHANGED rows are the source of truth for entry times.
    """
    events = list(
        request_obj.events.filter(event_type="STATUS_CHANGED").values("created_at", "payload")
    )
    return compute_sla_date(
        status=request_obj.status,
        complexity=request_obj.complexity_level,
        direction=request_obj.direction,
        events=events,
        sent_for_test=request_obj.date_sent_for_test,
        tz=timezone.get_current_timezone(),
    )


def request_sla_payload(request_obj, *, now=None) -> dict:
    now = now or timezone.now()
    payload = sla_payload(request_sla_date(request_obj), now, tz=timezone.get_current_timezone())
    payload["status"] = request_obj.status
    return payload


def check_sla_breaches(*, now=None, created_by=None) -> int:
    """
    Scan open requests and raise one alert per overdue (request, status).

    Returns:
        int: number of newly raised SLA alerts
    """
    now = now or timezone.now()
    created_count = 0

    qs = Request.objects.filter(
        status__in=SLA_STATUSES,
        complexity_level__isnull=False,
    )

    for obj in qs.iterator():
        deadline = request_sla_date(obj)
        if deadline is None or now <= deadline:
            continue

        overdue = max(0, int((now - deadline).total_seconds()))

        # Prevent duplicate alerts for the same breach window
        with transaction.atomic():
            alert, created = WorkflowAlert.objects.get_or_create(
                kind="request",
                object_id=obj.pk,
                state=obj.status,
                defaults={
                    "sla_date": deadline,
                    "overdue_seconds": overdue,
                    "created_by": created_by,
                },
            )

            if created:
                created_count += 1
            elif alert.resolved_at is not None:
                # the request came back to this status: a new breach window
                alert.resolved_at = None
                alert.triggered_at = now
                alert.sla_date = deadline
                alert.overdue_seconds = overdue
                alert.duration_seconds = 0
                alert.save()
                created_count += 1
            else:
                alert.overdue_seconds = overdue
                alert.save(update_fields=["overdue_seconds"])
                continue

        logger.warning(
            "SLA breached for request %s in %s (deadline %s)",
            obj.code,
            obj.status,
            deadline.isoformat(),
        )

    return created_count


def open_alert_for(request_obj) -> Optional[WorkflowAlert]:
    return (
        WorkflowAlert.objects.filter(
            kind="request",
            object_id=request_obj.pk,
            state=request_obj.status,
            resolved_at__isnull=True,
        )
        .first()
    )
