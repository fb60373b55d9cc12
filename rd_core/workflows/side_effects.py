# rd_core/workflows/side_effects.py
"""
Data changes that accompany a status change. Called by the executor inside
its transaction, after the status row has been updated.
"""

from __future__ import annotations

from django.utils import timezone

from rd_core.models import RequestEvent
from rd_core.services.results import start_lab_results, start_pilot_results


def _sample_side_effects(sample, current: str, target: str, user) -> None:
    if target == "Lab":
        start_lab_results(sample)
    elif target == "Pilot":
        start_pilot_results(sample)


def _request_side_effects(request_obj, current: str, target: str, user) -> None:
    RequestEvent.objects.create(
        request=request_obj,
        event_type="STATUS_CHANGED",
        actor=user,
        payload={"from": current, "to": target},
    )

    if target == "SENT_FOR_TEST":
        today = timezone.localdate()
        request_obj.__class__.objects.filter(pk=request_obj.pk).update(date_sent_for_test=today)
        request_obj.date_sent_for_test = today


_SIDE_EFFECTS = {
    "sample": _sample_side_effects,
    "request": _request_side_effects,
}


def apply_side_effects(*, kind: str, instance, current: str, target: str, user) -> None:
    handler = _SIDE_EFFECTS.get(kind)
    if handler is not None:
        handler(instance, current, target, user)
