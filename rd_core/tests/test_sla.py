# rd_core/tests/test_sla.py

from datetime import date, datetime, timedelta, timezone as dt_timezone

import pytest
from django.core.management import call_command
from django.utils import timezone

from rd_core.models import RequestEvent, WorkflowAlert
from rd_core.tasks import scan_request_sla
from rd_core.workflows import sla
from rd_core.workflows.executor import execute_transition
from rd_core.workflows.sla import compute_sla_date, sla_payload
from rd_core.workflows.sla_scanner import check_sla_breaches, request_sla_payload


UTC = dt_timezone.utc
T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _event(created_at, old, new):
    return {"created_at": created_at, "payload": {"from": old, "to": new}}


# ---------------------------------------------------------------
# Pure computation
# ---------------------------------------------------------------

def test_development_deadline_uses_dev_days():
    deadline = compute_sla_date(
        status="IN_PROGRESS",
        complexity="MEDIUM",
        direction="FLAVOR",
        events=[_event(T0, "PENDING", "IN_PROGRESS")],
    )
    assert deadline == T0 + timedelta(days=10)


@pytest.mark.parametrize(
    "complexity,direction,days",
    [
        ("COMPLEX", "FUNCTIONAL", 10),
        ("COMPLEX", "COMPLEX", 10),
        ("COMPLEX", "FLAVOR", 7),
        ("EXPERT", "COLORANT", 20),
        ("EASY", "FUNCTIONAL", 3),
    ],
)
def test_rework_deadline_depends_on_direction(complexity, direction, days):
    rework_at = T0 + timedelta(days=15)
    events = [
        _event(T0, "PENDING", "IN_PROGRESS"),
        _event(T0 + timedelta(days=5), "IN_PROGRESS", "SENT_FOR_TEST"),
        _event(rework_at, "SENT_FOR_TEST", "IN_PROGRESS"),
    ]

    deadline = compute_sla_date(status="IN_PROGRESS", complexity=complexity, direction=direction, events=events)

    assert deadline == rework_at + timedelta(days=days)


def test_events_are_ordered_by_time_not_input_order():
    events = [
        _event(T0 + timedelta(days=3), "SENT_FOR_TEST", "IN_PROGRESS"),
        _event(T0, "PENDING", "IN_PROGRESS"),
    ]
    deadline = compute_sla_date(status="IN_PROGRESS", complexity="MEDIUM", direction="FLAVOR", events=events)
    assert deadline == T0 + timedelta(days=3 + 5)


def test_testing_deadline_counts_from_date_sent_for_test():
    deadline = compute_sla_date(
        status="SENT_FOR_TEST",
        complexity="EXPERT",
        direction="FLAVOR",
        sent_for_test=date(2026, 3, 2),
        tz=UTC,
    )
    assert deadline == datetime(2026, 3, 12, tzinfo=UTC)


@pytest.mark.parametrize(
    "status,complexity,events",
    [
        ("PENDING", "MEDIUM", []),
        ("APPROVED_FOR_PRODUCTION", "MEDIUM", []),
        ("IN_PROGRESS", None, [_event(T0, "PENDING", "IN_PROGRESS")]),
        ("IN_PROGRESS", "MEDIUM", []),
    ],
)
def test_no_sla(status, complexity, events):
    assert compute_sla_date(status=status, complexity=complexity, direction="FLAVOR", events=events) is None


def test_payload_reports_remaining_calendar_days():
    deadline = T0 + timedelta(days=10)

    payload = sla_payload(deadline, T0 + timedelta(days=7, hours=14))
    assert payload["applies"] is True
    assert payload["is_overdue"] is False
    assert payload["remaining_days"] == 3

    overdue = sla_payload(deadline, T0 + timedelta(days=12))
    assert overdue["is_overdue"] is True
    assert overdue["remaining_days"] == -2

    assert sla_payload(None, T0) == {
        "applies": False,
        "sla_date": None,
        "is_overdue": False,
        "remaining_days": None,
    }


def test_rules_module_keeps_its_docstring():
    assert sla.__doc__.strip().startswith("Authoritative request SLA rules")


def test_remaining_days_count_local_calendar_days():
    moscow = dt_timezone(timedelta(hours=3))
    deadline = compute_sla_date(
        status="SENT_FOR_TEST",
        complexity="MEDIUM",
        direction="FLAVOR",
        sent_for_test=date(2026, 10, 10),
        tz=moscow,
    )
    # local midnight, 21:00 the evening before in UTC
    assert deadline == datetime(2026, 10, 19, 21, 0, tzinfo=UTC)

    before = sla_payload(deadline, datetime(2026, 10, 19, 20, 0, tzinfo=UTC), tz=moscow)
    assert (before["is_overdue"], before["remaining_days"]) == (False, 1)

    after = sla_payload(deadline, datetime(2026, 10, 19, 22, 0, tzinfo=UTC), tz=moscow)
    assert (after["is_overdue"], after["remaining_days"]) == (True, 0)


# ---------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------

def _backdate_entry(request_obj, days):
    RequestEvent.objects.filter(request=request_obj, event_type="STATUS_CHANGED").update(
        created_at=timezone.now() - timedelta(days=days)
    )


@pytest.mark.django_db
def test_request_payload_for_fresh_request(started_request):
    payload = request_sla_payload(started_request)

    assert payload["status"] == "IN_PROGRESS"
    assert payload["applies"] is True
    assert payload["is_overdue"] is False
    assert payload["remaining_days"] == 10


@pytest.mark.django_db
def test_scan_raises_one_alert_per_breach(started_request):
    _backdate_entry(started_request, days=11)

    assert check_sla_breaches() == 1
    # same breach window: no new alert
    assert check_sla_breaches() == 0

    alert = WorkflowAlert.objects.get(kind="request", object_id=started_request.pk)
    assert alert.state == "IN_PROGRESS"
    assert alert.resolved_at is None
    assert alert.overdue_seconds > 0


@pytest.mark.django_db
def test_scan_ignores_requests_within_sla_or_without_complexity(started_request, request_factory, user_rd_manager):
    no_complexity = request_factory(complexity_level=None)
    execute_transition(instance=no_complexity, kind="request", new_status="IN_PROGRESS", user=user_rd_manager)
    _backdate_entry(no_complexity, days=100)

    assert check_sla_breaches() == 0
    assert not WorkflowAlert.objects.exists()


@pytest.mark.django_db
def test_alert_resolves_on_status_change(started_request, user_rd_manager):
    _backdate_entry(started_request, days=11)
    check_sla_breaches()

    execute_transition(instance=started_request, kind="request", new_status="CANCELLED", user=user_rd_manager)

    alert = WorkflowAlert.objects.get(object_id=started_request.pk)
    assert alert.resolved_at is not None


@pytest.mark.django_db
def test_task_and_command_run_the_scan(started_request, capsys):
    _backdate_entry(started_request, days=11)

    assert scan_request_sla.delay().get() == 1

    call_command("check_sla_breaches", "--list")
    out = capsys.readouterr().out
    assert "0 new SLA alert(s)." in out
    assert f"request:{started_request.pk} IN_PROGRESS" in out
