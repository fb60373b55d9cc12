# rd_core/tests/test_requests_api.py

import pytest
from rest_framework.test import APIClient

from rd_core.models import Request, RequestEvent
from rd_core.workflows.executor import execute_transition


def _types(request_id):
    return list(
        RequestEvent.objects.filter(request_id=request_id).order_by("id").values_list("event_type", flat=True)
    )


@pytest.mark.django_db
def test_sales_creates_request_with_next_code(api_client, user_sales):
    assert api_client.login(username="sales", password="pass123") is True

    payload = {"customer_company": "Acme Foods", "direction": "FLAVOR", "complexity_level": "EASY"}
    first = api_client.post("/rd/requests/", payload, format="json")
    second = api_client.post("/rd/requests/", payload, format="json")

    assert first.status_code == 201, first.content
    assert first.json()["code"] == "RD-0001"
    assert first.json()["status"] == "PENDING"
    assert first.json()["author"]["username"] == "sales"
    assert first.json()["allowed_next_states"] == ["CANCELLED", "IN_PROGRESS"]
    assert second.json()["code"] == "RD-0002"

    assert _types(first.json()["id"]) == ["CREATED"]


@pytest.mark.django_db
def test_create_denies_server_fields(api_client, user_sales):
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.post(
        "/rd/requests/",
        {"customer_company": "Acme", "direction": "FLAVOR", "code": "RD-7777"},
        format="json",
    )
    assert resp.status_code == 400
    assert "code" in resp.json()
    assert not Request.objects.exists()


@pytest.mark.django_db
def test_create_requires_company_and_direction(api_client, user_sales):
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.post("/rd/requests/", {"customer_company": "Acme"}, format="json")
    assert resp.status_code == 400
    assert "direction" in resp.json()


@pytest.mark.django_db
@pytest.mark.parametrize("username,fixture", [("viewer", "user_viewer"), ("rddev", "user_rd_dev")])
def test_only_sales_and_leads_create_requests(api_client, request, username, fixture):
    request.getfixturevalue(fixture)
    assert api_client.login(username=username, password="pass123") is True

    resp = api_client.post("/rd/requests/", {"customer_company": "Acme", "direction": "FLAVOR"}, format="json")
    assert resp.status_code == 403


@pytest.mark.django_db
def test_list_and_filter(api_client, request_factory, user_viewer):
    request_factory()
    request_factory(customer_company="Northwind", direction="COLORANT")
    assert api_client.login(username="viewer", password="pass123") is True

    resp = api_client.get("/rd/requests/")
    assert resp.status_code == 200
    assert resp.json()["count"] == 2
    # newest first
    assert [r["code"] for r in resp.json()["results"]] == ["RD-0002", "RD-0001"]

    resp = api_client.get("/rd/requests/?direction=COLORANT")
    assert [r["customer_company"] for r in resp.json()["results"]] == ["Northwind"]


@pytest.mark.django_db
def test_edit_records_field_and_feedback_events(api_client, rd_request, user_sales):
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.patch(
        f"/rd/requests/{rd_request.id}/",
        {"priority": "HIGH", "customer_feedback": "Needs more smoke"},
        format="json",
    )
    assert resp.status_code == 200, resp.content
    assert resp.json()["priority"] == "HIGH"

    assert _types(rd_request.id) == ["CREATED", "FEEDBACK_ADDED", "FIELD_UPDATED"]
    updated = RequestEvent.objects.get(request=rd_request, event_type="FIELD_UPDATED")
    assert updated.payload == {"priority": {"from": "MEDIUM", "to": "HIGH"}}


@pytest.mark.django_db
def test_assign_responsible(api_client, rd_request, user_rd_manager, user_rd_dev, user_sales):
    assert api_client.login(username="sales", password="pass123") is True
    resp = api_client.post(f"/rd/requests/{rd_request.id}/assign/", {"responsible_id": user_rd_dev.id}, format="json")
    assert resp.status_code == 403

    api_client.logout()
    assert api_client.login(username="rdmanager", password="pass123") is True
    resp = api_client.post(f"/rd/requests/{rd_request.id}/assign/", {"responsible_id": user_rd_dev.id}, format="json")
    assert resp.status_code == 200
    assert resp.json()["responsible"]["username"] == "rddev"
    # assignment does not start the work
    assert resp.json()["status"] == "PENDING"

    event = RequestEvent.objects.get(request=rd_request, event_type="ASSIGNED")
    assert event.payload == {"from": None, "to": "rddev"}
    assert event.actor == user_rd_manager


@pytest.mark.django_db
def test_responsible_is_only_set_through_assign(api_client, rd_request, user_sales, user_rd_dev):
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.patch(f"/rd/requests/{rd_request.id}/", {"responsible_id": user_rd_dev.id}, format="json")
    assert resp.status_code == 400
    assert "responsible_id" in resp.json()

    resp = api_client.post(
        "/rd/requests/",
        {"customer_company": "Acme", "direction": "FLAVOR", "responsible": user_rd_dev.id},
        format="json",
    )
    assert resp.status_code == 400
    assert "responsible" in resp.json()

    rd_request.refresh_from_db()
    assert rd_request.responsible is None
    assert Request.objects.count() == 1
    assert "ASSIGNED" not in _types(rd_request.id)


@pytest.mark.django_db
def test_closed_request_cannot_be_edited(api_client, rd_request, user_sales):
    execute_transition(instance=rd_request, kind="request", new_status="CANCELLED", user=user_sales)
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.patch(f"/rd/requests/{rd_request.id}/", {"priority": "HIGH"}, format="json")
    assert resp.status_code == 400
    assert "closed" in resp.json()["request"]

    rd_request.refresh_from_db()
    assert rd_request.priority == "MEDIUM"


@pytest.mark.django_db
def test_sla_and_events_endpoints(api_client, started_request, user_rd_manager):
    assert api_client.login(username="rdmanager", password="pass123") is True

    resp = api_client.get(f"/rd/requests/{started_request.id}/sla/")
    assert resp.status_code == 200
    sla = resp.json()["sla"]
    assert resp.json()["code"] == "RD-0001"
    assert sla["status"] == "IN_PROGRESS"
    assert sla["applies"] is True
    assert sla["remaining_days"] == 10
    assert sla["alert"] is None

    resp = api_client.get(f"/rd/requests/{started_request.id}/events/")
    assert resp.status_code == 200
    events = resp.json()
    assert [e["event_type"] for e in events] == ["CREATED", "STATUS_CHANGED"]
    assert events[1]["payload"] == {"from": "PENDING", "to": "IN_PROGRESS"}
    assert events[1]["actor_username"] == "rdmanager"


@pytest.mark.django_db
def test_start_work_over_transition_endpoint(api_client, rd_request, user_rd_manager, user_sales):
    assert api_client.login(username="sales", password="pass123") is True
    resp = api_client.post(f"/rd/workflows/request/{rd_request.id}/transition/", {"to_status": "IN_PROGRESS"}, format="json")
    assert resp.status_code == 403

    api_client.logout()
    assert api_client.login(username="rdmanager", password="pass123") is True
    resp = api_client.post(f"/rd/workflows/request/{rd_request.id}/transition/", {"to_status": "in_progress"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["current"] == "IN_PROGRESS"

    # SENT_FOR_TEST needs a handed-off sample
    resp = api_client.post(f"/rd/workflows/request/{rd_request.id}/transition/", {"to_status": "SENT_FOR_TEST"}, format="json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_only_admin_deletes_requests(api_client, rd_request, user_sales, user_admin):
    assert api_client.login(username="sales", password="pass123") is True
    assert api_client.delete(f"/rd/requests/{rd_request.id}/").status_code == 403

    api_client.logout()
    assert api_client.login(username="admin", password="pass123") is True
    assert api_client.delete(f"/rd/requests/{rd_request.id}/").status_code == 204
    assert not Request.objects.filter(pk=rd_request.pk).exists()


@pytest.mark.django_db
def test_health_and_jwt(user_rd_dev):
    client = APIClient()

    resp = client.get("/rd/health/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "RD-Portal"}

    assert client.get("/rd/whoami/").status_code == 401

    resp = client.post("/api/token/", {"username": "rddev", "password": "pass123"}, format="json")
    assert resp.status_code == 200
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.json()['access']}")

    resp = client.get("/rd/whoami/")
    assert resp.status_code == 200
    assert resp.json()["roles"] == ["RD_DEV"]
