# rd_core/tests/test_handoff_testing.py

import pytest
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from rd_core.models import Request, RequestEvent, Sample, TestingSample
from rd_core.services.testing import (
    decline_request_from_testing,
    handoff_sample,
    quick_handoff,
    set_testing_result,
)


@pytest.fixture
def ready_sample(started_request, sample, advance_sample):
    sample.request.refresh_from_db()
    return advance_sample(sample, "ReadyForHandoff")


@pytest.fixture
def handed_off(ready_sample, user_rd_dev):
    return handoff_sample(ready_sample, working_title="Smoky brine", user=user_rd_dev)


def _event_types(request_obj):
    return list(RequestEvent.objects.filter(request=request_obj).order_by("id").values_list("event_type", flat=True))


@pytest.mark.django_db
def test_handoff_sends_request_for_test(handed_off, ready_sample):
    assert handed_off.status == "Sent"
    assert handed_off.sample_code == "RD-0001/01/01"
    assert handed_off.recipe_code == "RD-0001/01"
    assert handed_off.display_name == "Smoky brine (RD-0001/01/01)"
    assert handed_off.is_quick is False

    assert Sample.objects.get(pk=ready_sample.pk).status == "HandedOff"

    request_obj = Request.objects.get(pk=handed_off.request_id)
    assert request_obj.status == "SENT_FOR_TEST"
    assert request_obj.date_sent_for_test == timezone.localdate()
    assert _event_types(request_obj)[-2:] == ["SENT_FOR_TEST", "STATUS_CHANGED"]


@pytest.mark.django_db
def test_handoff_needs_a_finished_sample(started_request, sample, user_rd_dev):
    sample.request.refresh_from_db()

    with pytest.raises(ValidationError) as exc:
        handoff_sample(sample, working_title="Too early", user=user_rd_dev)
    assert "status" in exc.value.detail


@pytest.mark.django_db
def test_handoff_needs_a_started_request(sample, advance_sample, user_rd_dev):
    advance_sample(sample, "ReadyForHandoff")

    with pytest.raises(ValidationError) as exc:
        handoff_sample(sample, working_title="Smoky", user=user_rd_dev)
    assert "request" in exc.value.detail


@pytest.mark.django_db
def test_handoff_requires_working_title(ready_sample, user_rd_dev):
    with pytest.raises(ValidationError) as exc:
        handoff_sample(ready_sample, working_title="  ", user=user_rd_dev)
    assert "working_title" in exc.value.detail


@pytest.mark.django_db
def test_quick_handoff_numbers(started_request, user_rd_dev):
    first = quick_handoff(started_request, product_name="Ready mix", weight_g="500", user=user_rd_dev)
    second = quick_handoff(started_request, product_name="Ready mix 2", weight_g="250", user=user_rd_dev)

    assert (first.sample_code, second.sample_code) == ("RD-0001/Q1", "RD-0001/Q2")
    assert first.is_quick is True
    assert first.sample_id is None
    assert started_request.status == "SENT_FOR_TEST"
    assert Request.objects.get(pk=started_request.pk).status == "SENT_FOR_TEST"


@pytest.mark.django_db
def test_quick_handoff_validates_weight(started_request, user_rd_dev):
    with pytest.raises(ValidationError) as exc:
        quick_handoff(started_request, product_name="Mix", weight_g="0", user=user_rd_dev)
    assert "weight_g" in exc.value.detail


@pytest.mark.django_db
def test_approval_sets_production_product(handed_off, ready_sample, user_sales):
    set_testing_result(handed_off, result="approved", comment="Great", user=user_sales)

    assert handed_off.status == "Approved"
    assert handed_off.reviewed_by == user_sales
    assert Sample.objects.get(pk=ready_sample.pk).status == "Approved"

    request_obj = Request.objects.get(pk=handed_off.request_id)
    assert request_obj.status == "APPROVED_FOR_PRODUCTION"
    assert request_obj.final_product_name == "Smoky brine"
    assert "PRODUCTION_SET" in _event_types(request_obj)


@pytest.mark.django_db
def test_rejection_keeps_request_under_test(handed_off, ready_sample, user_sales):
    set_testing_result(handed_off, result="Rejected", user=user_sales)

    assert Sample.objects.get(pk=ready_sample.pk).status == "Rejected"
    assert Request.objects.get(pk=handed_off.request_id).status == "SENT_FOR_TEST"

    with pytest.raises(ValidationError):
        set_testing_result(handed_off, result="Approved", user=user_sales)


@pytest.mark.django_db
def test_verdict_requires_sales_role(handed_off, user_rd_dev):
    with pytest.raises(PermissionDenied):
        set_testing_result(handed_off, result="Approved", user=user_rd_dev)


@pytest.mark.django_db
def test_decline_closes_request(handed_off, ready_sample, user_sales):
    request_obj = handed_off.request

    decline_request_from_testing(request_obj, comment="Too salty", user=user_sales)

    request_obj.refresh_from_db()
    assert request_obj.status == "REJECTED_BY_CLIENT"
    assert request_obj.customer_feedback == "Too salty"
    assert Sample.objects.get(pk=ready_sample.pk).status == "Rejected"
    handed_off.refresh_from_db()
    assert handed_off.status == "Rejected"


@pytest.mark.django_db
def test_decline_only_under_test(started_request, user_sales):
    with pytest.raises(ValidationError):
        decline_request_from_testing(started_request, user=user_sales)


# ---------------------------------------------------------------
# API
# ---------------------------------------------------------------

@pytest.mark.django_db
def test_handoff_and_result_endpoints(api_client, ready_sample, user_rd_dev, user_sales):
    assert api_client.login(username="rddev", password="pass123") is True

    resp = api_client.post(
        f"/rd/samples/{ready_sample.id}/handoff/",
        {"working_title": "Smoky brine"},
        format="json",
    )
    assert resp.status_code == 201, resp.content
    testing_id = resp.json()["id"]
    assert resp.json()["request_code"] == "RD-0001"

    # R&D cannot record the customer's verdict
    resp = api_client.post(f"/rd/testing-samples/{testing_id}/result/", {"result": "Approved"}, format="json")
    assert resp.status_code == 403

    api_client.logout()
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.post(f"/rd/testing-samples/{testing_id}/result/", {"result": "Approved"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["status"] == "Approved"

    resp = api_client.get(f"/rd/requests/{ready_sample.request_id}/")
    assert resp.json()["status"] == "APPROVED_FOR_PRODUCTION"
    assert resp.json()["final_product_name"] == "Smoky brine"


@pytest.mark.django_db
def test_quick_handoff_endpoint(api_client, started_request, user_rd_dev):
    assert api_client.login(username="rddev", password="pass123") is True

    resp = api_client.post(
        f"/rd/requests/{started_request.id}/quick-handoff/",
        {"product_name": "Ready mix", "weight_g": "500"},
        format="json",
    )
    assert resp.status_code == 201, resp.content
    assert resp.json()["sample_code"] == "RD-0001/Q1"
    assert resp.json()["weight_g"] == "500.000"


@pytest.mark.django_db
def test_transition_endpoint_cannot_hand_off(client_for, ready_sample, user_rd_dev):
    resp = client_for("rddev").post(
        f"/rd/workflows/sample/{ready_sample.id}/transition/",
        {"to_status": "HandedOff"},
        format="json",
    )
    assert resp.status_code == 400
    assert "handoff endpoint" in resp.json()["status"]

    assert Sample.objects.get(pk=ready_sample.pk).status == "ReadyForHandoff"
    assert not TestingSample.objects.exists()
    assert Request.objects.get(pk=ready_sample.request_id).status == "IN_PROGRESS"


@pytest.mark.django_db
def test_transition_endpoint_cannot_record_a_verdict(client_for, handed_off, ready_sample, user_sales):
    sales = client_for("sales")
    url = f"/rd/workflows/sample/{ready_sample.id}/transition/"

    # picking the sample up for testing is fine, the verdict is not
    assert sales.post(url, {"to_status": "Testing"}, format="json").status_code == 200

    resp = sales.post(url, {"to_status": "Approved"}, format="json")
    assert resp.status_code == 400
    assert "verdict" in resp.json()["status"]
    assert Sample.objects.get(pk=ready_sample.pk).status == "Testing"

    resp = sales.post(
        f"/rd/workflows/request/{ready_sample.request_id}/transition/",
        {"to_status": "REJECTED_BY_CLIENT"},
        format="json",
    )
    assert resp.status_code == 400
    assert "decline" in resp.json()["status"]

    # the testing sample endpoint still finishes the job
    set_testing_result(handed_off, result="Approved", user=user_sales)
    assert Sample.objects.get(pk=ready_sample.pk).status == "Approved"
    assert Request.objects.get(pk=ready_sample.request_id).status == "APPROVED_FOR_PRODUCTION"
