# rd_core/tests/test_write_guardrails.py

import pytest
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied

from rd_core.models import Recipe, Request, Sample


@pytest.mark.django_db
def test_direct_status_save_is_blocked(sample):
    sample.status = "Lab"

    with pytest.raises(DjangoPermissionDenied):
        sample.save()

    assert Sample.objects.get(pk=sample.pk).status == "Draft"


@pytest.mark.django_db
def test_direct_request_status_save_is_blocked(rd_request):
    rd_request.status = "APPROVED_FOR_PRODUCTION"

    with pytest.raises(DjangoPermissionDenied):
        rd_request.save()


@pytest.mark.django_db
def test_other_fields_save_normally(recipe):
    recipe.notes = "less salt next time"
    recipe.save()

    assert Recipe.objects.get(pk=recipe.pk).notes == "less salt next time"


@pytest.mark.django_db
def test_bypass_for_repairs(sample):
    sample.status = "Archived"
    sample.save(_workflow_bypass=True)
    assert Sample.objects.get(pk=sample.pk).status == "Archived"

    request_obj = sample.request
    request_obj._workflow_bypass = True
    request_obj.status = "CANCELLED"
    request_obj.save()
    assert Request.objects.get(pk=request_obj.pk).status == "CANCELLED"


# ---------------------------------------------------------------
# API
# ---------------------------------------------------------------

@pytest.mark.django_db
def test_request_server_fields_are_denied(api_client, rd_request, user_sales):
    assert api_client.login(username="sales", password="pass123") is True

    resp = api_client.patch(f"/rd/requests/{rd_request.id}/", {"status": "IN_PROGRESS"}, format="json")
    assert resp.status_code == 400
    assert "status" in resp.json()

    resp = api_client.patch(f"/rd/requests/{rd_request.id}/", {"code": "RD-9999"}, format="json")
    assert resp.status_code == 400
    assert "code" in resp.json()

    rd_request.refresh_from_db()
    assert (rd_request.code, rd_request.status) == ("RD-0001", "PENDING")


@pytest.mark.django_db
def test_sample_structure_is_server_controlled(api_client, sample, user_rd_dev):
    assert api_client.login(username="rddev", password="pass123") is True

    resp = api_client.patch(f"/rd/samples/{sample.id}/", {"sample_code": "X"}, format="json")
    assert resp.status_code == 400

    resp = api_client.patch(f"/rd/samples/{sample.id}/", {"status": "Prepared"}, format="json")
    assert resp.status_code == 400

    resp = api_client.patch(f"/rd/samples/{sample.id}/", {"notes": "first try"}, format="json")
    assert resp.status_code == 200
    assert resp.json()["notes"] == "first try"


@pytest.mark.django_db
def test_terminal_sample_is_locked(api_client, sample, user_rd_dev):
    assert api_client.login(username="rddev", password="pass123") is True

    resp = api_client.post(f"/rd/workflows/sample/{sample.id}/transition/", {"to_status": "Archived"}, format="json")
    assert resp.status_code == 200
    assert resp.json() == {"kind": "sample", "object_id": sample.id, "from": "Draft", "current": "Archived"}

    resp = api_client.post(f"/rd/workflows/sample/{sample.id}/transition/", {"to_status": "Draft"}, format="json")
    assert resp.status_code == 400
    assert "terminal" in resp.json()["status"]


@pytest.mark.django_db
def test_only_draft_samples_can_be_deleted(api_client, sample, user_rd_dev):
    assert api_client.login(username="rddev", password="pass123") is True
    api_client.post(f"/rd/workflows/sample/{sample.id}/transition/", {"to_status": "Prepared"}, format="json")

    resp = api_client.delete(f"/rd/samples/{sample.id}/")
    assert resp.status_code == 400
    assert Sample.objects.filter(pk=sample.pk).exists()
