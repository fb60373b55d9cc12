# rd_core/services/testing.py
"""
Handoff to the customer and the customer's verdict.

    sample PilotDone/ReadyForHandoff --handoff--> HandedOff
        + TestingSample(Sent)
        + request -> SENT_FOR_TEST (date_sent_for_test = today)

    TestingSample Sent --verdict--> Approved | Rejected
        linked sample HandedOff -> Testing -> Approved | Rejected
        Approved: request -> APPROVED_FOR_PRODUCTION, final_product_name set
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from rd_core.codes import display_name, format_quick_code, next_seq, quick_seq_from_code
from rd_core.models import Request, Sample, TestingSample
from rd_core.permissions import require_roles
from rd_core.scaling import ScalingError, to_decimal
from rd_core.services.requests import ensure_request_open, log_event
from rd_core.workflows import RD_ROLES, TESTING_ROLES
from rd_core.workflows.executor import execute_transition

logger = logging.getLogger(__name__)

HANDOFF_SAMPLE_STATES = {"PilotDone", "ReadyForHandoff"}
HANDOFF_REQUEST_STATES = {"IN_PROGRESS", "SENT_FOR_TEST"}
VERDICTS = {"approved": "Approved", "rejected": "Rejected"}


def _clean_title(value, field: str) -> str:
    title = str(value or "").strip()
    if not title:
        raise ValidationError({field: "This field may not be blank."})
    return title


def _ensure_request_can_receive(request_obj: Request) -> None:
    ensure_request_open(request_obj, "hand off samples")
    if request_obj.status not in HANDOFF_REQUEST_STATES:
        raise ValidationError(
            {"request": f"Request {request_obj.code} is {request_obj.status}; it must be IN_PROGRESS to hand off."}
        )


def _mark_sent_for_test(request_obj: Request, testing_sample: TestingSample, *, user) -> None:
    log_event(
        request_obj,
        "SENT_FOR_TEST",
        user,
        {"testing_sample_id": testing_sample.pk, "sample_code": testing_sample.sample_code},
    )

    if request_obj.status == "SENT_FOR_TEST":
        # another sample of a request already under test restarts the testing window
        today = timezone.localdate()
        Request.objects.filter(pk=request_obj.pk).update(date_sent_for_test=today)
        request_obj.date_sent_for_test = today
        return

    execute_transition(instance=request_obj, kind="request", new_status="SENT_FOR_TEST", user=user)


@transaction.atomic
def handoff_sample(sample: Sample, *, working_title: str, user, comment: str = "") -> TestingSample:
    require_roles(user, RD_ROLES, "hand off samples")
    title = _clean_title(working_title, "working_title")

    if sample.status not in HANDOFF_SAMPLE_STATES:
        raise ValidationError(
            {"status": f"Sample {sample.sample_code} is {sample.status}; only PilotDone or ReadyForHandoff samples can be handed off."}
        )

    request_obj = sample.request
    _ensure_request_can_receive(request_obj)

    testing_sample = TestingSample.objects.create(
        request=request_obj,
        sample=sample,
        sample_code=sample.sample_code,
        recipe_code=sample.recipe.recipe_code,
        working_title=title,
        display_name=display_name(title, sample.sample_code),
        weight_g=sample.batch_weight_g,
        sent_at=timezone.now(),
        sent_by=user,
    )

    execute_transition(instance=sample, kind="sample", new_status="HandedOff", user=user, comment=comment)

    _mark_sent_for_test(request_obj, testing_sample, user=user)

    logger.info("Sample %s handed off as %r", sample.sample_code, title)
    return testing_sample


@transaction.atomic
def quick_handoff(request_obj: Request, *, product_name: str, weight_g, user) -> TestingSample:
    """
    Hand a ready-made product to the customer without a development sample.
    Code: RD-xxxx/Q<n>.
    """
    require_roles(user, RD_ROLES, "hand off samples")
    title = _clean_title(product_name, "product_name")

    try:
        weight = to_decimal(weight_g, field="weight_g")
    except ScalingError as e:
        raise ValidationError({"weight_g": str(e)})
    if weight <= 0:
        raise ValidationError({"weight_g": "Weight must be greater than 0."})

    locked = Request.objects.select_for_update().get(pk=request_obj.pk)
    _ensure_request_can_receive(locked)

    n = next_seq(
        quick_seq_from_code(code)
        for code in locked.testing_samples.filter(is_quick=True).values_list("sample_code", flat=True)
    )
    code = format_quick_code(locked.code, n)

    testing_sample = TestingSample.objects.create(
        request=locked,
        sample=None,
        sample_code=code,
        working_title=title,
        display_name=display_name(title, code),
        weight_g=weight,
        is_quick=True,
        sent_at=timezone.now(),
        sent_by=user,
    )

    _mark_sent_for_test(locked, testing_sample, user=user)
    request_obj.status = locked.status
    request_obj.date_sent_for_test = locked.date_sent_for_test

    logger.info("Quick handoff %s for request %s", code, locked.code)
    return testing_sample


def _move_linked_sample(sample: Sample, verdict: str, *, user, comment: str) -> None:
    if sample.status == "HandedOff":
        execute_transition(instance=sample, kind="sample", new_status="Testing", user=user)
    if sample.status == "Testing":
        execute_transition(instance=sample, kind="sample", new_status=verdict, user=user, comment=comment)


@transaction.atomic
def set_testing_result(testing_sample: TestingSample, *, result: str, user, comment: str = "") -> TestingSample:
    """
    Record the customer's verdict on a Sent testing sample.
    """
    require_roles(user, TESTING_ROLES, "record testing results")

    verdict = VERDICTS.get(str(result or "").strip().lower())
    if verdict is None:
        raise ValidationError({"result": "Must be 'Approved' or 'Rejected'."})

    if testing_sample.status != "Sent":
        raise ValidationError(
            {"status": f"Testing sample {testing_sample.display_name} is already {testing_sample.status}."}
        )

    comment = (comment or "").strip()
    testing_sample.status = verdict
    testing_sample.reviewed_at = timezone.now()
    testing_sample.reviewed_by = user
    testing_sample.manager_comment = comment
    testing_sample.save(update_fields=["status", "reviewed_at", "reviewed_by", "manager_comment", "updated_at"])

    if testing_sample.sample_id:
        _move_linked_sample(testing_sample.sample, verdict, user=user, comment=comment)

    request_obj = testing_sample.request
    log_event(
        request_obj,
        "FEEDBACK_PROVIDED",
        user,
        {"testing_sample_id": testing_sample.pk, "result": verdict, "comment": comment},
    )

    if verdict == "Approved":
        execute_transition(
            instance=request_obj,
            kind="request",
            new_status="APPROVED_FOR_PRODUCTION",
            user=user,
            comment=comment,
        )
        request_obj.final_product_name = testing_sample.working_title
        request_obj.save(update_fields=["final_product_name", "updated_at"])
        log_event(request_obj, "PRODUCTION_SET", user, {"final_product_name": testing_sample.working_title})

    logger.info("Testing sample %s -> %s", testing_sample.sample_code, verdict)
    return testing_sample


@transaction.atomic
def decline_request_from_testing(request_obj: Request, *, user, comment: str = "") -> Request:
    """
    The customer declines the whole request: outstanding testing samples are
    rejected and the request closes as REJECTED_BY_CLIENT.
    """
    require_roles(user, TESTING_ROLES, "decline requests")
    comment = (comment or "").strip()

    if request_obj.status != "SENT_FOR_TEST":
        raise ValidationError(
            {"status": f"Request {request_obj.code} is {request_obj.status}; only requests under test can be declined."}
        )

    now = timezone.now()
    for testing_sample in request_obj.testing_samples.filter(status="Sent").select_related("sample"):
        testing_sample.status = "Rejected"
        testing_sample.reviewed_at = now
        testing_sample.reviewed_by = user
        testing_sample.manager_comment = comment
        testing_sample.save(update_fields=["status", "reviewed_at", "reviewed_by", "manager_comment", "updated_at"])

        if testing_sample.sample_id:
            _move_linked_sample(testing_sample.sample, "Rejected", user=user, comment=comment)

    execute_transition(
        instance=request_obj,
        kind="request",
        new_status="REJECTED_BY_CLIENT",
        user=user,
        comment=comment,
    )

    if comment:
        request_obj.customer_feedback = comment
        request_obj.save(update_fields=["customer_feedback", "updated_at"])
    log_event(request_obj, "FEEDBACK_PROVIDED", user, {"result": "REJECTED_BY_CLIENT", "comment": comment})

    return request_obj
