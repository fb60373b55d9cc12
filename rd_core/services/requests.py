# rd_core/services/requests.py

from __future__ import annotations

import logging

from django.db import transaction
from rest_framework.exceptions import ValidationError

from rd_core.codes import next_request_code
from rd_core.models import Request, RequestEvent
from rd_core.permissions import require_roles
from rd_core.workflows import ADMIN, RD_LEAD_ROLES, RD_MANAGER, SALES_MANAGER

logger = logging.getLogger(__name__)

REQUEST_CREATE_ROLES = {SALES_MANAGER, RD_MANAGER, ADMIN}

REQUEST_INPUT_FIELDS = {
    "customer_company",
    "customer_contact",
    "description",
    "direction",
    "domain",
    "priority",
    "complexity_level",
    "desired_due_date",
    "rd_comment",
}


def ensure_request_open(request_obj: Request, action: str = "change it") -> None:
    if request_obj.is_closed:
        raise ValidationError(
            {"request": f"Request {request_obj.code} is closed ({request_obj.status}); cannot {action}."}
        )


def log_event(request_obj: Request, event_type: str, user, payload=None) -> RequestEvent:
    return RequestEvent.objects.create(
        request=request_obj,
        event_type=event_type,
        actor=user if user and user.is_authenticated else None,
        payload=payload or {},
    )


@transaction.atomic
def create_request(*, user, **fields) -> Request:
    """
    Register a customer request with the next RD-xxxx code and a CREATED event.
    """
    require_roles(user, REQUEST_CREATE_ROLES, "create requests")

    unknown = sorted(set(fields) - REQUEST_INPUT_FIELDS)
    if unknown:
        raise ValidationError({f: "This field cannot be set on create." for f in unknown})

    if not str(fields.get("customer_company") or "").strip():
        raise ValidationError({"customer_company": "This field is required."})
    if not fields.get("direction"):
        raise ValidationError({"direction": "This field is required."})

    # lock existing codes so concurrent creators do not pick the same number
    existing = Request.objects.select_for_update().values_list("code", flat=True)
    code = next_request_code(list(existing))

    obj = Request.objects.create(code=code, author=user, **fields)
    log_event(obj, "CREATED", user, {"code": code})

    logger.info("Request %s created by %s", code, user.username)
    return obj


@transaction.atomic
def assign_request(request_obj: Request, *, responsible, user) -> Request:
    require_roles(user, RD_LEAD_ROLES, "assign requests")
    ensure_request_open(request_obj, "assign it")

    previous = request_obj.responsible
    request_obj.responsible = responsible
    request_obj.save(update_fields=["responsible", "updated_at"])

    log_event(
        request_obj,
        "ASSIGNED",
        user,
        {
            "from": previous.username if previous else None,
            "to": responsible.username if responsible else None,
        },
    )
    return request_obj


def update_request_fields(request_obj: Request, *, user, changed: dict) -> None:
    """
    Record FIELD_UPDATED / FEEDBACK_ADDED events after a request edit.
    `changed` maps field name -> (old, new).
    """
    if not changed:
        return

    feedback = changed.pop("customer_feedback", None)
    if feedback is not None:
        log_event(request_obj, "FEEDBACK_ADDED", user, {"text": feedback[1]})

    if changed:
        log_event(
            request_obj,
            "FIELD_UPDATED",
            user,
            {name: {"from": str(old), "to": str(new)} for name, (old, new) in changed.items()},
        )
