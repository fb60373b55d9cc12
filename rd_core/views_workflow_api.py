# rd_core/views_workflow_api.py
"""
Role-aware workflow endpoints shared by requests, recipes and samples.

    GET  /rd/workflows/<kind>/<pk>/allowed/
    POST /rd/workflows/<kind>/<pk>/transition/   {"to_status": "...", "comment": "..."}

Handoff and the customer's verdict have their own endpoints because they
create testing samples; every other status change goes through here.
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from django.db import models
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import NotAuthenticated, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from rd_core.mixins import AuditUserMixin
from rd_core.models import Recipe, Request, Sample
from rd_core.permissions import resolve_user_roles
from rd_core.workflows import allowed_for_roles, is_terminal
from rd_core.workflows.executor import execute_transition

WORKFLOW_MODELS: Dict[str, Type[models.Model]] = {
    "request": Request,
    "recipe": Recipe,
    "sample": Sample,
}


def workflow_model(kind: str) -> Tuple[str, Type[models.Model]]:
    key = (kind or "").strip().lower()
    try:
        return key, WORKFLOW_MODELS[key]
    except KeyError:
        raise ValidationError({"kind": f"Unknown workflow kind '{kind}'. Use one of: {', '.join(WORKFLOW_MODELS)}."})


def _authenticated(request):
    # AllowAny + explicit check: anonymous callers get 401, not a login redirect
    user = request.user
    if not user or not user.is_authenticated:
        raise NotAuthenticated()
    return user


class WorkflowAllowedView(APIView):
    """Next states the caller may move the object to, given their roles."""

    permission_classes = [AllowAny]

    def get(self, request, kind: str, pk: int):
        user = _authenticated(request)
        kind, model = workflow_model(kind)
        obj = get_object_or_404(model, pk=pk)
        roles = resolve_user_roles(user)

        return Response(
            {
                "kind": kind,
                "object_id": obj.pk,
                "current": obj.status,
                "terminal": is_terminal(kind, obj.status),
                "allowed": allowed_for_roles(kind, obj.status, roles),
                "roles": sorted(roles),
            }
        )


class WorkflowTransitionView(AuditUserMixin, APIView):
    permission_classes = [AllowAny]

    def post(self, request, kind: str, pk: int):
        user = _authenticated(request)
        kind, model = workflow_model(kind)
        obj = get_object_or_404(model, pk=pk)

        data = request.data or {}
        target = data.get("to_status") or data.get("status")
        if not target:
            raise ValidationError({"to_status": "This field is required."})

        before = obj.status
        after = execute_transition(
            instance=obj,
            kind=kind,
            new_status=str(target),
            user=user,
            comment=str(data.get("comment") or ""),
        )
        return Response({"kind": kind, "object_id": obj.pk, "from": before, "current": after})
