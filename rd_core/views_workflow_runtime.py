# rd_core/views_workflow_runtime.py
from __future__ import annotations

from django.shortcuts import get_object_or_404

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rd_core.models import WorkflowTransition
from rd_core.views_workflow_api import workflow_model
from rd_core.workflows.sla_scanner import request_sla_payload


REQUEST_SLA_SCHEMA = {
    "applies": bool,
    "status": str,
    "sla_date": (str, type(None)),
    "is_overdue": bool,
    "remaining_days": (int, type(None)),
}

TIMELINE_SCHEMA = {
    "id": int,
    "kind": str,
    "status": str,
    "entered_at": (str, type(None)),
    "sla": REQUEST_SLA_SCHEMA,
    "timeline": list,
}

TIMELINE_FIELDS = ("from_status", "to_status", "performed_by_id", "role", "created_at", "comment")


class WorkflowTimelineView(APIView):
    """
    GET /rd/workflows/<kind>/<pk>/timeline/

    Every executed transition of one object, oldest first, and when the
    object entered its current status. Requests also carry their SLA.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        responses={
            200: OpenApiResponse(description="Transition history with SLA context", response=TIMELINE_SCHEMA),
            404: OpenApiResponse(description="No such object"),
        }
    )
    def get(self, request, kind: str, pk: int):
        kind, model = workflow_model(kind)
        obj = get_object_or_404(model, pk=pk)

        history = WorkflowTransition.objects.filter(kind=kind, object_id=obj.pk).order_by("created_at", "id")

        last_entry = history.filter(to_status=obj.status).last()
        # objects that never moved are still in their creation status
        entered_at = last_entry.created_at if last_entry else obj.created_at

        return Response(
            {
                "id": obj.pk,
                "kind": kind,
                "status": obj.status,
                "entered_at": entered_at,
                "sla": request_sla_payload(obj) if kind == "request" else None,
                "timeline": list(history.values(*TIMELINE_FIELDS)),
            }
        )
