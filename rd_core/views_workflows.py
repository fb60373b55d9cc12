# rd_core/views_workflows.py
"""
Static workflow metadata. Nothing here touches the database.
"""

from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .workflows import allowed_next_states, is_terminal, normalize_state, workflow_definition


def _or_400(fn, *args, field="kind"):
    try:
        return fn(*args)
    except ValueError as e:
        raise ValidationError({field: str(e)})


class WorkflowDefinitionView(APIView):
    """
    GET /rd/workflows/<kind>/

    Statuses, edges, terminal states and the roles allowed on each edge,
    so front-ends can draw the state machine without hard-coding it.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, kind: str):
        return Response(_or_400(workflow_definition, kind))


class WorkflowNextStatesView(APIView):
    """GET /rd/workflows/<kind>/next/?current=<status>, role-independent."""

    permission_classes = [IsAuthenticated]

    def get(self, request, kind: str):
        raw = (request.query_params.get("current") or "").strip()
        if not raw:
            raise ValidationError({"current": "Pass ?current=<status>."})

        nexts = _or_400(allowed_next_states, kind, raw)
        current = normalize_state(kind, raw)

        return Response(
            {
                "kind": kind.strip().lower(),
                "current": current,
                "allowed_next": nexts,
                "terminal": is_terminal(kind, current),
            }
        )
