# rd_core/views_identity.py
from __future__ import annotations

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .permissions import resolve_user_roles
from .workflows import RD_ROLES, TESTING_ROLES


class WhoAmIView(APIView):
    """
    GET /rd/whoami/

    The caller and the portal roles applied to them, plus the two capability
    flags the front-end uses to show R&D or customer-testing actions.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        me = request.user
        roles = resolve_user_roles(me)

        return Response(
            {
                "id": me.pk,
                "username": me.get_username(),
                "full_name": me.get_full_name(),
                "is_superuser": me.is_superuser,
                "roles": sorted(roles),
                "can_develop": bool(roles & RD_ROLES),
                "can_record_testing": bool(roles & TESTING_ROLES),
            }
        )
