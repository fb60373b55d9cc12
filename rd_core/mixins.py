# rd_core/mixins.py
from __future__ import annotations

from rest_framework.exceptions import ValidationError

from .signals import set_current_user


def _deny_if_payload_has(request, fields: list[str], message: str):
    """
    Reject requests that attempt to mutate server-controlled fields.
    Makes violations noisy and testable.
    """
    incoming = getattr(request, "data", {}) or {}
    present = [f for f in fields if f in incoming]
    if present:
        raise ValidationError({f: message for f in present})


class AuditUserMixin:
    """
    Hands the DRF-authenticated user to the audit signals.

    CurrentUserMiddleware only sees session users; bearer-token users are
    authenticated by DRF inside the view.
    """

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        user = getattr(request, "user", None)
        set_current_user(user if user is not None and user.is_authenticated else None)
