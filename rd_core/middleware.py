# rd_core/middleware.py

from .signals import set_current_user


class CurrentUserMiddleware:
    """
    Exposes the session user to the audit signals for the duration of a request.

    Place after AuthenticationMiddleware. Bearer-token users are only known once
    DRF authenticates them; AuditUserMixin covers that case.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, "user", None)
        set_current_user(user if user is not None and user.is_authenticated else None)
        try:
            return self.get_response(request)
        finally:
            set_current_user(None)
