import pytest


@pytest.fixture(autouse=True)
def _plain_http_test_server(settings):
    """
    The portal runs behind TLS in production; the test client speaks plain http
    to "testserver" and the SLA tests count calendar days in the portal timezone.
    """
    settings.SECURE_SSL_REDIRECT = False
    settings.SECURE_HSTS_SECONDS = 0
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
    settings.ALLOWED_HOSTS = ["testserver", "localhost", "127.0.0.1"]
    settings.TIME_ZONE = "Europe/Moscow"
