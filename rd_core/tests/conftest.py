# rd_core/tests/conftest.py

from __future__ import annotations

from typing import Callable, Optional

import pytest
from django.contrib.auth import authenticate, get_user_model
from rest_framework.test import APIClient

from rd_core.models import Recipe, Request, Sample, UserRole
from rd_core.services.recipes import create_recipe, lock_recipe
from rd_core.services.requests import create_request
from rd_core.services.results import upsert_lab_results, upsert_pilot_results
from rd_core.services.samples import create_sample
from rd_core.signals import set_current_user
from rd_core.workflows.executor import execute_transition


PASSWORD = "pass123"

DEFAULT_INGREDIENTS = [
    {"ingredient_name": "Water", "grams": "60"},
    {"ingredient_name": "Salt", "grams": "40"},
]


class AuthAPIClient(APIClient):
    """
    Test client that uses force_authenticate for predictable DRF auth.
    """

    _user = None

    def login(self, username: str, password: str, **kwargs) -> bool:  # type: ignore[override]
        user = authenticate(username=username, password=password)
        if not user:
            return False
        self.force_authenticate(user=user)
        self._user = user
        return True

    def logout(self) -> None:  # type: ignore[override]
        # DRF's force_authenticate(user=None) calls self.logout() internally.
        super().logout()
        self.handler._force_user = None
        self.handler._force_token = None
        self._user = None


@pytest.fixture(autouse=True)
def _reset_current_user():
    set_current_user(None)
    yield
    set_current_user(None)


@pytest.fixture
def api_client() -> AuthAPIClient:
    return AuthAPIClient()


@pytest.fixture
def client_for() -> Callable[[str], AuthAPIClient]:
    """Separate logged-in client per user, for tests that switch actors."""

    def _make(username: str) -> AuthAPIClient:
        client = AuthAPIClient()
        assert client.login(username=username, password=PASSWORD) is True
        return client

    return _make


def _user(username: str, role: Optional[str] = None, **extra):
    User = get_user_model()
    user, _ = User.objects.get_or_create(username=username, defaults=extra)
    user.set_password(PASSWORD)
    user.save(update_fields=["password"])
    if role:
        UserRole.objects.get_or_create(user=user, role=role)
    return user


@pytest.fixture
def user_admin(db):
    return _user("admin", "ADMIN", is_staff=True)


@pytest.fixture
def user_rd_dev(db):
    return _user("rddev", "RD_DEV")


@pytest.fixture
def user_rd_manager(db):
    return _user("rdmanager", "RD_MANAGER")


@pytest.fixture
def user_sales(db):
    return _user("sales", "SALES_MANAGER")


@pytest.fixture
def user_viewer(db):
    # no role rows: READONLY
    return _user("viewer")


@pytest.fixture
def request_factory(db, user_sales) -> Callable[..., Request]:
    def _factory(**fields) -> Request:
        data = {
            "customer_company": "Acme Foods",
            "direction": "FLAVOR",
            "complexity_level": "MEDIUM",
        }
        data.update(fields)
        return create_request(user=user_sales, **data)

    return _factory


@pytest.fixture
def rd_request(request_factory) -> Request:
    return request_factory()


@pytest.fixture
def started_request(rd_request, user_rd_manager) -> Request:
    execute_transition(instance=rd_request, kind="request", new_status="IN_PROGRESS", user=user_rd_manager)
    return rd_request


@pytest.fixture
def recipe(rd_request, user_rd_dev) -> Recipe:
    return create_recipe(rd_request, user=user_rd_dev, name="Base brine", ingredients=DEFAULT_INGREDIENTS)


@pytest.fixture
def locked_recipe(recipe, user_rd_dev) -> Recipe:
    return lock_recipe(recipe, user=user_rd_dev)


@pytest.fixture
def sample(locked_recipe, user_rd_dev) -> Sample:
    return create_sample(locked_recipe, batch_weight_g="250", user=user_rd_dev)


@pytest.fixture
def advance_sample(user_rd_dev) -> Callable[..., Sample]:
    """
    Walk a sample along the development path up to `target`,
    filling lab and pilot results on the way.
    """

    path = ["Prepared", "Lab", "LabDone", "Pilot", "PilotDone", "ReadyForHandoff"]

    def _advance(sample: Sample, target: str, user=None) -> Sample:
        user = user or user_rd_dev
        for state in path[: path.index(target) + 1]:
            if state == "LabDone":
                upsert_lab_results(sample, {"ph_value": "6.40", "appearance": "Homogeneous"}, user=user)
            if state == "PilotDone":
                upsert_pilot_results(sample, {"score_overall": 8}, user=user)
            execute_transition(instance=sample, kind="sample", new_status=state, user=user)
        return sample

    return _advance
