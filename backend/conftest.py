"""
Root conftest.py — shared fixtures for the entire test suite.

Provides:
  - ``api_client`` fixture returning a DRF ``APIClient``.
  - ``create_user`` factory fixture for creating test users.
  - ``admin_user`` / ``supervisor`` / ``officer`` / ``citizen`` — one
    active user per role.
  - ``clock`` — a controllable clock for SLA arithmetic.
  - ``engine`` — a ``ComplaintLifecycleService`` wired to ``clock``.
  - ``make_complaint`` factory filing a complaint as a citizen.
  - ``auth_client`` helper returning a client authenticated as a user.
"""

from __future__ import annotations

import datetime

import pytest
from django.utils import timezone
from rest_framework.test import APIClient


class FixedClock:
    """
    A clock that only moves when told to.

    Usage::

        clock = FixedClock(timezone.now())
        clock.advance(days=4)
    """

    def __init__(self, start: datetime.datetime) -> None:
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **delta) -> datetime.datetime:
        self.now = self.now + datetime.timedelta(**delta)
        return self.now


@pytest.fixture()
def api_client() -> APIClient:
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture()
def create_user(db):
    """
    Factory fixture that creates a user with sensible defaults.

    Usage::

        def test_something(create_user):
            user = create_user(username="alice")
            # or with a role:
            officer = create_user(username="bob", role=Role.OFFICER)
    """
    from accounts.models import Role, User

    _counter = 0

    def _factory(
        *,
        username: str | None = None,
        password: str = "TestPass123!",
        email: str | None = None,
        role=Role.CITIZEN,
        is_active: bool = True,
        **kwargs,
    ) -> User:
        nonlocal _counter
        _counter += 1
        if username is None:
            username = f"testuser{_counter}"
        if email is None:
            email = f"{username}@test.local"

        return User.objects.create_user(
            username=username,
            password=password,
            email=email,
            role=role,
            is_active=is_active,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def admin_user(create_user):
    from accounts.models import Role

    return create_user(username="admin", role=Role.ADMIN)


@pytest.fixture()
def supervisor(create_user):
    from accounts.models import Role

    return create_user(username="supervisor", role=Role.SUPERVISOR)


@pytest.fixture()
def officer(create_user):
    from accounts.models import Role

    return create_user(username="officer", role=Role.OFFICER)


@pytest.fixture()
def citizen(create_user):
    return create_user(username="citizen")


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(timezone.now().replace(microsecond=0))


@pytest.fixture()
def engine(db, clock):
    from complaints.services import ComplaintLifecycleService

    return ComplaintLifecycleService(clock=clock)


@pytest.fixture()
def make_complaint(engine, citizen):
    """
    Factory fixture filing a complaint through the lifecycle service.

    Usage::

        complaint = make_complaint(title="Broken lamp", category="Electricity")
    """

    def _factory(*, reporter=None, **overrides):
        data = {
            "title": "Pothole on Main Street",
            "description": "A deep pothole near the bus stop.",
            "category": "Road",
            "area": "Ward 5",
        }
        data.update(overrides)
        return engine.file_complaint(reporter or citizen, data)

    return _factory


@pytest.fixture()
def auth_client():
    """
    Returns a helper that builds an ``APIClient`` authenticated as the
    given user.

    Usage::

        def test_protected(auth_client, admin_user):
            client = auth_client(admin_user)
            resp = client.get("/api/complaints/")
    """

    def _make(user) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _make
