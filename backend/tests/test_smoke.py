"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules are importable.

These tests require a DB (they use ``@pytest.mark.django_db`` where
needed) but do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure all top-level app URL namespaces resolve without 404."""

    EXPECTED_URLS = [
        # (url_name, expected_path_prefix)
        ("complaint-list",     "/api/complaints/"),
        ("audit-trail",        "/api/audit-trail/"),
        ("accounts:me",        "/api/accounts/me/"),
        ("accounts:user-list", "/api/accounts/users/"),
        ("schema",             "/api/schema/"),
    ]

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolves(self, url_name: str, expected_prefix: str):
        """Named URL reverses to the expected path prefix."""
        url = reverse(url_name)
        assert url.startswith(expected_prefix), (
            f"{url_name} resolved to {url}, expected prefix {expected_prefix}"
        )

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolve_matches_view(self, url_name: str, expected_prefix: str):
        """Path resolves to a view function (not a 404)."""
        match = resolve(expected_prefix)
        assert match.func is not None

    def test_detail_actions_reverse(self):
        assert reverse("complaint-escalate", args=[7]) == "/api/complaints/7/escalate/"
        assert reverse("accounts:user-deactivate", args=[3]) == (
            "/api/accounts/users/3/deactivate/"
        )


# ════════════════════════════════════════════════════════════════════
#  Core Domain Module Import Tests
# ════════════════════════════════════════════════════════════════════

class TestCoreDomainImports:
    """Verify that shared domain utility modules are importable."""

    def test_import_exceptions(self):
        from core.domain.exceptions import (
            DomainError,
            InfrastructureError,
            InvalidAssignee,
            InvalidState,
            InvalidTransition,
            NoSupervisorAvailable,
            NotFound,
            Unauthorized,
            ValidationError,
        )
        # Ensure they form an inheritance chain
        for exc in (ValidationError, Unauthorized, NotFound, InvalidAssignee,
                    InvalidTransition, InvalidState):
            assert issubclass(exc, DomainError)
        assert issubclass(NoSupervisorAvailable, InvalidState)
        assert not issubclass(InfrastructureError, DomainError)

    def test_import_transactions(self):
        from core.domain.transactions import (
            atomic_unit,
            lock_for_update,
            run_best_effort,
        )
        assert callable(atomic_unit)
        assert callable(run_best_effort)
        assert callable(lock_for_update)

    def test_import_access(self):
        from core.domain.access import (
            apply_role_scope,
            coerce_choice,
            require_role,
            role_of,
        )
        assert callable(apply_role_scope)
        assert callable(coerce_choice)
        assert callable(require_role)
        assert callable(role_of)


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        err = DomainError("test message")
        assert str(err) == "test message"

    def test_invalid_transition_structured(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(
            current="CREATED",
            target="RESOLVED",
            allowed=["ASSIGNED", "REJECTED"],
        )
        assert "CREATED" in str(err)
        assert "RESOLVED" in str(err)
        assert "ASSIGNED, REJECTED" in str(err)
        assert err.allowed == ("ASSIGNED", "REJECTED")

    def test_invalid_transition_no_targets(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(current="WITHDRAWN", target="ASSIGNED", allowed=[])
        assert "Allowed transitions: none." in str(err)

    def test_invalid_transition_plain_message(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition("Cannot close complaint.")
        assert str(err) == "Cannot close complaint."


# ════════════════════════════════════════════════════════════════════
#  Access Helper Unit Tests
# ════════════════════════════════════════════════════════════════════

class TestAccessHelpers:
    """Unit tests for core.domain.access helpers."""

    def test_apply_role_scope_unknown_rule_returns_none(self):
        """A role without a scope rule sees nothing."""
        from unittest.mock import MagicMock
        from core.domain.access import apply_role_scope

        user = MagicMock()
        user.role = "OFFICER"

        qs = MagicMock()
        apply_role_scope(qs, user, scope_rules={})
        qs.none.assert_called_once()

    def test_require_role_raises(self):
        """require_role raises Unauthorized for wrong role."""
        from unittest.mock import MagicMock
        from accounts.models import Role
        from core.domain.access import require_role
        from core.domain.exceptions import Unauthorized

        user = MagicMock()
        user.role = "CITIZEN"

        with pytest.raises(Unauthorized):
            require_role(user, Role.ADMIN, Role.SUPERVISOR)

    def test_require_role_returns_member(self):
        from unittest.mock import MagicMock
        from accounts.models import Role
        from core.domain.access import require_role

        user = MagicMock()
        user.role = "ADMIN"
        assert require_role(user, Role.ADMIN) is Role.ADMIN

    def test_coerce_choice_lists_legal_values(self):
        from accounts.models import Role
        from core.domain.access import coerce_choice
        from core.domain.exceptions import ValidationError

        with pytest.raises(ValidationError) as exc_info:
            coerce_choice(Role, "MAYOR", field="role")
        assert "CITIZEN, OFFICER, SUPERVISOR, ADMIN" in str(exc_info.value)
        assert exc_info.value.field == "role"


# ════════════════════════════════════════════════════════════════════
#  Exception Handler Unit Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptionHandler:
    """Domain and infrastructure errors map to HTTP responses."""

    @pytest.mark.parametrize(
        "exc_name,status_code",
        [
            ("Unauthorized", 403),
            ("NotFound", 404),
            ("NoSupervisorAvailable", 409),
            ("InvalidState", 409),
            ("InvalidAssignee", 400),
            ("ValidationError", 400),
        ],
    )
    def test_status_mapping(self, exc_name: str, status_code: int):
        from core.domain import exceptions
        from core.domain.exception_handler import domain_exception_handler

        resp = domain_exception_handler(getattr(exceptions, exc_name)("boom"), {})
        assert resp.status_code == status_code
        assert resp.data == {"detail": "boom", "code": exc_name}

    def test_infrastructure_error_is_503(self):
        from core.domain.exception_handler import domain_exception_handler
        from core.domain.exceptions import InfrastructureError

        resp = domain_exception_handler(InfrastructureError("db down"), {})
        assert resp.status_code == 503
        assert resp.data["code"] == "infrastructure_error"
        assert "db down" not in resp.data["detail"]

    def test_unrelated_exception_propagates(self):
        from core.domain.exception_handler import domain_exception_handler

        assert domain_exception_handler(RuntimeError("nope"), {}) is None
