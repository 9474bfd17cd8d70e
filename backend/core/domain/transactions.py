"""
core.domain.transactions — Helpers for safe state transitions.

Provides utilities that wrap ``transaction.atomic`` and
``select_for_update`` into reusable patterns so that every app's
service layer follows the same concurrency-safe approach.

Design goals
------------
* Every mutation of a single aggregate runs as one atomic unit:
  load (locked) → validate → write.
* State-transition reads always lock the row first
  (``select_for_update``) so two requests on the same row serialize.
* Storage failures surface as ``InfrastructureError`` rather than leaking
  driver-specific ``DatabaseError`` subclasses into the domain.

Usage::

    from core.domain.transactions import atomic_unit, lock_for_update

    with atomic_unit():
        complaint = lock_for_update(Complaint, complaint_id)
        ...

    # For best-effort side writes that must not poison the outer unit:
    from core.domain.transactions import run_best_effort

    run_best_effort(write_audit_row, entry, label="audit write")
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Callable, Iterator, TypeVar

from django.db import DatabaseError, models, transaction

from core.domain.exceptions import InfrastructureError, NotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=models.Model)


@contextlib.contextmanager
def atomic_unit() -> Iterator[None]:
    """
    ``transaction.atomic()`` that converts storage failures into
    ``InfrastructureError``.

    Domain exceptions raised inside the block roll the transaction back
    and propagate unchanged.

    Raises:
        InfrastructureError: If the database raised ``DatabaseError``.
    """
    try:
        with transaction.atomic():
            yield
    except DatabaseError as exc:
        logger.error("Atomic unit rolled back after storage failure: %s", exc)
        raise InfrastructureError(f"Storage failure: {exc}") from exc


def run_best_effort(
    fn: Callable[..., T],
    *args: Any,
    label: str = "best-effort write",
    **kwargs: Any,
) -> T | None:
    """
    Run ``fn`` inside a savepoint; on ``DatabaseError`` roll back just the
    savepoint, log the failure, and return ``None``.

    The surrounding transaction stays usable, so the caller's own writes
    are kept.
    """
    try:
        with transaction.atomic():
            return fn(*args, **kwargs)
    except DatabaseError:
        logger.exception("%s failed; continuing without it", label)
        return None


def lock_for_update(model_class: type[M], pk: Any) -> M:
    """
    Acquire a row-level lock on the given model instance.

    Convenience wrapper around ``select_for_update().get(pk=pk)``
    that must be called inside an ``atomic()`` block.

    Args:
        model_class: The Django model class.
        pk:          Primary key value.

    Returns:
        The locked model instance.

    Raises:
        NotFound: If no row with that PK exists.
    """
    try:
        return model_class.objects.select_for_update().get(pk=pk)
    except model_class.DoesNotExist:
        raise NotFound(f"{model_class.__name__} with id {pk} not found.")
