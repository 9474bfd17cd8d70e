"""
Complaint transition policy.

Pure functions over the transition table below.  Nothing here touches
the database; the lifecycle service calls ``validate_transition`` before
it mutates a complaint.

Role authorization is keyed by the **source** state: a role listed for a
source state may request any of that state's allowed targets.  For
example a citizen may move ASSIGNED → IN_PROGRESS as far as this table
is concerned; finer gating is the calling operation's job.

  CREATED              → ASSIGNED | REJECTED | WITHDRAWN
  ASSIGNED             → IN_PROGRESS | REJECTED | WITHDRAWN
  IN_PROGRESS          → PENDING_VERIFICATION | REJECTED | WITHDRAWN
  PENDING_VERIFICATION → RESOLVED | ASSIGNED | REJECTED
  RESOLVED             → ASSIGNED
  REJECTED             → ASSIGNED
  WITHDRAWN            (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass

from accounts.models import Role
from core.domain.access import coerce_choice
from core.domain.exceptions import DomainError, InvalidTransition, Unauthorized

from .models import ComplaintStatus

S = ComplaintStatus


@dataclass(frozen=True)
class TransitionRule:
    """Outgoing edges of one source state and who may take them."""

    allowed: tuple[ComplaintStatus, ...]
    allowed_by: tuple[Role, ...]
    description: str


TRANSITION_TABLE: dict[ComplaintStatus, TransitionRule] = {
    S.CREATED: TransitionRule(
        allowed=(S.ASSIGNED, S.REJECTED, S.WITHDRAWN),
        allowed_by=(Role.ADMIN, Role.SUPERVISOR, Role.CITIZEN),
        description="Complaint created, awaiting assignment to a supervisor",
    ),
    S.ASSIGNED: TransitionRule(
        allowed=(S.IN_PROGRESS, S.REJECTED, S.WITHDRAWN),
        allowed_by=(Role.SUPERVISOR, Role.OFFICER, Role.CITIZEN),
        description="Assigned to a supervisor, awaiting officer assignment",
    ),
    S.IN_PROGRESS: TransitionRule(
        allowed=(S.PENDING_VERIFICATION, S.REJECTED, S.WITHDRAWN),
        allowed_by=(Role.OFFICER, Role.SUPERVISOR, Role.CITIZEN),
        description="Officer is working on the complaint",
    ),
    S.PENDING_VERIFICATION: TransitionRule(
        allowed=(S.RESOLVED, S.ASSIGNED, S.REJECTED),
        allowed_by=(Role.SUPERVISOR, Role.ADMIN),
        description="Resolution submitted, awaiting supervisor verification",
    ),
    S.RESOLVED: TransitionRule(
        allowed=(S.ASSIGNED,),
        allowed_by=(Role.ADMIN, Role.SUPERVISOR),
        description="Complaint resolved; can be reopened by reassignment",
    ),
    S.REJECTED: TransitionRule(
        allowed=(S.ASSIGNED,),
        allowed_by=(Role.ADMIN, Role.SUPERVISOR),
        description="Complaint rejected; can be reopened by reassignment",
    ),
    S.WITHDRAWN: TransitionRule(
        allowed=(),
        allowed_by=(),
        description="Complaint withdrawn by the citizen; no further changes",
    ),
}

#: The step each role normally takes next from a given state.
_SUGGESTED_NEXT: dict[tuple[ComplaintStatus, Role], ComplaintStatus] = {
    (S.CREATED, Role.ADMIN): S.ASSIGNED,
    (S.CREATED, Role.SUPERVISOR): S.ASSIGNED,
    (S.CREATED, Role.CITIZEN): S.WITHDRAWN,
    (S.ASSIGNED, Role.SUPERVISOR): S.IN_PROGRESS,
    (S.ASSIGNED, Role.OFFICER): S.IN_PROGRESS,
    (S.ASSIGNED, Role.CITIZEN): S.WITHDRAWN,
    (S.IN_PROGRESS, Role.OFFICER): S.PENDING_VERIFICATION,
    (S.IN_PROGRESS, Role.SUPERVISOR): S.PENDING_VERIFICATION,
    (S.PENDING_VERIFICATION, Role.SUPERVISOR): S.RESOLVED,
    (S.PENDING_VERIFICATION, Role.ADMIN): S.RESOLVED,
    (S.RESOLVED, Role.ADMIN): S.ASSIGNED,
    (S.RESOLVED, Role.SUPERVISOR): S.ASSIGNED,
    (S.REJECTED, Role.ADMIN): S.ASSIGNED,
    (S.REJECTED, Role.SUPERVISOR): S.ASSIGNED,
}


def _rule(state) -> tuple[ComplaintStatus, TransitionRule]:
    state = coerce_choice(ComplaintStatus, state, field="status")
    return state, TRANSITION_TABLE[state]


def validate_transition(current, target, role) -> None:
    """
    Check that ``role`` may move a complaint from ``current`` to ``target``.

    Raises
    ------
    ValidationError
        If any argument is not a member of its enumeration.
    InvalidTransition
        If ``target`` is not reachable from ``current``.  The message and
        ``exc.allowed`` list the reachable states.
    Unauthorized
        If ``target`` is reachable but ``role`` is not authorized to act
        from ``current``.  The message lists the authorized roles.
    """
    current, rule = _rule(current)
    target = coerce_choice(ComplaintStatus, target, field="status")
    role = coerce_choice(Role, role, field="role")

    if target not in rule.allowed:
        raise InvalidTransition(
            f"Invalid transition from {current} to {target} for role {role}. "
            f"Allowed transitions: {', '.join(rule.allowed) or 'none'}.",
            current=current,
            target=target,
            allowed=rule.allowed,
        )
    if role not in rule.allowed_by:
        raise Unauthorized(
            f"Role {role} is not authorized for this transition. "
            f"Authorized roles: {', '.join(rule.allowed_by)}."
        )


def is_transition_allowed(current, target, role) -> bool:
    try:
        validate_transition(current, target, role)
    except DomainError:
        return False
    return True


def allowed_transitions(state, role) -> list[ComplaintStatus]:
    """States ``role`` may move a complaint in ``state`` to, in table order."""
    _, rule = _rule(state)
    role = coerce_choice(Role, role, field="role")
    if role not in rule.allowed_by:
        return []
    return list(rule.allowed)


def suggested_next_state(state, role) -> ComplaintStatus | None:
    """The usual next step for ``role``, or ``None`` when it has none."""
    state, _ = _rule(state)
    role = coerce_choice(Role, role, field="role")
    return _SUGGESTED_NEXT.get((state, role))


def states_actionable_by(role) -> list[ComplaintStatus]:
    """Source states from which ``role`` may request a transition."""
    role = coerce_choice(Role, role, field="role")
    return [state for state, rule in TRANSITION_TABLE.items() if role in rule.allowed_by]


def describe_transition(state) -> str:
    _, rule = _rule(state)
    return rule.description
