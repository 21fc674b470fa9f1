"""
Status-gated record workflows.

A `Workflow` is a table of `Transition` edges: for each edge, the status it leaves,
the status it enters, the roles allowed to take it, a user-facing label and an
optional side effect that stamps extra fields on the record. Every status change in
ClinicDesk goes through `Workflow.start` (creation edge) or `Workflow.apply`, so an
edge that is not in the table cannot be taken no matter which view asks for it.

Two workflows are defined here: lab requests and appointments.
"""
# clinicdesk/workflow.py

from __future__ import annotations

import copy
import logging
from typing import Callable, Iterable, List, Optional

from clinicdesk.errors import AuthorizationError, InvalidTransitionError, ValidationError
from clinicdesk.models import (
    CANCELLED, CHECKED_IN, COMPLETED, CONFIRMED, PENDING, PENDING_PAYMENT, SCHEDULED, today_iso,
)

logger = logging.getLogger(__name__)


class Transition:
    """One legal edge of a workflow.

    Attributes:
        source: Status the record must be in, or None for the creation edge.
        target: Status the record moves to.
        roles: Roles allowed to take this edge.
        label: Action name shown to users (e.g. "Confirm Payment").
        effect: Optional callable `(record, actor, fields)` applied to the new record.
    """

    def __init__(self, source: Optional[str], target: str, roles: Iterable[str], label: str,
                 effect: Optional[Callable] = None) -> None:
        self.source = source
        self.target = target
        self.roles = frozenset(roles)
        self.label = label
        self.effect = effect

    def allows(self, role: str) -> bool:
        return role in self.roles

    def __repr__(self) -> str:
        return f"Transition({self.source!r} -> {self.target!r}, roles={sorted(self.roles)})"


class Workflow:
    """A finite set of statuses, legal transitions and terminal statuses for one entity."""

    def __init__(self, entity: str, transitions: List[Transition], terminal: Iterable[str]) -> None:
        self.entity = entity
        self.transitions = list(transitions)
        self.terminal = frozenset(terminal)

    @property
    def statuses(self) -> List[str]:
        seen = []
        for t in self.transitions:
            for status in (t.source, t.target):
                if status is not None and status not in seen:
                    seen.append(status)
        return seen

    def is_terminal(self, status: str) -> bool:
        return status in self.terminal

    def transitions_into(self, target: str) -> List[Transition]:
        return [t for t in self.transitions if t.target == target]

    def allowed_transitions(self, role: str, status: Optional[str]) -> List[Transition]:
        """Lists the edges `role` may take from `status`, in table order."""
        return [t for t in self.transitions if t.source == status and t.allows(role)]

    def can(self, role: str, status: Optional[str], target: str) -> bool:
        return any(t.target == target for t in self.allowed_transitions(role, status))

    def _resolve(self, role: str, status: Optional[str], target: str) -> Transition:
        candidates = self.transitions_into(target)
        if not any(t.allows(role) for t in candidates):
            logger.warning("Rejected %s -> %s on %s: role %s not permitted", status, target, self.entity, role)
            raise AuthorizationError(f"Role '{role}' may not set a {self.entity} to '{target}'.")
        for transition in candidates:
            if transition.source == status:
                if not transition.allows(role):
                    logger.warning("Rejected %s -> %s on %s: role %s not permitted", status, target, self.entity, role)
                    raise AuthorizationError(
                        f"Role '{role}' may not move a {self.entity} from '{status}' to '{target}'."
                    )
                return transition
        logger.warning("Rejected %s -> %s on %s: no such transition", status, target, self.entity)
        raise InvalidTransitionError(self.entity, status, target)

    def authorize_start(self, role: str) -> Transition:
        """Returns the creation edge if `role` may take it.

        Raises:
            AuthorizationError: The role may not create this kind of record.
        """
        creation = [t for t in self.transitions if t.source is None]
        if not creation:
            raise InvalidTransitionError(self.entity, None, 'created')
        return self._resolve(role, None, creation[0].target)

    def start(self, record: dict, role: str, actor: Optional[str] = None, **fields) -> dict:
        """Applies the creation edge to a new record.

        Returns:
            dict: A copy of `record` with its initial status and side effects applied.
        """
        return self._take(record, self.authorize_start(role), actor, fields)

    def apply(self, record: dict, target: str, role: str, actor: Optional[str] = None, **fields) -> dict:
        """Moves a record to `target`.

        The role is checked against the edges into `target` first, then the record's
        current status must be the source of one of those edges. The input record is
        never modified.

        Args:
            record (dict): The current record.
            target (str): The requested status.
            role (str): The acting user's role.
            actor (str): The acting user's display name, stamped by side effects.
            **fields: Extra values consumed by the edge's side effect.

        Returns:
            dict: A new record carrying the new status and side-effect fields.

        Raises:
            AuthorizationError: The role may not take this edge.
            InvalidTransitionError: The record's status is not a legal source.
            ValidationError: The side effect rejected `fields`.
        """
        transition = self._resolve(role, record.get('status'), target)
        return self._take(record, transition, actor, fields)

    def _take(self, record, transition, actor, fields):
        updated = copy.deepcopy(record)
        updated['status'] = transition.target
        if transition.effect:
            transition.effect(updated, actor, fields)
        logger.info(
            "%s %s: %s -> %s by %s", self.entity, updated.get('id'), transition.source, transition.target, actor
        )
        return updated


def _stamp_request(record, actor, fields):
    record['requestedBy'] = actor
    record['requestedDate'] = record.get('requestedDate') or today_iso()


def _stamp_results(record, actor, fields):
    summary = (fields.get('results_summary') or '').strip()
    if not summary:
        raise ValidationError("A results summary is required to complete a lab request.")
    record['resultsSummary'] = summary
    record['resultEnteredBy'] = actor
    record['resultDate'] = fields.get('result_date') or today_iso()


LAB_REQUEST_WORKFLOW = Workflow(
    'lab request',
    [
        Transition(None, PENDING_PAYMENT, ['doctor'], 'Request Test', _stamp_request),
        Transition(PENDING_PAYMENT, PENDING, ['receptionist'], 'Confirm Payment'),
        Transition(PENDING_PAYMENT, CANCELLED, ['doctor'], 'Cancel'),
        Transition(PENDING, CANCELLED, ['doctor'], 'Cancel'),
        Transition(PENDING, COMPLETED, ['lab_tech'], 'Enter Results', _stamp_results),
    ],
    terminal=[COMPLETED, CANCELLED],
)

APPOINTMENT_WORKFLOW = Workflow(
    'appointment',
    [
        Transition(None, SCHEDULED, ['receptionist', 'admin'], 'Book'),
        Transition(SCHEDULED, CONFIRMED, ['receptionist'], 'Confirm'),
        Transition(CONFIRMED, CHECKED_IN, ['receptionist'], 'Check In'),
        Transition(CHECKED_IN, COMPLETED, ['doctor'], 'Complete'),
        Transition(SCHEDULED, CANCELLED, ['receptionist', 'doctor'], 'Cancel'),
        Transition(CONFIRMED, CANCELLED, ['receptionist', 'doctor'], 'Cancel'),
    ],
    terminal=[COMPLETED, CANCELLED],
)
