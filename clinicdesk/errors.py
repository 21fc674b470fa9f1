"""
Exception types raised by the ClinicDesk services.

Views catch `ClinicError` and show its message to the user; nothing here is fatal.
"""
# clinicdesk/errors.py


class ClinicError(Exception):
    """Base class for all errors surfaced to the user."""


class NotFoundError(ClinicError):
    """A referenced patient, request, user, test or appointment does not exist."""


class ValidationError(ClinicError):
    """Input failed a form-level constraint. Nothing was written."""


class AuthorizationError(ClinicError):
    """The current user's role may not perform the action."""


class InvalidTransitionError(ClinicError):
    """The record is not in a state from which the requested status can be reached."""

    def __init__(self, entity, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'.")
