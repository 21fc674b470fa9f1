"""
Lab test catalog and lab request lifecycle.

`LabService` is owned by `ClinicService` and shares its store and session. Catalog
prices are snapshotted onto each request when it is created; every status change
of a request is routed through `LAB_REQUEST_WORKFLOW`.
"""
# clinicdesk/labs.py

import logging
import math

from clinicdesk import access
from clinicdesk.errors import AuthorizationError, NotFoundError, ValidationError
from clinicdesk.models import CANCELLED, COMPLETED, PENDING, PENDING_PAYMENT, LabRequest, LabTest, generate_lab_test_id
from clinicdesk.store import LAB_TESTS, PATIENTS
from clinicdesk.workflow import LAB_REQUEST_WORKFLOW

logger = logging.getLogger(__name__)


def _validate_price(price) -> float:
    try:
        value = float(price)
    except (TypeError, ValueError):
        raise ValidationError("Price must be a number.")
    if not math.isfinite(value):
        raise ValidationError("Price must be a number.")
    if value < 0:
        raise ValidationError("Price must be zero or more.")
    return int(value) if value.is_integer() else value


class LabService:
    """Catalog management and lab request transitions."""

    def __init__(self, clinic):
        """
        Args:
            clinic (ClinicService): Provides the store and the current session.
        """
        self.clinic = clinic

    @property
    def store(self):
        return self.clinic.store

    # Catalog

    def list_tests(self, search: str = '') -> list:
        """Catalog entries sorted by name, optionally filtered by name."""
        self.clinic.require_role()
        return access.search_lab_tests(self.store.load(LAB_TESTS), search)

    def get_test(self, test_id: str) -> dict:
        test = self.store.find(LAB_TESTS, test_id)
        if not test:
            raise NotFoundError("Lab test not found.")
        return test

    def add_test(self, name: str, price, test_id: str = None) -> dict:
        """Adds a catalog entry (admin only).

        Args:
            name (str): Display name.
            price: Current price, zero or more.
            test_id (str): Explicit id; derived from the name when omitted.

        Raises:
            ValidationError: Blank name, bad price or an id already in use.
        """
        self.clinic.require_role('admin')
        name = (name or '').strip()
        if not name:
            raise ValidationError("Test name is required.")
        test_id = (test_id or '').strip() or generate_lab_test_id(name)
        if not test_id:
            raise ValidationError("Test id cannot be derived from this name.")
        if self.store.find(LAB_TESTS, test_id):
            raise ValidationError(f"A lab test with the id '{test_id}' already exists.")
        test = LabTest(name, _validate_price(price), test_id=test_id).to_dict()
        self.store.upsert(LAB_TESTS, test)
        logger.info("Added lab test %s at %s", test_id, test['price'])
        return test

    def update_test(self, test_id: str, name: str = None, price=None) -> dict:
        """Renames or re-prices a catalog entry. Existing requests keep their snapshot."""
        self.clinic.require_role('admin')
        test = self.get_test(test_id)
        if name is not None:
            if not name.strip():
                raise ValidationError("Test name is required.")
            test['name'] = name.strip()
        if price is not None:
            test['price'] = _validate_price(price)
        self.store.upsert(LAB_TESTS, test)
        return test

    def delete_test(self, test_id: str) -> bool:
        self.clinic.require_role('admin')
        if not self.store.delete(LAB_TESTS, test_id):
            raise NotFoundError("Lab test not found.")
        logger.info("Deleted lab test %s", test_id)
        return True

    # Requests

    def request_test(self, patient_id: str, test_id: str) -> dict:
        """Orders a catalog test for a patient (doctor only).

        The request starts as 'Pending Payment' and carries the catalog price of the
        moment.

        Returns:
            dict: The new lab request.
        """
        doctor = self.clinic.require_role()
        LAB_REQUEST_WORKFLOW.authorize_start(doctor['role'])
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        test = self.get_test(test_id)
        request = LabRequest(test['id'], test['name'], test['price'], doctor['fullName'], patient['name']).to_dict()
        request = LAB_REQUEST_WORKFLOW.start(request, doctor['role'], actor=doctor['fullName'])
        patient['labRequests'].append(request)
        self.store.upsert(PATIENTS, patient)
        return request

    def _locate(self, request_id):
        for patient in self.store.load(PATIENTS):
            for index, request in enumerate(patient['labRequests']):
                if request.get('id') == request_id:
                    return patient, index
        raise NotFoundError("Lab request not found.")

    def _check_patient_access(self, patient_id):
        user = self.clinic.require_role()
        if user['role'] == 'patient' and patient_id not in self.clinic.patient_ids_for_current_user():
            raise AuthorizationError("You can only view your own records.")

    def get_request(self, request_id: str) -> dict:
        """A single lab request. Patient logins may only read their own."""
        self.clinic.require_role()
        patient, index = self._locate(request_id)
        self._check_patient_access(patient['id'])
        return patient['labRequests'][index]

    def transition(self, request_id: str, target: str, **fields) -> dict:
        """Moves a lab request to `target` on behalf of the current user.

        Raises:
            NotFoundError: Unknown request id.
            AuthorizationError: The role may not take the edge.
            InvalidTransitionError: The request's current status has no edge to `target`.
        """
        user = self.clinic.require_role()
        patient, index = self._locate(request_id)
        updated = LAB_REQUEST_WORKFLOW.apply(
            patient['labRequests'][index], target, user['role'], actor=user['fullName'], **fields
        )
        patient['labRequests'][index] = updated
        self.store.upsert(PATIENTS, patient)
        return updated

    def confirm_payment(self, request_id: str) -> dict:
        return self.transition(request_id, PENDING)

    def cancel_request(self, request_id: str) -> dict:
        return self.transition(request_id, CANCELLED)

    def enter_results(self, request_id: str, results_summary: str, result_date: str = None) -> dict:
        """Completes a pending request with its results summary (lab tech only)."""
        return self.transition(request_id, COMPLETED, results_summary=results_summary, result_date=result_date)

    def list_requests(self, tab: str = None, search: str = '') -> list:
        """Lab requests the current user may see on `tab` (the role's default if None)."""
        user = self.clinic.require_role()
        patients = self.store.load(PATIENTS)
        return access.visible_lab_requests(
            user,
            access.flatten_lab_requests(patients),
            tab=tab,
            search=search,
            patient_ids=access.own_patient_ids(user, patients),
        )

    def worklist(self) -> list:
        """Requests the current user can act on right now."""
        user = self.clinic.require_role()
        return access.actionable_lab_requests(user, access.flatten_lab_requests(self.store.load(PATIENTS)))

    def billing_queue(self, search: str = '') -> list:
        """Requests awaiting payment (receptionist and admin)."""
        self.clinic.require_role('receptionist', 'admin')
        return access.billing_rows(access.flatten_lab_requests(self.store.load(PATIENTS)), search)

    def amount_due(self, patient_id: str):
        """Sum of the price snapshots of a patient's unpaid requests."""
        self._check_patient_access(patient_id)
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        return sum(r.get('priceAtTimeOfRequest') or 0 for r in patient['labRequests']
                   if r.get('status') == PENDING_PAYMENT)
