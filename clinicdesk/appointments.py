"""
Appointment booking and lifecycle.

`AppointmentService` is owned by `ClinicService`. Bookings are created through the
creation edge of `APPOINTMENT_WORKFLOW` and every later status change through
`APPOINTMENT_WORKFLOW.apply`. Doctors may only act on their own appointments.
"""
# clinicdesk/appointments.py

from datetime import date, datetime
import logging

from clinicdesk import access
from clinicdesk.errors import AuthorizationError, NotFoundError, ValidationError
from clinicdesk.models import ACTIVE, CANCELLED, CHECKED_IN, COMPLETED, CONFIRMED, Appointment
from clinicdesk.store import APPOINTMENTS, PATIENTS, USERS
from clinicdesk.workflow import APPOINTMENT_WORKFLOW

logger = logging.getLogger(__name__)


def _parse_slot(appointment_date, appointment_time):
    if isinstance(appointment_date, date):
        appointment_date = appointment_date.isoformat()
    if hasattr(appointment_time, 'strftime'):
        appointment_time = appointment_time.strftime('%H:%M')
    try:
        day = date.fromisoformat(str(appointment_date)).isoformat()
    except ValueError:
        raise ValidationError("Appointment date must be in YYYY-MM-DD format.")
    try:
        slot = datetime.strptime(str(appointment_time), '%H:%M').strftime('%H:%M')
    except ValueError:
        raise ValidationError("Appointment time must be in HH:MM format.")
    return day, slot


class AppointmentService:
    """Books appointments and moves them through their statuses."""

    def __init__(self, clinic):
        self.clinic = clinic

    @property
    def store(self):
        return self.clinic.store

    def _find(self, appointment_id):
        appointment = self.store.find(APPOINTMENTS, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found.")
        return appointment

    def get(self, appointment_id: str) -> dict:
        """A single appointment, if the current user may see it."""
        user = self.clinic.require_role()
        appointment = self._find(appointment_id)
        patient_ids = self.clinic.patient_ids_for_current_user()
        if not access.visible_appointments(user, [appointment], patient_ids=patient_ids):
            raise AuthorizationError("You cannot view this appointment.")
        return appointment

    def book(self, patient_id: str, doctor_id: str, appointment_date, appointment_time, notes: str = '') -> dict:
        """Books an appointment with an active doctor (receptionist or admin).

        Args:
            patient_id (str): The patient being seen.
            doctor_id (str): An active user with the doctor role.
            appointment_date: YYYY-MM-DD string or `date`.
            appointment_time: HH:MM string or `time`.
            notes (str): Free-text reason for the visit.

        Returns:
            dict: The stored appointment, status 'Scheduled'.
        """
        user = self.clinic.require_role()
        APPOINTMENT_WORKFLOW.authorize_start(user['role'])
        day, slot = _parse_slot(appointment_date, appointment_time)
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        doctor = self.store.find(USERS, doctor_id)
        if not doctor or doctor.get('role') != 'doctor':
            raise NotFoundError("Doctor not found.")
        if doctor.get('status') != ACTIVE:
            raise ValidationError(f"{doctor.get('fullName')} is not accepting appointments.")
        appointment = Appointment(
            patient['id'], patient['name'], doctor['id'], doctor.get('fullName'), day, slot, notes=(notes or '').strip()
        ).to_dict()
        appointment = APPOINTMENT_WORKFLOW.start(appointment, user['role'], actor=user['fullName'])
        self.store.upsert(APPOINTMENTS, appointment)
        return appointment

    def _check_owner(self, user, appointment):
        if user['role'] == 'doctor' and appointment.get('doctorId') != user['id']:
            raise AuthorizationError("You can only manage your own appointments.")

    def update_notes(self, appointment_id: str, notes: str) -> dict:
        user = self.clinic.require_role('receptionist', 'admin', 'doctor')
        appointment = self._find(appointment_id)
        self._check_owner(user, appointment)
        appointment['notes'] = (notes or '').strip()
        self.store.upsert(APPOINTMENTS, appointment)
        return appointment

    def transition(self, appointment_id: str, target: str) -> dict:
        """Moves an appointment to `target` on behalf of the current user."""
        user = self.clinic.require_role()
        appointment = self._find(appointment_id)
        self._check_owner(user, appointment)
        updated = APPOINTMENT_WORKFLOW.apply(appointment, target, user['role'], actor=user['fullName'])
        self.store.upsert(APPOINTMENTS, updated)
        return updated

    def confirm(self, appointment_id: str) -> dict:
        return self.transition(appointment_id, CONFIRMED)

    def check_in(self, appointment_id: str) -> dict:
        return self.transition(appointment_id, CHECKED_IN)

    def complete(self, appointment_id: str) -> dict:
        return self.transition(appointment_id, COMPLETED)

    def cancel(self, appointment_id: str) -> dict:
        return self.transition(appointment_id, CANCELLED)

    def list_for_current_user(self, search: str = '') -> list:
        """Appointments the current user may see, newest booking first."""
        user = self.clinic.require_role()
        patient_ids = access.own_patient_ids(user, self.store.load(PATIENTS)) if user['role'] == 'patient' else None
        return access.visible_appointments(user, self.store.load(APPOINTMENTS), patient_ids=patient_ids, search=search)

    def categorized(self, search: str = '', today=None):
        """Returns (upcoming, today, past) for the current user."""
        return access.categorize_appointments(self.list_for_current_user(search), today=today)
