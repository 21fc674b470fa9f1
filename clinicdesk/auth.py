"""
This module provides the core business logic for the ClinicDesk application.

It defines the `ClinicService` class, which is responsible for:
- User sessions (login, logout) checked against salted password hashes.
- Staff account management for administrators.
- Patient registration and the doctor-owned clinical records (history, prescriptions).
- Enforcing role permissions on every operation, independent of the views.
- Composing the lab (`LabService`) and appointment (`AppointmentService`) services.
- Drafting payment reminders and welcome packets through the `gemini` module.

All reads and writes go through the `RecordStore`; every write publishes the change
event of its collection, which the service uses to keep per-collection revisions.
"""
# clinicdesk/auth.py

from datetime import date, timedelta
from functools import partial
import logging
import re

from clinicdesk import access, config, events
from clinicdesk.appointments import AppointmentService
from clinicdesk.encryption import get_encryptor
from clinicdesk.errors import AuthorizationError, NotFoundError, ValidationError
from clinicdesk.gemini import generate_payment_reminder, generate_welcome_packet
from clinicdesk.labs import LabService
from clinicdesk.models import (
    ACTIVE, GENDERS, INACTIVE, PENDING, PENDING_PAYMENT, ROLES, MedicalHistoryEntry, Patient, Prescription, User,
)
from clinicdesk.security import hash_password, verify_password
from clinicdesk.store import APPOINTMENTS, PATIENTS, USERS, RecordStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def require_fields(details: dict, fields) -> None:
    """Raises ValidationError naming every required field that is blank."""
    missing = [field for field in fields if not str(details.get(field) or '').strip()]
    if missing:
        raise ValidationError(f"Required: {', '.join(missing)}.")


def parse_iso_date(value, field='date') -> str:
    """Validates a YYYY-MM-DD date (string or `date`) and returns it as a string."""
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value)).isoformat()
    except ValueError:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format.")


class ClinicService:
    """Manages sessions, accounts and patient records for ClinicDesk."""

    def __init__(self, store=None):
        """Initializes the service and its sub-services.

        Args:
            store (RecordStore): Store to use. Built from `config` when omitted.
        """
        self.store = store or RecordStore(config.DATA_DIR, get_encryptor(config.KEY_FILE), events.ChangeBus())
        self.bus = self.store.bus
        self.current_user = None
        self._revisions = {event: 0 for event in events.ALL_EVENTS}
        for event in events.ALL_EVENTS:
            self.bus.subscribe(event, partial(self._bump_revision, event))
        self.labs = LabService(self)
        self.appointments = AppointmentService(self)

    def _bump_revision(self, event):
        self._revisions[event] += 1

    def revision(self, event: str) -> int:
        """Number of times `event` has fired since this service was created."""
        return self._revisions.get(event, 0)

    # Sessions

    def login(self, username: str, password: str):
        """Authenticates an active user and sets the current session.

        Args:
            username (str): The login e-mail.
            password (str): The plaintext password.

        Returns:
            dict or None: The session (`id`, `fullName`, `username`, `role`), or None when
                          the account is unknown, inactive or the password is wrong.
        """
        username = (username or '').strip().lower()
        for user in self.store.load(USERS):
            if (user.get('username') or '').lower() != username or user.get('status') != ACTIVE:
                continue
            if not user.get('salt'):
                logger.warning("User %s has no password salt; refusing login.", user.get('id'))
                return None
            if verify_password(password or '', user.get('passwordHash'), user['salt']):
                self.current_user = {
                    'id': user['id'],
                    'fullName': user.get('fullName'),
                    'username': user['username'],
                    'role': user['role'],
                }
                logger.info("User %s logged in as %s", user['id'], user['role'])
                return self.current_user
            return None
        return None

    def logout(self):
        """Logs out the current user by clearing the session."""
        self.current_user = None

    def require_role(self, *roles) -> dict:
        """Returns the current user if their role is one of `roles` (any role if none given).

        Raises:
            AuthorizationError: Nobody is logged in or the role is not allowed.
        """
        user = self.current_user
        if not user:
            raise AuthorizationError("Please log in first.")
        if roles and user.get('role') not in roles:
            raise AuthorizationError("You do not have permission to perform this action.")
        return user

    # Users

    @staticmethod
    def _public_user(user: dict) -> dict:
        return {k: v for k, v in user.items() if k not in ('passwordHash', 'salt')}

    def get_all_users(self, search: str = '', role_tab: str = 'all') -> list:
        """Lists accounts without their password material (admin only)."""
        self.require_role('admin')
        users = [self._public_user(u) for u in self.store.load(USERS)]
        return access.search_users(users, search, role_tab)

    def get_active_doctors(self) -> list:
        """Active doctors, for booking appointments."""
        self.require_role()
        return [
            self._public_user(u) for u in self.store.load(USERS)
            if u.get('role') == 'doctor' and u.get('status') == ACTIVE
        ]

    def _validate_user_details(self, details, users, user_id=None, password_required=True):
        require_fields(details, ['fullName', 'username', 'role'])
        username = details['username'].strip().lower()
        if not EMAIL_PATTERN.match(username):
            raise ValidationError("Username must be a valid e-mail address.")
        if details['role'] not in ROLES:
            raise ValidationError(f"Unknown role: {details['role']}.")
        if any((u.get('username') or '').lower() == username and u.get('id') != user_id for u in users):
            raise ValidationError(f"A user with the username {username} already exists.")
        password = details.get('password') or ''
        if password or password_required:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
            if password != details.get('confirmPassword'):
                raise ValidationError("Passwords don't match.")
        return username

    def create_user(self, full_name, username, role, password, confirm_password, specialization=None) -> dict:
        """Creates an active account (admin only).

        Returns:
            dict: The created user without password material.
        """
        self.require_role('admin')
        details = {
            'fullName': full_name, 'username': username, 'role': role,
            'password': password, 'confirmPassword': confirm_password,
        }
        username = self._validate_user_details(details, self.store.load(USERS))
        password_hash, salt = hash_password(password)
        user = User(full_name.strip(), username, password_hash, salt, role, specialization=specialization)
        self.store.upsert(USERS, user.to_dict())
        logger.info("Created %s account %s", role, user.id)
        return self._public_user(user.to_dict())

    def update_user(self, user_id: str, details: dict) -> dict:
        """Updates an account; the password changes only if a new one is given (admin only).

        Args:
            user_id (str): The account to update.
            details (dict): `fullName`, `username`, `role`, optional `specialization`,
                            optional `password` + `confirmPassword`.
        """
        current = self.require_role('admin')
        users = self.store.load(USERS)
        user = next((u for u in users if u.get('id') == user_id), None)
        if not user:
            raise NotFoundError("User not found.")
        if user_id == current['id'] and details.get('role', user.get('role')) != user.get('role'):
            raise ValidationError("You cannot change your own role.")
        merged = {
            'fullName': details.get('fullName', user.get('fullName')),
            'username': details.get('username', user.get('username')),
            'role': details.get('role', user.get('role')),
            'password': details.get('password'),
            'confirmPassword': details.get('confirmPassword'),
        }
        username = self._validate_user_details(merged, users, user_id=user_id, password_required=False)
        user['fullName'] = merged['fullName'].strip()
        user['username'] = username
        user['role'] = merged['role']
        specialization = details.get('specialization', user.get('specialization'))
        if user['role'] == 'doctor' and specialization:
            user['specialization'] = specialization
        else:
            user.pop('specialization', None)
        if merged['password']:
            user['passwordHash'], user['salt'] = hash_password(merged['password'])
        self.store.upsert(USERS, user)
        return self._public_user(user)

    def set_user_status(self, user_id: str, status: str) -> dict:
        self.require_role('admin')
        if status not in (ACTIVE, INACTIVE):
            raise ValidationError(f"Unknown status: {status}.")
        user = self.store.find(USERS, user_id)
        if not user:
            raise NotFoundError("User not found.")
        if user_id == self.current_user['id'] and status == INACTIVE:
            raise ValidationError("You cannot deactivate your own account.")
        user['status'] = status
        self.store.upsert(USERS, user)
        return self._public_user(user)

    def delete_user(self, user_id: str) -> bool:
        """Deletes an account (admin only). Admins cannot delete themselves."""
        current = self.require_role('admin')
        if user_id == current['id']:
            raise ValidationError("You cannot delete your own account.")
        if not self.store.delete(USERS, user_id):
            raise NotFoundError("User not found.")
        logger.info("Deleted user %s", user_id)
        return True

    # Patients

    def patient_ids_for_current_user(self) -> set:
        """For a patient login, the ids of the patient records linked by e-mail."""
        user = self.require_role()
        if user['role'] != 'patient':
            return set()
        return access.own_patient_ids(user, self.store.load(PATIENTS))

    def get_patients(self, search: str = '') -> list:
        """Retrieves the patients visible to the current user."""
        user = self.require_role()
        return access.visible_patients(user, self.store.load(PATIENTS), search)

    def get_patient(self, patient_id: str) -> dict:
        """Retrieves one patient, enforcing that patients only open their own record.

        Raises:
            NotFoundError: No patient has this id.
            AuthorizationError: A patient login asked for someone else's record.
        """
        user = self.require_role()
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        if user['role'] == 'patient' and patient_id not in self.patient_ids_for_current_user():
            raise AuthorizationError("You can only view your own record.")
        return patient

    def _validate_patient_details(self, details):
        require_fields(details, ['name', 'dob', 'gender', 'address', 'phoneNumber'])
        details['dob'] = parse_iso_date(details['dob'], 'dob')
        if details['gender'] not in GENDERS:
            raise ValidationError(f"Gender must be one of {', '.join(GENDERS)}.")
        email = (details.get('email') or '').strip()
        if email and not EMAIL_PATTERN.match(email):
            raise ValidationError("Email must be a valid e-mail address.")
        details['email'] = email.lower() or None
        return details

    def register_patient(self, details: dict) -> dict:
        """Registers a new patient (receptionist or admin).

        Args:
            details (dict): `name`, `dob`, `gender`, `address`, `phoneNumber` and
                            optionally `email`, `emergencyContactName`, `emergencyContactPhone`.

        Returns:
            dict: The stored patient record.
        """
        self.require_role('receptionist', 'admin')
        details = self._validate_patient_details(dict(details))
        patient = Patient(
            name=details['name'].strip(),
            dob=details['dob'],
            gender=details['gender'],
            address=details['address'].strip(),
            phone_number=details['phoneNumber'].strip(),
            email=details['email'],
            emergency_contact_name=details.get('emergencyContactName') or None,
            emergency_contact_phone=details.get('emergencyContactPhone') or None,
        )
        record = patient.to_dict()
        self.store.upsert(PATIENTS, record)
        logger.info("Registered patient %s", patient.id)
        return record

    def update_patient(self, patient_id: str, details: dict) -> dict:
        """Updates demographic fields and status (receptionist or admin)."""
        self.require_role('receptionist', 'admin')
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        editable = ('name', 'dob', 'gender', 'address', 'phoneNumber', 'email',
                    'emergencyContactName', 'emergencyContactPhone', 'status', 'lastVisit')
        merged = {field: details.get(field, patient.get(field)) for field in editable}
        merged = self._validate_patient_details(merged)
        if merged['status'] not in (ACTIVE, INACTIVE):
            raise ValidationError(f"Unknown status: {merged['status']}.")
        patient.update(merged)
        self.store.upsert(PATIENTS, patient)
        return patient

    def _doctor_patient(self, patient_id):
        doctor = self.require_role('doctor')
        patient = self.store.find(PATIENTS, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        return doctor, patient

    @staticmethod
    def _index_of(items, item_id, label):
        for index, item in enumerate(items):
            if item.get('id') == item_id:
                return index
        raise NotFoundError(f"{label} not found.")

    def add_history_entry(self, patient_id: str, entry_date, notes: str) -> dict:
        """Adds a medical history entry stamped with the doctor's name."""
        doctor, patient = self._doctor_patient(patient_id)
        require_fields({'notes': notes}, ['notes'])
        entry = MedicalHistoryEntry(parse_iso_date(entry_date), notes.strip(), doctor['fullName']).to_dict()
        patient['medicalHistory'].append(entry)
        self.store.upsert(PATIENTS, patient)
        return entry

    def update_history_entry(self, patient_id: str, entry_id: str, entry_date, notes: str) -> dict:
        doctor, patient = self._doctor_patient(patient_id)
        require_fields({'notes': notes}, ['notes'])
        index = self._index_of(patient['medicalHistory'], entry_id, "History entry")
        entry = patient['medicalHistory'][index]
        entry.update({'date': parse_iso_date(entry_date), 'notes': notes.strip(), 'enteredBy': doctor['fullName']})
        self.store.upsert(PATIENTS, patient)
        return entry

    def delete_history_entry(self, patient_id: str, entry_id: str) -> bool:
        _, patient = self._doctor_patient(patient_id)
        index = self._index_of(patient['medicalHistory'], entry_id, "History entry")
        del patient['medicalHistory'][index]
        self.store.upsert(PATIENTS, patient)
        return True

    def add_prescription(self, patient_id: str, medication_name, dosage, frequency, duration) -> dict:
        """Adds a prescription dated today and stamped with the doctor's name."""
        doctor, patient = self._doctor_patient(patient_id)
        fields = {'medicationName': medication_name, 'dosage': dosage, 'frequency': frequency, 'duration': duration}
        require_fields(fields, list(fields))
        prescription = Prescription(
            medication_name.strip(), dosage.strip(), frequency.strip(), duration.strip(), doctor['fullName']
        ).to_dict()
        patient['prescriptions'].append(prescription)
        self.store.upsert(PATIENTS, patient)
        return prescription

    def update_prescription(self, patient_id: str, prescription_id: str, details: dict) -> dict:
        doctor, patient = self._doctor_patient(patient_id)
        index = self._index_of(patient['prescriptions'], prescription_id, "Prescription")
        prescription = patient['prescriptions'][index]
        fields = ('medicationName', 'dosage', 'frequency', 'duration')
        merged = {field: details.get(field, prescription.get(field)) for field in fields}
        require_fields(merged, fields)
        prescription.update({k: v.strip() for k, v in merged.items()})
        prescription['prescribedBy'] = doctor['fullName']
        self.store.upsert(PATIENTS, patient)
        return prescription

    def delete_prescription(self, patient_id: str, prescription_id: str) -> bool:
        _, patient = self._doctor_patient(patient_id)
        index = self._index_of(patient['prescriptions'], prescription_id, "Prescription")
        del patient['prescriptions'][index]
        self.store.upsert(PATIENTS, patient)
        return True

    # Dashboard and drafting helpers

    def dashboard_stats(self, today=None) -> dict:
        """Counts shown on the dashboard for the current user."""
        user = self.require_role()
        patients = self.store.load(PATIENTS)
        rows = access.flatten_lab_requests(patients)
        today = (today or date.today()).isoformat()
        appointments = access.visible_appointments(
            user, self.store.load(APPOINTMENTS), patient_ids=access.own_patient_ids(user, patients)
        )
        return {
            'patients': len(access.visible_patients(user, patients)),
            'pendingPayment': sum(1 for r in rows if r.get('status') == PENDING_PAYMENT),
            'pendingLab': sum(1 for r in rows if r.get('status') == PENDING),
            'appointmentsToday': sum(1 for a in appointments if a.get('appointmentDate') == today),
        }

    def draft_payment_reminder(self, patient_id: str, today=None):
        """Drafts a payment reminder for a patient's unpaid lab requests.

        Returns:
            str or None: The drafted text, or None if generation failed.

        Raises:
            ValidationError: The patient owes nothing.
        """
        self.require_role('receptionist', 'admin')
        patient = self.get_patient(patient_id)
        amount = self.labs.amount_due(patient_id)
        if amount <= 0:
            raise ValidationError(f"{patient['name']} has no lab requests awaiting payment.")
        due_date = (today or date.today()) + timedelta(days=config.PAYMENT_DUE_DAYS)
        return generate_payment_reminder(patient['name'], amount, due_date.isoformat(), config.CLINIC_NAME)

    def draft_welcome_packet(self, appointment_id: str):
        """Drafts a welcome packet for the patient of an appointment.

        Returns:
            str or None: The drafted text, or None if generation failed.
        """
        self.require_role('receptionist', 'admin')
        appointment = self.appointments._find(appointment_id)
        when = f"{appointment['appointmentDate']} at {appointment['appointmentTime']}"
        return generate_welcome_packet(
            appointment['patientName'],
            config.CLINIC_NAME,
            appointment['doctorName'],
            when,
            config.CLINIC_PHONE,
            config.CLINIC_ADDRESS,
        )
