"""
This module defines the primary data models for the ClinicDesk application.

Records are persisted as plain JSON objects with camelCase keys (the layout of the
original browser dashboard's local storage). The classes below are used to build
new records with generated ids and timestamps; `to_dict()` renders the stored form.
"""
# clinicdesk/models.py

from datetime import date, datetime
import re
import uuid

ROLES = ['admin', 'doctor', 'lab_tech', 'receptionist', 'patient']
GENDERS = ['Male', 'Female', 'Other']
ACTIVE = 'Active'
INACTIVE = 'Inactive'

# Lab request statuses
PENDING_PAYMENT = 'Pending Payment'
PENDING = 'Pending'
COMPLETED = 'Completed'
CANCELLED = 'Cancelled'
LAB_REQUEST_STATUSES = [PENDING_PAYMENT, PENDING, COMPLETED, CANCELLED]

# Appointment statuses
SCHEDULED = 'Scheduled'
CONFIRMED = 'Confirmed'
CHECKED_IN = 'Checked-In'
APPOINTMENT_STATUSES = [SCHEDULED, CONFIRMED, CHECKED_IN, COMPLETED, CANCELLED]


def _new_id(prefix=''):
    return f"{prefix}{uuid.uuid4().hex[:10]}"


def today_iso():
    """Returns today's date as YYYY-MM-DD."""
    return date.today().isoformat()


def generate_lab_test_id(name: str) -> str:
    """Derives a catalog id from a test name ("Lipid Profile" -> "lipid-profile")."""
    slug = re.sub(r'\s+', '-', name.strip().lower())
    return re.sub(r'[^\w-]+', '', slug)


class User:
    """Represents a staff or patient account.

    Attributes:
        id (str): A unique identifier for the user.
        full_name (str): The user's full name.
        username (str): The login e-mail address.
        password_hash (str): Salted SHA-256 hash of the password.
        salt (str): The per-user salt.
        role (str): One of `ROLES`.
        specialization (str): Doctor specialization, None for other roles.
        status (str): 'Active' or 'Inactive'.
    """
    def __init__(self, full_name, username, password_hash, salt, role, specialization=None, status=ACTIVE, user_id=None):
        self.id = user_id or _new_id('user')
        self.full_name = full_name
        self.username = username
        self.password_hash = password_hash
        self.salt = salt
        self.role = role
        self.specialization = specialization if role == 'doctor' else None
        self.status = status

    def to_dict(self):
        record = {
            'id': self.id,
            'fullName': self.full_name,
            'username': self.username,
            'passwordHash': self.password_hash,
            'salt': self.salt,
            'role': self.role,
            'status': self.status,
        }
        if self.specialization:
            record['specialization'] = self.specialization
        return record


class Patient:
    """Represents a registered patient and the clinical records nested in it.

    Attributes:
        id (str): A unique identifier for the patient.
        name (str): Full name.
        dob (str): Date of birth, YYYY-MM-DD.
        gender (str): One of `GENDERS`.
        address (str): Postal address.
        phone_number (str): Contact number.
        email (str): Optional e-mail; links the record to a patient login.
        emergency_contact_name (str): Optional emergency contact.
        emergency_contact_phone (str): Optional emergency contact number.
        status (str): 'Active' or 'Inactive'.
        registration_date (str): Date the patient was registered.
    """
    def __init__(self, name, dob, gender, address, phone_number, email=None,
                 emergency_contact_name=None, emergency_contact_phone=None,
                 status=ACTIVE, registration_date=None, last_visit=None, patient_id=None):
        self.id = patient_id or _new_id('pat')
        self.name = name
        self.dob = dob
        self.gender = gender
        self.address = address
        self.phone_number = phone_number
        self.email = email
        self.emergency_contact_name = emergency_contact_name
        self.emergency_contact_phone = emergency_contact_phone
        self.status = status
        self.registration_date = registration_date or today_iso()
        self.last_visit = last_visit

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'dob': self.dob,
            'gender': self.gender,
            'address': self.address,
            'phoneNumber': self.phone_number,
            'email': self.email,
            'emergencyContactName': self.emergency_contact_name,
            'emergencyContactPhone': self.emergency_contact_phone,
            'status': self.status,
            'lastVisit': self.last_visit,
            'registrationDate': self.registration_date,
            'medicalHistory': [],
            'prescriptions': [],
            'labRequests': [],
        }


class MedicalHistoryEntry:
    """A dated clinical note written by a doctor."""
    def __init__(self, date, notes, entered_by, entry_id=None):
        self.id = entry_id or _new_id('hist')
        self.date = date
        self.notes = notes
        self.entered_by = entered_by

    def to_dict(self):
        return {'id': self.id, 'date': self.date, 'notes': self.notes, 'enteredBy': self.entered_by}


class Prescription:
    """A medication order written by a doctor."""
    def __init__(self, medication_name, dosage, frequency, duration, prescribed_by, date_prescribed=None, prescription_id=None):
        self.id = prescription_id or _new_id('rx')
        self.date_prescribed = date_prescribed or today_iso()
        self.medication_name = medication_name
        self.dosage = dosage
        self.frequency = frequency
        self.duration = duration
        self.prescribed_by = prescribed_by

    def to_dict(self):
        return {
            'id': self.id,
            'datePrescribed': self.date_prescribed,
            'medicationName': self.medication_name,
            'dosage': self.dosage,
            'frequency': self.frequency,
            'duration': self.duration,
            'prescribedBy': self.prescribed_by,
        }


class LabRequest:
    """A patient-specific order for a diagnostic test.

    The price is copied from the catalog when the request is created and is never
    recalculated afterwards.

    Attributes:
        id (str): A unique identifier for this request.
        test_id (str): Catalog id of the test.
        test_name (str): Catalog name of the test at request time.
        price_at_time_of_request (float): Price snapshot.
        requested_by (str): Name of the requesting doctor.
        patient_name (str): Denormalized patient name for billing/worklist views.
        status (str): One of `LAB_REQUEST_STATUSES`.
    """
    def __init__(self, test_id, test_name, price_at_time_of_request, requested_by, patient_name,
                 status=PENDING_PAYMENT, requested_date=None, request_id=None):
        self.id = request_id or _new_id('lab')
        self.test_id = test_id
        self.test_name = test_name
        self.requested_date = requested_date or today_iso()
        self.status = status
        self.requested_by = requested_by
        self.price_at_time_of_request = price_at_time_of_request
        self.patient_name = patient_name

    def to_dict(self):
        return {
            'id': self.id,
            'testId': self.test_id,
            'testName': self.test_name,
            'requestedDate': self.requested_date,
            'status': self.status,
            'requestedBy': self.requested_by,
            'priceAtTimeOfRequest': self.price_at_time_of_request,
            'patientName': self.patient_name,
        }


class LabTest:
    """A catalog entry: a test the clinic offers and its current price."""
    def __init__(self, name, price, test_id=None):
        self.id = test_id or generate_lab_test_id(name)
        self.name = name
        self.price = price

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'price': self.price}


class Appointment:
    """A visit booked with a doctor. Names are denormalized for display."""
    def __init__(self, patient_id, patient_name, doctor_id, doctor_name, appointment_date, appointment_time,
                 notes='', status=SCHEDULED, created_at=None, appointment_id=None):
        self.id = appointment_id or _new_id('apt')
        self.patient_id = patient_id
        self.patient_name = patient_name
        self.doctor_id = doctor_id
        self.doctor_name = doctor_name
        self.appointment_date = appointment_date
        self.appointment_time = appointment_time
        self.status = status
        self.notes = notes
        self.created_at = created_at or datetime.now().isoformat()

    def to_dict(self):
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'patientName': self.patient_name,
            'doctorId': self.doctor_id,
            'doctorName': self.doctor_name,
            'appointmentDate': self.appointment_date,
            'appointmentTime': self.appointment_time,
            'status': self.status,
            'notes': self.notes,
            'createdAt': self.created_at,
        }
