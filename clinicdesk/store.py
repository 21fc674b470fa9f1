"""
This module provides the record store: encrypted, whole-collection persistence for
the ClinicDesk entity collections.

Each collection key maps to one Fernet-encrypted JSON file in the data directory,
holding a list of records keyed by `id`. The store is responsible for:
- Loading a collection, seeding and persisting the default collection when the file
  is missing or cannot be decrypted/parsed (self-healing, never an error).
- Saving a collection as a whole and publishing the collection's change event.
- Keyed upsert/delete of a single record, which re-reads the collection right
  before writing so that writers touching different records do not clobber
  each other.
"""
# clinicdesk/store.py

import copy
import json
import logging
import os

from cryptography.fernet import InvalidToken

from clinicdesk import events, seed_data

logger = logging.getLogger(__name__)

PATIENTS = 'managedPatients'
APPOINTMENTS = 'managedAppointments'
LAB_TESTS = 'managedLabTests'
USERS = 'managedUsers'

# collection key -> (change event, default seed factory)
COLLECTIONS = {
    PATIENTS: (events.PATIENTS_UPDATED, seed_data.default_patients),
    APPOINTMENTS: (events.APPOINTMENTS_UPDATED, seed_data.default_appointments),
    LAB_TESTS: (events.LAB_TESTS_UPDATED, seed_data.default_lab_tests),
    USERS: (events.USERS_UPDATED, seed_data.default_users),
}

_REQUIRED_USER_FIELDS = ('id', 'role', 'username')
_NESTED_PATIENT_FIELDS = ('medicalHistory', 'prescriptions', 'labRequests')


class RecordStore:
    """Key/value persistence of entity collections."""

    def __init__(self, data_dir, encryptor, bus=None):
        """Initializes the store.

        Args:
            data_dir: Directory holding one encrypted file per collection.
            encryptor: A Fernet-compatible object with `encrypt`/`decrypt`.
            bus (ChangeBus): Receives a change event after every `save`.
        """
        self.data_dir = os.fspath(data_dir)
        self.encryptor = encryptor
        self.bus = bus or events.ChangeBus()
        os.makedirs(self.data_dir, exist_ok=True)

    def path_for(self, key: str) -> str:
        self._check_key(key)
        return os.path.join(self.data_dir, f"{key}.json")

    def load(self, key: str) -> list:
        """Loads a whole collection.

        Args:
            key (str): One of the collection keys in `COLLECTIONS`.

        Returns:
            list: The stored records, or the freshly persisted default collection if
                  nothing is stored or the stored value is unreadable.
        """
        path = self.path_for(key)
        try:
            with open(path, 'r') as f:
                encrypted_data = f.read()
            decrypted_data = self.encryptor.decrypt(encrypted_data.encode()).decode()
            records = json.loads(decrypted_data)
        except FileNotFoundError:
            logger.info("No stored %s found, initializing with defaults.", key)
            return self._reseed(key)
        except (InvalidToken, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s (%s). Re-initializing with defaults.", key, e.__class__.__name__)
            return self._reseed(key)

        if not self._is_valid(key, records):
            logger.warning("Stored %s has an unexpected shape. Re-initializing with defaults.", key)
            return self._reseed(key)
        if key == PATIENTS:
            records = [_normalize_patient(p) for p in records]
        return records

    def save(self, key: str, records: list) -> None:
        """Overwrites a whole collection and publishes its change event.

        This is last-write-wins: any record written by someone else since `records`
        was loaded is lost. Prefer `upsert` for single-record changes.
        """
        self._write(key, records)
        event, _ = COLLECTIONS[key]
        logger.debug("Saved %d record(s) to %s", len(records), key)
        self.bus.publish(event)

    def find(self, key: str, record_id: str):
        """Returns the record with `record_id`, or None."""
        for record in self.load(key):
            if record.get('id') == record_id:
                return record
        return None

    def upsert(self, key: str, record: dict) -> dict:
        """Replaces the record with the same id (or appends it) and saves once.

        Args:
            key (str): The collection key.
            record (dict): The full record; must carry an `id`.

        Returns:
            dict: The record as written.
        """
        if not record.get('id'):
            raise ValueError("Cannot upsert a record without an id.")
        records = self.load(key)
        for index, existing in enumerate(records):
            if existing.get('id') == record['id']:
                records[index] = record
                break
        else:
            records.append(record)
        self.save(key, records)
        return record

    def delete(self, key: str, record_id: str) -> bool:
        """Filters out the record with `record_id`.

        Returns:
            bool: True if a record was removed, False if none matched (nothing is saved).
        """
        records = self.load(key)
        remaining = [r for r in records if r.get('id') != record_id]
        if len(remaining) == len(records):
            return False
        self.save(key, remaining)
        return True

    def _write(self, key, records):
        path = self.path_for(key)
        with open(path, 'w') as f:
            data_to_encrypt = json.dumps(records, indent=4)
            encrypted_data = self.encryptor.encrypt(data_to_encrypt.encode())
            f.write(encrypted_data.decode())

    def _reseed(self, key):
        _, factory = COLLECTIONS[key]
        records = factory()
        # Seeding is a repair, not a user change; no event is published.
        self._write(key, records)
        return copy.deepcopy(records)

    @staticmethod
    def _check_key(key):
        if key not in COLLECTIONS:
            raise KeyError(f"Unknown collection: {key}")

    @staticmethod
    def _is_valid(key, records):
        if not isinstance(records, list):
            return False
        for record in records:
            if not isinstance(record, dict) or not record.get('id'):
                return False
            if key == USERS:
                if not all(record.get(field) for field in _REQUIRED_USER_FIELDS):
                    return False
                if not isinstance(record.get('status'), str):
                    return False
            if key == PATIENTS and not all(_is_record_list(record.get(field)) for field in _NESTED_PATIENT_FIELDS):
                return False
        return True


def _is_record_list(value):
    return value is None or (isinstance(value, list) and all(isinstance(item, dict) for item in value))


def _normalize_patient(patient):
    """Fills in nested collections and lab request fields that older data may lack."""
    patient['medicalHistory'] = patient.get('medicalHistory') or []
    patient['prescriptions'] = patient.get('prescriptions') or []
    requests = patient.get('labRequests') or []
    for request in requests:
        request['status'] = request.get('status') or 'Pending'
        request['priceAtTimeOfRequest'] = request.get('priceAtTimeOfRequest') or 0
        request['patientName'] = request.get('patientName') or patient.get('name')
    patient['labRequests'] = requests
    return patient
