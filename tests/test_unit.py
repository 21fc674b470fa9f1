"""
Unit tests for the ClinicDesk application.

These tests verify individual modules in isolation: the record store, the change bus,
the workflow engine, the role-gated query layer, the models, password hashing,
encryption, configuration and the Gemini helpers.
"""
import json
import os
import types
from datetime import date

import pytest
from cryptography.fernet import Fernet

from clinicdesk import access
from clinicdesk import config as config_module
from clinicdesk import encryption as encryption_module
from clinicdesk import gemini as gemini_module
from clinicdesk import events
from clinicdesk.errors import AuthorizationError, InvalidTransitionError, ValidationError
from clinicdesk.models import (
    CANCELLED, CHECKED_IN, COMPLETED, CONFIRMED, PENDING, PENDING_PAYMENT, SCHEDULED,
    LabRequest, Patient, generate_lab_test_id, today_iso,
)
from clinicdesk.security import hash_password, verify_password
from clinicdesk.seed_data import default_lab_tests, default_patients, default_users
from clinicdesk.store import APPOINTMENTS, LAB_TESTS, PATIENTS, USERS
from clinicdesk.workflow import APPOINTMENT_WORKFLOW, LAB_REQUEST_WORKFLOW


def _recorder(calls, name):
    def handler():
        calls.append(name)
    return handler


def _lab_row(request_id, status, patient_id='pat001', patient_name='Liam Harper', test_name='Lipid Profile',
             requested='2024-07-01'):
    return {
        'id': request_id, 'status': status, 'patientId': patient_id, 'patientName': patient_name,
        'testName': test_name, 'requestedDate': requested, 'priceAtTimeOfRequest': 100,
    }


# Record store

def test_store_load_missing_collection_seeds_and_persists(store, bus):
    """
    Loading a collection that was never saved returns the seed and writes it to disk,
    without publishing a change event.
    """
    calls = []
    bus.subscribe(events.PATIENTS_UPDATED, _recorder(calls, 'patients'))

    patients = store.load(PATIENTS)

    assert [p['id'] for p in patients] == [p['id'] for p in default_patients()]
    assert os.path.exists(store.path_for(PATIENTS))
    assert calls == []


def test_store_save_then_load_round_trip(store, bus):
    calls = []
    bus.subscribe(events.LAB_TESTS_UPDATED, _recorder(calls, 'tests'))
    tests = store.load(LAB_TESTS)
    tests.append({'id': 'x-ray', 'name': 'X-Ray', 'price': 300})

    store.save(LAB_TESTS, tests)

    assert store.load(LAB_TESTS) == tests
    assert calls == ['tests']


def test_store_patients_round_trip_is_deep_equal(store):
    patients = default_patients()
    store.save(PATIENTS, patients)
    assert store.load(PATIENTS) == patients


def test_store_file_is_encrypted(store):
    store.load(PATIENTS)
    with open(store.path_for(PATIENTS)) as f:
        raw = f.read()
    assert 'Liam Harper' not in raw


def test_store_corrupted_blob_reseeds_and_overwrites(store, encryptor):
    with open(store.path_for(PATIENTS), 'w') as f:
        f.write("this is not a fernet token")

    patients = store.load(PATIENTS)

    assert patients == default_patients()
    with open(store.path_for(PATIENTS)) as f:
        stored = json.loads(encryptor.decrypt(f.read().encode()).decode())
    assert [p['id'] for p in stored] == [p['id'] for p in default_patients()]


def test_store_wrong_key_reseeds(store):
    other = Fernet(Fernet.generate_key())
    with open(store.path_for(LAB_TESTS), 'w') as f:
        f.write(other.encrypt(b'[{"id": "mine", "name": "Mine", "price": 1}]').decode())

    assert store.load(LAB_TESTS) == default_lab_tests()


def test_store_unexpected_shape_reseeds(store, encryptor):
    with open(store.path_for(APPOINTMENTS), 'w') as f:
        f.write(encryptor.encrypt(json.dumps({'not': 'a list'}).encode()).decode())

    assert store.load(APPOINTMENTS) == []


@pytest.mark.parametrize('field, value', [
    ('labRequests', ['oops']),
    ('labRequests', {'id': 'lab1'}),
    ('medicalHistory', 'notes'),
    ('prescriptions', [None]),
])
def test_store_malformed_nested_patient_collection_reseeds(store, encryptor, field, value):
    broken = [{'id': 'p1', 'name': 'X', field: value}]
    with open(store.path_for(PATIENTS), 'w') as f:
        f.write(encryptor.encrypt(json.dumps(broken).encode()).decode())

    assert store.load(PATIENTS) == default_patients()


def test_store_user_without_status_reseeds(store, encryptor):
    broken = [{'id': 'u1', 'role': 'admin', 'username': 'a@b.com'}]
    with open(store.path_for(USERS), 'w') as f:
        f.write(encryptor.encrypt(json.dumps(broken).encode()).decode())

    users = store.load(USERS)

    assert [u['id'] for u in users] == [u['id'] for u in default_users()]


def test_store_normalizes_patients(store):
    store.save(PATIENTS, [{'id': 'p1', 'name': 'Pat', 'labRequests': [{'id': 'r1', 'testName': 'X'}]}])

    patient = store.load(PATIENTS)[0]

    assert patient['medicalHistory'] == []
    assert patient['prescriptions'] == []
    request = patient['labRequests'][0]
    assert request['status'] == PENDING
    assert request['priceAtTimeOfRequest'] == 0
    assert request['patientName'] == 'Pat'


def test_store_upsert_replaces_or_appends(store):
    store.save(LAB_TESTS, [{'id': 'a', 'name': 'A', 'price': 1}])

    store.upsert(LAB_TESTS, {'id': 'a', 'name': 'A2', 'price': 2})
    store.upsert(LAB_TESTS, {'id': 'b', 'name': 'B', 'price': 3})

    assert store.load(LAB_TESTS) == [
        {'id': 'a', 'name': 'A2', 'price': 2},
        {'id': 'b', 'name': 'B', 'price': 3},
    ]
    assert store.find(LAB_TESTS, 'b')['name'] == 'B'
    assert store.find(LAB_TESTS, 'missing') is None


def test_store_upsert_requires_id(store):
    with pytest.raises(ValueError):
        store.upsert(LAB_TESTS, {'name': 'No Id', 'price': 1})


def test_store_delete(store, bus):
    store.save(LAB_TESTS, [{'id': 'a', 'name': 'A', 'price': 1}])
    calls = []
    bus.subscribe(events.LAB_TESTS_UPDATED, _recorder(calls, 'tests'))

    assert store.delete(LAB_TESTS, 'missing') is False
    assert calls == []
    assert store.delete(LAB_TESTS, 'a') is True
    assert store.load(LAB_TESTS) == []
    assert calls == ['tests']


def test_store_unknown_collection(store):
    with pytest.raises(KeyError):
        store.load('managedInvoices')


# Change bus

def test_bus_dispatches_in_subscription_order():
    bus = events.ChangeBus()
    calls = []
    first, second = _recorder(calls, 'first'), _recorder(calls, 'second')
    bus.subscribe(events.PATIENTS_UPDATED, first)
    bus.subscribe(events.PATIENTS_UPDATED, second)
    bus.subscribe(events.PATIENTS_UPDATED, first)

    assert bus.publish(events.PATIENTS_UPDATED) == 2
    assert calls == ['first', 'second']
    assert bus.publish(events.USERS_UPDATED) == 0


def test_bus_unsubscribe():
    bus = events.ChangeBus()
    calls = []
    handler = _recorder(calls, 'h')
    bus.subscribe(events.LAB_TESTS_UPDATED, handler)

    assert bus.unsubscribe(events.LAB_TESTS_UPDATED, handler) is True
    assert bus.unsubscribe(events.LAB_TESTS_UPDATED, handler) is False
    bus.publish(events.LAB_TESTS_UPDATED)
    assert calls == []
    assert bus.handler_count(events.LAB_TESTS_UPDATED) == 0


def test_bus_failing_handler_does_not_stop_others(caplog):
    bus = events.ChangeBus()
    calls = []

    def broken():
        raise RuntimeError("boom")

    bus.subscribe(events.APPOINTMENTS_UPDATED, broken)
    bus.subscribe(events.APPOINTMENTS_UPDATED, _recorder(calls, 'after'))

    assert bus.publish(events.APPOINTMENTS_UPDATED) == 1
    assert calls == ['after']
    assert "failed" in caplog.text


def test_bus_handler_may_unsubscribe_itself():
    bus = events.ChangeBus()
    calls = []

    def once():
        calls.append('once')
        bus.unsubscribe(events.PATIENTS_UPDATED, once)

    bus.subscribe(events.PATIENTS_UPDATED, once)
    bus.subscribe(events.PATIENTS_UPDATED, _recorder(calls, 'always'))
    bus.publish(events.PATIENTS_UPDATED)
    bus.publish(events.PATIENTS_UPDATED)

    assert calls == ['once', 'always', 'always']


def test_bus_clear():
    bus = events.ChangeBus()
    bus.subscribe(events.PATIENTS_UPDATED, _recorder([], 'a'))
    bus.subscribe(events.USERS_UPDATED, _recorder([], 'b'))
    bus.clear(events.PATIENTS_UPDATED)
    assert bus.handler_count(events.PATIENTS_UPDATED) == 0
    assert bus.handler_count(events.USERS_UPDATED) == 1
    bus.clear()
    assert bus.handler_count(events.USERS_UPDATED) == 0


# Workflow engine

def test_lab_request_creation_edge_is_doctor_only():
    request = LAB_REQUEST_WORKFLOW.start({'id': 'r1'}, 'doctor', actor='Dr. Amelia Harper')
    assert request['status'] == PENDING_PAYMENT
    assert request['requestedBy'] == 'Dr. Amelia Harper'
    assert request['requestedDate'] == today_iso()

    with pytest.raises(AuthorizationError):
        LAB_REQUEST_WORKFLOW.start({'id': 'r2'}, 'receptionist')


def test_authorize_start_checks_creation_role_only():
    assert LAB_REQUEST_WORKFLOW.authorize_start('doctor').target == PENDING_PAYMENT
    assert APPOINTMENT_WORKFLOW.authorize_start('admin').target == SCHEDULED
    with pytest.raises(AuthorizationError):
        LAB_REQUEST_WORKFLOW.authorize_start('lab_tech')
    with pytest.raises(AuthorizationError):
        APPOINTMENT_WORKFLOW.authorize_start('doctor')


def test_lab_request_full_lifecycle():
    request = {'id': 'r1', 'status': PENDING_PAYMENT}
    paid = LAB_REQUEST_WORKFLOW.apply(request, PENDING, 'receptionist', actor='Sarah Miller')
    done = LAB_REQUEST_WORKFLOW.apply(paid, COMPLETED, 'lab_tech', actor='Mark Johnson', results_summary=' Normal ')

    assert request['status'] == PENDING_PAYMENT
    assert paid['status'] == PENDING
    assert done['status'] == COMPLETED
    assert done['resultsSummary'] == 'Normal'
    assert done['resultEnteredBy'] == 'Mark Johnson'
    assert done['resultDate'] == today_iso()


def test_lab_tech_cannot_enter_results_before_payment():
    request = {'id': 'r1', 'status': PENDING_PAYMENT}
    with pytest.raises(InvalidTransitionError):
        LAB_REQUEST_WORKFLOW.apply(request, COMPLETED, 'lab_tech', results_summary='Normal')
    assert request['status'] == PENDING_PAYMENT


def test_role_is_checked_before_source_status():
    # Doctors never confirm payments, whatever the current status.
    with pytest.raises(AuthorizationError):
        LAB_REQUEST_WORKFLOW.apply({'id': 'r1', 'status': PENDING_PAYMENT}, PENDING, 'doctor')
    with pytest.raises(AuthorizationError):
        LAB_REQUEST_WORKFLOW.apply({'id': 'r1', 'status': COMPLETED}, PENDING, 'doctor')


def test_terminal_statuses_have_no_exit():
    assert LAB_REQUEST_WORKFLOW.is_terminal(COMPLETED)
    assert LAB_REQUEST_WORKFLOW.is_terminal(CANCELLED)
    with pytest.raises(InvalidTransitionError):
        LAB_REQUEST_WORKFLOW.apply({'id': 'r1', 'status': COMPLETED}, CANCELLED, 'doctor')
    with pytest.raises(InvalidTransitionError):
        LAB_REQUEST_WORKFLOW.apply({'id': 'r1', 'status': CANCELLED}, PENDING, 'receptionist')


def test_enter_results_requires_summary():
    request = {'id': 'r1', 'status': PENDING}
    with pytest.raises(ValidationError):
        LAB_REQUEST_WORKFLOW.apply(request, COMPLETED, 'lab_tech', results_summary='   ')
    assert request == {'id': 'r1', 'status': PENDING}


def test_allowed_transitions_per_role():
    labels = lambda role, status: [t.label for t in LAB_REQUEST_WORKFLOW.allowed_transitions(role, status)]
    assert labels('doctor', PENDING_PAYMENT) == ['Cancel']
    assert labels('doctor', PENDING) == ['Cancel']
    assert labels('receptionist', PENDING_PAYMENT) == ['Confirm Payment']
    assert labels('lab_tech', PENDING_PAYMENT) == []
    assert labels('lab_tech', PENDING) == ['Enter Results']
    assert labels('admin', PENDING_PAYMENT) == []
    assert LAB_REQUEST_WORKFLOW.can('receptionist', PENDING_PAYMENT, PENDING)
    assert not LAB_REQUEST_WORKFLOW.can('receptionist', PENDING, PENDING)


def test_workflow_statuses():
    assert LAB_REQUEST_WORKFLOW.statuses == [PENDING_PAYMENT, PENDING, CANCELLED, COMPLETED]
    assert set(APPOINTMENT_WORKFLOW.statuses) == {SCHEDULED, CONFIRMED, CHECKED_IN, COMPLETED, CANCELLED}


def test_appointment_lifecycle():
    booked = APPOINTMENT_WORKFLOW.start({'id': 'a1'}, 'receptionist')
    confirmed = APPOINTMENT_WORKFLOW.apply(booked, CONFIRMED, 'receptionist')
    checked_in = APPOINTMENT_WORKFLOW.apply(confirmed, CHECKED_IN, 'receptionist')
    completed = APPOINTMENT_WORKFLOW.apply(checked_in, COMPLETED, 'doctor')

    assert [booked['status'], confirmed['status'], checked_in['status'], completed['status']] == [
        SCHEDULED, CONFIRMED, CHECKED_IN, COMPLETED,
    ]
    with pytest.raises(InvalidTransitionError):
        APPOINTMENT_WORKFLOW.apply(checked_in, CANCELLED, 'doctor')
    with pytest.raises(AuthorizationError):
        APPOINTMENT_WORKFLOW.apply(booked, CONFIRMED, 'doctor')


# Role-gated queries

def test_lab_request_tabs_per_role():
    assert access.lab_request_tabs('receptionist') == (['pending_payment', 'pending', 'all'], 'pending_payment')
    assert access.lab_request_tabs('lab_tech') == (['pending', 'completed', 'all'], 'pending')
    assert access.lab_request_tabs('admin')[1] == 'all'
    assert access.lab_request_tabs('visitor') == ([], None)


def test_lab_tech_all_tab_hides_unpaid_and_cancelled():
    rows = [
        _lab_row('r1', PENDING_PAYMENT),
        _lab_row('r2', PENDING),
        _lab_row('r3', COMPLETED),
        _lab_row('r4', CANCELLED),
    ]
    lab_tech = {'role': 'lab_tech'}

    assert [r['id'] for r in access.visible_lab_requests(lab_tech, rows, tab='all')] == ['r2', 'r3']
    assert [r['id'] for r in access.visible_lab_requests(lab_tech, rows)] == ['r2']
    assert access.visible_lab_requests(lab_tech, rows, tab='pending_payment') == []
    assert [r['id'] for r in access.visible_lab_requests({'role': 'doctor'}, rows)] == ['r1', 'r2', 'r3', 'r4']


def test_lab_tech_worklist_only_holds_transitionable_requests():
    rows = [_lab_row('r1', PENDING_PAYMENT), _lab_row('r2', PENDING), _lab_row('r3', COMPLETED)]

    worklist = access.actionable_lab_requests({'role': 'lab_tech'}, rows)

    assert [r['id'] for r in worklist] == ['r2']
    assert all(access.lab_request_actions('lab_tech', r) == ['Enter Results'] for r in worklist)
    assert [r['id'] for r in access.actionable_lab_requests({'role': 'receptionist'}, rows)] == ['r1']


def test_lab_request_targets():
    assert access.lab_request_targets('receptionist', {'status': PENDING_PAYMENT}) == {'Confirm Payment': PENDING}
    assert access.lab_request_targets('lab_tech', {'status': PENDING_PAYMENT}) == {}


def test_patient_sees_only_own_lab_requests():
    rows = [_lab_row('r1', PENDING, patient_id='pat001'), _lab_row('r2', PENDING, patient_id='pat002')]
    patient = {'role': 'patient', 'username': 'liam.harper@example.com'}

    assert [r['id'] for r in access.visible_lab_requests(patient, rows, patient_ids={'pat001'})] == ['r1']
    assert access.visible_lab_requests(patient, rows) == []


def test_lab_request_search():
    rows = [
        _lab_row('r1', PENDING, test_name='Lipid Profile'),
        _lab_row('r2', PENDING, patient_name='Olivia Bennett', test_name='Urinalysis'),
    ]
    admin = {'role': 'admin'}
    assert [r['id'] for r in access.visible_lab_requests(admin, rows, search='lipid')] == ['r1']
    assert [r['id'] for r in access.visible_lab_requests(admin, rows, search='OLIVIA')] == ['r2']


def test_flatten_lab_requests_newest_first():
    rows = access.flatten_lab_requests(default_patients())

    assert [r['id'] for r in rows] == ['lab003', 'lab001', 'lab002']
    assert rows[0]['patientId'] == 'pat002'
    assert rows[0]['patientName'] == 'Olivia Bennett'


def test_billing_rows_only_pending_payment():
    rows = access.flatten_lab_requests(default_patients())
    assert [r['id'] for r in access.billing_rows(rows)] == ['lab001']
    assert access.billing_rows(rows, search='olivia') == []


def test_visible_patients():
    patients = default_patients()
    assert len(access.visible_patients({'role': 'lab_tech'}, patients)) == 5
    own = access.visible_patients({'role': 'patient', 'username': 'Ava.Mitchell@example.com'}, patients)
    assert [p['id'] for p in own] == ['pat004']
    assert [p['id'] for p in access.visible_patients({'role': 'doctor'}, patients, search='ben')] == ['pat002']
    assert access.visible_patients(None, patients) == []


def test_visible_appointments_per_role():
    appointments = [
        {'id': 'a1', 'doctorId': 'doc001', 'patientId': 'pat001', 'createdAt': '2024-01-01T09:00:00'},
        {'id': 'a2', 'doctorId': 'doc002', 'patientId': 'pat002', 'createdAt': '2024-01-02T09:00:00'},
    ]
    assert [a['id'] for a in access.visible_appointments({'role': 'receptionist'}, appointments)] == ['a2', 'a1']
    assert [a['id'] for a in access.visible_appointments({'role': 'doctor', 'id': 'doc001'}, appointments)] == ['a1']
    assert [a['id'] for a in access.visible_appointments({'role': 'patient'}, appointments, patient_ids={'pat002'})] == ['a2']
    assert access.visible_appointments({'role': 'lab_tech'}, appointments) == []


def test_categorize_appointments():
    today = date(2024, 7, 10)
    appointments = [
        {'id': 'past-early', 'appointmentDate': '2024-07-01', 'appointmentTime': '09:00'},
        {'id': 'past-late', 'appointmentDate': '2024-07-09', 'appointmentTime': '09:00'},
        {'id': 'today-pm', 'appointmentDate': '2024-07-10', 'appointmentTime': '15:00'},
        {'id': 'today-am', 'appointmentDate': '2024-07-10', 'appointmentTime': '08:30'},
        {'id': 'next-month', 'appointmentDate': '2024-08-01', 'appointmentTime': '10:00'},
        {'id': 'tomorrow', 'appointmentDate': '2024-07-11', 'appointmentTime': '10:00'},
        {'id': 'broken', 'appointmentDate': 'someday', 'appointmentTime': '10:00'},
    ]

    upcoming, todays, past = access.categorize_appointments(appointments, today=today)

    assert [a['id'] for a in upcoming] == ['tomorrow', 'next-month']
    assert [a['id'] for a in todays] == ['today-am', 'today-pm']
    assert [a['id'] for a in past] == ['past-late', 'past-early']


def test_page_access():
    assert access.can_access('admin', 'billing')
    assert not access.can_access('doctor', 'billing')
    assert not access.can_access('patient', 'patients')
    assert access.pages_for('lab_tech') == ['dashboard', 'patients', 'lab_requests']


def test_search_users_and_tests():
    users = [
        {'fullName': 'Admin User', 'username': 'admin@clinic.com', 'role': 'admin'},
        {'fullName': 'Mark Johnson', 'username': 'mark.johnson@clinic.com', 'role': 'lab_tech'},
    ]
    assert access.search_users(users, 'mark') == [users[1]]
    assert access.search_users(users, '', 'admin') == [users[0]]
    tests = [{'name': 'Urinalysis'}, {'name': 'Calcium'}]
    assert access.search_lab_tests(tests) == [{'name': 'Calcium'}, {'name': 'Urinalysis'}]
    assert access.search_lab_tests(tests, 'URIN') == [{'name': 'Urinalysis'}]


# Models, hashing, encryption

def test_generate_lab_test_id():
    assert generate_lab_test_id("Complete Blood Count (CBC)") == 'complete-blood-count-cbc'
    assert generate_lab_test_id("  Lipid   Profile ") == 'lipid-profile'
    assert generate_lab_test_id("CBC") == 'cbc'


def test_new_records_have_defaults():
    request = LabRequest('cbc', 'CBC', 100, 'Dr. Amelia Harper', 'Liam Harper').to_dict()
    assert request['status'] == PENDING_PAYMENT
    assert request['priceAtTimeOfRequest'] == 100
    assert request['requestedDate'] == today_iso()

    first = Patient('A', '1990-01-01', 'Male', 'Addr', '555').to_dict()
    second = Patient('B', '1990-01-01', 'Male', 'Addr', '555').to_dict()
    assert first['id'] != second['id']
    assert first['labRequests'] == [] and first['status'] == 'Active'


def test_password_hashing():
    password_hash, salt = hash_password("secret1")
    assert verify_password("secret1", password_hash, salt)
    assert not verify_password("secret2", password_hash, salt)
    assert not verify_password("secret1", password_hash, "")
    assert hash_password("secret1", salt) == (password_hash, salt)


def test_seed_users_are_hashed():
    for user in default_users():
        assert 'password' not in user
        assert user['salt'] and len(user['passwordHash']) == 64


def test_get_encryptor_creates_and_reuses_key(tmp_path):
    key_path = tmp_path / "keys" / "secret.key"

    first = encryption_module.get_encryptor(key_path)
    token = first.encrypt(b"payload")
    second = encryption_module.get_encryptor(key_path)

    assert key_path.exists()
    assert second.decrypt(token) == b"payload"


# Configuration

def test_gemini_api_key_prefers_environment(monkeypatch):
    monkeypatch.setenv('GEMINI_API_KEY', 'from-env')
    assert config_module.gemini_api_key() == 'from-env'


# Gemini helpers

class _FakeModel:
    def __init__(self, text="drafted", error=None):
        self.text = text
        self.error = error
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return types.SimpleNamespace(text=f"  {self.text}\n")


def test_generate_payment_reminder(monkeypatch):
    fake = _FakeModel("Please settle $100.")
    monkeypatch.setattr(gemini_module, 'model', fake)

    text = gemini_module.generate_payment_reminder("Liam Harper", 100, "2024-07-08", "Test Clinic")

    assert text == "Please settle $100."
    assert "Liam Harper" in fake.prompts[0]
    assert "$100" in fake.prompts[0]
    assert "2024-07-08" in fake.prompts[0]
    assert "Test Clinic" in fake.prompts[0]


def test_generate_welcome_packet_returns_none_on_error(monkeypatch, caplog):
    monkeypatch.setattr(gemini_module, 'model', _FakeModel(error=RuntimeError("quota exceeded")))

    text = gemini_module.generate_welcome_packet(
        "Liam Harper", "Test Clinic", "Dr. Amelia Harper", "2024-07-10 at 09:00", "555-0100", "1 Health Way"
    )

    assert text is None
    assert "quota exceeded" in caplog.text


def test_gemini_without_api_key_returns_none(monkeypatch):
    monkeypatch.setattr(gemini_module, 'model', None)
    monkeypatch.setattr(config_module, 'gemini_api_key', lambda: None)

    assert gemini_module.generate_payment_reminder("Liam Harper", 100, "2024-07-08", "Test Clinic") is None


def test_gemini_model_is_configured_lazily(monkeypatch):
    configured = {}

    class FakeGenerativeModel(_FakeModel):
        def __init__(self, model_name):
            super().__init__("hello")
            configured['model_name'] = model_name

    fake_genai = types.SimpleNamespace(
        configure=lambda api_key=None: configured.update(api_key=api_key),
        GenerativeModel=FakeGenerativeModel,
    )
    monkeypatch.setattr(gemini_module, 'model', None)
    monkeypatch.setattr(gemini_module, 'genai', fake_genai)
    monkeypatch.setattr(config_module, 'gemini_api_key', lambda: 'test-key')

    assert gemini_module.generate_payment_reminder("Liam Harper", 100, "2024-07-08", "Test Clinic") == "hello"
    assert configured == {'api_key': 'test-key', 'model_name': config_module.GEMINI_MODEL}
