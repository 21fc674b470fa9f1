"""
Default collections written by the record store when a collection is missing or
unreadable.

The values mirror the demo data the clinic dashboard ships with. Seed users carry
salted hashes of their demo passwords; `SEED_PASSWORDS` keeps the plaintext for
local logins and tests.
"""
# clinicdesk/seed_data.py

from clinicdesk.models import generate_lab_test_id
from clinicdesk.security import hash_password

SEED_PASSWORDS = {
    'admin@clinic.com': 'adminpassword',
    'amelia.harper@clinic.com': 'doctorpassword',
    'mark.johnson@clinic.com': 'labpassword',
    'sarah.miller@clinic.com': 'receptionistpassword',
    'john.patient@example.com': 'patientpassword',
    'robert.harris@clinic.com': 'doctorpassword2',
    'liam.harper@example.com': 'password123',
    'olivia.bennett@example.com': 'password123',
    'noah.foster@example.com': 'password123',
    'ava.mitchell@example.com': 'password123',
}

_USERS = [
    ('admin001', 'Admin User', 'admin@clinic.com', 'admin', None, 'Active'),
    ('doc001', 'Dr. Amelia Harper', 'amelia.harper@clinic.com', 'doctor', 'General Physician', 'Active'),
    ('lab001', 'Mark Johnson', 'mark.johnson@clinic.com', 'lab_tech', None, 'Active'),
    ('rec001', 'Sarah Miller', 'sarah.miller@clinic.com', 'receptionist', None, 'Active'),
    ('pat001', 'John Doe', 'john.patient@example.com', 'patient', None, 'Active'),
    ('doc002', 'Dr. Robert Harris', 'robert.harris@clinic.com', 'doctor', 'Cardiologist', 'Inactive'),
    ('user007', 'Liam Harper', 'liam.harper@example.com', 'patient', None, 'Active'),
    ('user008', 'Olivia Bennett', 'olivia.bennett@example.com', 'patient', None, 'Active'),
    ('user009', 'Noah Foster', 'noah.foster@example.com', 'patient', None, 'Inactive'),
    ('user010', 'Ava Mitchell', 'ava.mitchell@example.com', 'patient', None, 'Active'),
]

_LAB_TESTS = [
    ("Complete Blood Count (CBC)", 100),
    ("Blood Glucose (Fasting)", 80),
    ("Blood Glucose (Random)", 80),
    ("Urinalysis", 70),
    ("Lipid Profile", 150),
    ("Liver Function Test (LFT)", 160),
    ("Kidney Function Test (KFT)", 140),
    ("Electrolyte Panel", 130),
    ("Thyroid Function Test (TFT)", 160),
    ("Hemoglobin A1c", 110),
    ("Vitamin D", 200),
    ("Vitamin B12", 190),
    ("Calcium", 90),
    ("Iron Studies", 120),
    ("C-Reactive Protein (CRP)", 100),
    ("Erythrocyte Sedimentation Rate (ESR)", 70),
    ("HIV Test", 120),
    ("Hepatitis B", 130),
    ("Hepatitis C", 130),
    ("Malaria Test", 80),
    ("Dengue NS1 Antigen", 140),
    ("COVID-19 PCR", 250),
    ("COVID-19 Antigen", 150),
    ("Widal Test", 90),
    ("Stool Routine", 85),
    ("Blood Urea", 95),
    ("Serum Creatinine", 100),
    ("Prothrombin Time (PT)", 110),
    ("Blood Grouping & Rh Typing", 70),
    ("Pregnancy Test (hCG)", 90),
]


def _patient(patient_id, name, dob, gender, address, phone, status, last_visit, registered, email=None, **extra):
    record = {
        'id': patient_id,
        'name': name,
        'dob': dob,
        'gender': gender,
        'address': address,
        'phoneNumber': phone,
        'email': email,
        'emergencyContactName': None,
        'emergencyContactPhone': None,
        'status': status,
        'lastVisit': last_visit,
        'registrationDate': registered,
        'medicalHistory': [],
        'prescriptions': [],
        'labRequests': [],
    }
    record.update(extra)
    return record


def default_users():
    users = []
    for user_id, full_name, username, role, specialization, status in _USERS:
        password_hash, salt = hash_password(SEED_PASSWORDS[username])
        user = {
            'id': user_id,
            'fullName': full_name,
            'username': username,
            'passwordHash': password_hash,
            'salt': salt,
            'role': role,
            'status': status,
        }
        if specialization:
            user['specialization'] = specialization
        users.append(user)
    return users


def default_lab_tests():
    return [{'id': generate_lab_test_id(name), 'name': name, 'price': price} for name, price in _LAB_TESTS]


def default_appointments():
    return []


def default_patients():
    return [
        _patient(
            'pat001', 'Liam Harper', '1985-03-15', 'Male', '123 Main St, Anytown, USA', '555-0101', 'Active',
            '2023-11-20', '2023-01-10', email='liam.harper@example.com',
            emergencyContactName='Sophie Harper', emergencyContactPhone='555-0102',
            medicalHistory=[
                {'id': 'hist001', 'date': '2023-05-10', 'notes': 'Annual checkup. All clear.', 'enteredBy': 'Dr. Amelia Harper'},
            ],
            prescriptions=[
                {'id': 'rx001', 'datePrescribed': '2023-05-10', 'medicationName': 'Amoxicillin', 'dosage': '250mg',
                 'frequency': 'TID', 'duration': '7 days', 'prescribedBy': 'Dr. Amelia Harper'},
            ],
            labRequests=[
                {'id': 'lab001', 'testId': 'cbc', 'testName': 'Complete Blood Count (CBC)', 'requestedDate': '2024-07-01',
                 'status': 'Pending Payment', 'requestedBy': 'Dr. Amelia Harper', 'priceAtTimeOfRequest': 100,
                 'patientName': 'Liam Harper'},
                {'id': 'lab002', 'testId': 'lipid-profile', 'testName': 'Lipid Profile', 'requestedDate': '2024-06-15',
                 'status': 'Completed', 'resultsSummary': 'All within normal limits.', 'resultEnteredBy': 'Mark Johnson',
                 'resultDate': '2024-06-18', 'requestedBy': 'Dr. Amelia Harper', 'priceAtTimeOfRequest': 150,
                 'patientName': 'Liam Harper'},
            ],
        ),
        _patient(
            'pat002', 'Olivia Bennett', '1992-07-22', 'Female', '456 Oak Ave, Anytown, USA', '555-0103', 'Active',
            '2023-12-05', '2023-02-15', email='olivia.bennett@example.com',
            labRequests=[
                {'id': 'lab003', 'testId': 'blood-glucose-fasting', 'testName': 'Blood Glucose (Fasting)',
                 'requestedDate': '2024-07-05', 'status': 'Pending', 'requestedBy': 'Dr. Robert Harris',
                 'priceAtTimeOfRequest': 80, 'patientName': 'Olivia Bennett'},
            ],
        ),
        _patient('pat003', 'Noah Foster', '1978-11-10', 'Male', '789 Pine Rd, Anytown, USA', '555-0104', 'Inactive',
                 '2023-10-15', '2023-03-20'),
        _patient('pat004', 'Ava Mitchell', '1989-05-08', 'Female', '101 Maple Dr, Anytown, USA', '555-0105', 'Active',
                 '2023-11-28', '2023-04-25', email='ava.mitchell@example.com'),
        _patient('pat005', 'Ethan Hayes', '1995-09-18', 'Male', '202 Birch Ln, Anytown, USA', '555-0106', 'Active',
                 '2023-12-10', '2023-05-30'),
    ]
