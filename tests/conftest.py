"""
Pytest configuration file for the ClinicDesk test suite.

This file defines shared fixtures used across the test tiers. It includes logic to:
- Create a throwaway Fernet key and a temporary data directory per test, so tests never
  touch the production key or records.
- Build isolated `RecordStore` and `ClinicService` instances on top of them.
- Log in as any of the seeded demo accounts by role.
"""
import pytest
from cryptography.fernet import Fernet

from clinicdesk import auth as auth_module
from clinicdesk.events import ChangeBus
from clinicdesk.seed_data import SEED_PASSWORDS
from clinicdesk.store import RecordStore

# One active seeded account per role.
SEED_LOGINS = {
    'admin': 'admin@clinic.com',
    'doctor': 'amelia.harper@clinic.com',
    'lab_tech': 'mark.johnson@clinic.com',
    'receptionist': 'sarah.miller@clinic.com',
    'patient': 'liam.harper@example.com',
}


@pytest.fixture
def encryptor():
    """Provides a Fernet instance with a fresh key for test isolation."""
    return Fernet(Fernet.generate_key())


@pytest.fixture
def bus():
    return ChangeBus()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def store(data_dir, encryptor, bus):
    """Provides a `RecordStore` writing to a temporary directory."""
    return RecordStore(data_dir, encryptor, bus)


@pytest.fixture
def service(store):
    """Provides a `ClinicService` over the temporary store, with nobody logged in."""
    return auth_module.ClinicService(store)


@pytest.fixture
def login_as(service):
    """
    Returns a helper that logs the service in as the seeded account for a role.

    Yields:
        callable: `login_as(role)` -> the session dict of the logged-in user.
    """
    def _login(role):
        username = SEED_LOGINS[role]
        user = service.login(username, SEED_PASSWORDS[username])
        assert user is not None, f"seed login for {role} failed"
        return user

    return _login
