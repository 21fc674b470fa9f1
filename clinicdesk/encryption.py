"""
This module manages the Fernet key used to encrypt the record store at rest.

Every collection file written by `RecordStore` is encrypted with a symmetric key
kept in a key file (`secret.key` by default). The key is created on first use so a
fresh checkout can start without any setup step.

Security Note: the key file must not be committed to version control.
"""
# clinicdesk/encryption.py

import logging
import os

from cryptography.fernet import Fernet

logger = logging.getLogger(__name__)


def write_key(path) -> bytes:
    """Generates a new Fernet key and saves it to `path`.

    Returns:
        bytes: The generated key.
    """
    key = Fernet.generate_key()
    directory = os.path.dirname(os.fspath(path))
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "wb") as key_file:
        key_file.write(key)
    return key


def load_key(path) -> bytes:
    """Loads the Fernet key from `path`."""
    with open(path, "rb") as key_file:
        return key_file.read()


def get_encryptor(path) -> Fernet:
    """Returns a Fernet instance for the key at `path`, creating the key if needed.

    Args:
        path: Location of the key file.

    Returns:
        Fernet: The encryptor used by the record store.
    """
    try:
        key = load_key(path)
    except FileNotFoundError:
        logger.warning("Encryption key not found at %s. Generating a new one.", path)
        key = write_key(path)
    return Fernet(key)
