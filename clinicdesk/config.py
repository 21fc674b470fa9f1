"""
Runtime configuration for the ClinicDesk application.

Settings are read once from environment variables at import time and exposed as
module-level constants so they can be monkeypatched in tests. The Gemini API key
is resolved lazily, first from the environment and then from Streamlit secrets.
"""
# clinicdesk/config.py

import logging
import os

import streamlit as st

DATA_DIR = os.environ.get('CLINICDESK_DATA_DIR', 'data')
KEY_FILE = os.environ.get('CLINICDESK_KEY_FILE', 'secret.key')

CLINIC_NAME = os.environ.get('CLINICDESK_CLINIC_NAME', 'ClinicDesk Family Clinic')
CLINIC_PHONE = os.environ.get('CLINICDESK_CLINIC_PHONE', '555-0100')
CLINIC_ADDRESS = os.environ.get('CLINICDESK_CLINIC_ADDRESS', '1 Health Way, Anytown, USA')

GEMINI_MODEL = os.environ.get('CLINICDESK_GEMINI_MODEL', 'gemini-1.5-flash')
PAYMENT_DUE_DAYS = int(os.environ.get('CLINICDESK_PAYMENT_DUE_DAYS', '7'))
LOG_LEVEL = os.environ.get('CLINICDESK_LOG_LEVEL', 'INFO')

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s'


def gemini_api_key():
    """Returns the Gemini API key, or None when it is not configured.

    The environment wins over `.streamlit/secrets.toml` so the key can be
    supplied in containers without a secrets file.
    """
    key = os.environ.get('GEMINI_API_KEY')
    if key:
        return key
    try:
        return st.secrets['GEMINI_API_KEY']
    except Exception as e:
        # Missing key and missing secrets file raise different types across Streamlit releases.
        logging.getLogger(__name__).debug("No GEMINI_API_KEY in Streamlit secrets (%s).", e)
        return None


def configure_logging(level=None):
    """Configures root logging for the app process."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)
