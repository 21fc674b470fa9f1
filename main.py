"""
This is the main entry point for the ClinicDesk Streamlit application.

This script handles the following key responsibilities:
- Sets the overall page configuration and logging for the Streamlit app.
- Creates one `ClinicService` per browser session, sharing the encryption key between sessions.
- Manages the session state to track the logged-in user.
- Routes the user to the login page or the main app based on their login status.
"""
# main.py

import streamlit as st

from clinicdesk import config
from clinicdesk.auth import ClinicService
from clinicdesk.encryption import get_encryptor
from clinicdesk.store import RecordStore
import gui

# Set the basic configuration for the Streamlit page.
st.set_page_config(
    page_title="ClinicDesk",
    layout="wide"
)
config.configure_logging()


@st.cache_resource
def get_shared_encryptor():
    """
    Loads (or creates) the Fernet key once per server process.

    Returns:
        Fernet: The encryptor used by every session's record store.
    """
    return get_encryptor(config.KEY_FILE)


def get_clinic_service():
    """
    Returns this session's `ClinicService`, creating it on first use.

    Each session owns its service, so the logged-in user and the change bus are
    never shared between browser tabs.

    Returns:
        ClinicService: The service stored in the session state.
    """
    if 'service' not in st.session_state:
        store = RecordStore(config.DATA_DIR, get_shared_encryptor())
        st.session_state.service = ClinicService(store)
    return st.session_state.service


service = get_clinic_service()

# Session State Management
if 'loggedInUser' not in st.session_state:
    st.session_state.loggedInUser = None

# Main App Router
if st.session_state.loggedInUser:
    gui.show_main_app(service)
else:
    gui.show_login_form(service)
