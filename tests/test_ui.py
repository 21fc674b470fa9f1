"""
UI tests for the ClinicDesk application using Streamlit's AppTest framework.

These tests simulate user interactions with the frontend to verify that the
GUI behaves as expected: the login form, the role menus and page routing.
"""
from streamlit.testing.v1 import AppTest


def _session(role):
    usernames = {'admin': 'admin@clinic.com', 'doctor': 'amelia.harper@clinic.com',
                 'lab_tech': 'mark.johnson@clinic.com', 'receptionist': 'sarah.miller@clinic.com',
                 'patient': 'liam.harper@example.com'}
    ids = {'admin': 'admin001', 'doctor': 'doc001', 'lab_tech': 'lab001', 'receptionist': 'rec001',
           'patient': 'user007'}
    names = {'admin': 'Admin User', 'doctor': 'Dr. Amelia Harper', 'lab_tech': 'Mark Johnson',
             'receptionist': 'Sarah Miller', 'patient': 'Liam Harper'}
    return {'id': ids[role], 'fullName': names[role], 'username': usernames[role], 'role': role}


def _main_app(service, role, page=None):
    def render(svc, user, start_page):
        import gui as gui_module
        import streamlit as st

        if 'loggedInUser' not in st.session_state:
            st.session_state["loggedInUser"] = user
            st.session_state["page"] = start_page
        gui_module.show_main_app(svc)

    return AppTest.from_function(render, args=(service, _session(role), page), default_timeout=15)


def test_ui_login_requires_credentials(service):
    """
    Submitting the login form without credentials shows a validation error.
    """
    def render(svc):
        import gui as gui_module

        gui_module.show_login_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()
    assert any("ClinicDesk" in md.value for md in app.markdown)

    buttons = {btn.label: btn for btn in app.button}
    buttons["Login"].click().run()

    assert any("Email and Password are required" in err.value for err in app.error)


def test_ui_login_success_stores_session(service):
    def render(svc):
        import gui as gui_module

        gui_module.show_login_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()
    app.text_input[0].input("sarah.miller@clinic.com")
    app.text_input[1].input("receptionistpassword")
    {btn.label: btn for btn in app.button}["Login"].click().run()

    assert app.session_state["loggedInUser"]["role"] == "receptionist"


def test_ui_login_wrong_password(service):
    def render(svc):
        import gui as gui_module

        gui_module.show_login_form(svc)

    app = AppTest.from_function(render, args=(service,), default_timeout=15)
    app.run()
    app.text_input[0].input("sarah.miller@clinic.com")
    app.text_input[1].input("nope")
    {btn.label: btn for btn in app.button}["Login"].click().run()

    assert any("Invalid email or password" in err.value for err in app.error)


def test_ui_admin_menu(service):
    app = _main_app(service, 'admin')
    app.run()

    assert any("Admin Console" in md.value for md in app.markdown)
    labels = [btn.label for btn in app.button]
    assert "User Management" in labels and "Billing" in labels
    assert "My Appointments" not in labels


def test_ui_lab_tech_menu_shows_worklist_banner(service):
    app = _main_app(service, 'lab_tech')
    app.run()

    labels = [btn.label for btn in app.button]
    assert labels[:3] == ["Dashboard", "Patients", "Lab Requests"]
    assert "Billing" not in labels
    assert any("awaiting results" in warn.value for warn in app.warning)


def test_ui_menu_button_opens_page(service):
    app = _main_app(service, 'receptionist')
    app.run()
    {btn.label: btn for btn in app.button}["Billing"].click().run()

    assert app.session_state["page"] == "billing"
    assert any("Billing" in header.value for header in app.header)
    assert "Confirm Payment" in [btn.label for btn in app.button]


def test_ui_disallowed_page_returns_to_menu(service):
    app = _main_app(service, 'lab_tech', page='billing')
    app.run()

    assert app.session_state["page"] is None
    assert any("Lab Workbench" in md.value for md in app.markdown)


def test_ui_lab_requests_page_renders_tabs(service):
    app = _main_app(service, 'receptionist', page='lab_requests')
    app.run()

    assert not app.exception
    assert any("Lab Requests" in header.value for header in app.header)
    assert [tab.label for tab in app.tabs] == ["Pending Payment", "Pending", "All"]


def test_ui_lab_requests_banner_and_tabs_agree_after_other_session_writes(service, data_dir, encryptor):
    """
    A write from another session does not refresh this session's bus, so the worklist
    banner and the tab rows must stay on the same snapshot until the next local change.
    """
    from clinicdesk.auth import ClinicService
    from clinicdesk.seed_data import SEED_PASSWORDS
    from clinicdesk.store import RecordStore

    app = _main_app(service, 'lab_tech', page='lab_requests')
    app.run()
    assert any("1 request(s) need your action" in info.value for info in app.info)
    assert any(exp.label.endswith("Olivia Bennett (Pending)") for exp in app.expander)

    other = ClinicService(RecordStore(data_dir, encryptor))
    other.login('mark.johnson@clinic.com', SEED_PASSWORDS['mark.johnson@clinic.com'])
    other.labs.enter_results('lab003', 'Fasting glucose 92 mg/dL')
    app.run()

    assert any("1 request(s) need your action" in info.value for info in app.info)
    assert any(exp.label.endswith("Olivia Bennett (Pending)") for exp in app.expander)
