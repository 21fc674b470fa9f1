"""
This module defines the graphical user interface (GUI) for the ClinicDesk application using Streamlit.

It includes functions for rendering the login page, the role-specific main menus and every
sub-page: dashboard, patient records, the lab request worklist, billing, appointment booking,
the doctor's and patient's own appointments, lab catalog management and user management.

Pages only decide what to render. Every permission and status rule is enforced again by the
services, so a rejected action surfaces here as a `ClinicError` shown with `st.error`.

The main entry point for the UI is `show_main_app`, which routes the user to the appropriate
view based on their role.
"""
# gui.py

import datetime

import pandas as pd
import streamlit as st

from clinicdesk import access, events
from clinicdesk.errors import ClinicError
from clinicdesk.models import ACTIVE, COMPLETED, GENDERS, INACTIVE, ROLES

MENU_ITEMS = [
    ("Dashboard", "dashboard", "Key numbers for today and, where relevant, the lab test catalog."),
    ("Patients", "patients", "Register patients, browse records, history, prescriptions and lab requests."),
    ("Lab Requests", "lab_requests", "Work through lab requests by status and act on them."),
    ("Billing", "billing", "Confirm payments for requested lab tests and draft payment reminders."),
    ("Appointments", "appointments", "Book appointments and move them from confirmation to check-in."),
    ("My Appointments", "my_appointments", "See your upcoming, today's and past appointments."),
    ("Lab Tests", "manage_lab_tests", "Maintain the catalog of lab tests and their prices."),
    ("User Management", "users", "Create, edit, deactivate and delete accounts."),
]

ROLE_TITLES = {
    'admin': "Admin Console",
    'doctor': "Doctor Dashboard",
    'lab_tech': "Lab Workbench",
    'receptionist': "Front Desk",
    'patient': "Patient Portal",
}

LAB_REQUEST_COLUMNS = {
    'requestedDate': "Requested",
    'patientName': "Patient",
    'testName': "Test",
    'status': "Status",
    'priceAtTimeOfRequest': "Price",
    'requestedBy': "Requested By",
}

APPOINTMENT_COLUMNS = {
    'appointmentDate': "Date",
    'appointmentTime': "Time",
    'patientName': "Patient",
    'doctorName': "Doctor",
    'status': "Status",
    'notes': "Notes",
}


def _to_frame(rows, columns):
    """Builds a display DataFrame from records.

    Args:
        rows (list): Records as dicts.
        columns (dict): Record key -> column label, in display order.

    Returns:
        pd.DataFrame: One row per record with the labelled columns.
    """
    frame = pd.DataFrame(rows, columns=list(columns))
    return frame.rename(columns=columns)


def _show_table(rows, columns, empty_message):
    if not rows:
        st.info(empty_message)
        return
    st.dataframe(_to_frame(rows, columns), use_container_width=True, hide_index=True)


def _cached_rows(service, event, cache_key, loader):
    """Returns rows from the session's table cache, reloading when `event` has fired.

    Args:
        service: The main application service instance.
        event (str): The change event that invalidates these rows.
        cache_key (tuple): Identifies the query (page, filters, user).
        loader (callable): Loads the rows on a cache miss.
    """
    cache = st.session_state.setdefault('table_cache', {})
    revision = service.revision(event)
    cached = cache.get(cache_key)
    if cached is None or cached[0] != revision:
        cached = (revision, loader())
        cache[cache_key] = cached
    return cached[1]


def _run_action(action, success_message=None):
    """Runs a service call, showing its error or rerunning the page on success.

    Args:
        action (callable): The service call.
        success_message (str, optional): Shown at the top of the page after the rerun.
    """
    try:
        action()
    except ClinicError as e:
        st.error(str(e))
        return
    if success_message:
        st.session_state.flash = success_message
    st.rerun()


def _format_money(amount):
    return f"${(amount or 0):,.2f}"


def _parse_date(value):
    try:
        return datetime.date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


# Authentication

def show_login_form(service):
    """Displays the login form and handles user authentication.

    Args:
        service: The main application service instance.
    """
    col1, col2, col3 = st.columns([1, 2, 1])
    with col2:
        st.markdown("<h1 style='text-align: center;'>ClinicDesk</h1>", unsafe_allow_html=True)
        st.markdown(
            "<p style='text-align: center;'>Patients, lab requests, billing and appointments in one place.</p>",
            unsafe_allow_html=True,
        )
        with st.form("login_form"):
            username = st.text_input("Email")
            password = st.text_input("Password", type="password")
            submitted = st.form_submit_button("Login", use_container_width=True)

            if submitted:
                if not username or not password:
                    st.error("Email and Password are required.")
                else:
                    with st.spinner("Logging in..."):
                        user = service.login(username, password)
                    if user:
                        st.session_state.loggedInUser = user
                        st.session_state.page = None
                        st.rerun()
                    else:
                        st.error("Invalid email or password, or the account is inactive.")


def _log_out(service):
    service.logout()
    st.session_state.loggedInUser = None
    st.session_state.page = None
    st.session_state.table_cache = {}
    st.rerun()


# Main app

def show_main_app(service):
    """
    The main application router that displays the correct UI based on the user's role.

    The menu lists only the pages the role may open; a page that is not allowed sends the
    user back to the menu.

    Args:
        service: The main application service instance.
    """
    user = st.session_state.loggedInUser
    service.current_user = user
    role = user['role']

    if 'page' not in st.session_state:
        st.session_state.page = None

    # Reset the page when another role logs in within the same session.
    previous_role = st.session_state.get('current_role')
    if previous_role is not None and previous_role != role:
        st.session_state.page = None
    st.session_state.current_role = role

    flash = st.session_state.pop('flash', None)
    if flash:
        st.success(flash)

    menu_placeholder = st.empty()
    menu_items = [item for item in MENU_ITEMS if access.can_access(role, item[1])]

    def _show_main_menu(options, title, banner_message=None):
        """
        Renders the main menu for the current role.

        Args:
            options (list): Tuples of label, page key and description.
            title (str): The title of the menu.
            banner_message (str, optional): A message to display as a warning banner.
        """
        with menu_placeholder.container():
            if banner_message:
                st.warning(banner_message)
            st.markdown(f"## {title} — {user.get('fullName') or user['username']}")
            st.caption(f"Signed in as {user['username']} ({role.replace('_', ' ')})")
            st.divider()
            for idx, (label, value, description) in enumerate(options):
                if st.button(label, key=f"{role}_menu_btn_{idx}", use_container_width=True):
                    st.session_state.page = value
                    st.rerun()
                st.caption(description)
                st.divider()
            if st.button("Log Out", key=f"{role}_logout_btn", use_container_width=True):
                _log_out(service)

    def _show_back_button():
        """Renders a button to navigate back to the main menu."""
        if st.button("← Back to Main Menu"):
            st.session_state.page = None
            st.rerun()

    page = st.session_state.page
    if page is None:
        _show_main_menu(menu_items, ROLE_TITLES.get(role, "ClinicDesk"), banner_message=_menu_banner(service, role))
        return
    menu_placeholder.empty()

    renderer = PAGE_RENDERERS.get(page)
    if renderer is None or not access.can_access(role, page):
        st.session_state.page = None
        st.rerun()
    _show_back_button()
    renderer(service)


def _menu_banner(service, role):
    try:
        if role == 'lab_tech':
            waiting = len(_cached_rows(
                service, events.PATIENTS_UPDATED, ('worklist', service.current_user['id']), service.labs.worklist
            ))
            return f"🧪 {waiting} lab request(s) awaiting results." if waiting else None
        if role == 'receptionist':
            waiting = len(_cached_rows(
                service, events.PATIENTS_UPDATED, ('billing_queue', ''), service.labs.billing_queue
            ))
            return f"💳 {waiting} lab request(s) awaiting payment." if waiting else None
    except ClinicError as e:
        st.error(str(e))
    return None


# Dashboard

def _render_dashboard_page(service):
    """Renders the dashboard with the role's key counts.

    Admins and receptionists also see the lab test catalog; patients see their own record.

    Args:
        service: The main application service instance.
    """
    user = service.current_user
    st.header("Dashboard")
    stats = service.dashboard_stats()
    cols = st.columns(4)
    cols[0].metric("Patients", stats['patients'])
    cols[1].metric("Awaiting Payment", stats['pendingPayment'])
    cols[2].metric("Awaiting Results", stats['pendingLab'])
    cols[3].metric("Appointments Today", stats['appointmentsToday'])

    if user['role'] in ('admin', 'receptionist'):
        st.subheader("Lab Test Catalog")
        tests = service.labs.list_tests()
        _show_table(tests, {'name': "Test", 'price': "Price", 'id': "Id"}, "The catalog is empty.")

    if user['role'] == 'patient':
        patients = service.get_patients()
        if not patients:
            st.info("No patient record is linked to your e-mail address yet. Please contact reception.")
        for patient in patients:
            _render_patient_record(service, patient)


# Patients

def _render_patients_page(service):
    """Renders the patient list, registration form and the selected patient's record.

    Args:
        service: The main application service instance.
    """
    user = service.current_user
    st.header("Patients")

    if user['role'] in ('receptionist', 'admin'):
        with st.expander("Register a New Patient"):
            _render_patient_form(service, None, form_key="register_patient_form")

    search = st.text_input("Search patients by name", key="patient_search")
    patients = _cached_rows(
        service, events.PATIENTS_UPDATED, ('patients', search, user['id']), lambda: service.get_patients(search)
    )
    _show_table(
        patients,
        {'name': "Name", 'dob': "Date of Birth", 'gender': "Gender", 'phoneNumber': "Phone",
         'status': "Status", 'lastVisit': "Last Visit"},
        "No patients found.",
    )
    if not patients:
        return

    names = {p['id']: f"{p['name']} ({p['id']})" for p in patients}
    selected = st.selectbox("Open a patient record", options=list(names), format_func=names.get,
                            key="selected_patient_id")
    st.divider()
    try:
        patient = service.get_patient(selected)
    except ClinicError as e:
        st.error(str(e))
        return
    _render_patient_record(service, patient)


def _render_patient_form(service, patient, form_key):
    """Renders the patient registration form, or the edit form when `patient` is given."""
    patient = patient or {}
    with st.form(form_key):
        name = st.text_input("Full Name", value=patient.get('name', ''))
        dob = st.date_input("Date of Birth", value=_parse_date(patient.get('dob')),
                            min_value=datetime.date(1900, 1, 1), max_value=datetime.date.today())
        gender = st.selectbox("Gender", GENDERS,
                              index=GENDERS.index(patient['gender']) if patient.get('gender') in GENDERS else 0)
        address = st.text_input("Address", value=patient.get('address', ''))
        phone = st.text_input("Phone Number", value=patient.get('phoneNumber', ''))
        email = st.text_input("Email (links the patient portal login)", value=patient.get('email') or '')
        contact_name = st.text_input("Emergency Contact Name", value=patient.get('emergencyContactName') or '')
        contact_phone = st.text_input("Emergency Contact Phone", value=patient.get('emergencyContactPhone') or '')
        status = None
        if patient:
            status = st.selectbox("Status", [ACTIVE, INACTIVE], index=0 if patient.get('status') == ACTIVE else 1)
        submitted = st.form_submit_button("Save Patient" if patient else "Register Patient")

        if submitted:
            details = {
                'name': name, 'dob': dob, 'gender': gender, 'address': address, 'phoneNumber': phone,
                'email': email, 'emergencyContactName': contact_name, 'emergencyContactPhone': contact_phone,
            }
            if patient:
                details['status'] = status
                _run_action(lambda: service.update_patient(patient['id'], details), "Patient updated.")
            else:
                _run_action(lambda: service.register_patient(details), f"Patient {name} registered.")


def _render_patient_record(service, patient):
    """Renders one patient's demographics, history, prescriptions and lab requests.

    Editing controls are shown only to the roles allowed to use them.

    Args:
        service: The main application service instance.
        patient (dict): The patient record.
    """
    user = service.current_user
    role = user['role']
    st.subheader(patient['name'])
    st.markdown(
        f"**Date of Birth:** {patient.get('dob') or 'N/A'} · **Gender:** {patient.get('gender') or 'N/A'} · "
        f"**Status:** {patient.get('status')}"
    )
    st.markdown(f"**Phone:** {patient.get('phoneNumber') or 'N/A'} · **Email:** {patient.get('email') or 'N/A'}")
    st.markdown(f"**Address:** {patient.get('address') or 'N/A'}")
    if patient.get('emergencyContactName'):
        st.markdown(
            f"**Emergency Contact:** {patient['emergencyContactName']} ({patient.get('emergencyContactPhone') or 'N/A'})"
        )

    if role in ('receptionist', 'admin'):
        with st.expander("Edit Patient Details"):
            _render_patient_form(service, patient, form_key=f"edit_patient_form_{patient['id']}")

    history_tab, rx_tab, lab_tab = st.tabs(["Medical History", "Prescriptions", "Lab Requests"])
    with history_tab:
        _render_history(service, patient, editable=role == 'doctor')
    with rx_tab:
        _render_prescriptions(service, patient, editable=role == 'doctor')
    with lab_tab:
        rows = access.visible_lab_requests(
            user, access.flatten_lab_requests([patient]), tab='all', patient_ids={patient['id']}
        )
        _render_lab_request_rows(service, rows, key_prefix=f"patient_{patient['id']}")
        if role == 'doctor':
            _render_request_test_form(service, patient)


def _render_history(service, patient, editable):
    entries = sorted(patient.get('medicalHistory', []), key=lambda e: e.get('date') or '', reverse=True)
    if not entries:
        st.info("No medical history recorded.")
    for entry in entries:
        st.markdown(f"**{entry.get('date')}** (by {entry.get('enteredBy', 'N/A')})")
        st.write(entry.get('notes', ''))
        if editable and st.button("Delete Entry", key=f"delete_hist_{entry['id']}"):
            _run_action(lambda: service.delete_history_entry(patient['id'], entry['id']), "History entry deleted.")
        st.divider()
    if editable:
        with st.form(f"add_history_form_{patient['id']}"):
            entry_date = st.date_input("Date", value=datetime.date.today())
            notes = st.text_area("Notes")
            if st.form_submit_button("Add History Entry"):
                _run_action(lambda: service.add_history_entry(patient['id'], entry_date, notes), "History entry added.")


def _render_prescriptions(service, patient, editable):
    prescriptions = patient.get('prescriptions', [])
    _show_table(
        prescriptions,
        {'datePrescribed': "Date", 'medicationName': "Medication", 'dosage': "Dosage",
         'frequency': "Frequency", 'duration': "Duration", 'prescribedBy': "Prescribed By"},
        "No prescriptions recorded.",
    )
    if not editable:
        return
    for prescription in prescriptions:
        if st.button(f"Delete {prescription['medicationName']} ({prescription['datePrescribed']})",
                     key=f"delete_rx_{prescription['id']}"):
            _run_action(lambda: service.delete_prescription(patient['id'], prescription['id']), "Prescription deleted.")
    with st.form(f"add_rx_form_{patient['id']}"):
        medication = st.text_input("Medication")
        dosage = st.text_input("Dosage")
        frequency = st.text_input("Frequency")
        duration = st.text_input("Duration")
        if st.form_submit_button("Add Prescription"):
            _run_action(
                lambda: service.add_prescription(patient['id'], medication, dosage, frequency, duration),
                "Prescription added.",
            )


def _render_request_test_form(service, patient):
    tests = service.labs.list_tests()
    if not tests:
        st.info("The lab test catalog is empty.")
        return
    labels = {t['id']: f"{t['name']} ({_format_money(t['price'])})" for t in tests}
    with st.form(f"request_test_form_{patient['id']}"):
        test_id = st.selectbox("Lab Test", options=list(labels), format_func=labels.get)
        if st.form_submit_button("Request Test"):
            _run_action(lambda: service.labs.request_test(patient['id'], test_id), "Lab test requested.")


# Lab requests

def _render_lab_request_rows(service, rows, key_prefix):
    """Renders lab requests as a table plus one expander per request with its actions.

    Args:
        service: The main application service instance.
        rows (list): Flattened lab requests.
        key_prefix (str): Keeps widget keys unique when the same request appears twice.
    """
    role = service.current_user['role']
    _show_table(rows, LAB_REQUEST_COLUMNS, "No lab requests found.")
    for row in rows:
        with st.expander(f"{row.get('testName')} for {row.get('patientName')} ({row.get('status')})"):
            st.markdown(
                f"**Requested:** {row.get('requestedDate')} by {row.get('requestedBy') or 'N/A'} · "
                f"**Price:** {_format_money(row.get('priceAtTimeOfRequest'))}"
            )
            if row.get('status') == COMPLETED:
                st.markdown(f"**Results ({row.get('resultDate') or 'N/A'}, {row.get('resultEnteredBy') or 'N/A'}):**")
                st.write(row.get('resultsSummary') or "N/A")
            targets = access.lab_request_targets(role, row)
            for label, target in targets.items():
                widget_key = f"{key_prefix}_{target}_{row['id']}"
                if target == COMPLETED:
                    with st.form(f"{widget_key}_form"):
                        summary = st.text_area("Results Summary")
                        if st.form_submit_button(label):
                            _run_action(lambda: service.labs.enter_results(row['id'], summary), "Results saved.")
                elif st.button(label, key=widget_key):
                    _run_action(lambda: service.labs.transition(row['id'], target), f"Lab request is now {target}.")


def _render_lab_requests_page(service):
    """Renders the lab request worklist with the role's status tabs and a search box.

    Args:
        service: The main application service instance.
    """
    user = service.current_user
    st.header("Lab Requests")
    search = st.text_input("Search by patient or test name", key="lab_request_search")
    tab_keys, _ = access.lab_request_tabs(user['role'])
    # Worklist count and tab rows share one cache entry.
    view = _cached_rows(
        service, events.PATIENTS_UPDATED, ('lab_requests', search, user['id']),
        lambda: {
            'actionable': service.labs.worklist(),
            'tabs': {tab: service.labs.list_requests(tab, search) for tab in tab_keys},
        },
    )
    if view['actionable']:
        st.info(f"{len(view['actionable'])} request(s) need your action.")

    containers = st.tabs([access.TAB_STATUSES[tab][0] for tab in tab_keys])
    for tab, container in zip(tab_keys, containers):
        with container:
            _render_lab_request_rows(service, view['tabs'][tab], key_prefix=tab)


# Billing

def _render_billing_page(service):
    """Renders the payment queue: requests awaiting payment and reminder drafting.

    Args:
        service: The main application service instance.
    """
    role = service.current_user['role']
    st.header("Billing")
    search = st.text_input("Search by patient or test name", key="billing_search")
    rows = service.labs.billing_queue(search)
    if not rows:
        st.info("No lab requests are awaiting payment.")
        return

    st.metric("Outstanding", _format_money(sum(r.get('priceAtTimeOfRequest') or 0 for r in rows)))
    _show_table(rows, LAB_REQUEST_COLUMNS, "No lab requests are awaiting payment.")
    for row in rows:
        with st.expander(f"{row['patientName']}: {row['testName']} ({_format_money(row.get('priceAtTimeOfRequest'))})"):
            targets = access.lab_request_targets(role, row)
            if not targets:
                st.caption("Payments are confirmed by reception.")
            for label, target in targets.items():
                if st.button(label, key=f"billing_{target}_{row['id']}"):
                    _run_action(lambda: service.labs.transition(row['id'], target), "Payment confirmed.")

    st.subheader("Payment Reminders")
    owing = {r['patientId']: r['patientName'] for r in rows}
    patient_id = st.selectbox("Patient", options=list(owing), format_func=owing.get, key="reminder_patient")
    if st.button("Draft Reminder"):
        try:
            with st.spinner("Drafting reminder..."):
                draft = service.draft_payment_reminder(patient_id)
        except ClinicError as e:
            st.error(str(e))
        else:
            if draft:
                st.session_state.reminder_draft = draft
            else:
                st.error("Could not generate a reminder. Check the Gemini API key and try again.")
    if st.session_state.get('reminder_draft'):
        st.text_area("Reminder Draft", value=st.session_state.reminder_draft, height=120)


# Appointments

def _render_appointment_actions(service, appointment, key_prefix):
    role = service.current_user['role']
    for label, target in access.appointment_targets(role, appointment).items():
        if st.button(label, key=f"{key_prefix}_{target}_{appointment['id']}"):
            _run_action(lambda: service.appointments.transition(appointment['id'], target),
                        f"Appointment is now {target}.")


def _render_appointments_page(service):
    """Renders booking and the front desk view of every appointment.

    Args:
        service: The main application service instance.
    """
    user = service.current_user
    st.header("Appointments")

    with st.expander("Book an Appointment"):
        patients = [p for p in service.get_patients() if p.get('status') == ACTIVE]
        doctors = service.get_active_doctors()
        if not patients or not doctors:
            st.info("Booking needs at least one active patient and one active doctor.")
        else:
            patient_names = {p['id']: p['name'] for p in patients}
            doctor_names = {
                d['id']: f"{d['fullName']} ({d['specialization']})" if d.get('specialization') else d['fullName']
                for d in doctors
            }
            with st.form("book_appointment_form"):
                patient_id = st.selectbox("Patient", options=list(patient_names), format_func=patient_names.get)
                doctor_id = st.selectbox("Doctor", options=list(doctor_names), format_func=doctor_names.get)
                day = st.date_input("Date", value=datetime.date.today(), min_value=datetime.date.today())
                slot = st.time_input("Time", value=datetime.time(9, 0))
                notes = st.text_area("Reason for Visit")
                if st.form_submit_button("Book Appointment"):
                    _run_action(lambda: service.appointments.book(patient_id, doctor_id, day, slot, notes),
                                "Appointment booked.")

    search = st.text_input("Search by patient, doctor or status", key="appointment_search")
    appointments = _cached_rows(
        service, events.APPOINTMENTS_UPDATED, ('appointments', search, user['id']),
        lambda: service.appointments.list_for_current_user(search),
    )
    _show_table(appointments, APPOINTMENT_COLUMNS, "No appointments found.")
    for appointment in appointments:
        with st.expander(
            f"{appointment['appointmentDate']} {appointment['appointmentTime']}: "
            f"{appointment['patientName']} with {appointment['doctorName']} ({appointment['status']})"
        ):
            _render_appointment_actions(service, appointment, key_prefix="front")
            if st.button("Draft Welcome Packet", key=f"welcome_{appointment['id']}"):
                try:
                    with st.spinner("Drafting welcome packet..."):
                        draft = service.draft_welcome_packet(appointment['id'])
                except ClinicError as e:
                    st.error(str(e))
                else:
                    if draft:
                        st.text_area("Welcome Packet Draft", value=draft, height=200, key=f"draft_{appointment['id']}")
                    else:
                        st.error("Could not generate a welcome packet. Check the Gemini API key and try again.")


def _render_my_appointments_page(service):
    """Renders the current doctor's or patient's appointments split into upcoming, today and past.

    Args:
        service: The main application service instance.
    """
    st.header("My Appointments")
    search = st.text_input("Search by patient, doctor or status", key="my_appointment_search")
    upcoming, todays, past = service.appointments.categorized(search)
    buckets = [("Upcoming", upcoming), ("Today", todays), ("Past", past)]
    containers = st.tabs([f"{label} ({len(rows)})" for label, rows in buckets])
    for (label, rows), container in zip(buckets, containers):
        with container:
            _show_table(rows, APPOINTMENT_COLUMNS, f"No {label.lower()} appointments.")
            for appointment in rows:
                if not access.appointment_actions(service.current_user['role'], appointment):
                    continue
                with st.expander(f"{appointment['appointmentTime']}: {appointment['patientName']} ({appointment['status']})"):
                    _render_appointment_actions(service, appointment, key_prefix=label.lower())


# Lab catalog

def _render_manage_lab_tests_page(service):
    """Renders the lab test catalog editor.

    Args:
        service: The main application service instance.
    """
    st.header("Lab Tests")
    with st.expander("Add a Lab Test"):
        with st.form("add_lab_test_form"):
            name = st.text_input("Test Name")
            price = st.number_input("Price", min_value=0.0, step=5.0)
            test_id = st.text_input("Id (optional, derived from the name when blank)")
            if st.form_submit_button("Add Test"):
                _run_action(lambda: service.labs.add_test(name, price, test_id or None), f"Lab test {name} added.")

    search = st.text_input("Search tests by name", key="lab_test_search")
    tests = _cached_rows(
        service, events.LAB_TESTS_UPDATED, ('lab_tests', search), lambda: service.labs.list_tests(search)
    )
    _show_table(tests, {'name': "Test", 'price': "Price", 'id': "Id"}, "No lab tests found.")
    for test in tests:
        with st.expander(f"{test['name']} ({_format_money(test['price'])})"):
            with st.form(f"edit_lab_test_form_{test['id']}"):
                new_name = st.text_input("Test Name", value=test['name'])
                new_price = st.number_input("Price", min_value=0.0, step=5.0, value=float(test['price']))
                if st.form_submit_button("Save Changes"):
                    _run_action(lambda: service.labs.update_test(test['id'], new_name, new_price), "Lab test updated.")
            if st.button("Delete Test", key=f"delete_test_{test['id']}"):
                _run_action(lambda: service.labs.delete_test(test['id']), f"Lab test {test['name']} deleted.")


# Users

def _render_user_management_entry(service, user_data):
    """Renders a single account in the admin panel with its action buttons.

    Args:
        service: The main application service instance.
        user_data (dict): The account, without password material.
    """
    user_id = user_data['id']
    st.markdown(f"**Name:** {user_data.get('fullName')} · **Role:** {user_data.get('role')} · "
                f"**Status:** {user_data.get('status')}")
    if user_data.get('specialization'):
        st.markdown(f"**Specialization:** {user_data['specialization']}")

    is_self = user_id == service.current_user['id']
    cols = st.columns(3)
    if cols[0].button("Edit User", key=f"edit_{user_id}"):
        st.session_state.editing_user_id = user_id
        st.rerun()
    next_status = INACTIVE if user_data.get('status') == ACTIVE else ACTIVE
    if cols[1].button("Deactivate" if next_status == INACTIVE else "Activate", key=f"status_{user_id}", disabled=is_self):
        _run_action(lambda: service.set_user_status(user_id, next_status), f"{user_data['username']} is now {next_status}.")
    if cols[2].button("Delete User", key=f"delete_{user_id}", disabled=is_self, type="secondary"):
        _run_action(lambda: service.delete_user(user_id), f"User {user_data['username']} deleted.")

    if st.session_state.get('editing_user_id') == user_id:
        with st.form(key=f"edit_form_{user_id}"):
            st.subheader(f"Editing {user_data.get('username')}")
            full_name = st.text_input("Full Name", value=user_data.get('fullName', ''))
            username = st.text_input("Email", value=user_data.get('username', ''))
            role = st.selectbox("Role", ROLES, index=ROLES.index(user_data['role']) if user_data.get('role') in ROLES else 0)
            specialization = st.text_input("Specialization (doctors)", value=user_data.get('specialization') or '')
            password = st.text_input("New Password (leave blank to keep)", type="password")
            confirm = st.text_input("Confirm New Password", type="password")
            if st.form_submit_button("Save Changes"):
                details = {
                    'fullName': full_name, 'username': username, 'role': role,
                    'specialization': specialization or None, 'password': password, 'confirmPassword': confirm,
                }
                st.session_state.editing_user_id = None
                _run_action(lambda: service.update_user(user_id, details), "User updated.")


def _render_users_page(service):
    """Renders the admin panel for account management.

    Args:
        service: The main application service instance.
    """
    st.header("User Management")
    col1, col2 = st.columns([2, 1])
    search = col1.text_input("Search by name or email", key="user_search")
    role_tab = col2.selectbox("Role", ['all'] + ROLES, key="user_role_tab")
    users = service.get_all_users(search, role_tab)
    if not users:
        st.info("No users found.")
    for user_data in users:
        badge = "" if user_data.get('status') == ACTIVE else " - ⏸ Inactive"
        with st.expander(f"**{user_data.get('username')}** ({user_data.get('role', '').replace('_', ' ')}){badge}"):
            _render_user_management_entry(service, user_data)

    st.divider()
    with st.expander("Create a New User"):
        with st.form("create_user_form"):
            full_name = st.text_input("Full Name")
            username = st.text_input("Email")
            role = st.selectbox("Role", ROLES)
            specialization = st.text_input("Specialization (doctors)")
            password = st.text_input("Password", type="password")
            confirm = st.text_input("Confirm Password", type="password")
            if st.form_submit_button("Create User"):
                _run_action(
                    lambda: service.create_user(full_name, username, role, password, confirm, specialization or None),
                    f"User '{username}' created successfully!",
                )


PAGE_RENDERERS = {
    'dashboard': _render_dashboard_page,
    'patients': _render_patients_page,
    'lab_requests': _render_lab_requests_page,
    'billing': _render_billing_page,
    'appointments': _render_appointments_page,
    'my_appointments': _render_my_appointments_page,
    'manage_lab_tests': _render_manage_lab_tests_page,
    'users': _render_users_page,
}
