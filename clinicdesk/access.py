"""
Role-gated queries: which records and actions each role gets to see.

Everything here is a pure function over lists of records. Nothing is loaded or
written. The action lists are derived from the workflow tables in
`clinicdesk.workflow`, so a control is only ever offered for an edge the engine
would accept.
"""
# clinicdesk/access.py

from datetime import date

from clinicdesk.models import CANCELLED, COMPLETED, PENDING, PENDING_PAYMENT
from clinicdesk.workflow import APPOINTMENT_WORKFLOW, LAB_REQUEST_WORKFLOW

# Lab request tabs: tab key -> (label, statuses shown; None means every visible status)
TAB_STATUSES = {
    'all': ('All', None),
    'pending_payment': ('Pending Payment', {PENDING_PAYMENT}),
    'pending': ('Pending', {PENDING}),
    'completed': ('Completed', {COMPLETED}),
    'cancelled': ('Cancelled', {CANCELLED}),
}

# role -> tabs in display order and the tab opened by default
LAB_REQUEST_TABS = {
    'admin': {'tabs': ['all', 'pending_payment', 'pending', 'completed', 'cancelled'], 'default': 'all'},
    'doctor': {'tabs': ['all', 'pending_payment', 'pending', 'completed', 'cancelled'], 'default': 'all'},
    'receptionist': {'tabs': ['pending_payment', 'pending', 'all'], 'default': 'pending_payment'},
    'lab_tech': {'tabs': ['pending', 'completed', 'all'], 'default': 'pending'},
    'patient': {'tabs': ['all'], 'default': 'all'},
}

# Roles whose view of lab requests is limited to some statuses. Others see all.
ROLE_VISIBLE_STATUSES = {
    'lab_tech': {PENDING, COMPLETED},
}

PAGE_ACCESS = {
    'dashboard': {'admin', 'doctor', 'lab_tech', 'receptionist', 'patient'},
    'patients': {'admin', 'doctor', 'lab_tech', 'receptionist'},
    'lab_requests': {'admin', 'doctor', 'lab_tech', 'receptionist', 'patient'},
    'billing': {'admin', 'receptionist'},
    'appointments': {'admin', 'receptionist'},
    'my_appointments': {'doctor', 'patient'},
    'manage_lab_tests': {'admin'},
    'users': {'admin'},
}

STAFF_ROLES = {'admin', 'doctor', 'lab_tech', 'receptionist'}


def can_access(role, page):
    """Returns True if `role` may open `page`."""
    return role in PAGE_ACCESS.get(page, set())


def pages_for(role):
    return [page for page, roles in PAGE_ACCESS.items() if role in roles]


def lab_request_tabs(role):
    """Returns (tab keys, default tab) for a role; unknown roles get no tabs."""
    config = LAB_REQUEST_TABS.get(role)
    if not config:
        return [], None
    return list(config['tabs']), config['default']


def own_patient_ids(user, patients):
    """Ids of the patient records linked to a patient login by e-mail."""
    if not user:
        return set()
    username = (user.get('username') or '').lower()
    return {p['id'] for p in patients if username and (p.get('email') or '').lower() == username}


def visible_patients(user, patients, search=''):
    """Filters patients for the current user: staff see all, patients only themselves."""
    role = user.get('role') if user else None
    if role in STAFF_ROLES:
        rows = list(patients)
    elif role == 'patient':
        own = own_patient_ids(user, patients)
        rows = [p for p in patients if p['id'] in own]
    else:
        rows = []
    term = (search or '').strip().lower()
    if term:
        rows = [p for p in rows if term in (p.get('name') or '').lower()]
    return rows


def flatten_lab_requests(patients):
    """Lists every lab request with its patient's id and name, newest request first.

    Args:
        patients (list): Patient records with nested `labRequests`.

    Returns:
        list: Copies of the request dicts with `patientId` and `patientName` set.
    """
    rows = []
    for patient in patients:
        for request in patient.get('labRequests', []):
            row = dict(request)
            row['patientId'] = patient['id']
            row['patientName'] = request.get('patientName') or patient.get('name')
            rows.append(row)
    rows.sort(key=lambda r: r.get('requestedDate') or '', reverse=True)
    return rows


def lab_request_actions(role, request):
    """Action labels `role` may take on `request` right now."""
    return [t.label for t in LAB_REQUEST_WORKFLOW.allowed_transitions(role, request.get('status'))]


def lab_request_targets(role, request):
    """Maps each action label available to `role` to the status it leads to."""
    return {t.label: t.target for t in LAB_REQUEST_WORKFLOW.allowed_transitions(role, request.get('status'))}


def _matches_search(row, term, fields):
    return any(term in (row.get(field) or '').lower() for field in fields)


def visible_lab_requests(user, rows, tab=None, search='', patient_ids=None):
    """Filters flattened lab requests for a user and a tab.

    Args:
        user (dict): The session user (`role`, `username`).
        rows (list): Output of `flatten_lab_requests`.
        tab (str): A key of `TAB_STATUSES`; defaults to the role's default tab.
        search (str): Case-insensitive match on patient or test name.
        patient_ids (set): For patient logins, the ids of their own patient records.

    Returns:
        list: The rows the user may see on that tab.
    """
    role = user.get('role') if user else None
    tabs, default = lab_request_tabs(role)
    if not tabs:
        return []
    tab = tab or default
    if tab not in tabs:
        return []

    visible = ROLE_VISIBLE_STATUSES.get(role)
    _, tab_statuses = TAB_STATUSES[tab]
    result = []
    for row in rows:
        status = row.get('status')
        if visible is not None and status not in visible:
            continue
        if tab_statuses is not None and status not in tab_statuses:
            continue
        result.append(row)

    if role == 'patient':
        own = patient_ids or set()
        result = [r for r in result if r.get('patientId') in own]

    term = (search or '').strip().lower()
    if term:
        result = [r for r in result if _matches_search(r, term, ('patientName', 'testName'))]
    return result


def actionable_lab_requests(user, rows):
    """The role's worklist: visible requests with at least one available action."""
    role = user.get('role') if user else None
    return [r for r in visible_lab_requests(user, rows, tab='all') if lab_request_actions(role, r)]


def billing_rows(rows, search=''):
    """Requests awaiting payment, newest first."""
    result = [r for r in rows if r.get('status') == PENDING_PAYMENT]
    term = (search or '').strip().lower()
    if term:
        result = [r for r in result if _matches_search(r, term, ('patientName', 'testName'))]
    return result


def visible_appointments(user, appointments, patient_ids=None, search=''):
    """Filters appointments for the current user.

    Doctors see their own, receptionists and admins see all, patients see the
    appointments of their linked patient records, lab techs see none.
    """
    role = user.get('role') if user else None
    if role in ('admin', 'receptionist'):
        rows = list(appointments)
    elif role == 'doctor':
        rows = [a for a in appointments if a.get('doctorId') == user.get('id')]
    elif role == 'patient':
        own = patient_ids or set()
        rows = [a for a in appointments if a.get('patientId') in own]
    else:
        rows = []
    term = (search or '').strip().lower()
    if term:
        rows = [a for a in rows if _matches_search(a, term, ('patientName', 'doctorName', 'status'))]
    return sorted(rows, key=lambda a: a.get('createdAt') or '', reverse=True)


def appointment_actions(role, appointment):
    return [t.label for t in APPOINTMENT_WORKFLOW.allowed_transitions(role, appointment.get('status'))]


def appointment_targets(role, appointment):
    return {t.label: t.target for t in APPOINTMENT_WORKFLOW.allowed_transitions(role, appointment.get('status'))}


def _parse_date(value):
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def categorize_appointments(appointments, today=None):
    """Splits appointments into upcoming, today and past.

    Appointments with an unparseable date are left out of every bucket.

    Returns:
        tuple: (upcoming ascending by date/time, today ascending by time, past descending)
    """
    today = today or date.today()
    upcoming, todays, past = [], [], []
    for appointment in appointments:
        day = _parse_date(appointment.get('appointmentDate'))
        if day is None:
            continue
        if day > today:
            upcoming.append(appointment)
        elif day == today:
            todays.append(appointment)
        else:
            past.append(appointment)

    def by_slot(a):
        return (a.get('appointmentDate') or '', a.get('appointmentTime') or '')

    upcoming.sort(key=by_slot)
    todays.sort(key=lambda a: a.get('appointmentTime') or '')
    past.sort(key=by_slot, reverse=True)
    return upcoming, todays, past


def search_users(users, search='', role_tab='all'):
    term = (search or '').strip().lower()
    rows = []
    for user in users:
        if role_tab != 'all' and user.get('role') != role_tab:
            continue
        if term and not _matches_search(user, term, ('fullName', 'username')):
            continue
        rows.append(user)
    return rows


def search_lab_tests(tests, search=''):
    term = (search or '').strip().lower()
    rows = [t for t in tests if not term or term in (t.get('name') or '').lower()]
    return sorted(rows, key=lambda t: t.get('name') or '')
