"""
This module provides an interface to the Google Gemini large language model.

It is responsible for:
- Configuring the Gemini API with the key from the environment or Streamlit secrets.
- Initializing the generative model on first use.
- Drafting patient communications: lab payment reminders and appointment welcome packets.

Both helpers are black boxes to the rest of the app: they return the drafted text,
or None when the model is unavailable or the call fails. Drafts are shown to staff
for review and never sent automatically.
"""
# clinicdesk/gemini.py

import logging

import google.generativeai as genai

from clinicdesk import config

logger = logging.getLogger(__name__)

# Initialized lazily by `_get_model` so the app runs without an API key.
model = None


def _get_model():
    global model
    if model is None:
        api_key = config.gemini_api_key()
        if not api_key:
            logger.warning("GEMINI_API_KEY is not configured; AI drafting is unavailable.")
            return None
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(config.GEMINI_MODEL)
    return model


def _generate(prompt: str, purpose: str) -> str | None:
    current = _get_model()
    if current is None:
        return None
    try:
        response = current.generate_content(prompt)
        return response.text.strip()
    except Exception as e:
        logger.error("Error generating %s from Gemini API: %s", purpose, e)
        return None


def generate_payment_reminder(patient_name: str, amount_due, due_date: str, clinic_name: str) -> str | None:
    """Drafts a short, polite reminder about unpaid lab tests.

    Args:
        patient_name: Name of the patient.
        amount_due: Total of the unpaid lab request prices.
        due_date: Date the payment is due, YYYY-MM-DD.
        clinic_name: Name of the clinic signing the reminder.

    Returns:
        The drafted reminder, or None if an error occurs.
    """
    prompt = f"""
    You are a helpful assistant for {clinic_name}. Write a payment reminder to a patient.

    Patient name: {patient_name}
    Amount due: ${amount_due}
    Due date: {due_date}

    The reminder must be professional and courteous, at most two sentences long, mention the amount
    and the due date, and must not ask for any personal or payment information.
    Only print the reminder and nothing else.

    Reminder:
    """
    return _generate(prompt, 'payment reminder')


def generate_welcome_packet(patient_name: str, clinic_name: str, doctor_name: str, appointment_date: str,
                            clinic_phone_number: str, clinic_address: str) -> str | None:
    """Drafts a welcome message for a patient's upcoming appointment.

    Returns:
        The drafted welcome packet, or None if an error occurs.
    """
    prompt = f"""
    You are a friendly assistant for {clinic_name}. Write a welcome packet for a patient's upcoming visit.

    Patient name: {patient_name}
    Doctor: {doctor_name}
    Appointment: {appointment_date}
    Clinic phone: {clinic_phone_number}
    Clinic address: {clinic_address}

    Welcome the patient warmly, confirm the appointment details, ask them to arrive 15 minutes early
    with a photo ID and a list of current medications, and tell them to call the clinic phone number
    to reschedule. Keep it under 150 words. Only print the welcome packet and nothing else.

    Welcome packet:
    """
    return _generate(prompt, 'welcome packet')
