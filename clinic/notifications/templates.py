"""Texts of in-app notifications and emails for appointment events."""

from dataclasses import dataclass
from html import escape

from clinic.core.models import Appointment, NotificationType


@dataclass(frozen=True)
class EmailContent:
    """Rendered email."""

    subject: str
    html_body: str
    plain_text_body: str


@dataclass(frozen=True)
class _EventTexts:
    title: str
    heading: str
    color: str
    background: str
    intro: str
    closing: tuple[str, ...]
    date_label: str = "Date"
    time_label: str = "Time"
    with_notes: bool = True
    checklist: tuple[str, ...] = ()


_EVENTS: dict[NotificationType, _EventTexts] = {
    NotificationType.APPOINTMENT_CREATED: _EventTexts(
        title="Appointment Confirmed",
        heading="Appointment Confirmation",
        color="#2c5aa0",
        background="#f8f9fa",
        intro="Your appointment has been successfully scheduled. "
        "Here are the details:",
        closing=(
            "Please arrive 15 minutes before your appointment time.",
            "Thank you for choosing {clinic}!",
        ),
    ),
    NotificationType.APPOINTMENT_MODIFIED: _EventTexts(
        title="Appointment Updated",
        heading="Appointment Updated",
        color="#f39c12",
        background="#fff3cd",
        intro="Your appointment has been updated. Here are the current details:",
        closing=(
            "Please make note of these changes and arrive 15 minutes "
            "before your appointment time.",
            "Thank you for choosing {clinic}!",
        ),
    ),
    NotificationType.APPOINTMENT_REMINDER: _EventTexts(
        title="Appointment Reminder",
        heading="Appointment Reminder",
        color="#17a2b8",
        background="#d1ecf1",
        intro="This is a friendly reminder that you have an appointment in 1 hour:",
        closing=("Thank you for choosing {clinic}!",),
        with_notes=False,
        checklist=(
            "Arrive 15 minutes early",
            "Bring your ID and insurance card",
            "Bring any relevant medical documents",
        ),
    ),
    NotificationType.APPOINTMENT_CANCELLED: _EventTexts(
        title="Appointment Cancelled",
        heading="Appointment Cancelled",
        color="#dc3545",
        background="#f8d7da",
        intro="We regret to inform you that your appointment has been cancelled:",
        closing=(
            "Please contact us to reschedule your appointment at your convenience.",
            "We apologize for any inconvenience caused.",
            "Thank you for your understanding.",
        ),
        date_label="Original Date",
        time_label="Original Time",
        with_notes=False,
    ),
}

SUPPORTED_EVENTS = frozenset(_EVENTS)


def _texts(event: NotificationType) -> _EventTexts:
    try:
        return _EVENTS[event]
    except KeyError:
        raise ValueError(f"No notification template for {event.value}") from None


def notification_title(event: NotificationType) -> str:
    """Title of the in-app notification."""
    return _texts(event).title


def notification_message(event: NotificationType, appointment: Appointment) -> str:
    """Body of the in-app notification."""
    _texts(event)
    doctor = appointment.doctor_name
    when = f"{appointment.date} at {appointment.time}"
    if event == NotificationType.APPOINTMENT_CREATED:
        return f"Your appointment with {doctor} on {when} has been confirmed."
    if event == NotificationType.APPOINTMENT_MODIFIED:
        return f"Your appointment with {doctor} has been updated. New date: {when}."
    if event == NotificationType.APPOINTMENT_REMINDER:
        return (
            f"Reminder: You have an appointment with {doctor} "
            f"in 1 hour at {appointment.time}."
        )
    return f"Your appointment with {doctor} on {when} has been cancelled."


def _details(texts: _EventTexts, appointment: Appointment) -> list[tuple[str, str]]:
    details = [
        ("Doctor", f"{appointment.doctor_name} ({appointment.doctor_specialization})"),
        (texts.date_label, appointment.date),
        (texts.time_label, appointment.time),
        ("Reason", appointment.reason),
    ]
    if texts.with_notes and appointment.notes:
        details.append(("Notes", appointment.notes))
    return details


def render_email(
    event: NotificationType,
    appointment: Appointment,
    clinic_name: str,
) -> EmailContent:
    """
    Render subject, HTML and plain text bodies for an appointment event.

    Args:
        event: Appointment lifecycle event.
        appointment: Appointment the email is about.
        clinic_name: Name shown in the subject and signature.

    Returns:
        The rendered email.

    Raises:
        ValueError: If there is no template for ``event``.
    """
    texts = _texts(event)
    details = _details(texts, appointment)
    closing = [line.format(clinic=clinic_name) for line in texts.closing]
    footer = f"{clinic_name} - Your Health, Our Priority"

    html = [
        "<!DOCTYPE html>",
        f'<html><head><meta charset="UTF-8"><title>{texts.heading}</title></head>',
        '<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">',
        '<div style="max-width: 600px; margin: 0 auto; padding: 20px;">',
        f'<h2 style="color: {texts.color};">{texts.title}</h2>',
        f"<p>Dear {escape(appointment.client_name)},</p>",
        f"<p>{texts.intro}</p>",
        f'<div style="background-color: {texts.background}; padding: 15px; '
        f'border-radius: 5px; margin: 20px 0;">',
    ]
    html += [f"<p><strong>{k}:</strong> {escape(v)}</p>" for k, v in details]
    html.append("</div>")
    if texts.checklist:
        html.append("<p><strong>Please remember to:</strong></p>")
        html.append("<ul>")
        html += [f"<li>{item}</li>" for item in texts.checklist]
        html.append("</ul>")
    html += [f"<p>{escape(line)}</p>" for line in closing]
    html += [
        '<hr style="margin: 30px 0;">',
        f'<p style="font-size: 12px; color: #666;">{escape(footer)}</p>',
        "</div></body></html>",
    ]

    heading = texts.title.upper()
    plain = [
        heading,
        "=" * len(heading),
        f"Dear {appointment.client_name},",
        "",
        texts.intro,
        "",
    ]
    plain += [f"{k}: {v}" for k, v in details]
    plain.append("")
    if texts.checklist:
        plain.append("Please remember to:")
        plain += [f"- {item}" for item in texts.checklist]
        plain.append("")
    for line in closing:
        plain += [line, ""]
    plain.append(footer)

    return EmailContent(
        subject=f"{texts.heading} - {clinic_name}",
        html_body="\n".join(html),
        plain_text_body="\n".join(plain),
    )
