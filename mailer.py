"""Gmail SMTP access for reminder emails."""

from __future__ import annotations

import logging
import smtplib
from datetime import date, datetime, time, timezone
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from errors import CredentialError, NetworkError
from models import MailConfig

logger = logging.getLogger(__name__)

SMTP_SERVER = "smtp.gmail.com"
SMTP_PORT = 587
SUBMIT_COMMAND = "clocker --submit"


def _connect(config: MailConfig) -> smtplib.SMTP:
    try:
        server = smtplib.SMTP(SMTP_SERVER, SMTP_PORT, timeout=30)
        server.starttls()
        server.login(config.email, config.app_password)
    except smtplib.SMTPAuthenticationError as e:
        raise CredentialError("Invalid credentials - could not connect to Gmail") from e
    except (smtplib.SMTPException, OSError) as e:
        raise NetworkError(f"Could not reach Gmail: {e}") from e
    return server


def verify_mail_credentials(config: MailConfig) -> None:
    """Log in and out again; raises CredentialError on bad credentials."""
    server = _connect(config)
    server.quit()
    logger.info("Verified Gmail credentials for %s", config.email)


def format_reminder_date(day: date) -> str:
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"


def _ics_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def create_calendar_event(last_working_day: date, month: str, email: str,
                          submit_command: str = SUBMIT_COMMAND,
                          now: datetime | None = None) -> str:
    """Build an iCalendar REQUEST for 09:00-09:30 local time on the given day."""
    start = datetime.combine(last_working_day, time(9, 0)).astimezone()
    end = datetime.combine(last_working_day, time(9, 30)).astimezone()
    now = now or datetime.now(timezone.utc)

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Clocker//Timesheet Reminder//EN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:clocker-{last_working_day.isoformat()}@clocker.local",
        f"DTSTAMP:{_ics_timestamp(now)}",
        f"DTSTART:{_ics_timestamp(start)}",
        f"DTEND:{_ics_timestamp(end)}",
        f"SUMMARY:Submit {month} Timesheet",
        f"DESCRIPTION:Last working day of {month}. Run: {submit_command}",
        f"ORGANIZER;CN=Clocker:mailto:{email}",
        f"ATTENDEE;ROLE=REQ-PARTICIPANT;PARTSTAT=NEEDS-ACTION;RSVP=TRUE:mailto:{email}",
        "SEQUENCE:0",
        "STATUS:CONFIRMED",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def create_reminder_email(month: str, last_working_day: date,
                          submit_command: str = SUBMIT_COMMAND) -> tuple[str, str, str]:
    """Returns (subject, text, html)."""
    when = format_reminder_date(last_working_day)
    subject = f"Timesheet Reminder - {month}"

    text = (
        "Timesheet Reminder\n\n"
        f"Accept the calendar invite attached to this email to be reminded on {when} "
        f"to submit your {month} timesheet.\n\n"
        f"To submit your timesheet, run:\n\n{submit_command}\n\n"
        "This command submits any missing days and schedules the next reminder automatically."
    )

    html = f"""<!DOCTYPE html>
<html>
<body style="font-family: sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="color: #6366f1;">Timesheet Reminder</h1>
    <div style="background: #f0fdf4; border: 1px solid #86efac; border-radius: 8px; padding: 16px;">
      <strong>Accept the calendar invite</strong> attached to this email to be reminded on
      <strong>{when}</strong> to submit your <strong>{month}</strong> timesheet.
    </div>
    <p>To submit your timesheet, run:</p>
    <pre style="background: #1e1e2e; color: #a6e3a1; padding: 12px 16px; border-radius: 8px;">{submit_command}</pre>
    <p>This command submits any missing days and schedules the next reminder automatically.</p>
  </div>
</body>
</html>"""

    return subject, text, html


def send_reminder_email(config: MailConfig, last_working_day: date, month: str,
                        submit_command: str = SUBMIT_COMMAND) -> None:
    """Send the reminder with its calendar invite to the configured address."""
    subject, text, html = create_reminder_email(month, last_working_day, submit_command)
    ics = create_calendar_event(last_working_day, month, config.email, submit_command)

    msg = MIMEMultipart("mixed")
    msg["Subject"] = subject
    msg["From"] = config.email
    msg["To"] = config.email

    body = MIMEMultipart("alternative")
    body.attach(MIMEText(text, "plain"))
    body.attach(MIMEText(html, "html"))
    invite = MIMEText(ics, "calendar")
    invite.set_param("method", "REQUEST")
    body.attach(invite)
    msg.attach(body)

    attachment = MIMEBase("application", "ics", name="timesheet-reminder.ics")
    attachment.set_payload(ics)
    attachment.add_header("Content-Disposition", "attachment", filename="timesheet-reminder.ics")
    msg.attach(attachment)

    server = _connect(config)
    try:
        server.send_message(msg)
    except smtplib.SMTPException as e:
        raise NetworkError(f"Could not send reminder: {e}") from e
    finally:
        server.quit()

    logger.info("Reminder sent for %s (%s)", month, last_working_day)
