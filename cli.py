"""Non-interactive `--submit`: fill this month's gaps and mail next month's reminder."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from datetime import date

import mailer
import storage
from client import BambooHRClient
from controllers import (
    APP_PASSWORD_LENGTH,
    BAMBOOHR_API_URL,
    GMAIL_APP_PASSWORDS_URL,
    BulkSubmitError,
    require_email,
    submit_days,
)
from errors import ClockerError, CredentialError
from models import Credentials, MailConfig
from reconcile import find_missing_days, last_working_day
from utils import month_name, shift_month

logger = logging.getLogger(__name__)


def prompt(message: str) -> str:
    return input(message).strip()


def setup_credentials() -> Credentials:
    """Ask for a company domain and API key, then store them."""
    print("\n=== Clocker Setup ===\n")
    domain = prompt("Company domain (e.g. 'yourcompany' from yourcompany.bamboohr.com): ")
    if not domain:
        raise CredentialError("Company domain is required.")

    url = BAMBOOHR_API_URL.format(domain=domain)
    print(f"\nOpening {url} to generate an API key...")
    webbrowser.open(url)

    print("\nOnce you've created an API key, paste it below.\n")
    api_key = prompt("API Key: ")
    if not api_key:
        raise CredentialError("API key is required.")

    credentials = Credentials(company_domain=domain, api_key=api_key)
    storage.save_credentials(credentials)
    print("\nCredentials saved!\n")
    return credentials


def setup_mail(email: str) -> MailConfig:
    """Ask for a Gmail app password, verify it and store it."""
    print("\n=== Gmail App Password Setup ===\n")
    print("Reminders are sent through Gmail and need an App Password")
    print("(2-Step Verification must be enabled on the account).\n")
    print("Opening Google App Passwords page...")
    webbrowser.open(GMAIL_APP_PASSWORDS_URL)

    password = "".join(prompt("Paste your App Password: ").split())
    if not password:
        raise CredentialError("App password is required for email reminders.")
    if len(password) != APP_PASSWORD_LENGTH:
        raise CredentialError(f"App password must be 16 characters (got {len(password)})")

    config = MailConfig(email=email, app_password=password)
    print("\nVerifying credentials...")
    mailer.verify_mail_credentials(config)
    storage.save_mail_config(config)
    print("Gmail configuration saved!\n")
    return config


async def submit_missing(client: BambooHRClient, today: date) -> int:
    """Submit every missing day of the current month up to today."""
    schedule = storage.load_settings()

    print("Fetching timesheet data...")
    feeds = await client.fetch_month_feeds(today.year, today.month)
    missing = find_missing_days(today.year, today.month, feeds, today=today, include_future=False)

    if not missing:
        print("\nNo missing days to submit!")
        return 0

    print(f"\nSubmitting {len(missing)} missing day(s)...")
    await submit_days(
        missing,
        schedule,
        client.store_clock_entry,
        lambda done, day: print(f"  Submitted: {day.isoformat()}"),
    )
    print("\nAll entries submitted!")
    return len(missing)


async def schedule_reminder(client: BambooHRClient, config: MailConfig, today: date) -> bool:
    """Mail next month's reminder unless it already went out."""
    year, month = shift_month(today.year, today.month, 1)
    name = month_name(year, month)

    if storage.was_reminder_sent(year, month):
        print(f"\nReminder for {name} was already sent. Skipping.")
        return False

    print("\nFetching next month's holidays and time off...")
    feeds = await client.fetch_month_feeds(year, month)
    lwd = last_working_day(year, month, feeds)

    print(f"\nScheduling reminder email for {name}...")
    print(f"Last working day: {mailer.format_reminder_date(lwd)}")
    await asyncio.to_thread(mailer.send_reminder_email, config, lwd, name)
    storage.mark_reminder_sent(year, month)
    print(f"Reminder email sent to {config.email}")
    return True


async def run_submit(today: date | None = None) -> int:
    """Entry point for `clocker --submit`. Returns the process exit code."""
    today = today or date.today()
    try:
        credentials = storage.load_credentials() or setup_credentials()
    except CredentialError as e:
        print(e)
        return 1

    client = BambooHRClient(credentials)
    try:
        print("Fetching employee info...")
        employee = await client.get_employee()
        try:
            email = require_email(employee.work_email)
        except CredentialError:
            print("Could not find employee work email in BambooHR.")
            return 1

        config = storage.load_mail_config() or setup_mail(email)
        await submit_missing(client, today)
        await schedule_reminder(client, config, today)
    except BulkSubmitError as e:
        print(f"\nSubmission stopped at {e.failed_day.isoformat()} after {e.completed} day(s): {e}")
        return 1
    except ClockerError as e:
        logger.error("Submit failed: %s", e)
        print(f"\nError: {e}")
        return 1
    finally:
        await client.aclose()
    return 0
