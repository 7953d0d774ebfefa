"""Gmail SMTP helper for sending HTML emails."""

import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)

GMAIL_SMTP_HOST = "smtp.gmail.com"
GMAIL_SMTP_PORT = 465


class GmailConfigError(Exception):
    """Raised when Gmail configuration is missing or invalid."""


def get_gmail_config() -> dict[str, str | list[str]]:
    """Get Gmail configuration from environment variables.

    Returns:
        dict with keys: user, password, to, cc (possibly empty)

    Raises:
        GmailConfigError: If required environment variables are missing.
    """
    user = os.environ.get("GMAIL_USER")
    password = os.environ.get("GMAIL_APP_PASSWORD")
    to = os.environ.get("REPORT_EMAIL_TO")
    cc_str = os.environ.get("REPORT_EMAIL_CC", "")

    if not user:
        raise GmailConfigError("GMAIL_USER environment variable is required")
    if not password:
        raise GmailConfigError("GMAIL_APP_PASSWORD environment variable is required")
    if not to:
        raise GmailConfigError("REPORT_EMAIL_TO environment variable is required")

    cc = [addr.strip() for addr in cc_str.split(",") if addr.strip()]

    return {"user": user, "password": password, "to": to, "cc": cc}


def is_gmail_configured() -> bool:
    try:
        get_gmail_config()
    except GmailConfigError:
        return False
    return True


def send_html_email(subject: str, html_body: str) -> bool:
    """Send an HTML email via Gmail SMTP (SMTP_SSL, port 465).

    Configuration comes from GMAIL_USER, GMAIL_APP_PASSWORD,
    REPORT_EMAIL_TO and the optional comma separated REPORT_EMAIL_CC.

    Returns:
        True if the email was sent.

    Raises:
        GmailConfigError: If required configuration is missing.
        smtplib.SMTPException: If the SMTP exchange fails.
    """
    config = get_gmail_config()
    cc_list: list[str] = config["cc"]  # type: ignore[assignment]

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = config["user"]
    msg["To"] = config["to"]
    if cc_list:
        msg["Cc"] = ", ".join(cc_list)
    msg.attach(MIMEText(html_body, "html"))

    recipients = [config["to"], *cc_list]

    logger.info(f"[Email] Sending to {config['to']} (CC: {cc_list})")

    with smtplib.SMTP_SSL(GMAIL_SMTP_HOST, GMAIL_SMTP_PORT) as server:
        server.login(config["user"], config["password"])  # type: ignore[arg-type]
        server.sendmail(config["user"], recipients, msg.as_string())  # type: ignore[arg-type]

    logger.info("[Email] Sent successfully")
    return True
