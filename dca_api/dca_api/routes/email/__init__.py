"""Email delivery for allocation reports."""

from .allocation_report import EmailReportNotifier, render_report_email
from .gmail import GmailConfigError, is_gmail_configured, send_html_email

__all__ = [
    "EmailReportNotifier",
    "GmailConfigError",
    "is_gmail_configured",
    "render_report_email",
    "send_html_email",
]
