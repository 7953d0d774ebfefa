"""Tests for report email rendering and Gmail delivery."""

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from dca_api.routes.email import EmailReportNotifier, render_report_email
from dca_api.routes.email.allocation_report import build_subject
from dca_api.routes.email.gmail import (
    GmailConfigError,
    get_gmail_config,
    is_gmail_configured,
    send_html_email,
)


@pytest.fixture
def gmail_env(monkeypatch):
    monkeypatch.setenv("GMAIL_USER", "test@gmail.com")
    monkeypatch.setenv("GMAIL_APP_PASSWORD", "test-password")
    monkeypatch.setenv("REPORT_EMAIL_TO", "recipient@example.com")
    monkeypatch.setenv("REPORT_EMAIL_CC", "cc1@example.com, cc2@example.com")


# =============================================================================
# Test Gmail Configuration
# =============================================================================


class TestGmailConfig:
    """Tests for Gmail configuration helper."""

    def test_get_gmail_config_success(self, gmail_env):
        """Successfully get Gmail config from environment."""
        config = get_gmail_config()

        assert config["user"] == "test@gmail.com"
        assert config["password"] == "test-password"
        assert config["to"] == "recipient@example.com"
        assert config["cc"] == ["cc1@example.com", "cc2@example.com"]
        assert is_gmail_configured() is True

    def test_get_gmail_config_no_cc(self, gmail_env, monkeypatch):
        """Get Gmail config with empty CC."""
        monkeypatch.delenv("REPORT_EMAIL_CC", raising=False)

        assert get_gmail_config()["cc"] == []

    @pytest.mark.parametrize("missing", ["GMAIL_USER", "GMAIL_APP_PASSWORD", "REPORT_EMAIL_TO"])
    def test_missing_variable_raises(self, gmail_env, monkeypatch, missing):
        """Each required variable is named in the error."""
        monkeypatch.delenv(missing)

        with pytest.raises(GmailConfigError, match=missing):
            get_gmail_config()
        assert is_gmail_configured() is False


# =============================================================================
# Test SMTP send
# =============================================================================


class TestSendHtmlEmail:
    """Tests for the SMTP_SSL exchange."""

    @patch("dca_api.routes.email.gmail.smtplib.SMTP_SSL")
    def test_sends_to_recipient_and_cc(self, mock_smtp, gmail_env):
        server = MagicMock()
        mock_smtp.return_value.__enter__.return_value = server

        assert send_html_email("Subject", "<p>body</p>") is True

        mock_smtp.assert_called_once_with("smtp.gmail.com", 465)
        server.login.assert_called_once_with("test@gmail.com", "test-password")
        sender, recipients, message = server.sendmail.call_args.args
        assert sender == "test@gmail.com"
        assert recipients == ["recipient@example.com", "cc1@example.com", "cc2@example.com"]
        assert "Subject: Subject" in message

    @patch("dca_api.routes.email.gmail.smtplib.SMTP_SSL")
    def test_missing_config_never_connects(self, mock_smtp):
        with pytest.raises(GmailConfigError):
            send_html_email("Subject", "<p>body</p>")
        mock_smtp.assert_not_called()


# =============================================================================
# Test report rendering
# =============================================================================


class TestReportEmail:
    """Tests for the allocation report template and notifier."""

    def test_body_contains_expected_sections(self, sample_report):
        body = render_report_email(sample_report)

        assert "Weekly CSS Allocation" in body
        assert sample_report.report_date in body
        assert "Market CSS" in body
        assert "Technical data" in body
        assert "Recommendations" in body
        for allocation in sample_report.allocations:
            assert allocation.symbol in body
        assert "Budget range" in body

    def test_body_marks_unavailable_sentiment(self, sample_report):
        report = replace(sample_report, sentiment_unavailable=True, sentiment_index=None)

        body = render_report_email(report)

        assert "unavailable (weights redistributed)" in body

    def test_body_for_empty_report(self, sample_report):
        report = replace(sample_report, allocations=[], technical_data=[], total_amount=0)

        body = render_report_email(report)

        assert "No asset could be analysed this week." in body
        assert "Technical data" not in body

    def test_subject(self, sample_report):
        subject = build_subject(sample_report)
        assert subject.startswith(f"Weekly CSS Allocation {sample_report.report_date}")
        assert sample_report.market_condition.value in subject

    @patch("dca_api.routes.email.allocation_report.send_html_email")
    def test_notifier_sends_rendered_report(self, mock_send_email, sample_report):
        mock_send_email.return_value = True

        assert EmailReportNotifier().send(sample_report) is True

        kwargs = mock_send_email.call_args.kwargs
        assert kwargs["subject"] == build_subject(sample_report)
        assert "Weekly CSS Allocation" in kwargs["html_body"]

    def test_notifier_propagates_config_error(self, sample_report):
        with pytest.raises(GmailConfigError):
            EmailReportNotifier().send(sample_report)
