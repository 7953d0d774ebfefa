"""HTML email rendering and delivery for allocation reports."""

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from dca_api.domain.entities.allocation import AllocationReport
from dca_api.domain.services.css_scoring import css_interpretation

from .gmail import send_html_email

logger = logging.getLogger(__name__)

# Template directory (relative to dca_api package)
TEMPLATE_DIR = Path(__file__).parent.parent.parent / "templates"
REPORT_TEMPLATE = "allocation_report_email.html.j2"


def get_jinja_env() -> Environment:
    """Get Jinja2 environment for loading templates."""
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )


def build_subject(report: AllocationReport) -> str:
    return (
        f"Weekly CSS Allocation {report.report_date}: "
        f"${report.total_amount:.0f} ({report.market_condition.value})"
    )


def render_report_email(report: AllocationReport) -> str:
    """Render the allocation report as an HTML email body."""
    data: dict[str, Any] = report.to_dict()
    template = get_jinja_env().get_template(REPORT_TEMPLATE)
    return template.render(
        report=data,
        report_date=report.report_date,
        market_interpretation=css_interpretation(report.market_css),
        degraded=report.provenance.degraded,
    )


class EmailReportNotifier:
    """ReportNotifier that emails the rendered report through Gmail."""

    def send(self, report: AllocationReport) -> bool:
        """Render and send. Raises GmailConfigError or SMTP errors on failure."""
        html_body = render_report_email(report)
        logger.debug(f"[Email] Rendered report body: {len(html_body)} chars")
        return send_html_email(subject=build_subject(report), html_body=html_body)
