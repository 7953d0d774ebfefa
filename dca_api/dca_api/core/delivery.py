"""Best-effort delivery of a finished report (store, then email).

Each step runs independently: a storage failure does not prevent the
email and an email failure does not undo the stored snapshot. Neither
ever fails the request that produced the report.
"""

import logging

from dca_api.core.protocols import ReportNotifier, ReportStore
from dca_api.domain.entities.allocation import AllocationReport, DeliveryResult, SaveResult

logger = logging.getLogger(__name__)


def deliver_report(
    report: AllocationReport,
    store: ReportStore | None,
    notifier: ReportNotifier | None,
) -> DeliveryResult:
    """Persist and email ``report``, sequentially. Pass None to skip a step."""
    saved = SaveResult(success=False)
    if store is not None:
        try:
            saved = store.save(report)
        except Exception as e:
            logger.error(f"[Delivery] Report storage failed: {e}", exc_info=True)
            saved = SaveResult(success=False, error=str(e))

    email_sent = False
    email_error = None
    if notifier is not None:
        try:
            email_sent = notifier.send(report)
        except Exception as e:
            logger.error(f"[Delivery] Report email failed: {e}")
            email_error = str(e)

    return DeliveryResult(saved=saved, email_sent=email_sent, email_error=email_error)
