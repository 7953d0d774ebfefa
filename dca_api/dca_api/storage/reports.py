"""Local filesystem storage for allocation reports."""

import json
import logging
import os
import tempfile
from pathlib import Path

from dca_api.domain.entities.allocation import AllocationReport, SaveResult
from dca_api.domain.exceptions import StorageWriteError

logger = logging.getLogger(__name__)

STORAGE_NOT_CONFIGURED = "Report storage not configured"


class LocalReportStore:
    """One JSON snapshot per report date.

    Snapshots are stored under:
        {base_path}/reports/{YYYY-MM-DD}.json

    Saving a second report on the same date replaces the first one.
    """

    def __init__(self, base_path: Path | str):
        self.base_path = Path(base_path)
        self.reports_path = self.base_path / "reports"

    def report_path(self, report_date: str) -> Path:
        return self.reports_path / f"{report_date}.json"

    def save(self, report: AllocationReport) -> SaveResult:
        """Write the report snapshot. Errors are returned in the result."""
        report_id = report.report_date
        path = self.report_path(report_id)
        replaced = path.exists()

        try:
            self._write_atomic(path, report)
        except StorageWriteError as e:
            logger.error(f"[ReportStore] Failed to save report {report_id}: {e}")
            return SaveResult(success=False, report_id=None, error=str(e))

        action = "Replaced" if replaced else "Saved"
        logger.info(f"[ReportStore] {action} report {report_id} at {path}")
        return SaveResult(success=True, report_id=report_id, replaced=replaced)

    def _write_atomic(self, path: Path, report: AllocationReport) -> None:
        """Write to a temp file in the same directory, then rename."""
        try:
            self.reports_path.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(
                dir=self.reports_path, prefix=".report_", suffix=".tmp"
            )
        except OSError as e:
            raise StorageWriteError(f"Cannot create report directory: {e}", path=str(path)) from e

        try:
            with os.fdopen(fd, "w") as f:
                json.dump(report.to_dict(), f, indent=2)
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise StorageWriteError(f"Cannot write report: {e}", path=str(path)) from e


class NullReportStore:
    """Store used when persistence is not configured. Never writes."""

    def save(self, report: AllocationReport) -> SaveResult:
        logger.info("[ReportStore] Storage not configured, skipping save")
        return SaveResult(success=False, error=STORAGE_NOT_CONFIGURED)
