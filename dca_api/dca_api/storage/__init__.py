"""Storage adapters for allocation reports."""

from dca_api.storage.reports import (
    STORAGE_NOT_CONFIGURED,
    LocalReportStore,
    NullReportStore,
)

__all__ = [
    "LocalReportStore",
    "NullReportStore",
    "STORAGE_NOT_CONFIGURED",
]
