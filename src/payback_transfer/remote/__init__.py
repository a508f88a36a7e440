"""Remote bulk-import submission."""

from .coordinator import BulkSubmissionCoordinator
from .submitter import BulkImportSubmitter, HttpBulkImportSubmitter, NoopBulkImportSubmitter

__all__ = [
    "BulkSubmissionCoordinator",
    "BulkImportSubmitter",
    "HttpBulkImportSubmitter",
    "NoopBulkImportSubmitter",
]
