"""Transfer engine entry points.

TransferEngine wires the parser, conflict detector, merge committer,
serializer and submission coordinator together. Collaborators are passed in
explicitly; nothing is looked up from global state.

Import flow:
    text -> ExportParser -> ConflictDetector
         -> NeedsResolution (conflicts, no resolutions given)
         -> MergeCommitter -> BulkSubmissionCoordinator -> result
"""

import asyncio
import uuid
from collections.abc import Mapping
from uuid import UUID

import structlog

from ..config import TransferConfig
from ..models.domain import LocalSnapshot
from ..models.parsed import ParsedExportSnapshot
from ..models.resolution import Conflict, Resolution
from ..models.results import (
    ImportResult,
    IncompatibleFormat,
    NeedsResolution,
    PartialSuccess,
    SubmissionState,
    Success,
)
from ..observability.logger import LogContext
from ..remote.coordinator import BulkSubmissionCoordinator
from ..remote.submitter import BulkImportSubmitter, NoopBulkImportSubmitter
from ..utils.exceptions import InvalidFormatError
from .conflicts import ConflictDetector
from .dedup import DeduplicationEngine
from .identity import IdentityResolver
from .merge import MergeCommitter
from .parser import ExportParser
from .serializer import ExportSerializer

logger = structlog.get_logger(__name__)


class TransferEngine:
    """
    Import and export PayBack data.

    Attributes:
        config: Engine configuration
        submitter: Remote bulk-import backend (no-op when omitted)
        last_parser: Parser used by the most recent parse, for error reporting
    """

    def __init__(
        self,
        config: TransferConfig | None = None,
        submitter: BulkImportSubmitter | None = None,
    ) -> None:
        self.config = config or TransferConfig()
        self.submitter = submitter or NoopBulkImportSubmitter()
        self.detector = ConflictDetector()
        self.serializer = ExportSerializer(self.config.policy)
        self.last_parser: ExportParser | None = None

    def validate_format(self, text: str) -> bool:
        """Check whether text carries a recognized export envelope."""
        return ExportParser.validate_format(text)

    def parse_export(self, text: str) -> ParsedExportSnapshot:
        """
        Parse export text.

        Raises:
            InvalidFormatError: If the envelope is missing
        """
        self.last_parser = ExportParser()
        return self.last_parser.parse(text)

    def export_all(self, local: LocalSnapshot) -> str:
        """Serialize the whole local snapshot as export text."""
        return self.serializer.serialize(local)

    def detect_conflicts(
        self, snapshot: ParsedExportSnapshot, local: LocalSnapshot
    ) -> list[Conflict]:
        return self.detector.detect(snapshot, local.friends, local.groups, local.current_user.id)

    async def import_data(
        self,
        text: str,
        local: LocalSnapshot,
        resolutions: Mapping[UUID, Resolution] | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ImportResult:
        """
        Import export text into the local snapshot and the remote store.

        Args:
            text: Raw export text
            local: Local snapshot (mutated in place on success)
            resolutions: Decisions for conflicting imported IDs. When None and
                conflicts exist, nothing is written and NeedsResolution is
                returned. Pass a mapping (possibly empty) to proceed.
            cancel_event: When set, stops remote submission between chunks

        Returns:
            Success, PartialSuccess, NeedsResolution or IncompatibleFormat
        """
        with LogContext(import_id=uuid.uuid4().hex[:12]):
            try:
                snapshot = self.parse_export(text)
            except InvalidFormatError as e:
                logger.warning("Import rejected", reason=str(e))
                return IncompatibleFormat(reason=str(e))

            conflicts = self.detect_conflicts(snapshot, local)
            if conflicts and resolutions is None:
                logger.info("Import needs conflict resolution", conflicts=len(conflicts))
                return NeedsResolution(conflicts=conflicts)

            policy = self.config.policy
            committer = MergeCommitter(
                policy=policy,
                resolver=IdentityResolver(),
                dedup=DeduplicationEngine(policy),
            )
            merge_result = committer.commit(snapshot, resolutions or {}, local)

            coordinator = BulkSubmissionCoordinator(self.submitter, chunk_size=policy.chunk_size)
            submission = await coordinator.submit(snapshot, merge_result, local, cancel_event)

            if submission.state == SubmissionState.FAILED and submission.chunks_total == 1:
                reason = submission.errors[0] if submission.errors else "Remote submission failed"
                logger.error("Import submission failed", reason=reason)
                return IncompatibleFormat(reason=reason)

            synced = not isinstance(self.submitter, NoopBulkImportSubmitter)
            summary = merge_result.to_summary(remote_created=submission.created if synced else None)
            warnings = merge_result.warnings + submission.errors

            logger.info(
                "Import finished",
                friends_added=summary.friends_added,
                groups_added=summary.groups_added,
                expenses_added=summary.expenses_added,
                warnings=len(warnings),
            )
            if warnings:
                return PartialSuccess(summary=summary, warnings=warnings)
            return Success(summary=summary)
