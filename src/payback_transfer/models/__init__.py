"""Data models for the PayBack transfer engine."""

from .domain import (
    AccountFriend,
    Expense,
    ExpenseSplit,
    GroupMember,
    LocalSnapshot,
    SpendingGroup,
    Subexpense,
    normalize_name,
)
from .parsed import (
    ExpenseInvolvement,
    ParsedExpense,
    ParsedExpenseSplit,
    ParsedExportSnapshot,
    ParsedFriend,
    ParsedGroup,
    ParsedGroupMember,
    ParsedSubexpense,
    ParticipantNameOverride,
)
from .resolution import Conflict, CreateNew, IdentityMapping, LinkToExisting, Resolution
from .results import (
    BulkSubmissionResult,
    CreatedCounts,
    ImportResult,
    ImportSummary,
    IncompatibleFormat,
    MergeResult,
    NeedsResolution,
    PartialSuccess,
    SubmissionState,
    Success,
)

__all__ = [
    # Local snapshot
    "AccountFriend",
    "Expense",
    "ExpenseSplit",
    "GroupMember",
    "LocalSnapshot",
    "SpendingGroup",
    "Subexpense",
    "normalize_name",
    # Parsed export
    "ExpenseInvolvement",
    "ParsedExpense",
    "ParsedExpenseSplit",
    "ParsedExportSnapshot",
    "ParsedFriend",
    "ParsedGroup",
    "ParsedGroupMember",
    "ParsedSubexpense",
    "ParticipantNameOverride",
    # Identity
    "Conflict",
    "CreateNew",
    "IdentityMapping",
    "LinkToExisting",
    "Resolution",
    # Results
    "BulkSubmissionResult",
    "CreatedCounts",
    "ImportResult",
    "ImportSummary",
    "IncompatibleFormat",
    "MergeResult",
    "NeedsResolution",
    "PartialSuccess",
    "SubmissionState",
    "Success",
]
