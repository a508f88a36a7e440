"""Result types for import, merge and remote submission."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from .domain import AccountFriend, Expense, SpendingGroup
from .resolution import Conflict, IdentityMapping


@dataclass(frozen=True)
class CreatedCounts:
    """Records created by the remote store."""

    friends: int = 0
    groups: int = 0
    expenses: int = 0

    def __add__(self, other: "CreatedCounts") -> "CreatedCounts":
        return CreatedCounts(
            friends=self.friends + other.friends,
            groups=self.groups + other.groups,
            expenses=self.expenses + other.expenses,
        )


@dataclass(frozen=True)
class ImportSummary:
    """
    Summary of what one import added locally.

    Attributes:
        friends_added: Friend records inserted or promoted
        groups_added: Groups inserted
        expenses_added: Expenses inserted
        remote_created: Counts reported by the remote store (None when not synced)
    """

    friends_added: int = 0
    groups_added: int = 0
    expenses_added: int = 0
    remote_created: CreatedCounts | None = None

    @property
    def total_items(self) -> int:
        return self.friends_added + self.groups_added + self.expenses_added

    @property
    def description(self) -> str:
        """
        Human-readable summary, e.g. "Added 2 friends, 1 group".

        Returns:
            str: Summary or "No new data imported".
        """
        parts = []
        for count, noun in (
            (self.friends_added, "friend"),
            (self.groups_added, "group"),
            (self.expenses_added, "expense"),
        ):
            if count > 0:
                parts.append(f"{count} {noun}{'' if count == 1 else 's'}")
        if not parts:
            return "No new data imported"
        return "Added " + ", ".join(parts)


@dataclass(frozen=True)
class Success:
    """Everything imported without warnings."""

    summary: ImportSummary


@dataclass(frozen=True)
class IncompatibleFormat:
    """The text could not be imported at all, or the only remote request failed."""

    reason: str


@dataclass(frozen=True)
class NeedsResolution:
    """Conflicts were found and the caller must decide how to resolve them."""

    conflicts: list[Conflict]


@dataclass(frozen=True)
class PartialSuccess:
    """Import completed, but some records were skipped or some chunks failed."""

    summary: ImportSummary
    warnings: list[str]


ImportResult = Success | IncompatibleFormat | NeedsResolution | PartialSuccess


@dataclass
class MergeResult:
    """
    Output of MergeCommitter.commit().

    Attributes:
        new_friends: Friend records written to the local snapshot
        new_groups: Groups written to the local snapshot
        new_expenses: Expenses written to the local snapshot
        warnings: Per-record problems that did not abort the run
        mapping: Identity mapping built during the run
        group_mapping: Imported group ID -> local group ID (new or matched)
        expense_mapping: Imported expense ID -> local expense ID (new or matched)
    """

    new_friends: list[AccountFriend] = field(default_factory=list)
    new_groups: list[SpendingGroup] = field(default_factory=list)
    new_expenses: list[Expense] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    mapping: IdentityMapping = field(default_factory=IdentityMapping)
    group_mapping: dict[UUID, UUID] = field(default_factory=dict)
    expense_mapping: dict[UUID, UUID] = field(default_factory=dict)

    def to_summary(self, remote_created: CreatedCounts | None = None) -> ImportSummary:
        return ImportSummary(
            friends_added=len(self.new_friends),
            groups_added=len(self.new_groups),
            expenses_added=len(self.new_expenses),
            remote_created=remote_created,
        )


class SubmissionState(str, Enum):
    """Lifecycle of one bulk submission."""

    IDLE = "idle"
    REMAPPING = "remapping"
    CHUNKING = "chunking"
    SUBMITTING = "submitting"
    AGGREGATING = "aggregating"
    DONE = "done"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass
class BulkSubmissionResult:
    """
    Aggregated outcome of all chunks of one submission.

    Attributes:
        state: Terminal state (DONE, PARTIALLY_FAILED or FAILED)
        created: Sum of created counts over successful chunks
        errors: Chunk failures and remote-reported errors, in order
        chunks_total: Number of requests planned
        chunks_succeeded: Number of requests that returned a response
    """

    state: SubmissionState = SubmissionState.IDLE
    created: CreatedCounts = field(default_factory=CreatedCounts)
    errors: list[str] = field(default_factory=list)
    chunks_total: int = 0
    chunks_succeeded: int = 0

    @property
    def is_complete_success(self) -> bool:
        return self.state == SubmissionState.DONE and not self.errors
