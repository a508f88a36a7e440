"""Records parsed out of an export file.

Every record keeps the *imported* identifiers exactly as they appear in the
text. They are foreign to the local store and are only ever used as lookup
keys into the identity mapping built during one import run.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.timestamps import ensure_utc


class ParsedRecord(BaseModel):
    """Base model for all parsed section rows."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)


class ParsedFriend(ParsedRecord):
    """A row of the [FRIENDS] section."""

    member_id: UUID
    name: str
    nickname: str | None = None
    has_linked_account: bool = False
    linked_account_id: str | None = None
    linked_account_email: str | None = None
    profile_image_url: str | None = None
    profile_color_hex: str | None = None
    status: str | None = None


class ParsedGroup(ParsedRecord):
    """A row of the [GROUPS] section."""

    id: UUID
    name: str
    is_direct: bool = False
    is_debug: bool = False
    created_at: datetime
    member_count: int = Field(ge=0)

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        """Store all timestamps as UTC-aware datetimes."""
        return ensure_utc(v)


class ParsedGroupMember(ParsedRecord):
    """A row of the [GROUP_MEMBERS] section (group/member join)."""

    group_id: UUID
    member_id: UUID
    member_name: str
    profile_image_url: str | None = None
    profile_color_hex: str | None = None


class ParsedExpense(ParsedRecord):
    """A row of the [EXPENSES] section."""

    id: UUID
    group_id: UUID
    description: str
    date: datetime
    total_amount: float
    paid_by_member_id: UUID
    is_settled: bool = False
    is_debug: bool = False

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        """Store all timestamps as UTC-aware datetimes."""
        return ensure_utc(v)


class ExpenseInvolvement(ParsedRecord):
    """A row of the [EXPENSE_INVOLVED_MEMBERS] section."""

    expense_id: UUID
    member_id: UUID


class ParsedExpenseSplit(ParsedRecord):
    """A row of the [EXPENSE_SPLITS] section."""

    expense_id: UUID
    split_id: UUID
    member_id: UUID
    amount: float
    is_settled: bool = False


class ParsedSubexpense(ParsedRecord):
    """A row of the [EXPENSE_SUBEXPENSES] section."""

    expense_id: UUID
    subexpense_id: UUID
    amount: float


class ParticipantNameOverride(ParsedRecord):
    """A row of the [PARTICIPANT_NAMES] section.

    Carries a free-text display name for a member of one expense, used when the
    member has no durable identity elsewhere in the file (e.g. a guest).
    """

    expense_id: UUID
    member_id: UUID
    display_name: str


class ParsedExportSnapshot(BaseModel):
    """
    Everything read from one export file.

    Attributes:
        exported_at: EXPORTED_AT header value
        account_email: ACCOUNT_EMAIL header value
        current_user_id: Imported ID of the exporting user
        current_user_name: Display name of the exporting user
        metadata: Any other KEY: value header lines, verbatim
    """

    exported_at: datetime | None = None
    account_email: str | None = None
    current_user_id: UUID | None = None
    current_user_name: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)

    friends: list[ParsedFriend] = Field(default_factory=list)
    groups: list[ParsedGroup] = Field(default_factory=list)
    group_members: list[ParsedGroupMember] = Field(default_factory=list)
    expenses: list[ParsedExpense] = Field(default_factory=list)
    expense_involved_members: list[ExpenseInvolvement] = Field(default_factory=list)
    expense_splits: list[ParsedExpenseSplit] = Field(default_factory=list)
    expense_subexpenses: list[ParsedSubexpense] = Field(default_factory=list)
    participant_names: list[ParticipantNameOverride] = Field(default_factory=list)

    def members_of(self, group_id: UUID) -> list[ParsedGroupMember]:
        """Group-member rows belonging to one parsed group, in file order."""
        return [m for m in self.group_members if m.group_id == group_id]

    def involved_in(self, expense_id: UUID) -> list[UUID]:
        """Imported member IDs involved in one parsed expense."""
        return [e.member_id for e in self.expense_involved_members if e.expense_id == expense_id]

    def splits_of(self, expense_id: UUID) -> list[ParsedExpenseSplit]:
        return [s for s in self.expense_splits if s.expense_id == expense_id]

    def subexpenses_of(self, expense_id: UUID) -> list[ParsedSubexpense]:
        return [s for s in self.expense_subexpenses if s.expense_id == expense_id]

    def names_for(self, expense_id: UUID) -> list[ParticipantNameOverride]:
        return [p for p in self.participant_names if p.expense_id == expense_id]

    def record_counts(self) -> dict[str, int]:
        """Number of parsed rows per section, for reporting."""
        return {
            "friends": len(self.friends),
            "groups": len(self.groups),
            "group_members": len(self.group_members),
            "expenses": len(self.expenses),
            "expense_involved_members": len(self.expense_involved_members),
            "expense_splits": len(self.expense_splits),
            "expense_subexpenses": len(self.expense_subexpenses),
            "participant_names": len(self.participant_names),
        }
