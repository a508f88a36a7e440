"""Local data snapshot models.

The local snapshot is the working data set the engine reads from and appends
to. How it is persisted is up to the caller; the CLI keeps it in a JSON file
(see ``persistence.snapshot_store``).
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from ..constants import FRIEND_STATUS
from ..utils.timestamps import ensure_utc


def normalize_name(name: str | None) -> str:
    """Case-insensitive comparison key for display names."""
    return (name or "").strip().casefold()


class GroupMember(BaseModel):
    """A person inside a spending group."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    profile_image_url: str | None = None
    profile_color_hex: str | None = None


class AccountFriend(BaseModel):
    """A person on the account's friend roster."""

    member_id: UUID
    name: str
    nickname: str | None = None
    has_linked_account: bool = False
    linked_account_id: str | None = None
    linked_account_email: str | None = None
    profile_image_url: str | None = None
    profile_color_hex: str | None = None
    status: str | None = None

    @property
    def is_friend(self) -> bool:
        """True for full friends; records without a status predate peers."""
        return self.status is None or self.status == FRIEND_STATUS


class SpendingGroup(BaseModel):
    """A group of members sharing expenses."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    members: list[GroupMember] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_direct: bool = False
    is_debug: bool = False

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def member_ids(self) -> frozenset[UUID]:
        return frozenset(m.id for m in self.members)


class ExpenseSplit(BaseModel):
    """Amount one member owes on an expense."""

    id: UUID = Field(default_factory=uuid4)
    member_id: UUID
    amount: float
    is_settled: bool = False


class Subexpense(BaseModel):
    """A line item making up part of an expense total."""

    id: UUID = Field(default_factory=uuid4)
    amount: float


class Expense(BaseModel):
    """A shared expense inside a group."""

    id: UUID = Field(default_factory=uuid4)
    group_id: UUID
    description: str
    date: datetime
    total_amount: float
    paid_by_member_id: UUID
    involved_member_ids: list[UUID] = Field(default_factory=list)
    splits: list[ExpenseSplit] = Field(default_factory=list)
    is_settled: bool = False
    participant_names: dict[UUID, str] | None = None
    is_debug: bool = False
    subexpenses: list[Subexpense] | None = None

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class LocalSnapshot(BaseModel):
    """
    The caller's working data set.

    Attributes:
        current_user: The signed-in user as a group member
        account_email: Email of the signed-in account
        friends: Friend roster
        groups: Spending groups
        expenses: Expenses across all groups
    """

    current_user: GroupMember
    account_email: str = ""
    friends: list[AccountFriend] = Field(default_factory=list)
    groups: list[SpendingGroup] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    def friend_by_id(self, member_id: UUID) -> AccountFriend | None:
        for friend in self.friends:
            if friend.member_id == member_id:
                return friend
        return None

    def group_by_id(self, group_id: UUID) -> SpendingGroup | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def add_friend(self, friend: AccountFriend) -> None:
        """Add a friend, replacing any record already holding its member ID."""
        for index, existing in enumerate(self.friends):
            if existing.member_id == friend.member_id:
                self.friends[index] = friend
                return
        self.friends.append(friend)

    def add_group(self, group: SpendingGroup) -> None:
        self.groups.append(group)

    def add_expense(self, expense: Expense) -> None:
        self.expenses.append(expense)
