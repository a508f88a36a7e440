"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- ID fixtures: Stable imported IDs used across export texts
- Snapshot fixtures: Local snapshots with and without existing data
- Export fixtures: Export texts and a builder for ad-hoc ones
- Remote fixtures: Mock submitters
"""

from collections.abc import Callable
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import UUID

import pytest

from src.payback_transfer.models.domain import (
    AccountFriend,
    Expense,
    ExpenseSplit,
    GroupMember,
    LocalSnapshot,
    SpendingGroup,
)
from src.payback_transfer.models.payloads import BulkCreatedCounts, BulkImportResponse

# =============================================================================
# ID Fixtures
# =============================================================================

IMPORTED_ME = UUID("00000000-0000-4000-8000-000000000001")
ALICE = UUID("00000000-0000-4000-8000-0000000000a1")
BOB = UUID("00000000-0000-4000-8000-0000000000b0")
TRIP = UUID("00000000-0000-4000-8000-00000000f001")
DINNER = UUID("00000000-0000-4000-8000-00000000e001")
SPLIT_ALICE = UUID("00000000-0000-4000-8000-00000000d0a1")
SPLIT_BOB = UUID("00000000-0000-4000-8000-00000000d0b0")


@pytest.fixture
def ids() -> SimpleNamespace:
    """Imported IDs used by trip_export and make_export."""
    return SimpleNamespace(
        imported_me=IMPORTED_ME,
        alice=ALICE,
        bob=BOB,
        trip=TRIP,
        dinner=DINNER,
        split_alice=SPLIT_ALICE,
        split_bob=SPLIT_BOB,
    )


# =============================================================================
# Snapshot Fixtures
# =============================================================================


@pytest.fixture
def current_user() -> GroupMember:
    """The local signed-in user."""
    return GroupMember(id=UUID("11111111-1111-4111-8111-111111111111"), name="Me")


@pytest.fixture
def empty_local(current_user: GroupMember) -> LocalSnapshot:
    """A local snapshot with no friends, groups or expenses."""
    return LocalSnapshot(current_user=current_user, account_email="me@example.com")


@pytest.fixture
def populated_local(current_user: GroupMember) -> LocalSnapshot:
    """A local snapshot with two friends, one group and one expense.

    Includes names and amounts that need quoting in exports.
    """
    carol = AccountFriend(
        member_id=UUID("22222222-2222-4222-8222-222222222222"),
        name="Carol, the \"Planner\"",
        nickname="CJ",
        has_linked_account=True,
        linked_account_id="acct_carol",
        linked_account_email="carol@example.com",
        profile_color_hex="#FF8800",
        status="friend",
    )
    dave = AccountFriend(
        member_id=UUID("33333333-3333-4333-8333-333333333333"),
        name="Dave",
        status="friend",
    )
    group = SpendingGroup(
        id=UUID("44444444-4444-4444-8444-444444444444"),
        name="Ski Weekend",
        members=[
            current_user,
            GroupMember(id=carol.member_id, name=carol.name),
            GroupMember(id=dave.member_id, name=dave.name),
        ],
        created_at=datetime(2024, 1, 5, 9, 0, tzinfo=UTC),
    )
    expense = Expense(
        id=UUID("55555555-5555-4555-8555-555555555555"),
        group_id=group.id,
        description="Lift tickets\nday 1",
        date=datetime(2024, 1, 6, 8, 30, tzinfo=UTC),
        total_amount=150.0,
        paid_by_member_id=current_user.id,
        involved_member_ids=[current_user.id, carol.member_id, dave.member_id],
        splits=[
            ExpenseSplit(member_id=current_user.id, amount=50.0),
            ExpenseSplit(member_id=carol.member_id, amount=50.0),
            ExpenseSplit(member_id=dave.member_id, amount=50.0),
        ],
    )
    return LocalSnapshot(
        current_user=current_user,
        account_email="me@example.com",
        friends=[carol, dave],
        groups=[group],
        expenses=[expense],
    )


# =============================================================================
# Export Fixtures
# =============================================================================


@pytest.fixture
def make_export() -> Callable[..., str]:
    """Build export text from section rows.

    Example:
        text = make_export(friends=["<id>,Alice,,false,,"], current_user_id=IMPORTED_ME)
    """

    def build(
        current_user_id: UUID | None = IMPORTED_ME,
        current_user_name: str = "Me",
        header: str = "===PAYBACK_EXPORT===",
        **sections: list[str],
    ) -> str:
        lines = [header, "EXPORTED_AT: 2024-03-01T18:30:00Z", "ACCOUNT_EMAIL: them@example.com"]
        if current_user_id is not None:
            lines.append(f"CURRENT_USER_ID: {current_user_id}")
        lines.append(f"CURRENT_USER_NAME: {current_user_name}")
        for name, rows in sections.items():
            lines.append("")
            lines.append(f"[{name.upper()}]")
            lines.extend(rows)
        lines.append("")
        lines.append("===END_PAYBACK_EXPORT===")
        return "\n".join(lines) + "\n"

    return build


@pytest.fixture
def trip_export(make_export: Callable[..., str]) -> str:
    """Group "Trip" with Alice and Bob, one "Dinner" paid by Alice, split 50/50."""
    return make_export(
        groups=[f"{TRIP},Trip,false,false,2024-03-01T10:00:00Z,2"],
        group_members=[f"{TRIP},{ALICE},Alice,,", f"{TRIP},{BOB},Bob,,"],
        expenses=[f"{DINNER},{TRIP},Dinner,2024-03-01T19:00:00Z,100.00,{ALICE},false,false"],
        expense_involved_members=[f"{DINNER},{ALICE}", f"{DINNER},{BOB}"],
        expense_splits=[
            f"{DINNER},{SPLIT_ALICE},{ALICE},50.00,false",
            f"{DINNER},{SPLIT_BOB},{BOB},50.00,false",
        ],
    )


# =============================================================================
# Remote Fixtures
# =============================================================================


@pytest.fixture
def mock_submitter() -> AsyncMock:
    """Submitter mock that reports one friend, group and expense created."""
    submitter = AsyncMock()
    submitter.submit.return_value = BulkImportResponse(
        created=BulkCreatedCounts(friends=1, groups=1, expenses=1)
    )
    return submitter
