"""Tests for the DeduplicationEngine class."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.payback_transfer.config import ImportPolicyConfig
from src.payback_transfer.core.dedup import DeduplicationEngine
from src.payback_transfer.models.domain import Expense, GroupMember, SpendingGroup

WHEN = datetime(2024, 3, 1, 19, 0, tzinfo=UTC)


class TestGroupDeduplication:
    """Test group equivalence."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = DeduplicationEngine()
        self.me = GroupMember(name="Me")
        self.alice = GroupMember(name="Alice")

    def test_same_name_and_members_is_duplicate(self):
        """Test that name case and member order do not matter."""
        existing = SpendingGroup(name="Trip", members=[self.me, self.alice])
        candidate = SpendingGroup(name=" trip ", members=[self.alice, self.me])

        assert self.engine.find_duplicate_group(candidate, [existing]) == existing.id

    def test_different_members_is_not_duplicate(self):
        """Test that an extra member makes groups distinct."""
        existing = SpendingGroup(name="Trip", members=[self.me, self.alice])
        candidate = SpendingGroup(name="Trip", members=[self.me, self.alice, GroupMember(name="Bob")])

        assert self.engine.find_duplicate_group(candidate, [existing]) is None

    def test_different_name_is_not_duplicate(self):
        """Test that the same members under another name are distinct."""
        existing = SpendingGroup(name="Trip", members=[self.me, self.alice])
        candidate = SpendingGroup(name="Trip 2", members=[self.me, self.alice])

        assert self.engine.find_duplicate_group(candidate, [existing]) is None

    def test_first_match_wins(self):
        """Test that the earliest equivalent group is returned."""
        first = SpendingGroup(name="Trip", members=[self.me])
        second = SpendingGroup(name="TRIP", members=[self.me])
        candidate = SpendingGroup(name="trip", members=[self.me])

        assert self.engine.find_duplicate_group(candidate, [first, second]) == first.id


class TestExpenseDeduplication:
    """Test expense equivalence and tolerances."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = DeduplicationEngine()
        self.group_id = uuid4()
        self.payer = uuid4()
        self.other = uuid4()
        self.existing = self._expense()

    def _expense(self, **overrides) -> Expense:
        fields = {
            "group_id": self.group_id,
            "description": "Dinner",
            "date": WHEN,
            "total_amount": 100.0,
            "paid_by_member_id": self.payer,
            "involved_member_ids": [self.payer, self.other],
        }
        fields.update(overrides)
        return Expense(**fields)

    def test_within_tolerances_is_duplicate(self):
        """Test that 0.009 and 299 seconds apart still match."""
        candidate = self._expense(total_amount=100.009, date=WHEN + timedelta(seconds=299))

        assert self.engine.find_duplicate_expense(candidate, [self.existing]) is self.existing
        assert self.engine.is_duplicate_expense(candidate, [self.existing])

    def test_tolerances_are_inclusive(self):
        """Test that exactly 300 seconds apart still match."""
        candidate = self._expense(date=WHEN - timedelta(seconds=300))
        assert self.engine.is_duplicate_expense(candidate, [self.existing])

    @pytest.mark.parametrize(
        "overrides",
        [
            {"total_amount": 100.02},
            {"date": WHEN + timedelta(seconds=301)},
            {"description": "dinner"},
        ],
    )
    def test_outside_tolerance_or_different_text(self, overrides):
        """Test that amount, date or description differences break the match."""
        candidate = self._expense(**overrides)
        assert not self.engine.is_duplicate_expense(candidate, [self.existing])

    def test_different_payer_is_not_duplicate(self):
        """Test that the payer must match."""
        candidate = self._expense(paid_by_member_id=self.other)
        assert not self.engine.is_duplicate_expense(candidate, [self.existing])

    def test_involved_members_compared_as_set(self):
        """Test that involved order does not matter but membership does."""
        reordered = self._expense(involved_member_ids=[self.other, self.payer])
        reduced = self._expense(involved_member_ids=[self.payer])

        assert self.engine.is_duplicate_expense(reordered, [self.existing])
        assert not self.engine.is_duplicate_expense(reduced, [self.existing])

    def test_other_group_is_not_duplicate(self):
        """Test that expenses in different groups never match."""
        candidate = self._expense(group_id=uuid4())
        assert not self.engine.is_duplicate_expense(candidate, [self.existing])

    def test_custom_tolerances(self):
        """Test that the policy controls the tolerances."""
        engine = DeduplicationEngine(ImportPolicyConfig(amount_tolerance=1.0, date_tolerance_seconds=0))
        assert engine.is_duplicate_expense(self._expense(total_amount=100.5), [self.existing])
        assert not engine.is_duplicate_expense(
            self._expense(date=WHEN + timedelta(seconds=1)), [self.existing]
        )
