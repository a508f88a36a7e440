"""Deduplication Engine - structural equality against existing records.

Imported IDs are foreign, so duplicates are detected by content rather than
by identifier. Candidates passed in here already carry *target* member IDs.

Group equality:
- Names match case-insensitively (trimmed)
- Member ID sets are equal

Expense equality:
- Same target group
- Exact description
- Totals within amount_tolerance (inclusive)
- Dates within date_tolerance_seconds (inclusive)
- Same payer
- Equal sets of involved member IDs
"""

from collections.abc import Iterable
from uuid import UUID

import structlog

from ..config import ImportPolicyConfig
from ..models.domain import Expense, SpendingGroup, normalize_name

logger = structlog.get_logger(__name__)


class DeduplicationEngine:
    """Read-only duplicate checks for groups and expenses."""

    def __init__(self, policy: ImportPolicyConfig | None = None) -> None:
        """
        Initialize deduplication engine.

        Args:
            policy: Tolerances to apply (defaults when omitted)
        """
        self.policy = policy or ImportPolicyConfig()

    def find_duplicate_group(
        self, candidate: SpendingGroup, existing_groups: Iterable[SpendingGroup]
    ) -> UUID | None:
        """
        Find an existing group equivalent to the candidate.

        Args:
            candidate: Group assembled from the import, with target member IDs
            existing_groups: Groups already in the local snapshot

        Returns:
            ID of the first equivalent group, or None
        """
        name = normalize_name(candidate.name)
        members = candidate.member_ids

        for group in existing_groups:
            if normalize_name(group.name) == name and group.member_ids == members:
                logger.debug(
                    "Duplicate group found",
                    name=candidate.name,
                    existing_id=str(group.id),
                )
                return group.id
        return None

    def find_duplicate_expense(
        self, candidate: Expense, existing_expenses: Iterable[Expense]
    ) -> Expense | None:
        """
        Find an existing expense equivalent to the candidate.

        Args:
            candidate: Expense assembled from the import, with target IDs
            existing_expenses: Expenses to compare against (usually the
                target group's expenses)

        Returns:
            The first equivalent expense, or None
        """
        involved = set(candidate.involved_member_ids)

        for expense in existing_expenses:
            if expense.group_id != candidate.group_id:
                continue
            if expense.description != candidate.description:
                continue
            if abs(expense.total_amount - candidate.total_amount) > self.policy.amount_tolerance:
                continue
            delta = abs((expense.date - candidate.date).total_seconds())
            if delta > self.policy.date_tolerance_seconds:
                continue
            if expense.paid_by_member_id != candidate.paid_by_member_id:
                continue
            if set(expense.involved_member_ids) != involved:
                continue

            logger.debug(
                "Duplicate expense found",
                description=candidate.description,
                existing_id=str(expense.id),
            )
            return expense
        return None

    def is_duplicate_expense(
        self, candidate: Expense, existing_expenses: Iterable[Expense]
    ) -> bool:
        return self.find_duplicate_expense(candidate, existing_expenses) is not None
