"""Export serializer, the inverse of ExportParser."""

from collections.abc import Iterator
from datetime import UTC, datetime

import structlog

from ..config import ImportPolicyConfig
from ..constants import (
    END_MARKER,
    EXPORT_FILENAME_PREFIX,
    HEADER_ACCOUNT_EMAIL,
    HEADER_CURRENT_USER_ID,
    HEADER_CURRENT_USER_NAME,
    HEADER_EXPORTED_AT,
    HEADER_MARKER,
    SECTION_COLUMNS,
    SECTION_EXPENSE_INVOLVED_MEMBERS,
    SECTION_EXPENSE_SPLITS,
    SECTION_EXPENSE_SUBEXPENSES,
    SECTION_EXPENSES,
    SECTION_FRIENDS,
    SECTION_GROUP_MEMBERS,
    SECTION_GROUPS,
    SECTION_ORDER,
    SECTION_PARTICIPANT_NAMES,
)
from ..models.domain import LocalSnapshot
from ..utils.timestamps import format_timestamp
from .codec import detokenize_fields, escape_field, format_amount, format_bool

logger = structlog.get_logger(__name__)

Row = list[str | None]


class ExportSerializer:
    """
    Write a LocalSnapshot as PayBack export text.

    Sections are always written in the same order, each with a column comment,
    even when empty. Splits and subexpenses at or below the policy's near-zero
    amount are left out.
    """

    def __init__(self, policy: ImportPolicyConfig | None = None) -> None:
        self.policy = policy or ImportPolicyConfig()

    def serialize(self, local: LocalSnapshot, exported_at: datetime | None = None) -> str:
        """
        Serialize a local snapshot.

        Args:
            local: Snapshot to export
            exported_at: Timestamp for the EXPORTED_AT header (defaults to now)

        Returns:
            Complete export text, newline-terminated
        """
        exported_at = exported_at or datetime.now(UTC)

        lines = [
            HEADER_MARKER,
            f"{HEADER_EXPORTED_AT}: {format_timestamp(exported_at)}",
            f"{HEADER_ACCOUNT_EMAIL}: {local.account_email}",
            f"{HEADER_CURRENT_USER_ID}: {local.current_user.id}",
            f"{HEADER_CURRENT_USER_NAME}: {escape_field(local.current_user.name)}",
        ]

        builders = {
            SECTION_FRIENDS: self._friend_rows,
            SECTION_GROUPS: self._group_rows,
            SECTION_GROUP_MEMBERS: self._group_member_rows,
            SECTION_EXPENSES: self._expense_rows,
            SECTION_EXPENSE_INVOLVED_MEMBERS: self._involved_rows,
            SECTION_EXPENSE_SPLITS: self._split_rows,
            SECTION_EXPENSE_SUBEXPENSES: self._subexpense_rows,
            SECTION_PARTICIPANT_NAMES: self._participant_rows,
        }

        row_count = 0
        for section in SECTION_ORDER:
            lines.append("")
            lines.append(f"[{section}]")
            lines.append(f"# {SECTION_COLUMNS[section]}")
            for row in builders[section](local):
                lines.append(detokenize_fields(row))
                row_count += 1

        lines.append("")
        lines.append(END_MARKER)

        logger.info(
            "Export serialized",
            friends=len(local.friends),
            groups=len(local.groups),
            expenses=len(local.expenses),
            rows=row_count,
        )
        return "\n".join(lines) + "\n"

    @staticmethod
    def suggested_filename(now: datetime | None = None) -> str:
        """File name for an export, e.g. ``PayBack_Export_2024-03-01_183000.csv``."""
        now = now or datetime.now(UTC)
        return f"{EXPORT_FILENAME_PREFIX}{now.strftime('%Y-%m-%d_%H%M%S')}.csv"

    def _friend_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for friend in local.friends:
            yield [
                str(friend.member_id),
                friend.name,
                friend.nickname,
                format_bool(friend.has_linked_account),
                friend.linked_account_id,
                friend.linked_account_email,
                friend.profile_image_url,
                friend.profile_color_hex,
                friend.status,
            ]

    def _group_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for group in local.groups:
            yield [
                str(group.id),
                group.name,
                format_bool(group.is_direct),
                format_bool(group.is_debug),
                format_timestamp(group.created_at),
                str(len(group.members)),
            ]

    def _group_member_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for group in local.groups:
            for member in group.members:
                yield [
                    str(group.id),
                    str(member.id),
                    member.name,
                    member.profile_image_url,
                    member.profile_color_hex,
                ]

    def _expense_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for expense in local.expenses:
            yield [
                str(expense.id),
                str(expense.group_id),
                expense.description,
                format_timestamp(expense.date),
                format_amount(expense.total_amount),
                str(expense.paid_by_member_id),
                format_bool(expense.is_settled),
                format_bool(expense.is_debug),
            ]

    def _involved_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for expense in local.expenses:
            for member_id in expense.involved_member_ids:
                yield [str(expense.id), str(member_id)]

    def _split_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for expense in local.expenses:
            for split in expense.splits:
                if split.amount <= self.policy.near_zero_amount:
                    continue
                yield [
                    str(expense.id),
                    str(split.id),
                    str(split.member_id),
                    format_amount(split.amount),
                    format_bool(split.is_settled),
                ]

    def _subexpense_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for expense in local.expenses:
            for subexpense in expense.subexpenses or []:
                if subexpense.amount <= self.policy.near_zero_amount:
                    continue
                yield [str(expense.id), str(subexpense.id), format_amount(subexpense.amount)]

    def _participant_rows(self, local: LocalSnapshot) -> Iterator[Row]:
        for expense in local.expenses:
            for member_id, display_name in (expense.participant_names or {}).items():
                yield [str(expense.id), str(member_id), display_name]
