"""Export text parser.

Overview:
--------
ExportParser turns the text produced by ExportSerializer (or by the mobile
app) into a ParsedExportSnapshot. Each section row is validated into a
Pydantic model; rows that fail are dropped and recorded, never fatal.

Export Format:
-------------
```
===PAYBACK_EXPORT===
EXPORTED_AT: 2024-03-01T18:30:00Z
ACCOUNT_EMAIL: me@example.com
CURRENT_USER_ID: 7F1D...
CURRENT_USER_NAME: Me

[FRIENDS]
# member_id,name,nickname,...
0B3A...,Alice,,false,,,,,friend

===END_PAYBACK_EXPORT===
```

Parsing Rules:
-------------
1. Envelope - The text must start with the current or legacy header marker
   and contain the end marker. Anything else raises InvalidFormatError before
   a single row is read.

2. Header metadata - ``KEY: value`` lines before the first section.

3. Sections - ``[NAME]`` switches the current section. Unknown sections are
   skipped so newer exports still import on older code.

4. Rows - Tokenized with the line codec and handed to a per-section builder
   that checks the minimum field count and required ID/number/date values.

5. Comments and blank lines - Ignored everywhere.

Error Handling:
--------------
- InvalidFormatError: missing envelope (fatal)
- MalformedRowError: collected on ``parser.errors`` (row dropped)
"""

import re
from collections.abc import Callable, Iterator
from typing import Any
from uuid import UUID

import structlog
from pydantic import ValidationError

from ..constants import (
    END_MARKER,
    ENVELOPE_MARKERS,
    HEADER_ACCOUNT_EMAIL,
    HEADER_CURRENT_USER_ID,
    HEADER_CURRENT_USER_NAME,
    HEADER_EXPORTED_AT,
    HEADER_MARKER,
    LEGACY_HEADER_MARKER,
    MIN_FIELD_COUNTS,
    SECTION_EXPENSE_INVOLVED_MEMBERS,
    SECTION_EXPENSE_SPLITS,
    SECTION_EXPENSE_SUBEXPENSES,
    SECTION_EXPENSES,
    SECTION_FRIENDS,
    SECTION_GROUP_MEMBERS,
    SECTION_GROUPS,
    SECTION_PARTICIPANT_NAMES,
)
from ..models.parsed import (
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
from ..utils.exceptions import InvalidFormatError, MalformedRowError
from ..utils.timestamps import parse_timestamp
from .codec import has_open_quote, parse_bool, tokenize_line, unescape_field

logger = structlog.get_logger(__name__)

_HEADER_LINE = re.compile(r"([A-Z][A-Z0-9_]*):[ \t]*(.*)", re.DOTALL)
_SECTION_LINE = re.compile(r"^\[([A-Za-z0-9_]+)\]$")


def _optional(fields: list[str], index: int) -> str | None:
    """Field value at index, or None when absent or empty."""
    if index >= len(fields):
        return None
    value = fields[index]
    return value if value.strip() else None


def _strip_row(line: str) -> str:
    """Drop one trailing carriage return, then surrounding spaces and tabs."""
    if line.endswith("\r"):
        line = line[:-1]
    return line.strip(" \t")


class ExportParser:
    """
    Parse PayBack export text into a ParsedExportSnapshot.

    Attributes:
        errors: Rows rejected during the last parse()
        rows_parsed: Rows accepted during the last parse()
    """

    def __init__(self) -> None:
        self.errors: list[MalformedRowError] = []
        self.rows_parsed = 0
        self._builders: dict[str, Callable[[list[str]], Any]] = {
            SECTION_FRIENDS: self._build_friend,
            SECTION_GROUPS: self._build_group,
            SECTION_GROUP_MEMBERS: self._build_group_member,
            SECTION_EXPENSES: self._build_expense,
            SECTION_EXPENSE_INVOLVED_MEMBERS: self._build_involvement,
            SECTION_EXPENSE_SPLITS: self._build_split,
            SECTION_EXPENSE_SUBEXPENSES: self._build_subexpense,
            SECTION_PARTICIPANT_NAMES: self._build_participant_name,
        }

    @staticmethod
    def validate_format(text: str) -> bool:
        """
        Check whether text carries a recognized export envelope.

        Args:
            text: Raw export text

        Returns:
            True if it starts with a header marker and contains the end marker
        """
        trimmed = text.lstrip("\ufeff").strip()
        has_header = trimmed.startswith(HEADER_MARKER) or trimmed.startswith(
            LEGACY_HEADER_MARKER
        )
        return has_header and END_MARKER in trimmed

    def parse(self, text: str) -> ParsedExportSnapshot:
        """
        Parse export text.

        Args:
            text: Raw export text

        Returns:
            ParsedExportSnapshot with header metadata and all valid rows

        Raises:
            InvalidFormatError: If the envelope is missing
        """
        if not self.validate_format(text):
            logger.warning("Export envelope not recognized", length=len(text))
            raise InvalidFormatError()

        self.errors = []
        self.rows_parsed = 0
        snapshot = ParsedExportSnapshot()
        current_section: str | None = None

        for line_number, line in self._logical_lines(text):
            if line in ENVELOPE_MARKERS:
                if line == END_MARKER:
                    break
                continue

            section_match = _SECTION_LINE.match(line)
            if section_match:
                current_section = section_match.group(1).upper()
                logger.debug("Section switch", section=current_section, line=line_number)
                continue

            if current_section is None:
                header_match = _HEADER_LINE.fullmatch(line)
                if header_match:
                    self._apply_header(snapshot, header_match.group(1), header_match.group(2))
                else:
                    logger.debug("Ignoring stray line before first section", line=line_number)
                continue

            builder = self._builders.get(current_section)
            if builder is None:
                logger.debug("Skipping row in unknown section", section=current_section)
                continue

            self._parse_row(snapshot, current_section, builder, line, line_number)

        logger.info(
            "Export parse complete",
            rows_parsed=self.rows_parsed,
            errors=len(self.errors),
            **snapshot.record_counts(),
        )
        return snapshot

    def _logical_lines(self, text: str) -> Iterator[tuple[int, str]]:
        """
        Yield (line_number, stripped_line) for every non-blank, non-comment row.

        Physical lines end at ``\\n`` only and a row's trailing ``\\r`` is dropped,
        so other line separators stay inside their field. A quoted field containing
        a newline spans several physical lines; those are joined back into one
        logical row numbered by its first line.
        """
        pending: list[str] = []
        start_line = 0

        for number, raw in enumerate(text.lstrip("\ufeff").split("\n"), start=1):
            if pending:
                pending.append(raw)
                joined = "\n".join(pending)
                if not has_open_quote(joined):
                    pending = []
                    yield start_line, _strip_row(joined)
                continue

            stripped = _strip_row(raw)
            if not stripped or stripped.startswith("#"):
                continue

            if has_open_quote(stripped):
                pending = [raw.lstrip(" \t")]
                start_line = number
                continue

            yield number, stripped

        if pending:
            # Unterminated quote: hand the remainder to the row builder as is
            yield start_line, _strip_row("\n".join(pending))

    def _apply_header(self, snapshot: ParsedExportSnapshot, key: str, value: str) -> None:
        value = value.strip()
        if key == HEADER_EXPORTED_AT:
            snapshot.exported_at = parse_timestamp(value)
        elif key == HEADER_ACCOUNT_EMAIL:
            snapshot.account_email = value or None
        elif key == HEADER_CURRENT_USER_ID:
            snapshot.current_user_id = self._parse_uuid_or_none(value)
        elif key == HEADER_CURRENT_USER_NAME:
            snapshot.current_user_name = unescape_field(value) or None
        else:
            snapshot.metadata[key] = value

    @staticmethod
    def _parse_uuid_or_none(value: str) -> UUID | None:
        try:
            return UUID(value)
        except ValueError:
            logger.warning("Ignoring invalid current user id in header", value=value)
            return None

    def _parse_row(
        self,
        snapshot: ParsedExportSnapshot,
        section: str,
        builder: Callable[[list[str]], Any],
        line: str,
        line_number: int,
    ) -> None:
        fields = tokenize_line(line)
        minimum = MIN_FIELD_COUNTS[section]

        if len(fields) < minimum:
            self._reject(
                section,
                f"expected at least {minimum} fields, got {len(fields)}",
                line_number,
            )
            return

        try:
            record = builder(fields)
        except ValidationError as e:
            self._reject(section, self._format_validation_error(e), line_number, e)
            return

        self._collection_for(snapshot, section).append(record)
        self.rows_parsed += 1

    def _reject(
        self,
        section: str,
        message: str,
        line_number: int,
        original_error: Exception | None = None,
    ) -> None:
        error = MalformedRowError(
            section, message, line_number=line_number, original_error=original_error
        )
        self.errors.append(error)
        logger.warning("Dropping malformed row", section=section, line=line_number, error=message)

    @staticmethod
    def _collection_for(snapshot: ParsedExportSnapshot, section: str) -> list:
        return {
            SECTION_FRIENDS: snapshot.friends,
            SECTION_GROUPS: snapshot.groups,
            SECTION_GROUP_MEMBERS: snapshot.group_members,
            SECTION_EXPENSES: snapshot.expenses,
            SECTION_EXPENSE_INVOLVED_MEMBERS: snapshot.expense_involved_members,
            SECTION_EXPENSE_SPLITS: snapshot.expense_splits,
            SECTION_EXPENSE_SUBEXPENSES: snapshot.expense_subexpenses,
            SECTION_PARTICIPANT_NAMES: snapshot.participant_names,
        }[section]

    # Section builders. Each receives a field list already checked against
    # MIN_FIELD_COUNTS and raises pydantic.ValidationError on bad values.

    def _build_friend(self, fields: list[str]) -> ParsedFriend:
        return ParsedFriend.model_validate(
            {
                "member_id": fields[0].strip(),
                "name": fields[1],
                "nickname": _optional(fields, 2),
                "has_linked_account": parse_bool(fields[3]),
                "linked_account_id": _optional(fields, 4),
                "linked_account_email": _optional(fields, 5),
                "profile_image_url": _optional(fields, 6),
                "profile_color_hex": _optional(fields, 7),
                "status": _optional(fields, 8),
            }
        )

    def _build_group(self, fields: list[str]) -> ParsedGroup:
        return ParsedGroup.model_validate(
            {
                "id": fields[0].strip(),
                "name": fields[1],
                "is_direct": parse_bool(fields[2]),
                "is_debug": parse_bool(fields[3]),
                "created_at": parse_timestamp(fields[4]),
                "member_count": fields[5].strip(),
            }
        )

    def _build_group_member(self, fields: list[str]) -> ParsedGroupMember:
        return ParsedGroupMember.model_validate(
            {
                "group_id": fields[0].strip(),
                "member_id": fields[1].strip(),
                "member_name": fields[2],
                "profile_image_url": _optional(fields, 3),
                "profile_color_hex": _optional(fields, 4),
            }
        )

    def _build_expense(self, fields: list[str]) -> ParsedExpense:
        return ParsedExpense.model_validate(
            {
                "id": fields[0].strip(),
                "group_id": fields[1].strip(),
                "description": fields[2],
                "date": parse_timestamp(fields[3]),
                "total_amount": fields[4].strip(),
                "paid_by_member_id": fields[5].strip(),
                "is_settled": parse_bool(fields[6]),
                "is_debug": parse_bool(fields[7]),
            }
        )

    def _build_involvement(self, fields: list[str]) -> ExpenseInvolvement:
        return ExpenseInvolvement.model_validate(
            {"expense_id": fields[0].strip(), "member_id": fields[1].strip()}
        )

    def _build_split(self, fields: list[str]) -> ParsedExpenseSplit:
        return ParsedExpenseSplit.model_validate(
            {
                "expense_id": fields[0].strip(),
                "split_id": fields[1].strip(),
                "member_id": fields[2].strip(),
                "amount": fields[3].strip(),
                "is_settled": parse_bool(fields[4]),
            }
        )

    def _build_subexpense(self, fields: list[str]) -> ParsedSubexpense:
        return ParsedSubexpense.model_validate(
            {
                "expense_id": fields[0].strip(),
                "subexpense_id": fields[1].strip(),
                "amount": fields[2].strip(),
            }
        )

    def _build_participant_name(self, fields: list[str]) -> ParticipantNameOverride:
        return ParticipantNameOverride.model_validate(
            {
                "expense_id": fields[0].strip(),
                "member_id": fields[1].strip(),
                "display_name": fields[2],
            }
        )

    def _format_validation_error(self, error: ValidationError) -> str:
        """
        Format Pydantic validation error into human-readable message.

        Args:
            error: Pydantic ValidationError

        Returns:
            Formatted error message
        """
        errors = error.errors()
        if not errors:
            return str(error)

        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error["loc"])
        msg = first_error["msg"]

        if len(errors) > 1:
            return f"{field}: {msg} (and {len(errors) - 1} more errors)"
        return f"{field}: {msg}"

    def get_error_summary(self) -> str:
        """
        Get a summary of all rows dropped during parsing.

        Returns:
            Human-readable error summary
        """
        if not self.errors:
            return "No errors"

        summary = [f"Dropped {len(self.errors)} malformed rows:"]
        for error in self.errors[:10]:
            summary.append(f"  - {error}")

        if len(self.errors) > 10:
            summary.append(f"  ... and {len(self.errors) - 10} more")

        return "\n".join(summary)
