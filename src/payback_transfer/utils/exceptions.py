"""Custom exceptions for the PayBack transfer engine.

Exception Hierarchy:
-------------------
TransferError (base)
├── FormatError
│   ├── InvalidFormatError       # Missing header/footer envelope (fatal)
│   └── MalformedRowError        # One row failed field-count/type checks (row dropped)
├── MissingGroupMappingError     # Expense references a group that was never imported
└── RemoteError (base for bulk-import failures)
    ├── RemoteSubmissionError        # HTTP error status or transport failure
    ├── RemoteAuthenticationError    # HTTP 401/403
    └── ChunkSubmissionError         # A single chunk failed, carries its index

Usage Guidelines:
----------------
1. Only InvalidFormatError aborts a parse. Malformed rows are collected on the
   parser and logged, never raised out of ExportParser.parse().

2. MissingGroupMappingError is raised inside the merge step for one expense and
   caught by the committer loop, which turns it into a warning string.

3. httpx errors never leave the submitter: they are wrapped in
   RemoteSubmissionError so the coordinator only needs to handle RemoteError.
"""


class TransferError(Exception):
    """Base exception for all transfer engine errors."""

    pass


class FormatError(TransferError):
    """Raised when export text cannot be interpreted."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize FormatError.

        Args:
            message: Error message.
            line_number: Optional line number where error occurred.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.line_number = line_number
        self.original_error = original_error


class InvalidFormatError(FormatError):
    """Raised when the text is not wrapped in a recognized export envelope."""

    def __init__(self, message: str = "The data format is not compatible with PayBack") -> None:
        super().__init__(message)


class MalformedRowError(FormatError):
    """Recorded when a single section row is rejected."""

    def __init__(
        self,
        section: str,
        message: str,
        line_number: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize MalformedRowError.

        Args:
            section: Section name the row belongs to (e.g. "EXPENSES").
            message: Why the row was rejected.
            line_number: Line number of the row in the export text.
            original_error: Optional underlying validation error.
        """
        super().__init__(message, line_number=line_number, original_error=original_error)
        self.section = section

    def __str__(self) -> str:
        """Return message prefixed with section and line number."""
        prefix = f"[{self.section}]"
        if self.line_number:
            prefix = f"Line {self.line_number} {prefix}"
        return f"{prefix}: {self.args[0]}"


class MissingGroupMappingError(TransferError):
    """Raised when an expense's group was never imported or mapped."""

    def __init__(self, expense_description: str, group_id: object) -> None:
        super().__init__(f"Skipped expense '{expense_description}': group not found")
        self.expense_description = expense_description
        self.group_id = group_id


class RemoteError(TransferError):
    """Base exception for remote bulk-import errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """
        Initialize RemoteError.

        Args:
            message: Error message.
            status_code: Optional HTTP status code.
        """
        super().__init__(message)
        self.status_code = status_code


class RemoteSubmissionError(RemoteError):
    """Raised when the bulk-import endpoint rejects a request or is unreachable."""

    pass


class RemoteAuthenticationError(RemoteError):
    """Raised when the bulk-import endpoint refuses our credentials."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401) -> None:
        super().__init__(message, status_code=status_code)


class ChunkSubmissionError(RemoteError):
    """Raised for a failed chunk; the coordinator records it and moves on."""

    def __init__(self, chunk_number: int, reason: str) -> None:
        """
        Initialize ChunkSubmissionError.

        Args:
            chunk_number: 1-based chunk number.
            reason: Failure reason reported by the submitter.
        """
        super().__init__(f"Chunk {chunk_number} failed: {reason}")
        self.chunk_number = chunk_number
        self.reason = reason
