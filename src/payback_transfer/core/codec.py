"""Line format codec for PayBack export rows.

Rows use RFC-4180 style quoting:
- A field containing a comma, quote, newline or carriage return is wrapped in
  double quotes on output.
- Inside a quoted field a doubled quote (``""``) is a literal quote.

Tokenizing is a plain character scan with a quote toggle, so it has no opinion
about what the fields mean; the parser decides that per section.
"""

from collections.abc import Iterable

QUOTE = '"'
DELIMITER = ","
_NEEDS_QUOTING = (DELIMITER, QUOTE, "\n", "\r")


def tokenize_line(line: str) -> list[str]:
    """
    Split one logical row into fields.

    Args:
        line: Row text (may contain newlines inside quoted fields)

    Returns:
        Ordered list of unescaped field values. An empty line yields ``[""]``.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == QUOTE:
            if in_quotes and i + 1 < length and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def escape_field(value: str | None) -> str:
    """Quote a single value if it needs quoting; None becomes an empty field."""
    if value is None:
        return ""
    if any(token in value for token in _NEEDS_QUOTING):
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def unescape_field(value: str) -> str:
    """
    Reverse escape_field() for a value that was stored outside a row.

    Used for header values such as CURRENT_USER_NAME, which are written
    escaped but read as a whole line remainder.
    """
    if len(value) >= 2 and value.startswith(QUOTE) and value.endswith(QUOTE):
        value = value[1:-1]
    return value.replace(QUOTE * 2, QUOTE)


def detokenize_fields(fields: Iterable[str | None]) -> str:
    """Join values into one row, escaping each as needed."""
    return DELIMITER.join(escape_field(field) for field in fields)


def has_open_quote(text: str) -> bool:
    """
    Check whether a row fragment ends inside a quoted field.

    Doubled quotes cancel out, so an odd quote count means the field continues
    on the next physical line.
    """
    return text.count(QUOTE) % 2 == 1


def format_bool(value: bool) -> str:
    return "true" if value else "false"


def parse_bool(value: str) -> bool:
    """Only the literal ``true`` (any case) is true, anything else is false."""
    return value.strip().lower() == "true"


def format_amount(value: float) -> str:
    """Two-decimal fixed notation used for every amount in exports."""
    return f"{value:.2f}"
