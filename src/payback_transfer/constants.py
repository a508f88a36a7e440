"""Format and policy constants for the PayBack transfer engine.

Named constants for markers, section names and tolerances, so the parser,
serializer and dedup engine agree on a single definition.
"""

# -----------------------------------------------------------------------------
# Envelope Markers
# -----------------------------------------------------------------------------

HEADER_MARKER: str = "===PAYBACK_EXPORT==="

# Files written by older app versions still carry the V1 header
LEGACY_HEADER_MARKER: str = "===PAYBACK_EXPORT_V1==="

END_MARKER: str = "===END_PAYBACK_EXPORT==="

ENVELOPE_MARKERS: frozenset[str] = frozenset({HEADER_MARKER, LEGACY_HEADER_MARKER, END_MARKER})


# -----------------------------------------------------------------------------
# Header Metadata Keys
# -----------------------------------------------------------------------------

HEADER_EXPORTED_AT: str = "EXPORTED_AT"
HEADER_ACCOUNT_EMAIL: str = "ACCOUNT_EMAIL"
HEADER_CURRENT_USER_ID: str = "CURRENT_USER_ID"
HEADER_CURRENT_USER_NAME: str = "CURRENT_USER_NAME"


# -----------------------------------------------------------------------------
# Sections
# -----------------------------------------------------------------------------

SECTION_FRIENDS: str = "FRIENDS"
SECTION_GROUPS: str = "GROUPS"
SECTION_GROUP_MEMBERS: str = "GROUP_MEMBERS"
SECTION_EXPENSES: str = "EXPENSES"
SECTION_EXPENSE_INVOLVED_MEMBERS: str = "EXPENSE_INVOLVED_MEMBERS"
SECTION_EXPENSE_SPLITS: str = "EXPENSE_SPLITS"
SECTION_EXPENSE_SUBEXPENSES: str = "EXPENSE_SUBEXPENSES"
SECTION_PARTICIPANT_NAMES: str = "PARTICIPANT_NAMES"

# Serializer emits sections in exactly this order
SECTION_ORDER: tuple[str, ...] = (
    SECTION_FRIENDS,
    SECTION_GROUPS,
    SECTION_GROUP_MEMBERS,
    SECTION_EXPENSES,
    SECTION_EXPENSE_INVOLVED_MEMBERS,
    SECTION_EXPENSE_SPLITS,
    SECTION_EXPENSE_SUBEXPENSES,
    SECTION_PARTICIPANT_NAMES,
)

# Column comments written above each section
SECTION_COLUMNS: dict[str, str] = {
    SECTION_FRIENDS: (
        "member_id,name,nickname,has_linked_account,linked_account_id,"
        "linked_account_email,profile_image_url,profile_color_hex,status"
    ),
    SECTION_GROUPS: "group_id,name,is_direct,is_debug,created_at,member_count",
    SECTION_GROUP_MEMBERS: "group_id,member_id,member_name,profile_image_url,profile_color_hex",
    SECTION_EXPENSES: (
        "expense_id,group_id,description,date,total_amount,paid_by_member_id,is_settled,is_debug"
    ),
    SECTION_EXPENSE_INVOLVED_MEMBERS: "expense_id,member_id",
    SECTION_EXPENSE_SPLITS: "expense_id,split_id,member_id,amount,is_settled",
    SECTION_EXPENSE_SUBEXPENSES: "expense_id,subexpense_id,amount",
    SECTION_PARTICIPANT_NAMES: "expense_id,member_id,display_name",
}

# Minimum field counts per section. Friends and group members accept the
# shorter legacy rows without avatar/status columns.
MIN_FIELD_COUNTS: dict[str, int] = {
    SECTION_FRIENDS: 6,
    SECTION_GROUPS: 6,
    SECTION_GROUP_MEMBERS: 3,
    SECTION_EXPENSES: 8,
    SECTION_EXPENSE_INVOLVED_MEMBERS: 2,
    SECTION_EXPENSE_SPLITS: 5,
    SECTION_EXPENSE_SUBEXPENSES: 3,
    SECTION_PARTICIPANT_NAMES: 3,
}


# -----------------------------------------------------------------------------
# Policy Defaults
# -----------------------------------------------------------------------------

# Expenses whose totals differ by no more than this are considered equal
DEFAULT_AMOUNT_TOLERANCE: float = 0.01

# Expenses whose dates differ by no more than this many seconds are considered equal
DEFAULT_DATE_TOLERANCE_SECONDS: float = 300.0

# Splits/subexpenses at or below this amount are omitted from exports
NEAR_ZERO_AMOUNT: float = 0.001

# Expenses per bulk-import request
DEFAULT_CHUNK_SIZE: int = 100

FRIEND_STATUS: str = "friend"
PEER_STATUS: str = "peer"

DEFAULT_BULK_IMPORT_PATH: str = "/api/bulk-import"

EXPORT_FILENAME_PREFIX: str = "PayBack_Export_"
