"""Type-Safe Pydantic Models for the remote bulk-import endpoint.

Field names match the wire format exactly (snake_case), so a request is sent
with ``request.model_dump(mode="json", exclude_none=True)``.

Usage:
    from payback_transfer.models.payloads import BulkImportRequest

    request = BulkImportRequest(friends=[...], groups=[...], expenses=[...])
    await client.post(url, json=request.model_dump(mode="json", exclude_none=True))
"""

from pydantic import BaseModel, Field


class BulkFriendPayload(BaseModel):
    """Friend entry of a bulk-import request."""

    member_id: str = Field(..., min_length=1)
    name: str
    nickname: str | None = None
    status: str | None = None
    profile_image_url: str | None = None
    profile_avatar_color: str | None = None


class BulkGroupMemberPayload(BaseModel):
    """Member entry nested in a group payload."""

    id: str = Field(..., min_length=1)
    name: str
    profile_avatar_color: str | None = None


class BulkGroupPayload(BaseModel):
    """Group entry of a bulk-import request."""

    id: str = Field(..., min_length=1)
    name: str
    members: list[BulkGroupMemberPayload] = Field(default_factory=list)
    is_direct: bool = False


class BulkSplitPayload(BaseModel):
    id: str
    member_id: str
    amount: float
    is_settled: bool = False


class BulkSubexpensePayload(BaseModel):
    id: str
    amount: float


class BulkParticipantPayload(BaseModel):
    """Display identity of one expense participant."""

    member_id: str
    name: str
    linked_account_id: str | None = None
    linked_account_email: str | None = None


class BulkExpensePayload(BaseModel):
    """Expense entry of a bulk-import request."""

    id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    description: str
    date_ms: float = Field(..., description="Milliseconds since the Unix epoch")
    total_amount: float
    paid_by_member_id: str
    involved_member_ids: list[str] = Field(default_factory=list)
    splits: list[BulkSplitPayload] = Field(default_factory=list)
    is_settled: bool = False
    participant_member_ids: list[str] = Field(default_factory=list)
    participants: list[BulkParticipantPayload] = Field(default_factory=list)
    subexpenses: list[BulkSubexpensePayload] | None = None


class BulkImportRequest(BaseModel):
    """One chunk sent to the bulk-import endpoint."""

    friends: list[BulkFriendPayload] = Field(default_factory=list)
    groups: list[BulkGroupPayload] = Field(default_factory=list)
    expenses: list[BulkExpensePayload] = Field(default_factory=list)

    def to_wire(self) -> dict:
        """JSON-ready body with unset optional fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)


class BulkCreatedCounts(BaseModel):
    friends: int = 0
    groups: int = 0
    expenses: int = 0


class BulkImportResponse(BaseModel):
    """Response body of the bulk-import endpoint."""

    created: BulkCreatedCounts = Field(default_factory=BulkCreatedCounts)
    errors: list[str] = Field(default_factory=list)

    # Backends add fields such as "success"; keep them
    model_config = {"extra": "allow"}
