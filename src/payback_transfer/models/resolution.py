"""Conflict, resolution and identity-mapping types."""

from dataclasses import dataclass, field
from uuid import UUID

from .domain import AccountFriend


@dataclass(frozen=True)
class Conflict:
    """
    An imported person whose name matches someone already on the local roster.

    Attributes:
        imported_member_id: ID the person carries in the export file
        imported_name: Display name from the export file
        imported_profile_image_url: Avatar URL from the export file
        imported_profile_color_hex: Avatar color from the export file
        existing_friend: First local person with the same name
    """

    imported_member_id: UUID
    imported_name: str
    existing_friend: AccountFriend
    imported_profile_image_url: str | None = None
    imported_profile_color_hex: str | None = None


@dataclass(frozen=True)
class CreateNew:
    """Treat the imported person as distinct from everyone already stored.

    Repeats of the same name inside one import still collapse to one person.
    """


@dataclass(frozen=True)
class LinkToExisting:
    """Alias the imported person to an existing local person."""

    target_id: UUID


Resolution = CreateNew | LinkToExisting


@dataclass
class IdentityMapping:
    """
    Session-scoped mapping from imported member IDs to target member IDs.

    Attributes:
        imported_to_target: Grows monotonically, an entry is never overwritten
        name_to_target: Normalized display name -> target ID, first writer wins
        allocated: Target IDs freshly created during this session
    """

    imported_to_target: dict[UUID, UUID] = field(default_factory=dict)
    name_to_target: dict[str, UUID] = field(default_factory=dict)
    allocated: set[UUID] = field(default_factory=set)

    def get(self, imported_id: UUID) -> UUID | None:
        return self.imported_to_target.get(imported_id)

    def bind(self, imported_id: UUID, target_id: UUID) -> UUID:
        """Record a target for an imported ID unless one is already recorded."""
        return self.imported_to_target.setdefault(imported_id, target_id)

    def bind_name(self, normalized_name: str, target_id: UUID) -> None:
        if normalized_name:
            self.name_to_target.setdefault(normalized_name, target_id)
