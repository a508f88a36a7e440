"""Imported member ID to target member ID resolution."""

from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID, uuid4

import structlog

from ..models.domain import GroupMember, normalize_name
from ..models.resolution import CreateNew, IdentityMapping, LinkToExisting, Resolution

logger = structlog.get_logger(__name__)


@dataclass
class ResolutionStats:
    """Counters for how imported IDs were resolved during one import."""

    mapped_hits: int = 0
    links: int = 0
    name_hits: int = 0
    allocations: int = 0

    @property
    def total(self) -> int:
        return self.mapped_hits + self.links + self.name_hits + self.allocations


class IdentityResolver:
    """
    Resolve imported member IDs into target member IDs.

    Resolution is deterministic for one IdentityMapping instance:
    - An ID that already has a target keeps it.
    - LinkToExisting aliases the ID to the given target.
    - CreateNew, or no resolution at all, reuses the target of an earlier
      person with the same normalized name, or allocates a fresh one.

    Callers must resolve friends first, then group members, then expense
    members, then free-text participant names, so that the strongest name
    source claims the name cache.
    """

    def __init__(self) -> None:
        self.stats = ResolutionStats()

    def seed(
        self,
        mapping: IdentityMapping,
        imported_current_user_id: UUID | None,
        current_user: GroupMember,
        imported_current_user_name: str | None = None,
    ) -> None:
        """
        Bind the exporting user to the local current user.

        Args:
            mapping: Mapping for this import
            imported_current_user_id: CURRENT_USER_ID header value, if any
            current_user: Local current user
            imported_current_user_name: CURRENT_USER_NAME header value, if any
        """
        if imported_current_user_id is not None:
            mapping.bind(imported_current_user_id, current_user.id)
        mapping.bind_name(normalize_name(current_user.name), current_user.id)
        if imported_current_user_name:
            mapping.bind_name(normalize_name(imported_current_user_name), current_user.id)

        logger.debug(
            "Seeded identity mapping with current user",
            imported_id=str(imported_current_user_id) if imported_current_user_id else None,
            target_id=str(current_user.id),
        )

    def resolve(
        self,
        imported_id: UUID,
        name: str | None,
        resolutions: Mapping[UUID, Resolution],
        mapping: IdentityMapping,
    ) -> UUID:
        """
        Resolve one imported member ID.

        Args:
            imported_id: ID as it appears in the export file
            name: Display name carried with this occurrence of the ID
            resolutions: Caller decisions keyed by imported ID
            mapping: Mapping for this import (mutated)

        Returns:
            Target member ID
        """
        existing = mapping.get(imported_id)
        if existing is not None:
            self.stats.mapped_hits += 1
            return existing

        normalized = normalize_name(name)
        resolution = resolutions.get(imported_id)

        if isinstance(resolution, LinkToExisting):
            target = resolution.target_id
            self.stats.links += 1
            logger.debug("Linked imported member", imported_id=str(imported_id), target_id=str(target))
        else:
            if resolution is not None and not isinstance(resolution, CreateNew):
                raise TypeError(f"Unsupported resolution type: {type(resolution).__name__}")
            target = self._lookup_or_allocate(normalized, mapping)

        target = mapping.bind(imported_id, target)
        mapping.bind_name(normalized, target)
        return target

    def _lookup_or_allocate(self, normalized: str, mapping: IdentityMapping) -> UUID:
        if normalized:
            cached = mapping.name_to_target.get(normalized)
            if cached is not None:
                self.stats.name_hits += 1
                return cached
        return self._allocate(mapping)

    def _allocate(self, mapping: IdentityMapping) -> UUID:
        target = uuid4()
        mapping.allocated.add(target)
        self.stats.allocations += 1
        return target
