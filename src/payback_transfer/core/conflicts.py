"""Name-based conflict detection between imported people and the local roster."""

from collections.abc import Iterable
from uuid import UUID

import structlog

from ..constants import PEER_STATUS
from ..models.domain import AccountFriend, SpendingGroup, normalize_name
from ..models.parsed import ParsedExportSnapshot
from ..models.resolution import Conflict

logger = structlog.get_logger(__name__)


class ConflictDetector:
    """
    Find imported people whose display name matches someone already stored.

    Matching is case-insensitive on trimmed names. The index is built from the
    friend roster first and then from every member of every existing group, so
    a friend record always wins over a group-only peer with the same name. The
    current user never takes part on either side.
    """

    def detect(
        self,
        snapshot: ParsedExportSnapshot,
        existing_friends: Iterable[AccountFriend],
        existing_groups: Iterable[SpendingGroup],
        current_user_id: UUID,
    ) -> list[Conflict]:
        """
        Detect identity conflicts for one parsed export.

        Args:
            snapshot: Parsed export
            existing_friends: Local friend roster
            existing_groups: Local groups (their members are indexed too)
            current_user_id: Local current-user ID, excluded from the index

        Returns:
            One Conflict per conflicting imported ID, friends first, then
            group members in parsed group order
        """
        index = self._build_index(existing_friends, existing_groups, current_user_id)
        if not index:
            return []

        conflicts: list[Conflict] = []
        flagged: set[UUID] = set()
        skip_id = snapshot.current_user_id

        def check(
            imported_id: UUID,
            name: str,
            image_url: str | None,
            color_hex: str | None,
        ) -> None:
            if imported_id == skip_id or imported_id in flagged:
                return
            existing = index.get(normalize_name(name))
            if existing is None:
                return
            flagged.add(imported_id)
            conflicts.append(
                Conflict(
                    imported_member_id=imported_id,
                    imported_name=name,
                    existing_friend=existing,
                    imported_profile_image_url=image_url,
                    imported_profile_color_hex=color_hex,
                )
            )

        for friend in snapshot.friends:
            check(friend.member_id, friend.name, friend.profile_image_url, friend.profile_color_hex)

        for group in snapshot.groups:
            for member in snapshot.members_of(group.id):
                check(
                    member.member_id,
                    member.member_name,
                    member.profile_image_url,
                    member.profile_color_hex,
                )

        logger.info("Conflict detection complete", conflicts=len(conflicts), indexed_names=len(index))
        return conflicts

    @staticmethod
    def _build_index(
        existing_friends: Iterable[AccountFriend],
        existing_groups: Iterable[SpendingGroup],
        current_user_id: UUID,
    ) -> dict[str, AccountFriend]:
        index: dict[str, AccountFriend] = {}

        for friend in existing_friends:
            key = normalize_name(friend.name)
            if key and friend.member_id != current_user_id:
                index.setdefault(key, friend)

        for group in existing_groups:
            for member in group.members:
                key = normalize_name(member.name)
                if not key or member.id == current_user_id or key in index:
                    continue
                # Group-only peer, presented like a friend record
                index[key] = AccountFriend(
                    member_id=member.id,
                    name=member.name,
                    profile_image_url=member.profile_image_url,
                    profile_color_hex=member.profile_color_hex,
                    status=PEER_STATUS,
                )

        return index
