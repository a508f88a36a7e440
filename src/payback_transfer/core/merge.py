"""Merge Committer - apply a parsed export to the local snapshot.

Runs the four merge steps in a fixed order, since each step depends on the
identity mapping built by the steps before it:

1. Friends        - resolve, then insert or promote roster entries
2. Groups         - resolve members, dedup, insert or map to existing
3. Friend backfill - every imported group member gets a roster entry
4. Expenses       - map group, resolve members, dedup, insert

Every write is a single append (or in-place promotion) on the local snapshot.
Duplicate checks only see records stored before the merge began.
A missing group mapping skips one expense and is reported as a warning.
"""

from collections.abc import Mapping
from uuid import UUID

import structlog

from ..config import ImportPolicyConfig
from ..models.domain import (
    AccountFriend,
    Expense,
    ExpenseSplit,
    GroupMember,
    LocalSnapshot,
    SpendingGroup,
    Subexpense,
    normalize_name,
)
from ..models.parsed import ParsedExpense, ParsedExportSnapshot, ParsedFriend, ParsedGroup
from ..models.resolution import IdentityMapping, LinkToExisting, Resolution
from ..models.results import MergeResult
from ..utils.exceptions import MissingGroupMappingError
from .dedup import DeduplicationEngine
from .identity import IdentityResolver

logger = structlog.get_logger(__name__)


class MergeCommitter:
    """
    Orchestrate identity resolution and deduplication into local writes.

    Attributes:
        policy: Import policy (default friend status, dedup tolerances)
        resolver: Identity resolver used for every imported member ID
        dedup: Duplicate checks for groups and expenses
    """

    def __init__(
        self,
        policy: ImportPolicyConfig | None = None,
        resolver: IdentityResolver | None = None,
        dedup: DeduplicationEngine | None = None,
    ) -> None:
        self.policy = policy or ImportPolicyConfig()
        self.resolver = resolver or IdentityResolver()
        self.dedup = dedup or DeduplicationEngine(self.policy)

    def commit(
        self,
        snapshot: ParsedExportSnapshot,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
    ) -> MergeResult:
        """
        Merge a parsed export into the local snapshot.

        Args:
            snapshot: Parsed export
            resolutions: Caller decisions keyed by imported member ID
            local: Local snapshot (mutated in place)

        Returns:
            MergeResult with inserted records, warnings and all mappings
        """
        result = MergeResult()
        self.resolver.seed(
            result.mapping,
            snapshot.current_user_id,
            local.current_user,
            snapshot.current_user_name,
        )

        # Records in the same file never dedup against each other
        stored_groups = list(local.groups)
        stored_expenses = list(local.expenses)

        self._commit_friends(snapshot, resolutions, local, result)
        self._commit_groups(snapshot, resolutions, local, result, stored_groups)
        self._backfill_friends(snapshot, local, result)
        self._commit_expenses(snapshot, resolutions, local, result, stored_expenses)

        logger.info(
            "Merge complete",
            friends_added=len(result.new_friends),
            groups_added=len(result.new_groups),
            expenses_added=len(result.new_expenses),
            warnings=len(result.warnings),
            allocated_ids=len(result.mapping.allocated),
        )
        return result

    # -------------------------------------------------------------------------
    # Step 1: Friends
    # -------------------------------------------------------------------------

    def _commit_friends(
        self,
        snapshot: ParsedExportSnapshot,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
        result: MergeResult,
    ) -> None:
        current_user_id = local.current_user.id

        for parsed in snapshot.friends:
            if parsed.member_id == snapshot.current_user_id:
                continue

            target = self.resolver.resolve(parsed.member_id, parsed.name, resolutions, result.mapping)
            if target == current_user_id:
                continue

            friend = self._friend_from_parsed(target, parsed)
            existing = local.friend_by_id(target)
            if existing is not None and (existing.is_friend or not friend.is_friend):
                logger.debug("Friend already present", member_id=str(target))
                continue

            if existing is not None:
                logger.debug("Promoting peer to friend", member_id=str(target))
            local.add_friend(friend)
            result.new_friends.append(friend)

    def _friend_from_parsed(self, target: UUID, parsed: ParsedFriend) -> AccountFriend:
        return AccountFriend(
            member_id=target,
            name=parsed.name,
            nickname=parsed.nickname,
            has_linked_account=parsed.has_linked_account,
            linked_account_id=parsed.linked_account_id,
            linked_account_email=parsed.linked_account_email,
            profile_image_url=parsed.profile_image_url,
            profile_color_hex=parsed.profile_color_hex,
            status=parsed.status or self.policy.default_friend_status,
        )

    # -------------------------------------------------------------------------
    # Step 2: Groups
    # -------------------------------------------------------------------------

    def _commit_groups(
        self,
        snapshot: ParsedExportSnapshot,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
        result: MergeResult,
        stored_groups: list[SpendingGroup],
    ) -> None:
        for parsed in snapshot.groups:
            if parsed.id in result.group_mapping:
                continue

            candidate = self._assemble_group(snapshot, parsed, resolutions, local, result.mapping)
            duplicate_id = self.dedup.find_duplicate_group(candidate, stored_groups)
            if duplicate_id is not None:
                result.group_mapping[parsed.id] = duplicate_id
                logger.debug("Mapped imported group to existing", name=parsed.name)
                continue

            local.add_group(candidate)
            result.new_groups.append(candidate)
            result.group_mapping[parsed.id] = candidate.id

    def _assemble_group(
        self,
        snapshot: ParsedExportSnapshot,
        parsed: ParsedGroup,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
        mapping: IdentityMapping,
    ) -> SpendingGroup:
        current_user = local.current_user
        members: list[GroupMember] = []
        seen: set[UUID] = set()

        for row in snapshot.members_of(parsed.id):
            target = self.resolver.resolve(row.member_id, row.member_name, resolutions, mapping)
            if target in seen:
                continue
            seen.add(target)

            if target == current_user.id:
                members.append(current_user.model_copy())
                continue

            friend = local.friend_by_id(target)
            members.append(
                GroupMember(
                    id=target,
                    name=friend.name if friend else row.member_name,
                    profile_image_url=row.profile_image_url,
                    profile_color_hex=row.profile_color_hex,
                )
            )

        if current_user.id not in seen:
            members.insert(0, current_user.model_copy())

        return SpendingGroup(
            name=parsed.name,
            members=members,
            created_at=parsed.created_at,
            is_direct=parsed.is_direct,
            is_debug=parsed.is_debug,
        )

    # -------------------------------------------------------------------------
    # Step 3: Friend backfill
    # -------------------------------------------------------------------------

    def _backfill_friends(
        self,
        snapshot: ParsedExportSnapshot,
        local: LocalSnapshot,
        result: MergeResult,
    ) -> None:
        current_user_id = local.current_user.id
        processed_names: set[str] = set()

        for parsed in snapshot.groups:
            for row in snapshot.members_of(parsed.id):
                target = result.mapping.get(row.member_id)
                if target is None or target == current_user_id:
                    continue

                key = normalize_name(row.member_name)
                if key in processed_names:
                    continue
                if key:
                    processed_names.add(key)

                if local.friend_by_id(target) is not None:
                    continue

                friend = AccountFriend(
                    member_id=target,
                    name=row.member_name,
                    profile_image_url=row.profile_image_url,
                    profile_color_hex=row.profile_color_hex,
                    status=self.policy.default_friend_status,
                )
                local.add_friend(friend)
                result.new_friends.append(friend)
                logger.debug("Backfilled friend from group member", member_id=str(target))

    # -------------------------------------------------------------------------
    # Step 4: Expenses
    # -------------------------------------------------------------------------

    def _commit_expenses(
        self,
        snapshot: ParsedExportSnapshot,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
        result: MergeResult,
        stored_expenses: list[Expense],
    ) -> None:
        current_user_id = local.current_user.id
        roster: dict[str, UUID] = {}
        for friend in local.friends:
            key = normalize_name(friend.name)
            if key and friend.member_id != current_user_id:
                roster.setdefault(key, friend.member_id)

        for parsed in snapshot.expenses:
            try:
                self._commit_expense(
                    snapshot, parsed, resolutions, local, result, roster, stored_expenses
                )
            except MissingGroupMappingError as e:
                result.warnings.append(str(e))
                logger.warning(
                    "Skipping expense with unmapped group",
                    description=parsed.description,
                    group_id=str(parsed.group_id),
                )

    def _commit_expense(
        self,
        snapshot: ParsedExportSnapshot,
        parsed: ParsedExpense,
        resolutions: Mapping[UUID, Resolution],
        local: LocalSnapshot,
        result: MergeResult,
        roster: dict[str, UUID],
        stored_expenses: list[Expense],
    ) -> None:
        group_id = result.group_mapping.get(parsed.group_id)
        if group_id is None:
            raise MissingGroupMappingError(parsed.description, parsed.group_id)

        overrides = {o.member_id: o.display_name for o in snapshot.names_for(parsed.id)}

        def resolve(member_id: UUID) -> UUID:
            return self._resolve_expense_member(
                member_id, overrides.get(member_id), resolutions, result.mapping, roster
            )

        payer = resolve(parsed.paid_by_member_id)
        involved: list[UUID] = []
        for member_id in snapshot.involved_in(parsed.id):
            target = resolve(member_id)
            if target not in involved:
                involved.append(target)

        splits = [
            ExpenseSplit(member_id=resolve(s.member_id), amount=s.amount, is_settled=s.is_settled)
            for s in snapshot.splits_of(parsed.id)
        ]
        subexpenses = [Subexpense(amount=s.amount) for s in snapshot.subexpenses_of(parsed.id)]

        # Free-text names come last as a name source
        participant_names: dict[UUID, str] = {}
        for member_id, display_name in overrides.items():
            target = resolve(member_id)
            participant_names[target] = display_name
            self._synthesize_friend(target, display_name, local, result)

        candidate = Expense(
            group_id=group_id,
            description=parsed.description,
            date=parsed.date,
            total_amount=parsed.total_amount,
            paid_by_member_id=payer,
            involved_member_ids=involved,
            splits=splits,
            is_settled=parsed.is_settled,
            participant_names=participant_names or None,
            is_debug=parsed.is_debug,
            subexpenses=subexpenses or None,
        )

        duplicate = self.dedup.find_duplicate_expense(candidate, stored_expenses)
        if duplicate is not None:
            result.expense_mapping[parsed.id] = duplicate.id
            return

        local.add_expense(candidate)
        result.new_expenses.append(candidate)
        result.expense_mapping[parsed.id] = candidate.id

    def _resolve_expense_member(
        self,
        member_id: UUID,
        override_name: str | None,
        resolutions: Mapping[UUID, Resolution],
        mapping: IdentityMapping,
        roster: dict[str, UUID],
    ) -> UUID:
        """
        Resolve a payer, involved member, split owner or named participant.

        IDs that only ever appear with a free-text name cannot be raised as
        conflicts, so an unresolved one matching a roster name links to it.
        """
        # Roster fallback for name-only members, see "Participant-name fallback"
        # in DESIGN.md. No Conflict is raised for these.
        if mapping.get(member_id) is None and member_id not in resolutions and override_name:
            known = roster.get(normalize_name(override_name))
            if known is not None and normalize_name(override_name) not in mapping.name_to_target:
                return self.resolver.resolve(
                    member_id, override_name, {member_id: LinkToExisting(known)}, mapping
                )
        return self.resolver.resolve(member_id, override_name, resolutions, mapping)

    def _synthesize_friend(
        self,
        target: UUID,
        display_name: str,
        local: LocalSnapshot,
        result: MergeResult,
    ) -> None:
        if target == local.current_user.id or target not in result.mapping.allocated:
            return
        if not display_name.strip() or local.friend_by_id(target) is not None:
            return

        friend = AccountFriend(
            member_id=target,
            name=display_name,
            status=self.policy.default_friend_status,
        )
        local.add_friend(friend)
        result.new_friends.append(friend)
        logger.debug("Synthesized friend from participant name", member_id=str(target))
