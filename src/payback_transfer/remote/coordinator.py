"""Bulk Submission Coordinator - mirror a merge result to the remote store.

State machine:
    IDLE -> REMAPPING -> CHUNKING -> SUBMITTING -> AGGREGATING
         -> DONE | PARTIALLY_FAILED | FAILED

Remapping:
    Payloads are built from the records just committed locally, found through
    the merge result's member, group and expense mappings. Imported IDs never
    reach the remote store.

Chunking:
    Expenses are split into batches of ``chunk_size``. Friends and groups ride
    along with the first request only. An import without expenses still sends
    one request so friends and groups are synced.

Submitting:
    Requests are sent one at a time, in order. A failed request is recorded as
    ``Chunk N failed: <reason>`` and the next one is still attempted. An
    optional asyncio.Event is checked between requests to cancel the rest.
"""

import asyncio
from collections.abc import Iterable
from uuid import UUID

import structlog

from ..constants import DEFAULT_CHUNK_SIZE
from ..models.domain import AccountFriend, Expense, LocalSnapshot, SpendingGroup
from ..models.parsed import ParsedExportSnapshot
from ..models.payloads import (
    BulkExpensePayload,
    BulkFriendPayload,
    BulkGroupMemberPayload,
    BulkGroupPayload,
    BulkImportRequest,
    BulkParticipantPayload,
    BulkSplitPayload,
    BulkSubexpensePayload,
)
from ..models.results import BulkSubmissionResult, CreatedCounts, MergeResult, SubmissionState
from ..utils.exceptions import ChunkSubmissionError, RemoteError
from ..utils.timestamps import to_epoch_ms
from .submitter import BulkImportSubmitter

logger = structlog.get_logger(__name__)


def _unique(ids: Iterable[UUID | None]) -> list[UUID]:
    seen: list[UUID] = []
    for value in ids:
        if value is not None and value not in seen:
            seen.append(value)
    return seen


class BulkSubmissionCoordinator:
    """
    Build and submit bulk-import requests for one import.

    Attributes:
        submitter: Remote backend
        chunk_size: Expenses per request
        state: Current state of the last (or running) submission
    """

    def __init__(self, submitter: BulkImportSubmitter, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        self.submitter = submitter
        self.chunk_size = chunk_size
        self.state = SubmissionState.IDLE

    def _transition(self, state: SubmissionState) -> None:
        logger.debug("Submission state change", previous=self.state.value, state=state.value)
        self.state = state

    async def submit(
        self,
        snapshot: ParsedExportSnapshot,
        merge_result: MergeResult,
        local: LocalSnapshot,
        cancel_event: asyncio.Event | None = None,
    ) -> BulkSubmissionResult:
        """
        Submit the merged import to the remote store.

        Args:
            snapshot: Parsed export the merge was computed from
            merge_result: Output of MergeCommitter.commit()
            local: Local snapshot after the merge
            cancel_event: When set, no further requests are sent

        Returns:
            BulkSubmissionResult in a terminal state
        """
        self.state = SubmissionState.IDLE
        requests = self.build_requests(snapshot, merge_result, local)
        result = BulkSubmissionResult(chunks_total=len(requests))

        self._transition(SubmissionState.SUBMITTING)
        chunk_errors = 0
        for number, request in enumerate(requests, start=1):
            if cancel_event is not None and cancel_event.is_set():
                result.errors.append(f"Submission cancelled before chunk {number}")
                logger.warning("Submission cancelled", remaining=len(requests) - number + 1)
                break

            try:
                response = await self.submitter.submit(request)
            except RemoteError as e:
                error = ChunkSubmissionError(number, str(e))
                result.errors.append(str(error))
                chunk_errors += 1
                logger.warning(
                    "Chunk submission failed",
                    chunk=number,
                    total=len(requests),
                    error=str(e),
                    status_code=e.status_code,
                )
                continue
            except Exception as e:
                # Submitters other than the HTTP one may raise anything
                error = ChunkSubmissionError(number, str(e) or type(e).__name__)
                result.errors.append(str(error))
                chunk_errors += 1
                logger.error(
                    "Chunk submission failed",
                    chunk=number,
                    total=len(requests),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            result.chunks_succeeded += 1
            result.created = result.created + CreatedCounts(
                friends=response.created.friends,
                groups=response.created.groups,
                expenses=response.created.expenses,
            )
            result.errors.extend(response.errors)
            logger.info(
                "Chunk submitted",
                chunk=number,
                total=len(requests),
                expenses=len(request.expenses),
                remote_errors=len(response.errors),
            )

        self._transition(SubmissionState.AGGREGATING)
        if result.chunks_succeeded == 0:
            final = SubmissionState.FAILED
        elif chunk_errors or result.chunks_succeeded < result.chunks_total:
            final = SubmissionState.PARTIALLY_FAILED
        else:
            final = SubmissionState.DONE
        self._transition(final)
        result.state = final

        logger.info(
            "Bulk submission finished",
            state=final.value,
            chunks_total=result.chunks_total,
            chunks_succeeded=result.chunks_succeeded,
            created_friends=result.created.friends,
            created_groups=result.created.groups,
            created_expenses=result.created.expenses,
            errors=len(result.errors),
        )
        return result

    def build_requests(
        self,
        snapshot: ParsedExportSnapshot,
        merge_result: MergeResult,
        local: LocalSnapshot,
    ) -> list[BulkImportRequest]:
        """
        Remap and chunk a merge result into bulk-import requests.

        Returns:
            At least one request; friends and groups only in the first
        """
        self._transition(SubmissionState.REMAPPING)
        friends = self._friend_payloads(snapshot, merge_result, local)
        groups = self._group_payloads(snapshot, merge_result, local)
        expenses = self._expense_payloads(snapshot, merge_result, local)

        self._transition(SubmissionState.CHUNKING)
        batches = [
            expenses[start : start + self.chunk_size]
            for start in range(0, len(expenses), self.chunk_size)
        ] or [[]]

        requests = [BulkImportRequest(expenses=batch) for batch in batches]
        requests[0].friends = friends
        requests[0].groups = groups

        logger.debug(
            "Bulk requests planned",
            chunks=len(requests),
            friends=len(friends),
            groups=len(groups),
            expenses=len(expenses),
        )
        return requests

    # -------------------------------------------------------------------------
    # Payload builders
    # -------------------------------------------------------------------------

    def _friend_payloads(
        self,
        snapshot: ParsedExportSnapshot,
        merge_result: MergeResult,
        local: LocalSnapshot,
    ) -> list[BulkFriendPayload]:
        mapping = merge_result.mapping
        imported_ids = [f.member_id for f in snapshot.friends]
        imported_ids += [m.member_id for m in snapshot.group_members]
        imported_ids += [p.member_id for p in snapshot.participant_names]

        payloads = []
        for target in _unique(mapping.get(i) for i in imported_ids):
            if target == local.current_user.id:
                continue
            friend = local.friend_by_id(target)
            if friend is None:
                continue
            payloads.append(
                BulkFriendPayload(
                    member_id=str(friend.member_id),
                    name=friend.name,
                    nickname=friend.nickname,
                    status=friend.status,
                    profile_image_url=friend.profile_image_url,
                    profile_avatar_color=friend.profile_color_hex,
                )
            )
        return payloads

    def _group_payloads(
        self,
        snapshot: ParsedExportSnapshot,
        merge_result: MergeResult,
        local: LocalSnapshot,
    ) -> list[BulkGroupPayload]:
        payloads = []
        targets = _unique(merge_result.group_mapping.get(g.id) for g in snapshot.groups)
        for group_id in targets:
            group = local.group_by_id(group_id)
            if group is None:
                continue
            payloads.append(
                BulkGroupPayload(
                    id=str(group.id),
                    name=group.name,
                    members=[
                        BulkGroupMemberPayload(
                            id=str(member.id),
                            name=member.name,
                            profile_avatar_color=member.profile_color_hex,
                        )
                        for member in group.members
                    ],
                    is_direct=group.is_direct,
                )
            )
        return payloads

    def _expense_payloads(
        self,
        snapshot: ParsedExportSnapshot,
        merge_result: MergeResult,
        local: LocalSnapshot,
    ) -> list[BulkExpensePayload]:
        by_id = {e.id: e for e in local.expenses}
        targets = _unique(merge_result.expense_mapping.get(e.id) for e in snapshot.expenses)

        payloads = []
        for expense_id in targets:
            expense = by_id.get(expense_id)
            if expense is None:
                continue
            payloads.append(self._expense_payload(expense, local))
        return payloads

    def _expense_payload(self, expense: Expense, local: LocalSnapshot) -> BulkExpensePayload:
        group = local.group_by_id(expense.group_id)
        participant_ids = _unique([*expense.involved_member_ids, expense.paid_by_member_id])

        return BulkExpensePayload(
            id=str(expense.id),
            group_id=str(expense.group_id),
            description=expense.description,
            date_ms=to_epoch_ms(expense.date),
            total_amount=expense.total_amount,
            paid_by_member_id=str(expense.paid_by_member_id),
            involved_member_ids=[str(m) for m in expense.involved_member_ids],
            splits=[
                BulkSplitPayload(
                    id=str(split.id),
                    member_id=str(split.member_id),
                    amount=split.amount,
                    is_settled=split.is_settled,
                )
                for split in expense.splits
            ],
            is_settled=expense.is_settled,
            participant_member_ids=[str(m) for m in participant_ids],
            participants=[
                self._participant(member_id, expense, group, local) for member_id in participant_ids
            ],
            subexpenses=(
                [BulkSubexpensePayload(id=str(s.id), amount=s.amount) for s in expense.subexpenses]
                if expense.subexpenses
                else None
            ),
        )

    @staticmethod
    def _participant(
        member_id: UUID,
        expense: Expense,
        group: SpendingGroup | None,
        local: LocalSnapshot,
    ) -> BulkParticipantPayload:
        friend: AccountFriend | None = local.friend_by_id(member_id)

        name = (expense.participant_names or {}).get(member_id)
        if name is None and friend is not None:
            name = friend.name
        if name is None and member_id == local.current_user.id:
            name = local.current_user.name
        if name is None and group is not None:
            name = next((m.name for m in group.members if m.id == member_id), None)

        return BulkParticipantPayload(
            member_id=str(member_id),
            name=name or "Unknown",
            linked_account_id=friend.linked_account_id if friend else None,
            linked_account_email=friend.linked_account_email if friend else None,
        )
