"""Tests for the MergeCommitter class."""

from uuid import UUID, uuid4

from src.payback_transfer.core.merge import MergeCommitter
from src.payback_transfer.core.parser import ExportParser
from src.payback_transfer.models.domain import AccountFriend, GroupMember, SpendingGroup
from src.payback_transfer.models.resolution import CreateNew, LinkToExisting

GUEST = UUID("00000000-0000-4000-8000-0000000000c1")
GROUP_ROW = "{trip},Trip,false,false,2024-03-01T10:00:00Z,2"


class TestMergeFriends:
    """Test the friend step."""

    def setup_method(self):
        """Set up test fixtures."""
        self.committer = MergeCommitter()
        self.parser = ExportParser()

    def test_new_friend_is_inserted_with_default_status(self, make_export, ids, empty_local):
        """Test that a friend without status gets the default one."""
        text = make_export(friends=[f"{ids.alice},Alice,Ali,false,,"])
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert len(result.new_friends) == 1
        friend = empty_local.friends[0]
        assert friend.name == "Alice"
        assert friend.nickname == "Ali"
        assert friend.status == "friend"
        assert friend.member_id != ids.alice

    def test_linked_existing_friend_is_skipped(self, make_export, ids, empty_local):
        """Test that linking to a stored friend writes nothing."""
        existing = AccountFriend(member_id=uuid4(), name="Alice", status="friend")
        empty_local.friends.append(existing)
        text = make_export(friends=[f"{ids.alice},Alice,,false,,"])

        result = self.committer.commit(
            self.parser.parse(text), {ids.alice: LinkToExisting(existing.member_id)}, empty_local
        )

        assert result.new_friends == []
        assert empty_local.friends == [existing]

    def test_peer_is_promoted_in_place(self, make_export, ids, empty_local):
        """Test that a stored peer becomes a friend when the import says friend."""
        peer = AccountFriend(member_id=uuid4(), name="Alice", status="peer")
        empty_local.friends.append(peer)
        text = make_export(friends=[f"{ids.alice},Alice,,false,,,,,friend"])

        result = self.committer.commit(
            self.parser.parse(text), {ids.alice: LinkToExisting(peer.member_id)}, empty_local
        )

        assert len(result.new_friends) == 1
        assert len(empty_local.friends) == 1
        assert empty_local.friends[0].member_id == peer.member_id
        assert empty_local.friends[0].status == "friend"

    def test_peer_is_not_replaced_by_peer(self, make_export, ids, empty_local):
        """Test that an imported peer leaves a stored peer untouched."""
        peer = AccountFriend(member_id=uuid4(), name="Alice", status="peer")
        empty_local.friends.append(peer)
        text = make_export(friends=[f"{ids.alice},Alice,,false,,,,,peer"])

        result = self.committer.commit(
            self.parser.parse(text), {ids.alice: LinkToExisting(peer.member_id)}, empty_local
        )
        assert result.new_friends == []

    def test_friend_resolving_to_current_user_is_skipped(self, make_export, empty_local):
        """Test that a friend row named like the current user is not stored."""
        text = make_export(friends=[f"{uuid4()},me,,false,,"])
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert result.new_friends == []
        assert empty_local.friends == []

    def test_create_new_duplicates_collapse(self, make_export, empty_local):
        """Test that two CreateNew friends with one name become one record."""
        first, second = uuid4(), uuid4()
        text = make_export(friends=[f"{first},Charlie,,false,,", f"{second},charlie,,false,,"])

        result = self.committer.commit(
            self.parser.parse(text), {first: CreateNew(), second: CreateNew()}, empty_local
        )

        assert len(result.new_friends) == 1
        assert result.mapping.get(first) == result.mapping.get(second)


class TestMergeGroups:
    """Test the group and backfill steps."""

    def setup_method(self):
        """Set up test fixtures."""
        self.committer = MergeCommitter()
        self.parser = ExportParser()

    def test_trip_into_empty_snapshot(self, trip_export, empty_local, current_user):
        """Test the basic import: one group, two backfilled friends, one expense."""
        result = self.committer.commit(self.parser.parse(trip_export), {}, empty_local)

        assert result.to_summary().description == "Added 2 friends, 1 group, 1 expense"
        group = empty_local.groups[0]
        assert [m.name for m in group.members] == ["Me", "Alice", "Bob"]
        assert group.members[0].id == current_user.id
        assert {f.name for f in empty_local.friends} == {"Alice", "Bob"}
        assert all(f.status == "friend" for f in empty_local.friends)

    def test_current_user_row_is_not_duplicated(self, make_export, ids, empty_local, current_user):
        """Test that the exporter's own member row maps onto the local user."""
        text = make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,", f"{ids.trip},{ids.imported_me},Me,,"],
        )
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        group = result.new_groups[0]
        assert [m.id for m in group.members][1] == current_user.id
        assert len(group.members) == 2
        assert len(result.new_friends) == 1

    def test_equivalent_group_is_mapped_not_inserted(self, make_export, ids, empty_local, current_user):
        """Test that a group with the same name and members maps to the stored one."""
        alice = AccountFriend(member_id=uuid4(), name="Alice", status="friend")
        stored = SpendingGroup(
            name="trip", members=[current_user, GroupMember(id=alice.member_id, name="Alice")]
        )
        empty_local.friends.append(alice)
        empty_local.groups.append(stored)
        text = make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,"],
        )

        result = self.committer.commit(
            self.parser.parse(text), {ids.alice: LinkToExisting(alice.member_id)}, empty_local
        )

        assert result.new_groups == []
        assert result.group_mapping[ids.trip] == stored.id
        assert result.new_friends == []

    def test_member_name_taken_from_stored_friend(self, make_export, ids, empty_local):
        """Test that linked members keep the local display name."""
        alice = AccountFriend(member_id=uuid4(), name="Alice Smith", status="friend")
        empty_local.friends.append(alice)
        text = make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,"],
        )
        self.committer.commit(
            self.parser.parse(text), {ids.alice: LinkToExisting(alice.member_id)}, empty_local
        )

        assert empty_local.groups[0].members[1].name == "Alice Smith"

    def test_member_in_two_groups_backfilled_once(self, make_export, ids, empty_local):
        """Test that a person in several groups yields one friend record."""
        brunch = uuid4()
        text = make_export(
            groups=[
                GROUP_ROW.format(trip=ids.trip),
                f"{brunch},Brunch,false,false,2024-03-02T10:00:00Z,1",
            ],
            group_members=[f"{ids.trip},{ids.alice},Alice,,", f"{brunch},{ids.alice},Alice,,"],
        )
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert len(result.new_groups) == 2
        assert len(result.new_friends) == 1

    def test_identical_groups_in_one_file_are_both_inserted(self, make_export, ids, empty_local):
        """Test that two equal groups from the same export are kept apart."""
        second = uuid4()
        text = make_export(
            groups=[
                f"{ids.trip},Lunch,false,false,2024-03-01T10:00:00Z,1",
                f"{second},Lunch,false,false,2024-03-01T10:00:00Z,1",
            ],
            group_members=[f"{ids.trip},{ids.alice},Alice,,", f"{second},{ids.alice},Alice,,"],
        )
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert len(result.new_groups) == 2
        assert result.group_mapping[ids.trip] != result.group_mapping[second]
        assert len(empty_local.groups) == 2


class TestMergeExpenses:
    """Test the expense step."""

    def setup_method(self):
        """Set up test fixtures."""
        self.committer = MergeCommitter()
        self.parser = ExportParser()

    def test_expense_members_are_remapped(self, trip_export, ids, empty_local):
        """Test that payer, involved members and splits use target IDs."""
        result = self.committer.commit(self.parser.parse(trip_export), {}, empty_local)

        alice = result.mapping.get(ids.alice)
        bob = result.mapping.get(ids.bob)
        expense = empty_local.expenses[0]
        assert expense.group_id == empty_local.groups[0].id
        assert expense.paid_by_member_id == alice
        assert expense.involved_member_ids == [alice, bob]
        assert [(s.member_id, s.amount) for s in expense.splits] == [(alice, 50.0), (bob, 50.0)]
        assert expense.participant_names is None
        assert expense.subexpenses is None
        assert result.expense_mapping[ids.dinner] == expense.id

    def test_missing_group_skips_expense_with_warning(self, make_export, ids, empty_local):
        """Test that an expense for an unknown group becomes a warning."""
        text = make_export(
            expenses=[f"{ids.dinner},{ids.trip},Lunch,2024-03-01T12:00:00Z,20.00,{ids.alice},false,false"]
        )
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert result.new_expenses == []
        assert result.warnings == ["Skipped expense 'Lunch': group not found"]

    def test_duplicate_expense_is_mapped(self, trip_export, ids, empty_local):
        """Test that re-importing with links maps onto the stored expense."""
        first = self.committer.commit(self.parser.parse(trip_export), {}, empty_local)
        links = {
            imported: LinkToExisting(first.mapping.get(imported)) for imported in (ids.alice, ids.bob)
        }

        second = MergeCommitter().commit(self.parser.parse(trip_export), links, empty_local)

        assert second.to_summary().total_items == 0
        assert second.expense_mapping[ids.dinner] == first.expense_mapping[ids.dinner]
        assert len(empty_local.expenses) == 1

    def test_identical_expenses_in_one_file_are_both_inserted(self, make_export, ids, empty_local):
        """Test that two equal expenses from the same export are kept apart."""
        second = uuid4()
        text = make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,"],
            expenses=[
                f"{expense_id},{ids.trip},Coffee,2024-03-01T09:00:00Z,4.50,{ids.alice},false,false"
                for expense_id in (ids.dinner, second)
            ],
            expense_involved_members=[f"{ids.dinner},{ids.alice}", f"{second},{ids.alice}"],
        )
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert len(result.new_expenses) == 2
        assert result.expense_mapping[ids.dinner] != result.expense_mapping[second]
        assert [e.description for e in empty_local.expenses] == ["Coffee", "Coffee"]

    def test_subexpenses_are_carried(self, make_export, ids, empty_local):
        """Test that subexpense rows become subexpenses with fresh IDs."""
        sub_id = uuid4()
        text = make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,"],
            expenses=[f"{ids.dinner},{ids.trip},Dinner,2024-03-01T19:00:00Z,30.00,{ids.alice},false,false"],
            expense_subexpenses=[f"{ids.dinner},{sub_id},10.00", f"{ids.dinner},{uuid4()},20.00"],
        )
        self.committer.commit(self.parser.parse(text), {}, empty_local)

        subexpenses = empty_local.expenses[0].subexpenses
        assert [s.amount for s in subexpenses] == [10.0, 20.0]
        assert sub_id not in {s.id for s in subexpenses}

    def _guest_export(self, make_export, ids) -> str:
        return make_export(
            groups=[GROUP_ROW.format(trip=ids.trip)],
            group_members=[f"{ids.trip},{ids.alice},Alice,,"],
            expenses=[f"{ids.dinner},{ids.trip},Taxi,2024-03-01T23:00:00Z,40.00,{ids.alice},false,false"],
            expense_involved_members=[f"{ids.dinner},{ids.alice}", f"{ids.dinner},{GUEST}"],
            participant_names=[f"{ids.dinner},{GUEST},Gus"],
        )

    def test_participant_name_synthesizes_friend(self, make_export, ids, empty_local):
        """Test that a guest known only by name becomes a friend."""
        text = self._guest_export(make_export, ids)
        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        guest = result.mapping.get(GUEST)
        assert guest in result.mapping.allocated
        assert {f.name for f in result.new_friends} == {"Alice", "Gus"}
        assert empty_local.expenses[0].participant_names == {guest: "Gus"}

    def test_participant_name_links_to_roster_friend(self, make_export, ids, empty_local):
        """Test that a guest with a stored friend's name reuses that friend."""
        gus = AccountFriend(member_id=uuid4(), name="Gus", status="friend")
        empty_local.friends.append(gus)
        text = self._guest_export(make_export, ids)

        result = self.committer.commit(self.parser.parse(text), {}, empty_local)

        assert result.mapping.get(GUEST) == gus.member_id
        assert [f.name for f in result.new_friends] == ["Alice"]
        assert empty_local.expenses[0].participant_names == {gus.member_id: "Gus"}
