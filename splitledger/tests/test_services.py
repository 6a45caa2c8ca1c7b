"""
Integration tests for the service layer against an in-memory database.

Tests cover:
- expense creation, split validation and deletion rights
- settlements and the individual pairwise balance
- group ledgers, including members who have left
- dashboard summaries
"""

import pytest
from decimal import Decimal
from datetime import datetime
from fastapi import HTTPException
from splitledger.utils.exceptions import NotFound, Unauthorized
from splitledger.schemas.expense_schema import ExpenseCreate
from splitledger.schemas.group_schema import GroupCreate
from splitledger.schemas.ledger_schema import SplitType
from splitledger.schemas.settlement_schema import SettlementCreate
from splitledger.schemas.user_schema import UserStore
from splitledger.services.dashboard_service import (
    get_advanced_breakdown, get_member_balances, get_member_details, get_user_balances, get_user_groups_with_balance
)
from splitledger.services.expense_service import (
    create_expense, delete_expense, get_expense, get_expenses_between_users, get_individual_expenses
)
from splitledger.services.group_service import (
    add_member_to_group, create_group, get_group_detail, get_group_members, remove_member_from_group
)
from splitledger.models.groups import MemberRole
from splitledger.services.settlement_service import (
    create_settlement, delete_settlement, get_group_settlement_data, get_user_settlement_data
)
from splitledger.services.user_service import store_user
from splitledger.rabbitmq.producer import publish_expense_event


@pytest.fixture
def users(db_session):
    for user_id, name in (("A", "Ann"), ("B", "Ben"), ("C", "Cat")):
        store_user(db_session, user_id, UserStore(name=name, email=f"{user_id.lower()}@example.com"))
    return ["A", "B", "C"]


@pytest.fixture
def group(db_session, users):
    return create_group(db_session, GroupCreate(name="Trip", member_ids=["B", "C"]), "A")


def expense_data(amount, payer, participants, **kwargs):
    return ExpenseCreate(
        description="Dinner",
        amount=Decimal(amount),
        date=datetime(2024, 5, 10, 19, 0),
        paid_by_user_id=payer,
        participant_ids=participants,
        **kwargs
    )


def settlement_data(amount, payer, receiver, **kwargs):
    return SettlementCreate(
        amount=Decimal(amount),
        paid_by_user_id=payer,
        received_by_user_id=receiver,
        **kwargs
    )


@pytest.mark.integration
class TestExpenseService:
    """Test expense creation and deletion."""

    def test_equal_split_stored(self, db_session, users):
        expense = create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")

        assert [(s.user_id, s.amount, s.paid) for s in expense.splits] == [
            ("A", Decimal("50.00"), True),
            ("B", Decimal("50.00"), False),
        ]
        assert expense.split_type == "equal"
        assert expense.created_by == "A"

    def test_percentage_split(self, db_session, users):
        expense = create_expense(
            db_session,
            expense_data("200", "A", ["A", "B"], split_type=SplitType.percentage,
                         overrides={"A": Decimal("60"), "B": Decimal("40")}),
            "A"
        )
        assert [s.amount for s in expense.splits] == [Decimal("120.00"), Decimal("80.00")]

    def test_exact_split_not_matching_total_rejected(self, db_session, users):
        with pytest.raises(HTTPException) as exc_info:
            create_expense(
                db_session,
                expense_data("100", "A", ["A", "B"], split_type=SplitType.exact,
                             overrides={"A": Decimal("40"), "B": Decimal("40")}),
                "A"
            )
        assert exc_info.value.status_code == 422

    def test_percentages_not_adding_up_rejected(self, db_session, users):
        with pytest.raises(HTTPException) as exc_info:
            create_expense(
                db_session,
                expense_data("100", "A", ["A", "B"], split_type=SplitType.percentage,
                             overrides={"A": Decimal("50"), "B": Decimal("30")}),
                "A"
            )
        assert exc_info.value.status_code == 422

    def test_unknown_participant_rejected(self, db_session, users):
        with pytest.raises(NotFound):
            create_expense(db_session, expense_data("10", "A", ["A", "Z"]), "A")

    def test_duplicate_participants_rejected(self, db_session, users):
        with pytest.raises(HTTPException) as exc_info:
            create_expense(db_session, expense_data("10", "A", ["A", "B", "B"]), "A")
        assert exc_info.value.status_code == 400

    def test_non_member_cannot_add_group_expense(self, db_session, users, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        with pytest.raises(Unauthorized):
            create_expense(db_session, expense_data("30", "D", ["D"], group_id=group.id), "D")

    def test_participant_outside_group_rejected(self, db_session, users, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        with pytest.raises(HTTPException) as exc_info:
            create_expense(db_session, expense_data("30", "A", ["A", "D"], group_id=group.id), "A")
        assert exc_info.value.status_code == 400

    def test_delete_rights(self, db_session, users):
        expense = create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")

        with pytest.raises(Unauthorized):
            delete_expense(db_session, expense.id, "B")

        delete_expense(db_session, expense.id, "A")
        assert get_expense(db_session, expense.id) is None

    def test_individual_expenses(self, db_session, users):
        create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")
        items = get_individual_expenses(db_session, "B")
        assert len(items) == 1
        assert items[0].paid_by == "Ann"
        assert items[0].your_share == Decimal("50.00")
        assert items[0].status == "unpaid"

    def test_events_disabled_by_default(self):
        assert publish_expense_event("expense.created", {"expense_id": "x"}) is False


@pytest.mark.integration
class TestIndividualBalance:
    """A pays 100 split equally with B, then B pays A back."""

    def test_balance_before_and_after_settlement(self, db_session, users):
        create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")

        between = get_expenses_between_users(db_session, "A", "B")
        assert between.balance == Decimal("50.00")
        assert len(between.expenses) == 1
        assert between.other_user.name == "Ben"

        create_settlement(db_session, settlement_data("50", "B", "A"), "B")

        assert get_expenses_between_users(db_session, "A", "B").balance == Decimal("0")
        assert get_expenses_between_users(db_session, "B", "A").balance == Decimal("0")

    def test_self_query_rejected(self, db_session, users):
        with pytest.raises(HTTPException) as exc_info:
            get_expenses_between_users(db_session, "A", "A")
        assert exc_info.value.status_code == 400

    def test_settlement_data(self, db_session, users):
        create_expense(db_session, expense_data("60", "B", ["A", "B"]), "B")
        data = get_user_settlement_data(db_session, "A", "B")
        assert data.counterpart.you_owe == Decimal("30.00")
        assert data.counterpart.you_are_owed == Decimal("0")
        assert data.counterpart.net_balance == Decimal("-30.00")


@pytest.mark.integration
class TestSettlementService:

    def test_self_settlement_rejected(self, db_session, users):
        with pytest.raises(HTTPException) as exc_info:
            create_settlement(db_session, settlement_data("10", "A", "A"), "A")
        assert exc_info.value.status_code == 400

    def test_related_expenses_stored(self, db_session, users):
        expense = create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")
        settlement = create_settlement(
            db_session,
            settlement_data("50", "B", "A", related_expense_ids=[expense.id, expense.id]),
            "B"
        )

        between = get_expenses_between_users(db_session, "A", "B")
        assert between.settlements[0].related_expense_ids == [expense.id]
        assert settlement.related_expense_ids == [expense.id]
        assert between.balance == Decimal("0")

    def test_related_expense_must_exist(self, db_session, users):
        with pytest.raises(NotFound, match="Expense missing not found"):
            create_settlement(db_session, settlement_data("5", "B", "A", related_expense_ids=["missing"]), "B")

    def test_related_expenses_optional(self, db_session, users):
        settlement = create_settlement(db_session, settlement_data("5", "B", "A"), "B")
        assert settlement.related_expense_ids is None

    def test_third_party_cannot_record(self, db_session, users):
        with pytest.raises(Unauthorized):
            create_settlement(db_session, settlement_data("10", "A", "B"), "C")

    def test_receiver_cannot_delete_unless_creator(self, db_session, users):
        settlement = create_settlement(db_session, settlement_data("10", "A", "B"), "A")
        with pytest.raises(Unauthorized):
            delete_settlement(db_session, settlement.id, "B")
        delete_settlement(db_session, settlement.id, "A")

    def test_group_settlement_requires_members(self, db_session, users, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        with pytest.raises(HTTPException) as exc_info:
            create_settlement(db_session, settlement_data("10", "D", "A", group_id=group.id), "D")
        assert exc_info.value.status_code == 400


@pytest.mark.integration
class TestGroupLedger:
    """A pays 90 and B pays 30 inside the group, both split between A, B and C."""

    @pytest.fixture
    def group_expenses(self, db_session, group):
        create_expense(db_session, expense_data("90", "A", ["A", "B", "C"], group_id=group.id), "A")
        create_expense(db_session, expense_data("30", "B", ["A", "B", "C"], group_id=group.id), "B")

    def test_group_detail(self, db_session, group, group_expenses):
        detail = get_group_detail(db_session, group.id, "A")

        assert [m.user_id for m in detail.members] == ["A", "B", "C"]
        assert detail.members[0].role.value == "admin"
        assert len(detail.expenses) == 2
        assert detail.my_balance.total_balance == Decimal("50.00")
        assert {e.to_user_id: e.amount for e in detail.balances["C"].owes} == {
            "A": Decimal("30.00"),
            "B": Decimal("10.00"),
        }
        assert {e.to_user_id: e.amount for e in detail.balances["B"].owes} == {"A": Decimal("20.00")}

    def test_group_settlement_data(self, db_session, group, group_expenses):
        data = get_group_settlement_data(db_session, "C", group.id)
        by_user = {entry.user_id: entry.net_balance for entry in data.balances}
        assert by_user == {"A": Decimal("-30.00"), "B": Decimal("-10.00")}

    def test_former_member_kept_in_ledger(self, db_session, group, group_expenses):
        remove_member_from_group(db_session, group.id, "C", "A")

        detail = get_group_detail(db_session, group.id, "A")
        assert [m.user_id for m in detail.members] == ["A", "B"]
        assert detail.balances["C"].is_current_member is False
        assert detail.balances["C"].total_balance == Decimal("-40.00")

    def test_non_member_cannot_view(self, db_session, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        with pytest.raises(Unauthorized):
            get_group_detail(db_session, group.id, "D")

    def test_groups_with_balance(self, db_session, group, group_expenses):
        groups = get_user_groups_with_balance(db_session, "C")
        assert [(g.name, g.balance, g.member_count) for g in groups] == [("Trip", Decimal("-40.00"), 3)]


@pytest.mark.integration
class TestGroupMembership:
    """The creator stays in the group as admin and a group always keeps an admin."""

    def roles(self, db_session, group_id):
        return {member.user_id: member.role for member in get_group_members(db_session, group_id)}

    def test_creator_cannot_leave(self, db_session, group):
        with pytest.raises(HTTPException) as exc_info:
            remove_member_from_group(db_session, group.id, "A", "A")
        assert exc_info.value.status_code == 400
        assert self.roles(db_session, group.id)["A"] == MemberRole.admin

    def test_admin_cannot_remove_creator(self, db_session, group):
        remove_member_from_group(db_session, group.id, "B", "A")
        add_member_to_group(db_session, group.id, "B", "A", MemberRole.admin)

        with pytest.raises(HTTPException) as exc_info:
            remove_member_from_group(db_session, group.id, "A", "B")
        assert exc_info.value.status_code == 400
        assert "A" in self.roles(db_session, group.id)

    def test_second_admin_can_leave(self, db_session, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        add_member_to_group(db_session, group.id, "D", "A", MemberRole.admin)

        remove_member_from_group(db_session, group.id, "D", "D")
        assert self.roles(db_session, group.id) == {
            "A": MemberRole.admin,
            "B": MemberRole.member,
            "C": MemberRole.member,
        }

    def test_last_admin_cannot_leave(self, db_session, group):
        store_user(db_session, "D", UserStore(name="Dan"))
        add_member_to_group(db_session, group.id, "D", "A", MemberRole.admin)
        creator = next(m for m in get_group_members(db_session, group.id) if m.user_id == "A")
        creator.role = MemberRole.member
        db_session.commit()

        with pytest.raises(HTTPException) as exc_info:
            remove_member_from_group(db_session, group.id, "D", "D")
        assert exc_info.value.status_code == 400
        assert self.roles(db_session, group.id)["D"] == MemberRole.admin

    def test_member_cannot_remove_others(self, db_session, group):
        with pytest.raises(Unauthorized):
            remove_member_from_group(db_session, group.id, "C", "B")

    def test_unknown_member(self, db_session, group):
        with pytest.raises(NotFound):
            remove_member_from_group(db_session, group.id, "Z", "A")

    def test_unknown_group(self, db_session, users):
        with pytest.raises(NotFound):
            remove_member_from_group(db_session, "missing", "B", "A")


@pytest.mark.integration
class TestDashboard:

    def test_individual_balances_ignore_groups(self, db_session, users, group):
        create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")
        create_expense(db_session, expense_data("30", "C", ["A", "C"]), "C")
        create_expense(db_session, expense_data("90", "A", ["A", "B", "C"], group_id=group.id), "A")

        summary = get_user_balances(db_session, "A")
        assert summary.you_are_owed == Decimal("50.00")
        assert summary.you_owe == Decimal("15.00")
        assert summary.total_balance == Decimal("35.00")
        assert summary.owe_details.you_are_owed[0].name == "Ben"

    def test_advanced_breakdown_includes_groups(self, db_session, users, group):
        create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")
        create_expense(db_session, expense_data("90", "A", ["A", "B", "C"], group_id=group.id), "A")
        create_settlement(db_session, settlement_data("20", "B", "A"), "B")

        summary = get_advanced_breakdown(db_session, "A")
        assert summary.you_are_owed == Decimal("90.00")
        assert summary.gross_you_are_owed == Decimal("110.00")
        assert summary.gross_you_owe == Decimal("20.00")
        assert summary.total_users_involved == 2

    def test_advanced_breakdown_skips_co_participants(self, db_session, users):
        create_expense(db_session, expense_data("30", "B", ["A", "B", "C"]), "B")

        summary = get_advanced_breakdown(db_session, "A")
        assert summary.total_users_involved == 1
        assert summary.you_owe == Decimal("10.00")
        assert [entry.user_id for entry in summary.owe_details.you_owe] == ["B"]

    def test_member_balances_and_details(self, db_session, users, group):
        create_expense(db_session, expense_data("100", "A", ["A", "B"]), "A")
        create_expense(db_session, expense_data("90", "A", ["A", "B", "C"], group_id=group.id), "A")

        members = get_member_balances(db_session, "B")
        assert [(m.user_id, m.balance) for m in members] == [("A", Decimal("-30.00"))]

        details = get_member_details(db_session, "A", "B")
        assert details.individual_balance == Decimal("50.00")
        assert [(g.name, g.balance) for g in details.groups] == [("Trip", Decimal("30.00"))]
        assert details.total_balance == Decimal("80.00")
