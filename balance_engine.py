import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from errors import NotFoundError, ValidationError
from models import Group, GroupBalances, SpendingSummary

CENTS = Decimal("0.01")


class BalanceEngine:
    @staticmethod
    def calculate_balances(group: Group) -> Dict[str, float]:
        """Calculate net balance for each member"""
        balances = {member.id: 0.0 for member in group.members}

        for expense in group.expenses:
            payer = expense.paid_by
            amount = expense.amount
            share = amount / len(expense.split_between)

            # Payer is credited the full amount
            balances[payer] = balances.get(payer, 0.0) + amount

            # Every member in the split set is debited their share
            for member_id in expense.split_between:
                balances[member_id] = balances.get(member_id, 0.0) - share

        return balances

    @staticmethod
    def round_cents(value: float) -> Decimal:
        """Round half-up to two decimal places"""
        if not math.isfinite(value):
            raise ValidationError(f"Balance must be a finite number, got {value}")
        return Decimal(repr(value)).quantize(CENTS, rounding=ROUND_HALF_UP)

    @staticmethod
    def format_balance(balance: float) -> str:
        """Render a balance as 'owed $X.XX', 'owe $X.XX' or 'settled'"""
        cents = BalanceEngine.round_cents(balance)
        if cents > 0:
            return f"owed ${cents}"
        if cents < 0:
            return f"owe ${abs(cents)}"
        return "settled"

    @staticmethod
    def compute_balances(group: Group, viewer_member_id: Optional[str] = None) -> GroupBalances:
        """
        Compute all balances plus the balance of the viewing member.

        The viewer defaults to the first member of the group.
        """
        if viewer_member_id is None:
            if not group.members:
                raise ValidationError(f"Group {group.id} has no members")
            viewer_member_id = group.members[0].id
        elif all(member.id != viewer_member_id for member in group.members):
            raise NotFoundError(f"Member {viewer_member_id} not found in group {group.id}")

        balances = BalanceEngine.calculate_balances(group)
        viewer_balance = balances[viewer_member_id]

        return GroupBalances(
            group_id=group.id,
            balances=balances,
            viewer_member_id=viewer_member_id,
            viewer_balance=viewer_balance,
            display=BalanceEngine.format_balance(viewer_balance),
        )

    @staticmethod
    def summarize_spending(group: Group) -> SpendingSummary:
        """Total spent and spending per category"""
        spending_by_category = {}
        for expense in group.expenses:
            category = expense.category.value
            spending_by_category[category] = spending_by_category.get(category, 0.0) + expense.amount

        return SpendingSummary(
            group_id=group.id,
            total_spent=sum(spending_by_category.values()),
            expense_count=len(group.expenses),
            spending_by_category=spending_by_category,
        )

    @staticmethod
    def member_name(group: Group, member_id: str) -> str:
        for member in group.members:
            if member.id == member_id:
                return member.name
        return "Unknown"
