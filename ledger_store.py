import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from errors import ConflictError, NotFoundError, ValidationError
from models import Expense, ExpenseCategory, ExpenseDraft, Group, Member

logger = logging.getLogger(__name__)


class LedgerStore:
    """
    Authoritative collection of groups.

    Every mutation validates fully before touching state, so a failed call
    leaves the group exactly as it was. Readers always get deep copies.
    The store does no locking; hosts must serialize mutations per group.
    """

    def __init__(self, groups: Optional[Iterable[Group]] = None):
        self._groups: Dict[str, Group] = {}
        self._issued_ids: Set[str] = set()

        for group in groups or []:
            self._register_id(group.id)
            for member in group.members:
                self._register_id(member.id)
            for expense in group.expenses:
                self._register_id(expense.id)
            self._groups[group.id] = group.model_copy(deep=True)

        if self._groups:
            logger.info(f"Ledger store loaded with {len(self._groups)} groups")

    # ===== ID GENERATION =====
    def _register_id(self, value: str) -> None:
        if value in self._issued_ids:
            raise RuntimeError(f"Identifier collision detected: {value}")
        self._issued_ids.add(value)

    def _new_id(self) -> str:
        new_id = uuid.uuid4().hex
        self._register_id(new_id)
        return new_id

    def _require_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise NotFoundError(f"Group {group_id} not found")
        return group

    @staticmethod
    def _require_name(name: Optional[str], what: str) -> str:
        if name is None or not name.strip():
            raise ValidationError(f"{what} name must not be empty")
        return name.strip()

    # ===== COMMANDS =====
    def create_group(self, name: str, initial_members: Iterable[Union[str, Member]]) -> Group:
        """
        Create a group with at least one member.

        Members may be given as plain names, which get fresh ids, or as
        Member objects that already carry their id.
        """
        group_name = self._require_name(name, "Group")
        candidates = list(initial_members or [])
        if not candidates:
            raise ValidationError("A group needs at least one member")

        # Validate everything before issuing any id
        prepared = []
        seen_ids = set()
        for candidate in candidates:
            if isinstance(candidate, Member):
                member_name = self._require_name(candidate.name, "Member")
                member_id = candidate.id
                if not member_id:
                    raise ValidationError("Member id must not be empty")
            else:
                member_name = self._require_name(candidate, "Member")
                member_id = None
            if member_id is not None:
                if member_id in seen_ids:
                    raise ValidationError(f"Duplicate member id {member_id}")
                if member_id in self._issued_ids:
                    raise ValidationError(f"Member id {member_id} is already in use")
                seen_ids.add(member_id)
            prepared.append((member_id, member_name))

        members = []
        for member_id, member_name in prepared:
            if member_id is None:
                member_id = self._new_id()
            else:
                self._register_id(member_id)
            members.append(Member(id=member_id, name=member_name))

        group = Group(id=self._new_id(), name=group_name, members=members, expenses=[])
        self._groups[group.id] = group
        logger.info(f"Created group {group.id} ({group_name}) with {len(members)} members")
        return group.model_copy(deep=True)

    def add_member(self, group_id: str, name: str) -> Member:
        group = self._require_group(group_id)
        member_name = self._require_name(name, "Member")

        member = Member(id=self._new_id(), name=member_name)
        group.members = [*group.members, member]
        logger.info(f"Added member {member.id} ({member_name}) to group {group_id}")
        return member

    def remove_member(self, group_id: str, member_id: str) -> Member:
        """
        Remove a member that no expense refers to.

        Raises ConflictError if the member paid for or shares in any expense,
        or if it is the last member of the group.
        """
        group = self._require_group(group_id)
        member = next((m for m in group.members if m.id == member_id), None)
        if member is None:
            raise NotFoundError(f"Member {member_id} not found in group {group_id}")

        for expense in group.expenses:
            if expense.paid_by == member_id or member_id in expense.split_between:
                raise ConflictError(
                    f"Member {member_id} is referenced by expense {expense.id} and cannot be removed"
                )
        if len(group.members) == 1:
            raise ConflictError(f"Cannot remove the last member of group {group_id}")

        group.members = [m for m in group.members if m.id != member_id]
        logger.info(f"Removed member {member_id} from group {group_id}")
        return member

    def add_expense(self, group_id: str, draft: ExpenseDraft) -> Expense:
        """Record an expense split equally among every current member"""
        group = self._require_group(group_id)

        title = draft.title.strip() if draft.title else ""
        if not title:
            raise ValidationError("Expense title must not be empty")
        if not math.isfinite(draft.amount) or draft.amount <= 0:
            raise ValidationError(f"Expense amount must be greater than zero, got {draft.amount}")
        member_ids = [m.id for m in group.members]
        if draft.paid_by not in member_ids:
            raise ValidationError(f"Payer {draft.paid_by} is not a member of group {group_id}")
        try:
            category = ExpenseCategory(draft.category)
        except ValueError:
            raise ValidationError(f"Unknown expense category: {draft.category}")

        expense = Expense(
            id=self._new_id(),
            title=title,
            amount=draft.amount,
            paid_by=draft.paid_by,
            split_between=member_ids,
            date=datetime.now(timezone.utc),
            category=category,
        )
        group.expenses = [*group.expenses, expense]
        logger.info(f"Added expense {expense.id} ({title}, {draft.amount}) to group {group_id}")
        return expense

    # ===== QUERIES =====
    def get_group(self, group_id: str) -> Group:
        return self._require_group(group_id).model_copy(deep=True)

    def list_groups(self) -> List[Group]:
        return [group.model_copy(deep=True) for group in self._groups.values()]

    def list_expenses(self, group_id: str, category: Optional[str] = None) -> List[Expense]:
        """List a group's expenses in insertion order, optionally filtered by category"""
        group = self._require_group(group_id)
        if category is None:
            return list(group.expenses)
        try:
            wanted = ExpenseCategory(category)
        except ValueError:
            raise ValidationError(f"Unknown expense category: {category}")
        return [e for e in group.expenses if e.category == wanted]

    # ===== SNAPSHOTS =====
    def snapshot(self) -> Tuple[Dict[str, Group], Set[str]]:
        """Capture the full store state so a failed commit can be undone"""
        return (
            {group_id: group.model_copy(deep=True) for group_id, group in self._groups.items()},
            set(self._issued_ids),
        )

    def restore(self, state: Tuple[Dict[str, Group], Set[str]]) -> None:
        groups, issued_ids = state
        self._groups = {group_id: group.model_copy(deep=True) for group_id, group in groups.items()}
        self._issued_ids = set(issued_ids)
        logger.info(f"Ledger store restored to {len(self._groups)} groups")
