from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict
from datetime import datetime
from enum import Enum


class ExpenseCategory(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    OTHER = "other"


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Expense(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    paid_by: str
    split_between: List[str] = Field(..., min_length=1)
    date: datetime
    category: ExpenseCategory = ExpenseCategory.FOOD


class Group(BaseModel):
    id: str
    name: str
    members: List[Member] = Field(default_factory=list)
    expenses: List[Expense] = Field(default_factory=list)


class ExpenseDraft(BaseModel):
    """Caller input for recording an expense; the store fills in the rest"""
    title: str = Field(..., description="Short description of the expense")
    amount: float = Field(..., description="Amount paid, must be greater than zero")
    paid_by: str = Field(..., description="ID of the member who paid")
    category: str = Field("food", description="One of food, transport, shopping, entertainment, utilities, other")


class GroupCreate(BaseModel):
    name: str = Field(..., description="Name of the group")
    member_names: List[str] = Field(..., description="Names of the initial members")


class MemberCreate(BaseModel):
    name: str = Field(..., description="Name of the new member")


class GroupBalances(BaseModel):
    group_id: str
    balances: Dict[str, float]
    viewer_member_id: str
    viewer_balance: float
    display: str


class SpendingSummary(BaseModel):
    group_id: str
    total_spent: float
    expense_count: int
    spending_by_category: Dict[str, float]
