from app.models.user import User
from app.models.category import Category
from app.models.group_budget import GroupBudget, GroupBudgetMember, BudgetPeriod, BudgetRole
from app.models.invitation import Invitation, InvitationStatus
from app.models.transaction import Transaction

__all__ = [
    "User", "Category",
    "GroupBudget", "GroupBudgetMember", "BudgetPeriod", "BudgetRole",
    "Invitation", "InvitationStatus",
    "Transaction",
]
