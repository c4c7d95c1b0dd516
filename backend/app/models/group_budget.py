import uuid
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey, Uuid,
    Enum as SAEnum, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class BudgetPeriod(str, enum.Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class BudgetRole(str, enum.Enum):
    owner = "owner"
    member = "member"


class GroupBudget(Base):
    __tablename__ = "group_budgets"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_group_budgets_amount_positive"),
        CheckConstraint("start_date <= end_date", name="ck_group_budgets_date_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(
        SAEnum(BudgetPeriod, name="budgetperiod"), nullable=False, default=BudgetPeriod.monthly
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    category_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("categories.id"), nullable=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    members: Mapped[list["GroupBudgetMember"]] = relationship(
        back_populates="group_budget", lazy="selectin",
        order_by="GroupBudgetMember.joined_at",
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        back_populates="group_budget", lazy="selectin",
        order_by="Invitation.invited_at",
    )
    creator: Mapped["User"] = relationship(lazy="selectin")
    category: Mapped["Category"] = relationship(lazy="selectin")

    @property
    def owner(self) -> "GroupBudgetMember | None":
        return next((m for m in self.members if m.role == BudgetRole.owner), None)

    def member_for(self, user_id: uuid.UUID) -> "GroupBudgetMember | None":
        return next((m for m in self.members if m.user_id == user_id), None)

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        owner = self.owner
        return owner is not None and owner.user_id == user_id == self.created_by


class GroupBudgetMember(Base):
    __tablename__ = "group_budget_members"
    __table_args__ = (UniqueConstraint("group_budget_id", "user_id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_budget_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_budgets.id"), index=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), index=True, nullable=False)
    role: Mapped[BudgetRole] = mapped_column(
        SAEnum(BudgetRole, name="budgetrole"), nullable=False, default=BudgetRole.member
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    group_budget: Mapped["GroupBudget"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(lazy="selectin")

    @property
    def display_name(self) -> str:
        return self.user.display_name if self.user else "Unknown"

    @property
    def email(self) -> str | None:
        return self.user.email if self.user else None
