import uuid
import enum
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Uuid, Index, Enum as SAEnum, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class InvitationStatus(str, enum.Enum):
    pending = "pending"
    accepted = "accepted"
    declined = "declined"
    revoked = "revoked"


class Invitation(Base):
    __tablename__ = "invitations"
    __table_args__ = (
        # At most one pending invitation per (budget, email)
        Index(
            "uq_invitations_pending_email",
            "group_budget_id", "invited_email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Nulled when the budget is deleted; the revoked row stays so late responses fail cleanly
    group_budget_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("group_budgets.id", ondelete="SET NULL"), index=True, nullable=True
    )
    invited_email: Mapped[str] = mapped_column(String, index=True, nullable=False)
    invited_by: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    status: Mapped[InvitationStatus] = mapped_column(
        SAEnum(InvitationStatus, name="invitationstatus"), nullable=False, default=InvitationStatus.pending
    )
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    group_budget: Mapped["GroupBudget"] = relationship(back_populates="invitations")

    @property
    def is_terminal(self) -> bool:
        return self.status != InvitationStatus.pending
