import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shiftdesk.database import Base


class SwapStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ShiftSwapRequest(Base):
    __tablename__ = "shift_swap_requests"

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(String(36), ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Nulled when a day/month replace deletes the shift
    from_shift_id = Column(Integer, ForeignKey("shifts.id", ondelete="SET NULL"), index=True)
    target_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    reason = Column(Text)
    status = Column(String(20), nullable=False, default=SwapStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    handled_at = Column(DateTime(timezone=True))
    handled_by_user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))

    requester = relationship("User", foreign_keys=[requester_user_id], lazy="selectin")
    target = relationship("User", foreign_keys=[target_user_id], lazy="selectin")
    shift = relationship("Shift", lazy="selectin")

    @property
    def is_pending(self) -> bool:
        return self.status == SwapStatus.PENDING.value
