import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shiftdesk.database import Base


class Period(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"
    FULL_DAY = "full_day"


# Maximum doctors per slot
PERIOD_CAPACITY = {
    Period.MORNING: 6,
    Period.AFTERNOON: 6,
    Period.NIGHT: 3,
    Period.FULL_DAY: 6,
}

PERIOD_LABELS = {
    Period.MORNING: ("Morning", "M"),
    Period.AFTERNOON: ("Afternoon", "A"),
    Period.NIGHT: ("Night", "N"),
    Period.FULL_DAY: ("24h", "24H"),
}


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (
        UniqueConstraint(
            "hospital_id", "date", "period", "doctor_user_id",
            name="shifts_unique_hospital_date_period_doctor",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(String(36), ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    period = Column(String(20), nullable=False)
    doctor_user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    doctor = relationship("User", lazy="selectin")
