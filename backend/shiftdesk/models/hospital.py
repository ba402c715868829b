from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from shiftdesk.database import Base
from shiftdesk.models.user import new_uuid

MANAGER_ROLES = ("admin", "coordinator")


class Hospital(Base):
    __tablename__ = "hospitals"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class HospitalMembership(Base):
    __tablename__ = "hospital_users"
    __table_args__ = (UniqueConstraint("hospital_id", "user_id", name="hospital_users_unique_member"),)

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(String(36), ForeignKey("hospitals.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="doctor")  # "admin" | "doctor" | "coordinator"
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    hospital = relationship("Hospital", lazy="selectin")
    user = relationship("User", lazy="selectin")
