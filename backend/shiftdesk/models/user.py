import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from shiftdesk.database import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_uuid)
    email = Column(String(200), unique=True, nullable=False, index=True)
    full_name = Column(String(200))
    password_hash = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
