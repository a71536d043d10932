from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.orm import relationship
import enum
from datetime import datetime, UTC
from app.db import Base
import uuid


class UserRole(enum.Enum):
    therapist = "therapist"
    admin = "admin"


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.therapist)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    # Authoring records owned by this therapist
    questions = relationship("Question", back_populates="therapist")
    assessments = relationship("Assessment", back_populates="therapist")
    clients = relationship("Client", back_populates="therapist")
