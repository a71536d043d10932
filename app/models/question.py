from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import enum
import uuid

from app.db import Base


class QuestionType(str, enum.Enum):
    multiple_choice = "multiple_choice"
    yes_no = "yes_no"
    text = "text"
    rating = "rating"


class Question(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    therapist_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    # stored as the QuestionType value
    question_type = Column(String(32), nullable=False)
    # Type specific payload: option list for choice questions, scale config for rating
    options = Column(JSON, nullable=True)
    validation_rules = Column(JSON, nullable=True)
    placeholder_text = Column(String, nullable=True)
    help_text = Column(Text, nullable=True)
    # Library items can be linked into any of the owner's assessments
    is_library_item = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    therapist = relationship("User", back_populates="questions")
    links = relationship("AssessmentQuestion", back_populates="question")
