from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import uuid

from app.db import Base


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    therapist_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    allow_multiple_submissions = Column(Boolean, nullable=False, default=True)
    show_scores_to_client = Column(Boolean, nullable=False, default=False)
    # Present -> reachable at /assessment/<token>; null -> private
    share_token = Column(String(128), nullable=True, unique=True, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    therapist = relationship("User", back_populates="assessments")
    # Links are always read in display order
    question_links = relationship(
        "AssessmentQuestion",
        back_populates="assessment",
        order_by="AssessmentQuestion.question_order",
        cascade="all, delete-orphan",
    )
    submissions = relationship("AssessmentSubmission", back_populates="assessment", cascade="all, delete-orphan")
    assignments = relationship("AssessmentAssignment", back_populates="assessment", cascade="all, delete-orphan")
