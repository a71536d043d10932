from sqlalchemy import Column, String, Text, Integer, Float, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import uuid

from app.db import Base

SUBMISSION_STATUSES = {"completed", "reviewed"}


class AssessmentSubmission(Base):
    __tablename__ = "assessment_submissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String, ForeignKey("clients.id"), nullable=False, index=True)
    therapist_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    # sessions live in the scheduling module; kept as an opaque reference
    session_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default="completed")
    completion_time_seconds = Column(Integer, nullable=True)
    raw_score = Column(Float, nullable=True)
    # Annotation fields (the only columns editable after creation)
    calculated_score = Column(Float, nullable=True)
    score_interpretation = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    submitted_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    assessment = relationship("Assessment", back_populates="submissions")
    client = relationship("Client")
    responses = relationship("AssessmentResponse", back_populates="submission", cascade="all, delete-orphan")


class AssessmentResponse(Base):
    __tablename__ = "assessment_responses"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    submission_id = Column(String, ForeignKey("assessment_submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    # Nulled when the link is later removed from the assessment; question_id keeps the history
    assessment_question_id = Column(String, ForeignKey("assessment_questions.id", ondelete="SET NULL"), nullable=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False)
    # Exactly one of the three value columns is populated
    response_value = Column(Text, nullable=True)
    response_values = Column(JSON, nullable=True)
    numeric_value = Column(Float, nullable=True)
    points_earned = Column(Float, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    submission = relationship("AssessmentSubmission", back_populates="responses")
    question = relationship("Question")

    @property
    def value(self):
        if self.response_values is not None:
            return self.response_values
        if self.numeric_value is not None:
            return self.numeric_value
        return self.response_value
