from sqlalchemy import Column, String, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import uuid

from app.db import Base

ASSIGNMENT_STATUSES = {"pending", "in_progress", "completed", "expired"}


class AssessmentAssignment(Base):
    __tablename__ = "assessment_assignments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String, ForeignKey("clients.id"), nullable=False, index=True)
    therapist_id = Column(String, ForeignKey("users.id"), nullable=False)
    status = Column(String, nullable=False, default="pending")
    due_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    submission_id = Column(String, ForeignKey("assessment_submissions.id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime, default=lambda: datetime.now(UTC))
    completed_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    assessment = relationship("Assessment", back_populates="assignments")
    client = relationship("Client")

    __table_args__ = (
        UniqueConstraint("assessment_id", "client_id", name="uq_assessment_assignments_client"),
    )
