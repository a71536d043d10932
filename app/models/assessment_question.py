from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, UTC
import uuid

from app.db import Base


class AssessmentQuestion(Base):
    """Join between an assessment and a question.

    The override_* columns shadow the base question's fields for this
    assessment only; the question row itself is never modified through a link.
    """

    __tablename__ = "assessment_questions"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    assessment_id = Column(String, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String, ForeignKey("questions.id"), nullable=False, index=True)
    # 1..N with no gaps within an assessment
    question_order = Column(Integer, nullable=False)
    is_required = Column(Boolean, nullable=False, default=True)
    points = Column(Integer, nullable=False, default=0)
    override_question_text = Column(Text, nullable=True)
    override_options = Column(JSON, nullable=True)
    override_help_text = Column(Text, nullable=True)
    section_name = Column(String, nullable=True)
    conditional_logic = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    assessment = relationship("Assessment", back_populates="question_links")
    question = relationship("Question", back_populates="links", lazy="joined")

    __table_args__ = (
        UniqueConstraint("assessment_id", "question_order", name="uq_assessment_questions_order"),
        UniqueConstraint("assessment_id", "question_id", name="uq_assessment_questions_question"),
    )
