"""Anonymous access to assessments through their share token."""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from sqlalchemy.orm import Session

from app.exceptions import InactiveAssessmentException
from app.models.assessment import Assessment
from app.services.assessment_questions import EffectiveQuestion, effective_questions

logger = logging.getLogger("app.public_access")


@dataclass
class PublicAssessmentView:
    id: str
    # attribution only; never serialised to anonymous callers
    owner_id: str
    title: str
    description: Optional[str]
    category: Optional[str]
    allow_multiple_submissions: bool
    questions: List[EffectiveQuestion] = field(default_factory=list)


def find_open_assessment(db: Session, token: str) -> Assessment:
    """The assessment behind ``token`` if it is tokenized and active.

    Unknown, revoked and deactivated all raise the same error. Reads the row
    every call so deactivation takes effect immediately.
    """
    if not token:
        raise InactiveAssessmentException()
    assessment = db.query(Assessment).filter(Assessment.share_token == token).first()
    if assessment is None:
        logger.info("Public access with unknown share token")
        raise InactiveAssessmentException()
    if not assessment.is_active:
        logger.info("Public access to inactive assessment %s", assessment.id)
        raise InactiveAssessmentException()
    return assessment


def public_view(db: Session, assessment: Assessment) -> PublicAssessmentView:
    return PublicAssessmentView(
        id=assessment.id,
        owner_id=assessment.therapist_id,
        title=assessment.title,
        description=assessment.description,
        category=assessment.category,
        allow_multiple_submissions=bool(assessment.allow_multiple_submissions),
        questions=effective_questions(db, assessment.id),
    )


def resolve(db: Session, token: str) -> PublicAssessmentView:
    return public_view(db, find_open_assessment(db, token))
