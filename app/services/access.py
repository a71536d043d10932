"""Owner-scoped lookups shared by the authoring services."""
from sqlalchemy.orm import Session

from app.exceptions import NotFoundException, OwnershipMismatchException
from app.models.assessment import Assessment
from app.models.assessment_question import AssessmentQuestion


def get_assessment(db: Session, assessment_id: str) -> Assessment:
    assessment = db.query(Assessment).filter_by(id=assessment_id).first()
    if not assessment:
        raise NotFoundException("Assessment not found")
    return assessment


def get_owned_assessment(db: Session, assessment_id: str, therapist_id: str) -> Assessment:
    assessment = get_assessment(db, assessment_id)
    if assessment.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only manage your own assessments")
    return assessment


def get_owned_link(db: Session, assessment_question_id: str, therapist_id: str) -> AssessmentQuestion:
    link = db.query(AssessmentQuestion).filter_by(id=assessment_question_id).first()
    if not link:
        raise NotFoundException("Assessment question not found")
    if link.assessment.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only manage your own assessments")
    return link
