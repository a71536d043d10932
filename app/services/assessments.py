"""Assessment registry: assessment metadata, activation and share tokens."""
from dataclasses import asdict
from typing import Any, Dict, List, Optional, Tuple
import logging
import secrets

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.settings import settings
from app.db import commit_or_raise
from app.exceptions import ValidationException
from app.models.assessment import Assessment
from app.models.assessment_question import AssessmentQuestion
from app.models.submission import AssessmentSubmission
from app.schemas.assessment import AssessmentCreate, AssessmentUpdate
from app.services.access import get_owned_assessment
from app.services.assessment_questions import effective_questions
from app.services.audit import (
    log_assessment_active,
    log_assessment_create,
    log_assessment_delete,
    log_share_token_revoke,
    log_share_token_rotate,
)

logger = logging.getLogger("app.assessments")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200

SUMMARY_FIELDS = (
    "id",
    "therapist_id",
    "title",
    "description",
    "category",
    "is_active",
    "allow_multiple_submissions",
    "show_scores_to_client",
    "share_token",
    "created_at",
    "updated_at",
)


def share_url(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/assessment/{token}"


def _counts(db: Session, assessment_ids: List[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    if not assessment_ids:
        return {}, {}
    questions = dict(
        db.query(AssessmentQuestion.assessment_id, func.count(AssessmentQuestion.id))
        .filter(AssessmentQuestion.assessment_id.in_(assessment_ids))
        .group_by(AssessmentQuestion.assessment_id)
        .all()
    )
    submissions = dict(
        db.query(AssessmentSubmission.assessment_id, func.count(AssessmentSubmission.id))
        .filter(AssessmentSubmission.assessment_id.in_(assessment_ids))
        .group_by(AssessmentSubmission.assessment_id)
        .all()
    )
    return questions, submissions


def _summary(assessment: Assessment, question_count: int, submission_count: int) -> Dict[str, Any]:
    data = {field: getattr(assessment, field) for field in SUMMARY_FIELDS}
    data["question_count"] = question_count
    data["submission_count"] = submission_count
    return data


def authoring_view(db: Session, assessment: Assessment) -> Dict[str, Any]:
    """Everything the owner sees: metadata, counts and effective questions with link metadata."""
    questions, submissions = _counts(db, [assessment.id])
    data = _summary(assessment, questions.get(assessment.id, 0), submissions.get(assessment.id, 0))
    data["share_url"] = share_url(assessment.share_token) if assessment.share_token else None
    data["questions"] = [asdict(q) for q in effective_questions(db, assessment.id)]
    return data


def create_assessment(db: Session, therapist_id: str, data: AssessmentCreate) -> Assessment:
    title = data.title.strip()
    if not title:
        raise ValidationException("title must not be blank", errors={"title": "required"})
    assessment = Assessment(
        therapist_id=therapist_id,
        title=title,
        description=data.description,
        category=data.category,
        is_active=data.is_active,
        allow_multiple_submissions=data.allow_multiple_submissions,
        show_scores_to_client=data.show_scores_to_client,
    )
    db.add(assessment)
    commit_or_raise(db, "create assessment")
    db.refresh(assessment)
    log_assessment_create(therapist_id, assessment.id, assessment.title)
    return assessment


def get_assessment_detail(db: Session, assessment_id: str, therapist_id: str) -> Dict[str, Any]:
    return authoring_view(db, get_owned_assessment(db, assessment_id, therapist_id))


def list_assessments(
    db: Session,
    therapist_id: str,
    is_active: Optional[bool] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = DEFAULT_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    q = db.query(Assessment).filter(Assessment.therapist_id == therapist_id)
    if is_active is not None:
        q = q.filter(Assessment.is_active == is_active)
    if category:
        q = q.filter(Assessment.category == category)
    if search and search.strip():
        term = search.strip().lower()
        q = q.filter(or_(
            func.lower(Assessment.title).contains(term, autoescape=True),
            func.lower(func.coalesce(Assessment.description, "")).contains(term, autoescape=True),
        ))
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    rows = q.order_by(Assessment.created_at.desc()).offset(max(0, skip)).limit(limit).all()
    questions, submissions = _counts(db, [a.id for a in rows])
    return [_summary(a, questions.get(a.id, 0), submissions.get(a.id, 0)) for a in rows]


def update_assessment(db: Session, assessment_id: str, therapist_id: str, patch: AssessmentUpdate) -> Assessment:
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    changes = patch.model_dump(exclude_unset=True)
    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise ValidationException("title must not be blank", errors={"title": "required"})
        changes["title"] = title
    for flag in ("is_active", "allow_multiple_submissions", "show_scores_to_client"):
        if flag in changes and changes[flag] is None:
            changes.pop(flag)
    for field, value in changes.items():
        setattr(assessment, field, value)
    commit_or_raise(db, "update assessment")
    db.refresh(assessment)
    if "is_active" in changes:
        log_assessment_active(therapist_id, assessment.id, assessment.is_active)
    return assessment


def delete_assessment(db: Session, assessment_id: str, therapist_id: str) -> None:
    """Delete the assessment with its links, submissions and assignments. Questions stay."""
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    links_removed = len(assessment.question_links)
    submissions_removed = len(assessment.submissions)
    db.delete(assessment)
    commit_or_raise(db, "delete assessment")
    log_assessment_delete(therapist_id, assessment_id, links_removed, submissions_removed)


def toggle_active(db: Session, assessment_id: str, therapist_id: str, is_active: bool) -> Assessment:
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    assessment.is_active = is_active
    commit_or_raise(db, "update assessment status")
    db.refresh(assessment)
    log_assessment_active(therapist_id, assessment.id, is_active)
    return assessment


def generate_share_token(db: Session, assessment_id: str, therapist_id: str) -> Dict[str, str]:
    """Issue a fresh token; any previous link stops working immediately."""
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    replaced = assessment.share_token is not None
    token = secrets.token_urlsafe(settings.share_token_bytes)
    assessment.share_token = token
    commit_or_raise(db, "generate share token")
    log_share_token_rotate(therapist_id, assessment_id, replaced)
    return {"assessment_id": assessment_id, "share_token": token, "share_url": share_url(token)}


def revoke_share_token(db: Session, assessment_id: str, therapist_id: str) -> Assessment:
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    had_token = assessment.share_token is not None
    if had_token:
        assessment.share_token = None
        commit_or_raise(db, "revoke share token")
        db.refresh(assessment)
    log_share_token_revoke(therapist_id, assessment_id, had_token)
    return assessment
