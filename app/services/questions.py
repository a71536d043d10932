"""Question store: canonical question records and the reusable library."""
from typing import List
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.question_types import normalize_options
from app.db import commit_or_raise
from app.exceptions import ConflictException, NotFoundException, OwnershipMismatchException, ValidationException
from app.models.assessment_question import AssessmentQuestion
from app.models.question import Question
from app.models.submission import AssessmentResponse
from app.schemas.question import QuestionCreate, QuestionUpdate
from app.services.audit import log_question_delete

logger = logging.getLogger("app.questions")

SEARCH_LIMIT = 20


def get_question(db: Session, question_id: str) -> Question:
    question = db.query(Question).filter_by(id=question_id).first()
    if not question:
        raise NotFoundException("Question not found")
    return question


def get_owned_question(db: Session, question_id: str, therapist_id: str) -> Question:
    question = get_question(db, question_id)
    if question.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only use your own questions")
    return question


def build_question(therapist_id: str, data: QuestionCreate) -> Question:
    """Unsaved Question row; callers decide which transaction it joins."""
    return Question(
        therapist_id=therapist_id,
        question_text=data.question_text,
        question_type=data.question_type.value,
        options=data.options,
        validation_rules=data.validation_rules,
        placeholder_text=data.placeholder_text,
        help_text=data.help_text,
        is_library_item=data.is_library_item,
    )


def create_question(db: Session, therapist_id: str, data: QuestionCreate) -> Question:
    question = build_question(therapist_id, data)
    db.add(question)
    commit_or_raise(db, "create question")
    db.refresh(question)
    return question


def _refit_link_overrides(db: Session, question: Question, new_type: str):
    """Re-validate every link's option override against ``new_type``; all fit or nothing changes."""
    # JSON null and SQL NULL both load as None
    links = [
        link for link in db.query(AssessmentQuestion).filter(AssessmentQuestion.question_id == question.id)
        if link.override_options is not None
    ]
    refitted = {}
    errors = {}
    for link in links:
        try:
            options = normalize_options(new_type, link.override_options)
            if options is None:
                raise ValueError(f"{new_type} questions do not take options")
            refitted[link.id] = options
        except ValueError as e:
            errors[link.id] = str(e)
    if errors:
        raise ValidationException(
            "Assessment option overrides do not fit the new question type; clear them first",
            errors=errors,
        )
    for link in links:
        link.override_options = refitted[link.id]


def update_question(db: Session, question_id: str, therapist_id: str, patch: QuestionUpdate) -> Question:
    question = get_owned_question(db, question_id, therapist_id)
    changes = patch.model_dump(exclude_unset=True)
    if "question_text" in changes:
        text = (changes["question_text"] or "").strip()
        if not text:
            raise ValidationException("question_text must not be blank")
        changes["question_text"] = text
    if "question_type" in changes or "options" in changes:
        qtype = changes.get("question_type") or question.question_type
        options = changes["options"] if "options" in changes else question.options
        try:
            changes["options"] = normalize_options(qtype, options)
        except ValueError as e:
            raise ValidationException(str(e), errors={"options": str(e)})
        if "question_type" in changes:
            changes["question_type"] = getattr(qtype, "value", qtype)
    new_type = changes.get("question_type")
    if new_type is not None and new_type != question.question_type:
        if has_responses(db, question.id):
            raise ConflictException("Question has recorded responses; its type can no longer change")
        _refit_link_overrides(db, question, new_type)
    for field, value in changes.items():
        setattr(question, field, value)
    commit_or_raise(db, "update question")
    db.refresh(question)
    return question


def mark_library(db: Session, question_id: str, therapist_id: str, is_library_item: bool) -> Question:
    """Flag (or unflag) a question as reusable. No data is copied."""
    question = get_owned_question(db, question_id, therapist_id)
    question.is_library_item = is_library_item
    commit_or_raise(db, "update library flag")
    db.refresh(question)
    return question


def list_library(db: Session, therapist_id: str) -> List[Question]:
    return (
        db.query(Question)
        .filter(Question.therapist_id == therapist_id, Question.is_library_item == True)  # noqa: E712
        .order_by(Question.created_at.desc())
        .all()
    )


def search_library(db: Session, therapist_id: str, term: str, limit: int = SEARCH_LIMIT) -> List[Question]:
    term = (term or "").strip()
    if not term:
        return list_library(db, therapist_id)[:limit]
    return (
        db.query(Question)
        .filter(
            Question.therapist_id == therapist_id,
            Question.is_library_item == True,  # noqa: E712
            func.lower(Question.question_text).contains(term.lower(), autoescape=True),
        )
        .order_by(Question.created_at.desc())
        .limit(limit)
        .all()
    )


def link_count(db: Session, question_id: str) -> int:
    return db.query(AssessmentQuestion).filter(AssessmentQuestion.question_id == question_id).count()


def has_responses(db: Session, question_id: str) -> bool:
    return db.query(AssessmentResponse.id).filter(AssessmentResponse.question_id == question_id).first() is not None


def delete_question(db: Session, question_id: str, therapist_id: str) -> None:
    question = get_owned_question(db, question_id, therapist_id)
    links = link_count(db, question_id)
    if links:
        raise ConflictException(
            f"Question is used by {links} assessment(s); remove it from those assessments first"
        )
    if has_responses(db, question_id):
        raise ConflictException("Question has recorded responses and cannot be deleted")
    db.delete(question)
    commit_or_raise(db, "delete question")
    log_question_delete(therapist_id, question_id, reason="direct")
