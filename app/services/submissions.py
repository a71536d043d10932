"""Submission engine: response validation and the single-transaction write.

Nothing is written until every response has been checked against the
effective question it answers. The submission row, its responses, a newly
created public client and any assignment completion then go out in one
commit; a failure rolls all of it back.
"""
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.conditional_logic import is_blank, is_visible
from app.core.question_types import CHOICE_TYPES, DEFAULT_TEXT_MAX_LENGTH, choice_options, rating_bounds
from app.db import commit_or_raise, try_rollback
from app.exceptions import (
    DuplicateSubmissionException,
    NotFoundException,
    OwnershipMismatchException,
    PersistenceFailure,
    ValidationException,
)
from app.models.assessment import Assessment
from app.models.assessment_assignment import AssessmentAssignment
from app.models.client import Client
from app.models.question import QuestionType
from app.models.submission import SUBMISSION_STATUSES, AssessmentResponse, AssessmentSubmission
from app.schemas.submission import PublicSubmissionCreate, ResponseIn, SubmissionAnnotate, SubmissionCreate
from app.services.access import get_owned_assessment
from app.services.assessment_questions import EffectiveQuestion, effective_questions
from app.services.audit import log_client_created, log_submission_create, log_submission_rejected
from app.services.clients import find_or_build_client, get_owned_client
from app.services.public_access import find_open_assessment
from app.services.scoring import score_answers
from app.utils.datetime import utc_now

logger = logging.getLogger("app.submissions")
OPEN_ASSIGNMENT_STATUSES = ("pending", "in_progress")


def _check_choice(question: EffectiveQuestion, value: Any) -> Any:
    allowed = [str(o.get("value")) for o in choice_options(question.question_type, question.options)]
    rules = question.validation_rules or {}
    if isinstance(value, list):
        if question.question_type != QuestionType.multiple_choice.value or not rules.get("allow_multiple"):
            raise ValueError("Only one option may be selected")
        chosen = [str(v) for v in value]
        if len(set(chosen)) != len(chosen):
            raise ValueError("An option was selected more than once")
        bad = [v for v in chosen if v not in allowed]
        if bad:
            raise ValueError(f"'{bad[0]}' is not one of the available options")
        return chosen
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    chosen = str(value)
    if chosen not in allowed:
        raise ValueError(f"'{chosen}' is not one of the available options")
    return chosen


def _check_rating(question: EffectiveQuestion, value: Any) -> float:
    if isinstance(value, (bool, list)):
        raise ValueError("Rating must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("Rating must be a number")
    if not number.is_integer():
        raise ValueError("Rating must be a whole number")
    lo, hi = rating_bounds(question.options)
    if number < lo or number > hi:
        raise ValueError(f"Rating must be between {lo} and {hi}")
    return number


def _check_text(question: EffectiveQuestion, value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Answer must be text")
    rules = question.validation_rules or {}
    max_length = int(rules.get("max_length") or DEFAULT_TEXT_MAX_LENGTH)
    min_length = int(rules.get("min_length") or 0)
    length = len(value.strip())
    if length > max_length:
        raise ValueError(f"Answer must be at most {max_length} characters")
    if length < min_length:
        raise ValueError(f"Answer must be at least {min_length} characters")
    return value


def check_value(question: EffectiveQuestion, value: Any) -> Any:
    """Validate one non-blank answer for the question's effective type; return the stored form."""
    if question.question_type in CHOICE_TYPES:
        return _check_choice(question, value)
    if question.question_type == QuestionType.rating.value:
        return _check_rating(question, value)
    return _check_text(question, value)


def validate_responses(questions: List[EffectiveQuestion], responses: List[ResponseIn]) -> Dict[str, Any]:
    """Return cleaned answers keyed by assessment_question_id, in question order.

    Raises ValidationException with per-question messages. Answers to
    questions hidden by their display rule are dropped, and hidden required
    questions are not enforced.
    """
    by_id = {q.assessment_question_id: q for q in questions}
    errors: Dict[str, str] = {}
    raw: Dict[str, Any] = {}
    for response in responses:
        qid = response.assessment_question_id
        if qid not in by_id:
            errors[qid] = "Question is not part of this assessment"
        elif qid in raw:
            errors[qid] = "Question was answered more than once"
        else:
            raw[qid] = response.value

    answers: Dict[str, Any] = {}
    for question in questions:
        qid = question.assessment_question_id
        if not is_visible(question.conditional_logic, raw):
            continue
        value = raw.get(qid)
        if is_blank(value):
            if question.is_required:
                errors[qid] = "This question is required"
            continue
        try:
            answers[qid] = check_value(question, value)
        except ValueError as e:
            errors.setdefault(qid, str(e))

    if errors:
        raise ValidationException("Some responses are missing or invalid", errors=errors)
    if not answers:
        raise ValidationException("At least one response is required")
    return answers


def _ensure_first_submission(db: Session, assessment: Assessment, client_id: str, channel: str):
    if assessment.allow_multiple_submissions:
        return
    existing = (
        db.query(AssessmentSubmission.id)
        .filter(
            AssessmentSubmission.assessment_id == assessment.id,
            AssessmentSubmission.client_id == client_id,
            AssessmentSubmission.status.in_(sorted(SUBMISSION_STATUSES)),
        )
        .first()
    )
    if existing:
        log_submission_rejected(assessment.id, "duplicate", channel)
        raise DuplicateSubmissionException()


def _build_responses(questions: Dict[str, EffectiveQuestion], answers: Dict[str, Any], points: Dict[str, float]) -> List[AssessmentResponse]:
    rows = []
    for qid, value in answers.items():
        row = AssessmentResponse(
            assessment_question_id=qid,
            question_id=questions[qid].question_id,
            points_earned=points.get(qid, 0.0),
        )
        if isinstance(value, list):
            row.response_values = value
        elif isinstance(value, float):
            row.numeric_value = value
        else:
            row.response_value = value
        rows.append(row)
    return rows


def _persist_responses(db: Session, submission: AssessmentSubmission, rows: List[AssessmentResponse]):
    for row in rows:
        row.submission_id = submission.id
        db.add(row)
    db.flush()


def _complete_assignment(db: Session, submission: AssessmentSubmission):
    assignment = (
        db.query(AssessmentAssignment)
        .filter(
            AssessmentAssignment.assessment_id == submission.assessment_id,
            AssessmentAssignment.client_id == submission.client_id,
            AssessmentAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
        )
        .first()
    )
    if assignment:
        assignment.status = "completed"
        assignment.completed_at = submission.submitted_at
        assignment.submission_id = submission.id


def _write_submission(
    db: Session,
    assessment: Assessment,
    client: Client,
    responses: List[ResponseIn],
    channel: str,
    new_client: bool = False,
    session_id: Optional[str] = None,
    completion_time_seconds: Optional[int] = None,
) -> AssessmentSubmission:
    questions = effective_questions(db, assessment.id)
    try:
        answers = validate_responses(questions, responses)
    except ValidationException:
        log_submission_rejected(assessment.id, "invalid", channel)
        raise
    if not new_client:
        _ensure_first_submission(db, assessment, client.id, channel)

    by_id = {q.assessment_question_id: q for q in questions}
    scored = score_answers(by_id, answers)
    submission = AssessmentSubmission(
        assessment_id=assessment.id,
        client_id=client.id,
        therapist_id=assessment.therapist_id,
        session_id=session_id,
        status="completed",
        completion_time_seconds=completion_time_seconds,
        raw_score=scored["raw_score"],
        submitted_at=utc_now(),
    )
    rows = _build_responses(by_id, answers, scored["points"])

    try:
        if new_client:
            db.add(client)
        db.add(submission)
        db.flush()
        _persist_responses(db, submission, rows)
        _complete_assignment(db, submission)
        db.commit()
    except SQLAlchemyError as exc:
        rollback_error = try_rollback(db)
        logger.error("Submission write for assessment %s failed: %s (rollback error: %s)", assessment.id, exc, rollback_error)
        raise PersistenceFailure("Failed to save submission", original=exc, rollback_error=rollback_error) from exc

    db.refresh(submission)
    if new_client:
        log_client_created(assessment.therapist_id, client.id, source="public_submission")
    log_submission_create(assessment.therapist_id, submission.id, assessment.id, client.id, len(rows), channel)
    return submission


def create_submission(db: Session, therapist_id: str, data: SubmissionCreate) -> AssessmentSubmission:
    """Therapist-entered submission for one of their clients."""
    assessment = get_owned_assessment(db, data.assessment_id, therapist_id)
    client = get_owned_client(db, data.client_id, therapist_id)
    return _write_submission(
        db,
        assessment,
        client,
        data.responses,
        channel="therapist",
        session_id=data.session_id,
        completion_time_seconds=data.completion_time_seconds,
    )


def create_public_submission(db: Session, token: str, data: PublicSubmissionCreate) -> AssessmentSubmission:
    """Anonymous submission through a share link; the client is matched or created."""
    assessment = find_open_assessment(db, token)
    client, created = find_or_build_client(db, assessment.therapist_id, data.client_name, data.client_email)
    return _write_submission(
        db,
        assessment,
        client,
        data.responses,
        channel="public",
        new_client=created,
        completion_time_seconds=data.completion_time_seconds,
    )


def get_owned_submission(db: Session, submission_id: str, therapist_id: str) -> AssessmentSubmission:
    submission = db.query(AssessmentSubmission).filter_by(id=submission_id).first()
    if not submission:
        raise NotFoundException("Submission not found")
    if submission.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only view your own submissions")
    return submission


def submission_detail(submission: AssessmentSubmission) -> Dict[str, Any]:
    data = {
        column: getattr(submission, column)
        for column in (
            "id", "assessment_id", "client_id", "therapist_id", "session_id", "status",
            "completion_time_seconds", "raw_score", "calculated_score", "score_interpretation",
            "notes", "submitted_at",
        )
    }
    data["responses"] = [
        {
            "id": r.id,
            "assessment_question_id": r.assessment_question_id,
            "question_id": r.question_id,
            "question_text": r.question.question_text if r.question else None,
            "question_type": r.question.question_type if r.question else None,
            "value": r.value,
            "points_earned": r.points_earned,
        }
        for r in submission.responses
    ]
    return data


def list_by_assessment(db: Session, assessment_id: str, therapist_id: str, skip: int = 0, limit: int = 50) -> List[AssessmentSubmission]:
    get_owned_assessment(db, assessment_id, therapist_id)
    return (
        db.query(AssessmentSubmission)
        .filter(AssessmentSubmission.assessment_id == assessment_id)
        .order_by(AssessmentSubmission.submitted_at.desc())
        .offset(max(0, skip))
        .limit(max(1, limit))
        .all()
    )


def list_by_client(db: Session, client_id: str, therapist_id: str) -> List[AssessmentSubmission]:
    get_owned_client(db, client_id, therapist_id)
    return (
        db.query(AssessmentSubmission)
        .filter(AssessmentSubmission.client_id == client_id, AssessmentSubmission.therapist_id == therapist_id)
        .order_by(AssessmentSubmission.submitted_at.desc())
        .all()
    )


def count_by_assessment(db: Session, assessment_id: str, therapist_id: str) -> int:
    get_owned_assessment(db, assessment_id, therapist_id)
    return (
        db.query(func.count(AssessmentSubmission.id))
        .filter(AssessmentSubmission.assessment_id == assessment_id)
        .scalar()
    ) or 0


def annotate(db: Session, submission_id: str, therapist_id: str, patch: SubmissionAnnotate) -> AssessmentSubmission:
    """Update the therapist-owned annotation fields; responses are immutable."""
    submission = get_owned_submission(db, submission_id, therapist_id)
    for field, value in patch.model_dump(exclude_unset=True).items():
        if field == "status" and value is None:
            continue
        setattr(submission, field, value)
    commit_or_raise(db, "annotate submission")
    db.refresh(submission)
    return submission


def delete_submission(db: Session, submission_id: str, therapist_id: str) -> None:
    submission = get_owned_submission(db, submission_id, therapist_id)
    db.query(AssessmentAssignment).filter(AssessmentAssignment.submission_id == submission.id).update(
        {AssessmentAssignment.submission_id: None},
        synchronize_session=False,
    )
    db.delete(submission)
    commit_or_raise(db, "delete submission")
    logger.info("Deleted submission %s", submission_id)
