"""Assessment-question links: ordering, per-assessment overrides and the
effective view of a question inside one assessment.

``question_order`` runs 1..N with no gaps inside each assessment. Appends
take max+1 under the ``uq_assessment_questions_order`` constraint and retry
when a concurrent writer got there first; reorders and renumbers move every
row to a temporary negative slot before writing the final positions, all in
one commit.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.conditional_logic import validate_rule
from app.core.question_types import DEFAULT_TEXT_MAX_LENGTH, normalize_options
from app.core.settings import settings
from app.db import commit_or_raise, try_rollback
from app.exceptions import ConflictException, PersistenceFailure, ValidationException
from app.models.assessment_question import AssessmentQuestion
from app.models.question import Question, QuestionType
from app.models.submission import AssessmentResponse
from app.schemas.assessment import LinkSettings, LinkUpdate
from app.schemas.question import QuestionCreate
from app.services.access import get_owned_assessment, get_owned_link
from app.services.audit import log_question_delete
from app.services.questions import build_question, get_owned_question, has_responses, link_count

logger = logging.getLogger("app.assessment_questions")

OVERRIDE_TEXT_FIELDS = ("override_question_text", "override_help_text")


@dataclass(frozen=True)
class QuestionFields:
    """The overridable subset of a question. Unset fields are None."""

    question_text: Optional[str] = None
    options: Optional[Any] = None
    help_text: Optional[str] = None


def merge_fields(base: QuestionFields, override: QuestionFields) -> QuestionFields:
    """Field-wise merge: a non-null override wins, otherwise the base value."""
    return QuestionFields(
        question_text=override.question_text if override.question_text is not None else base.question_text,
        options=override.options if override.options is not None else base.options,
        help_text=override.help_text if override.help_text is not None else base.help_text,
    )


@dataclass
class EffectiveQuestion:
    assessment_question_id: str
    question_id: str
    question_order: int
    question_text: str
    question_type: str
    options: Optional[Any]
    help_text: Optional[str]
    placeholder_text: Optional[str]
    validation_rules: Optional[Dict[str, Any]]
    is_required: bool
    points: int
    section_name: Optional[str]
    conditional_logic: Optional[Dict[str, Any]]
    is_library_item: bool = False
    has_overrides: bool = False

    # answer constraints published to public forms
    @property
    def allow_multiple(self) -> bool:
        rules = self.validation_rules or {}
        return self.question_type == QuestionType.multiple_choice.value and bool(rules.get("allow_multiple"))

    @property
    def min_length(self) -> Optional[int]:
        if self.question_type != QuestionType.text.value:
            return None
        return int((self.validation_rules or {}).get("min_length") or 0)

    @property
    def max_length(self) -> Optional[int]:
        if self.question_type != QuestionType.text.value:
            return None
        return int((self.validation_rules or {}).get("max_length") or DEFAULT_TEXT_MAX_LENGTH)


def _base_fields(question: Question) -> QuestionFields:
    return QuestionFields(
        question_text=question.question_text,
        options=question.options,
        help_text=question.help_text,
    )


def _override_fields(link: AssessmentQuestion) -> QuestionFields:
    return QuestionFields(
        question_text=link.override_question_text,
        options=link.override_options,
        help_text=link.override_help_text,
    )


def effective_question(link: AssessmentQuestion) -> EffectiveQuestion:
    question = link.question
    overrides = _override_fields(link)
    merged = merge_fields(_base_fields(question), overrides)
    return EffectiveQuestion(
        assessment_question_id=link.id,
        question_id=question.id,
        question_order=link.question_order,
        question_text=merged.question_text,
        question_type=question.question_type,
        options=merged.options,
        help_text=merged.help_text,
        placeholder_text=question.placeholder_text,
        validation_rules=question.validation_rules,
        is_required=bool(link.is_required),
        points=link.points or 0,
        section_name=link.section_name,
        conditional_logic=link.conditional_logic,
        is_library_item=bool(question.is_library_item),
        has_overrides=overrides != QuestionFields(),
    )


def list_links(db: Session, assessment_id: str) -> List[AssessmentQuestion]:
    return (
        db.query(AssessmentQuestion)
        .filter(AssessmentQuestion.assessment_id == assessment_id)
        .order_by(AssessmentQuestion.question_order)
        .all()
    )


def effective_questions(db: Session, assessment_id: str) -> List[EffectiveQuestion]:
    return [effective_question(link) for link in list_links(db, assessment_id)]


def _clean_link_values(values: Dict[str, Any], question_type: str, own_link_id: Optional[str], sibling_ids: List[str]) -> Dict[str, Any]:
    """Normalise link settings for the given base question type; raise ValidationException."""
    cleaned = dict(values)
    for field in OVERRIDE_TEXT_FIELDS:
        if field in cleaned and cleaned[field] is not None:
            cleaned[field] = cleaned[field].strip() or None
    if "override_options" in cleaned:
        opts = cleaned["override_options"]
        if opts in (None, [], {}):
            cleaned["override_options"] = None
        elif question_type == QuestionType.text.value:
            raise ValidationException(
                "Text questions do not take options",
                errors={"override_options": "not allowed for text questions"},
            )
        else:
            try:
                cleaned["override_options"] = normalize_options(question_type, opts)
            except ValueError as e:
                raise ValidationException(str(e), errors={"override_options": str(e)})
    if "points" in cleaned and cleaned["points"] is not None and cleaned["points"] < 0:
        raise ValidationException("points must not be negative", errors={"points": "must be >= 0"})
    if "conditional_logic" in cleaned:
        try:
            cleaned["conditional_logic"] = validate_rule(cleaned["conditional_logic"], own_link_id, sibling_ids)
        except ValueError as e:
            raise ValidationException(str(e), errors={"conditional_logic": str(e)})
    return cleaned


def _next_order(db: Session, assessment_id: str) -> int:
    current = (
        db.query(func.max(AssessmentQuestion.question_order))
        .filter(AssessmentQuestion.assessment_id == assessment_id)
        .scalar()
    )
    return (current or 0) + 1


def _ensure_not_linked(db: Session, assessment_id: str, question_id: Optional[str]):
    if question_id is None:
        return
    exists = (
        db.query(AssessmentQuestion.id)
        .filter(AssessmentQuestion.assessment_id == assessment_id, AssessmentQuestion.question_id == question_id)
        .first()
    )
    if exists:
        raise ConflictException("Question is already part of this assessment")


def _insert_link(db: Session, link: AssessmentQuestion, action: str) -> AssessmentQuestion:
    """Append ``link`` at max+1 and commit, retrying on an order collision."""
    attempts = max(1, settings.order_retry_attempts)
    last_error = None
    for attempt in range(1, attempts + 1):
        _ensure_not_linked(db, link.assessment_id, link.question_id)
        link.question_order = _next_order(db, link.assessment_id)
        db.add(link)
        try:
            db.commit()
        except IntegrityError as exc:
            last_error = exc
            rollback_error = try_rollback(db)
            if rollback_error is not None:
                raise PersistenceFailure(f"Failed to {action}", original=exc, rollback_error=rollback_error) from exc
            logger.warning("Order collision on %s (attempt %d/%d): %s", action, attempt, attempts, exc.orig)
            continue
        except SQLAlchemyError as exc:
            rollback_error = try_rollback(db)
            logger.error("Failed to %s: %s (rollback error: %s)", action, exc, rollback_error)
            raise PersistenceFailure(f"Failed to {action}", original=exc, rollback_error=rollback_error) from exc
        db.refresh(link)
        return link
    logger.error("Giving up on %s after %d order collisions", action, attempts)
    raise PersistenceFailure(f"Failed to {action} after {attempts} attempts", original=last_error)


def _sibling_ids(db: Session, assessment_id: str) -> List[str]:
    return [row.id for row in db.query(AssessmentQuestion.id).filter(AssessmentQuestion.assessment_id == assessment_id)]


def link(db: Session, assessment_id: str, therapist_id: str, question_id: str, link_settings: LinkSettings) -> EffectiveQuestion:
    """Attach an existing question to the end of an assessment."""
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    question = get_owned_question(db, question_id, therapist_id)
    if not question.is_library_item and link_count(db, question.id):
        raise ValidationException(
            "Question must be saved to the library before it can be reused",
            errors={"question_id": "not a library item"},
        )
    values = _clean_link_values(
        link_settings.model_dump(), question.question_type, None, _sibling_ids(db, assessment.id)
    )
    new_link = AssessmentQuestion(assessment_id=assessment.id, question_id=question.id, **values)
    _insert_link(db, new_link, "link question")
    logger.info("Linked question %s into assessment %s at %d", question.id, assessment.id, new_link.question_order)
    return effective_question(new_link)


def link_new(db: Session, assessment_id: str, therapist_id: str, data: QuestionCreate, link_settings: LinkSettings) -> EffectiveQuestion:
    """Create a question and link it in one transaction; neither row survives a failure."""
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    values = _clean_link_values(
        link_settings.model_dump(), data.question_type.value, None, _sibling_ids(db, assessment.id)
    )
    question = build_question(therapist_id, data)
    new_link = AssessmentQuestion(assessment_id=assessment.id, **values)
    new_link.question = question
    _insert_link(db, new_link, "create and link question")
    logger.info("Created question %s in assessment %s at %d", question.id, assessment.id, new_link.question_order)
    return effective_question(new_link)


def update_link(db: Session, assessment_question_id: str, therapist_id: str, patch: LinkUpdate) -> EffectiveQuestion:
    current = get_owned_link(db, assessment_question_id, therapist_id)
    changes = patch.model_dump(exclude_unset=True)
    # these two columns are not nullable; an explicit null leaves them alone
    for field in ("is_required", "points"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    changes = _clean_link_values(
        changes, current.question.question_type, current.id, _sibling_ids(db, current.assessment_id)
    )
    for field, value in changes.items():
        setattr(current, field, value)
    commit_or_raise(db, "update assessment question")
    db.refresh(current)
    return effective_question(current)


def _apply_order(db: Session, assessment_id: str, ordered_ids: List[str]):
    """Write positions 1..N in the given order without tripping the order constraint."""
    db.query(AssessmentQuestion).filter(AssessmentQuestion.assessment_id == assessment_id).update(
        {AssessmentQuestion.question_order: -AssessmentQuestion.question_order},
        synchronize_session=False,
    )
    for position, link_id in enumerate(ordered_ids, start=1):
        db.query(AssessmentQuestion).filter(AssessmentQuestion.id == link_id).update(
            {AssessmentQuestion.question_order: position},
            synchronize_session=False,
        )


def _renumber(db: Session, assessment_id: str):
    remaining = [row.id for row in (
        db.query(AssessmentQuestion.id)
        .filter(AssessmentQuestion.assessment_id == assessment_id)
        .order_by(AssessmentQuestion.question_order)
    )]
    _apply_order(db, assessment_id, remaining)


def _keep_reason(db: Session, question: Question) -> Optional[str]:
    if question.is_library_item:
        return "library item"
    if link_count(db, question.id):
        return "used by another assessment"
    if has_responses(db, question.id):
        return "has recorded responses"
    return None


def unlink(db: Session, assessment_question_id: str, therapist_id: str, delete_question: bool = True) -> Tuple[bool, bool]:
    """Remove a link and close the order gap.

    When ``delete_question`` is set the base question is deleted too, unless it
    is a library item, is linked elsewhere or has recorded responses.
    Returns ``(removed, question_deleted)``.
    """
    current = get_owned_link(db, assessment_question_id, therapist_id)
    assessment_id = current.assessment_id
    question = current.question
    question_id = question.id
    # responses keep their question_id; only the link reference goes
    db.query(AssessmentResponse).filter(AssessmentResponse.assessment_question_id == current.id).update(
        {AssessmentResponse.assessment_question_id: None},
        synchronize_session=False,
    )
    for sibling in list_links(db, assessment_id):
        rule = sibling.conditional_logic or {}
        if rule.get("assessment_question_id") == current.id:
            logger.info("Dropping display rule on %s that pointed at removed %s", sibling.id, current.id)
            sibling.conditional_logic = None
    db.delete(current)
    db.flush()

    question_deleted = False
    if delete_question:
        reason = _keep_reason(db, question)
        if reason is None:
            db.expire(question, ["links"])
            db.delete(question)
            question_deleted = True
        else:
            logger.info("Keeping question %s after unlink: %s", question_id, reason)

    _renumber(db, assessment_id)
    commit_or_raise(db, "remove question from assessment")
    if question_deleted:
        log_question_delete(therapist_id, question_id, reason="unlinked")
    return True, question_deleted


def reorder(db: Session, assessment_id: str, therapist_id: str, ordered_ids: List[str]) -> List[EffectiveQuestion]:
    """Apply a complete new ordering. The id list must match the current links exactly."""
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    current = set(_sibling_ids(db, assessment.id))
    requested = list(ordered_ids)
    if len(requested) != len(set(requested)):
        raise ValidationException("ordered_ids contains duplicates", errors={"ordered_ids": "duplicate ids"})
    missing = current - set(requested)
    unknown = set(requested) - current
    if missing or unknown:
        errors = {}
        if missing:
            errors["missing"] = ", ".join(sorted(missing))
        if unknown:
            errors["unknown"] = ", ".join(sorted(unknown))
        raise ValidationException("ordered_ids must list every question of the assessment exactly once", errors=errors)
    _apply_order(db, assessment.id, requested)
    commit_or_raise(db, "reorder assessment questions")
    return effective_questions(db, assessment.id)


def duplicate(db: Session, assessment_question_id: str, therapist_id: str) -> EffectiveQuestion:
    """Copy a link's question into a new private question appended to the same assessment."""
    source = get_owned_link(db, assessment_question_id, therapist_id)
    base = source.question
    copy = Question(
        therapist_id=base.therapist_id,
        question_text=f"{base.question_text} (Copy)",
        question_type=base.question_type,
        options=base.options,
        validation_rules=base.validation_rules,
        placeholder_text=base.placeholder_text,
        help_text=base.help_text,
        is_library_item=False,
    )
    new_link = AssessmentQuestion(
        assessment_id=source.assessment_id,
        is_required=source.is_required,
        points=source.points,
        override_question_text=source.override_question_text,
        override_options=source.override_options,
        override_help_text=source.override_help_text,
        section_name=source.section_name,
        conditional_logic=source.conditional_logic,
    )
    new_link.question = copy
    _insert_link(db, new_link, "duplicate assessment question")
    return effective_question(new_link)
