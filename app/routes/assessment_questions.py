from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.exceptions import NotFoundException
from app.models.user import User
from app.schemas.assessment import (
    EffectiveQuestionOut,
    LinkExistingQuestion,
    LinkNewQuestion,
    LinkSettings,
    LinkUpdate,
    ReorderRequest,
    UnlinkResult,
)
from app.services import assessment_questions as linker
from app.services.access import get_owned_assessment, get_owned_link
from app.services.auth import require_therapist

router = APIRouter(prefix="/assessments/{assessment_id}/questions", tags=["Assessment Questions"])


def _settings_only(payload: LinkSettings) -> LinkSettings:
    return LinkSettings(**payload.model_dump(include=set(LinkSettings.model_fields)))


def _check_link(db: Session, assessment_id: str, link_id: str, user: User):
    link = get_owned_link(db, link_id, user.id)
    if link.assessment_id != assessment_id:
        raise NotFoundException("Assessment question not found")


@router.get("", response_model=list[EffectiveQuestionOut])
def list_questions(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    get_owned_assessment(db, assessment_id, current_user.id)
    return linker.effective_questions(db, assessment_id)


@router.post("", response_model=EffectiveQuestionOut, status_code=status.HTTP_201_CREATED)
def link_question(
    assessment_id: str,
    payload: LinkExistingQuestion,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return linker.link(db, assessment_id, current_user.id, payload.question_id, _settings_only(payload))


@router.post("/new", response_model=EffectiveQuestionOut, status_code=status.HTTP_201_CREATED)
def link_new_question(
    assessment_id: str,
    payload: LinkNewQuestion,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return linker.link_new(db, assessment_id, current_user.id, payload.question, _settings_only(payload))


@router.put("/order", response_model=list[EffectiveQuestionOut])
def reorder_questions(
    assessment_id: str,
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return linker.reorder(db, assessment_id, current_user.id, payload.ordered_ids)


@router.patch("/{link_id}", response_model=EffectiveQuestionOut)
def update_link(
    assessment_id: str,
    link_id: str,
    payload: LinkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    _check_link(db, assessment_id, link_id, current_user)
    return linker.update_link(db, link_id, current_user.id, payload)


@router.delete("/{link_id}", response_model=UnlinkResult)
def unlink_question(
    assessment_id: str,
    link_id: str,
    delete_question: bool = Query(True, description="Also delete the question when nothing else uses it"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    _check_link(db, assessment_id, link_id, current_user)
    removed, question_deleted = linker.unlink(db, link_id, current_user.id, delete_question=delete_question)
    return {"removed": removed, "question_deleted": question_deleted}


@router.post("/{link_id}/duplicate", response_model=EffectiveQuestionOut, status_code=status.HTTP_201_CREATED)
def duplicate_question(
    assessment_id: str,
    link_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    _check_link(db, assessment_id, link_id, current_user)
    return linker.duplicate(db, link_id, current_user.id)
