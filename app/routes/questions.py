from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.user import User
from app.schemas.question import LibraryFlag, QuestionCreate, QuestionOut, QuestionUpdate
from app.services import questions as question_store
from app.services.auth import require_therapist

router = APIRouter(prefix="/questions", tags=["Questions"])


@router.post("", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return question_store.create_question(db, current_user.id, payload)


@router.get("/library", response_model=list[QuestionOut])
def list_library(
    search: str | None = Query(None, description="Case-insensitive text match"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    if search:
        return question_store.search_library(db, current_user.id, search)
    return question_store.list_library(db, current_user.id)


@router.get("/{question_id}", response_model=QuestionOut)
def get_question(
    question_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return question_store.get_owned_question(db, question_id, current_user.id)


@router.patch("/{question_id}", response_model=QuestionOut)
def update_question(
    question_id: str,
    payload: QuestionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return question_store.update_question(db, question_id, current_user.id, payload)


@router.put("/{question_id}/library", response_model=QuestionOut)
def set_library_flag(
    question_id: str,
    payload: LibraryFlag,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return question_store.mark_library(db, question_id, current_user.id, payload.is_library_item)


@router.delete("/{question_id}")
def delete_question(
    question_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    question_store.delete_question(db, question_id, current_user.id)
    return {"deleted": True}
