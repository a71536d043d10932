from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.user import User
from app.schemas.submission import SubmissionAnnotate, SubmissionCreate, SubmissionDetailOut, SubmissionOut
from app.services import submissions as submission_engine
from app.services.auth import require_therapist

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("", response_model=SubmissionDetailOut, status_code=status.HTTP_201_CREATED)
def create_submission(
    payload: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    submission = submission_engine.create_submission(db, current_user.id, payload)
    return submission_engine.submission_detail(submission)


@router.get("/client/{client_id}", response_model=list[SubmissionOut])
def list_client_submissions(
    client_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return submission_engine.list_by_client(db, client_id, current_user.id)


@router.get("/{submission_id}", response_model=SubmissionDetailOut)
def get_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    submission = submission_engine.get_owned_submission(db, submission_id, current_user.id)
    return submission_engine.submission_detail(submission)


@router.patch("/{submission_id}", response_model=SubmissionOut)
def annotate_submission(
    submission_id: str,
    payload: SubmissionAnnotate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return submission_engine.annotate(db, submission_id, current_user.id, payload)


@router.delete("/{submission_id}")
def delete_submission(
    submission_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    submission_engine.delete_submission(db, submission_id, current_user.id)
    return {"deleted": True}
