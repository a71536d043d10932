from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.user import User
from app.schemas.assessment import (
    ActiveFlag,
    AssessmentCreate,
    AssessmentDetailOut,
    AssessmentOut,
    AssessmentUpdate,
    ShareTokenOut,
)
from app.schemas.submission import SubmissionOut
from app.services import assessments as registry
from app.services import submissions as submission_engine
from app.services.auth import require_therapist

router = APIRouter(prefix="/assessments", tags=["Assessments"])


@router.post("", response_model=AssessmentOut, status_code=status.HTTP_201_CREATED)
def create_assessment(
    payload: AssessmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return registry.create_assessment(db, current_user.id, payload)


@router.get("", response_model=list[AssessmentOut])
def list_assessments(
    is_active: bool | None = None,
    category: str | None = None,
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(registry.DEFAULT_PAGE_SIZE, ge=1, le=registry.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return registry.list_assessments(
        db, current_user.id, is_active=is_active, category=category, search=search, skip=skip, limit=limit
    )


@router.get("/{assessment_id}", response_model=AssessmentDetailOut)
def get_assessment(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return registry.get_assessment_detail(db, assessment_id, current_user.id)


@router.patch("/{assessment_id}", response_model=AssessmentDetailOut)
def update_assessment(
    assessment_id: str,
    payload: AssessmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    assessment = registry.update_assessment(db, assessment_id, current_user.id, payload)
    return registry.authoring_view(db, assessment)


@router.delete("/{assessment_id}")
def delete_assessment(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    registry.delete_assessment(db, assessment_id, current_user.id)
    return {"deleted": True}


@router.put("/{assessment_id}/active", response_model=AssessmentDetailOut)
def set_active(
    assessment_id: str,
    payload: ActiveFlag,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    assessment = registry.toggle_active(db, assessment_id, current_user.id, payload.is_active)
    return registry.authoring_view(db, assessment)


@router.post("/{assessment_id}/share-token", response_model=ShareTokenOut)
def generate_share_token(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return registry.generate_share_token(db, assessment_id, current_user.id)


@router.delete("/{assessment_id}/share-token")
def revoke_share_token(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    registry.revoke_share_token(db, assessment_id, current_user.id)
    return {"revoked": True}


@router.get("/{assessment_id}/submissions", response_model=list[SubmissionOut])
def list_submissions(
    assessment_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return submission_engine.list_by_assessment(db, assessment_id, current_user.id, skip=skip, limit=limit)


@router.get("/{assessment_id}/submissions/count")
def count_submissions(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return {"assessment_id": assessment_id, "count": submission_engine.count_by_assessment(db, assessment_id, current_user.id)}
