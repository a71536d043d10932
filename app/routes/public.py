"""Anonymous share-link endpoints. No authentication; rate limited by middleware."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.schemas.public import PublicAssessmentOut
from app.schemas.submission import PublicSubmissionCreate, PublicSubmissionResult
from app.services import public_access
from app.services import submissions as submission_engine

router = APIRouter(prefix="/assessment", tags=["Public"])


@router.get("/{token}", response_model=PublicAssessmentOut)
def get_public_assessment(token: str, db: Session = Depends(get_db)):
    return PublicAssessmentOut.model_validate(public_access.resolve(db, token))


@router.post("/{token}", response_model=PublicSubmissionResult, status_code=status.HTTP_201_CREATED)
def submit_public_assessment(token: str, payload: PublicSubmissionCreate, db: Session = Depends(get_db)):
    submission = submission_engine.create_public_submission(db, token, payload)
    return PublicSubmissionResult(success=True, submitted_at=submission.submitted_at)
