from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.user import User
from app.schemas.assessment import (
    AssignClientsRequest, AssignmentCounts, AssignmentOut, AssignmentUpdate, ClientAssignmentOut,
)
from app.services import assignments as assignment_service
from app.services.auth import require_therapist

router = APIRouter(prefix="/assessments/{assessment_id}/assignments", tags=["Assignments"])
client_router = APIRouter(prefix="/clients/{client_id}/assignments", tags=["Assignments"])


@router.post("", response_model=list[AssignmentOut], status_code=status.HTTP_201_CREATED)
def assign_clients(
    assessment_id: str,
    payload: AssignClientsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return assignment_service.assign(
        db, assessment_id, current_user.id, payload.client_ids, due_date=payload.due_date, notes=payload.notes
    )


@router.get("", response_model=list[AssignmentOut])
def list_assignments(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return assignment_service.list_assigned(db, assessment_id, current_user.id)


@router.get("/counts", response_model=AssignmentCounts)
def assignment_counts(
    assessment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return assignment_service.assignment_counts(db, assessment_id, current_user.id)


@router.patch("/{assignment_id}", response_model=AssignmentOut)
def update_assignment(
    assessment_id: str,
    assignment_id: str,
    payload: AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return assignment_service.update_assignment(db, assessment_id, assignment_id, current_user.id, payload)


@router.delete("/{assignment_id}")
def remove_assignment(
    assessment_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    assignment_service.remove_assignment(db, assessment_id, assignment_id, current_user.id)
    return {"deleted": True}


@client_router.get("", response_model=list[ClientAssignmentOut])
def list_client_assignments(
    client_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_therapist),
):
    return [
        ClientAssignmentOut(
            **AssignmentOut.model_validate(assignment).model_dump(),
            assessment_title=assignment.assessment.title,
        )
        for assignment in assignment_service.list_for_client(db, client_id, current_user.id)
    ]
