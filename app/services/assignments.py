"""Assessment assignments to clients. Completion is recorded by the submission engine."""
from datetime import datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from app.db import commit_or_raise
from app.exceptions import NotFoundException, OwnershipMismatchException, ValidationException
from app.models.assessment_assignment import ASSIGNMENT_STATUSES, AssessmentAssignment
from app.schemas.assessment import AssignmentUpdate
from app.services.access import get_owned_assessment
from app.services.clients import get_owned_client
from app.utils.datetime import utc_now

logger = logging.getLogger("app.assignments")


def assign(
    db: Session,
    assessment_id: str,
    therapist_id: str,
    client_ids: List[str],
    due_date: Optional[datetime] = None,
    notes: Optional[str] = None,
) -> List[AssessmentAssignment]:
    """Assign (or re-assign) the assessment to each client.

    An existing assignment for the same client is updated in place; a
    completed one is reopened as pending.
    """
    assessment = get_owned_assessment(db, assessment_id, therapist_id)
    seen = []
    for client_id in dict.fromkeys(client_ids):
        get_owned_client(db, client_id, therapist_id)
        seen.append(client_id)

    results = []
    for client_id in seen:
        assignment = (
            db.query(AssessmentAssignment)
            .filter_by(assessment_id=assessment.id, client_id=client_id)
            .first()
        )
        if assignment is None:
            assignment = AssessmentAssignment(
                assessment_id=assessment.id,
                client_id=client_id,
                therapist_id=therapist_id,
            )
            db.add(assignment)
        assignment.status = "pending"
        assignment.due_date = due_date
        assignment.notes = notes
        assignment.completed_at = None
        assignment.submission_id = None
        results.append(assignment)
    commit_or_raise(db, "assign assessment")
    for assignment in results:
        db.refresh(assignment)
    logger.info("Assigned assessment %s to %d client(s)", assessment.id, len(results))
    return results


def list_assigned(db: Session, assessment_id: str, therapist_id: str) -> List[AssessmentAssignment]:
    get_owned_assessment(db, assessment_id, therapist_id)
    return (
        db.query(AssessmentAssignment)
        .filter(AssessmentAssignment.assessment_id == assessment_id)
        .order_by(AssessmentAssignment.assigned_at.desc())
        .all()
    )


def list_for_client(db: Session, client_id: str, therapist_id: str) -> List[AssessmentAssignment]:
    """Every assessment assigned to one client, newest first."""
    get_owned_client(db, client_id, therapist_id)
    return (
        db.query(AssessmentAssignment)
        .filter(AssessmentAssignment.client_id == client_id, AssessmentAssignment.therapist_id == therapist_id)
        .order_by(AssessmentAssignment.assigned_at.desc())
        .all()
    )


def _get_owned_assignment(db: Session, assessment_id: str, assignment_id: str, therapist_id: str) -> AssessmentAssignment:
    assignment = db.query(AssessmentAssignment).filter_by(id=assignment_id, assessment_id=assessment_id).first()
    if not assignment:
        raise NotFoundException("Assignment not found")
    if assignment.therapist_id != therapist_id:
        raise OwnershipMismatchException("You can only manage your own assignments")
    return assignment


def update_assignment(
    db: Session, assessment_id: str, assignment_id: str, therapist_id: str, patch: AssignmentUpdate
) -> AssessmentAssignment:
    """Edit due date, notes or status. Moving out of completed clears the completion."""
    assignment = _get_owned_assignment(db, assessment_id, assignment_id, therapist_id)
    changes = patch.model_dump(exclude_unset=True)
    status = changes.pop("status", None)
    if status is not None:
        if status not in ASSIGNMENT_STATUSES:
            allowed = ", ".join(sorted(ASSIGNMENT_STATUSES))
            raise ValidationException(
                f"Unknown assignment status '{status}'",
                errors={"status": f"expected one of: {allowed}"},
            )
        if status == "completed":
            assignment.completed_at = assignment.completed_at or utc_now()
        else:
            assignment.completed_at = None
            assignment.submission_id = None
        assignment.status = status
    for field, value in changes.items():
        setattr(assignment, field, value)
    commit_or_raise(db, "update assignment")
    db.refresh(assignment)
    logger.info("Updated assignment %s (status=%s)", assignment.id, assignment.status)
    return assignment


def remove_assignment(db: Session, assessment_id: str, assignment_id: str, therapist_id: str) -> None:
    assignment = _get_owned_assignment(db, assessment_id, assignment_id, therapist_id)
    db.delete(assignment)
    commit_or_raise(db, "remove assignment")


def assignment_counts(db: Session, assessment_id: str, therapist_id: str) -> Dict[str, int]:
    rows = list_assigned(db, assessment_id, therapist_id)
    completed = sum(1 for a in rows if a.status == "completed")
    pending = sum(1 for a in rows if a.status in ("pending", "in_progress"))
    expired = sum(1 for a in rows if a.status == "expired")
    return {"total": len(rows), "pending": pending, "completed": completed, "expired": expired}
