from pydantic import BaseModel, Field
from typing import Optional, Any, Dict, List
from datetime import datetime

from app.schemas.question import QuestionCreate


class AssessmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True
    allow_multiple_submissions: bool = True
    show_scores_to_client: bool = False


class AssessmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None
    allow_multiple_submissions: Optional[bool] = None
    show_scores_to_client: Optional[bool] = None


class ActiveFlag(BaseModel):
    is_active: bool


class AssessmentOut(BaseModel):
    id: str
    therapist_id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
    allow_multiple_submissions: bool
    show_scores_to_client: bool
    share_token: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    question_count: int = 0
    submission_count: int = 0
    model_config = {'from_attributes': True}


class ShareTokenOut(BaseModel):
    assessment_id: str
    share_token: str
    share_url: str


# ---- Question links ----

class LinkSettings(BaseModel):
    is_required: bool = True
    points: int = 0
    override_question_text: Optional[str] = None
    override_options: Optional[Any] = None
    override_help_text: Optional[str] = None
    section_name: Optional[str] = None
    conditional_logic: Optional[Dict[str, Any]] = None


class LinkExistingQuestion(LinkSettings):
    question_id: str


class LinkNewQuestion(LinkSettings):
    question: QuestionCreate


class LinkUpdate(BaseModel):
    is_required: Optional[bool] = None
    points: Optional[int] = None
    override_question_text: Optional[str] = None
    override_options: Optional[Any] = None
    override_help_text: Optional[str] = None
    section_name: Optional[str] = None
    conditional_logic: Optional[Dict[str, Any]] = None


class ReorderRequest(BaseModel):
    ordered_ids: List[str]


class EffectiveQuestionOut(BaseModel):
    assessment_question_id: str
    question_id: str
    question_order: int
    question_text: str
    question_type: str
    options: Optional[Any] = None
    help_text: Optional[str] = None
    placeholder_text: Optional[str] = None
    validation_rules: Optional[Dict[str, Any]] = None
    is_required: bool
    points: int = 0
    section_name: Optional[str] = None
    conditional_logic: Optional[Dict[str, Any]] = None
    # authoring-only metadata
    is_library_item: bool = False
    has_overrides: bool = False
    model_config = {'from_attributes': True}


class AssessmentDetailOut(AssessmentOut):
    share_url: Optional[str] = None
    questions: List[EffectiveQuestionOut] = []


class UnlinkResult(BaseModel):
    removed: bool = True
    question_deleted: bool


# ---- Assignments ----

class AssignClientsRequest(BaseModel):
    client_ids: List[str] = Field(min_length=1)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class AssignmentUpdate(BaseModel):
    # checked against ASSIGNMENT_STATUSES in the service
    status: Optional[str] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class AssignmentOut(BaseModel):
    id: str
    assessment_id: str
    client_id: str
    status: str
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    submission_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    model_config = {'from_attributes': True}


class AssignmentCounts(BaseModel):
    total: int
    pending: int
    completed: int
    expired: int = 0


class ClientAssignmentOut(AssignmentOut):
    assessment_title: str
