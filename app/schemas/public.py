from pydantic import BaseModel
from typing import Optional, Any, Dict, List


class PublicQuestionOut(BaseModel):
    assessment_question_id: str
    question_id: str
    question_order: int
    question_text: str
    question_type: str
    options: Optional[Any] = None
    help_text: Optional[str] = None
    placeholder_text: Optional[str] = None
    is_required: bool
    section_name: Optional[str] = None
    conditional_logic: Optional[Dict[str, Any]] = None
    allow_multiple: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    model_config = {'from_attributes': True}


class PublicAssessmentOut(BaseModel):
    """Anonymous payload; the owner id never leaves the server."""

    id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    allow_multiple_submissions: bool
    questions: List[PublicQuestionOut]
    model_config = {'from_attributes': True}
