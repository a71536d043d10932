from pydantic import BaseModel, Field, model_validator
from typing import Optional, Any, Dict
from datetime import datetime

from app.core.question_types import normalize_options
from app.models.question import QuestionType


class QuestionOption(BaseModel):
    label: str
    value: str
    points: Optional[float] = None


class QuestionCreate(BaseModel):
    question_text: str = Field(min_length=1)
    question_type: QuestionType
    options: Optional[Any] = None
    validation_rules: Optional[Dict[str, Any]] = None
    placeholder_text: Optional[str] = None
    help_text: Optional[str] = None
    is_library_item: bool = False

    @model_validator(mode="after")
    def options_match_type(self):
        self.question_text = self.question_text.strip()
        if not self.question_text:
            raise ValueError("question_text must not be blank")
        self.options = normalize_options(self.question_type, self.options)
        return self


class QuestionUpdate(BaseModel):
    # options are re-validated in the service against the resulting type
    question_text: Optional[str] = Field(None, min_length=1)
    question_type: Optional[QuestionType] = None
    options: Optional[Any] = None
    validation_rules: Optional[Dict[str, Any]] = None
    placeholder_text: Optional[str] = None
    help_text: Optional[str] = None


class LibraryFlag(BaseModel):
    is_library_item: bool


class QuestionOut(BaseModel):
    id: str
    therapist_id: str
    question_text: str
    question_type: str
    options: Optional[Any] = None
    validation_rules: Optional[Dict[str, Any]] = None
    placeholder_text: Optional[str] = None
    help_text: Optional[str] = None
    is_library_item: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = {'from_attributes': True}
