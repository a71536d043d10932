from pydantic import BaseModel, Field, EmailStr
from typing import Optional, List, Union, Literal
from datetime import datetime

# rating -> number, multiple_choice -> str or list of str, text/yes_no -> str
ResponseValue = Optional[Union[List[str], float, str]]


class ResponseIn(BaseModel):
    assessment_question_id: str
    value: ResponseValue = None


class SubmissionCreate(BaseModel):
    assessment_id: str
    client_id: str
    session_id: Optional[str] = None
    completion_time_seconds: Optional[int] = Field(None, ge=0)
    responses: List[ResponseIn]


class PublicSubmissionCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=200)
    client_email: Optional[EmailStr] = None
    completion_time_seconds: Optional[int] = Field(None, ge=0)
    responses: List[ResponseIn]


class PublicSubmissionResult(BaseModel):
    success: bool
    submitted_at: datetime
    message: str = "Your responses have been submitted."


class SubmissionAnnotate(BaseModel):
    status: Optional[Literal["completed", "reviewed"]] = None
    notes: Optional[str] = None
    calculated_score: Optional[float] = None
    score_interpretation: Optional[str] = None


class ResponseOut(BaseModel):
    id: str
    assessment_question_id: Optional[str] = None
    question_id: str
    question_text: Optional[str] = None
    question_type: Optional[str] = None
    value: ResponseValue = None
    points_earned: Optional[float] = None
    model_config = {'from_attributes': True}


class SubmissionOut(BaseModel):
    id: str
    assessment_id: str
    client_id: str
    therapist_id: str
    session_id: Optional[str] = None
    status: str
    completion_time_seconds: Optional[int] = None
    raw_score: Optional[float] = None
    calculated_score: Optional[float] = None
    score_interpretation: Optional[str] = None
    notes: Optional[str] = None
    submitted_at: datetime
    model_config = {'from_attributes': True}


class SubmissionDetailOut(SubmissionOut):
    responses: List[ResponseOut] = []
